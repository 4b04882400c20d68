"""
Database connection setup
"""
from sqlalchemy import create_engine, event
from sqlalchemy.ext.declarative import declarative_base


def _sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def enable_sqlite_foreign_keys(engine):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are enabled per connection."""
    event.listen(engine, "connect", _sqlite_foreign_keys)
    return engine


def make_engine(url: str, echo: bool = False):
    # SQLite needs check_same_thread=False
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    engine = create_engine(url, connect_args=connect_args, echo=echo)
    if url.startswith("sqlite"):
        enable_sqlite_foreign_keys(engine)
    return engine


Base = declarative_base()
