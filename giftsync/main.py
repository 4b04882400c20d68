"""
GiftSync bootstrap – logging, data directory and schema.
"""
import logging
import os
from typing import Optional

from sqlalchemy.orm import sessionmaker

from giftsync.config import Settings, settings as default_settings
from giftsync.database import make_engine
from giftsync.migrations import run_migrations

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s  %(name)-30s  %(levelname)-5s  %(message)s",
    )


def bootstrap(config: Optional[Settings] = None) -> sessionmaker:
    """Prepare the runtime and return a session factory bound to a migrated database."""
    config = config or default_settings
    configure_logging(config.LOG_LEVEL)
    os.makedirs(config.DATA_DIR, exist_ok=True)

    engine = make_engine(config.DATABASE_URL, echo=config.DEBUG)
    applied = run_migrations(engine)
    logger.info("Database ready (%s), %d migrations applied", config.DATABASE_URL, len(applied))
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
