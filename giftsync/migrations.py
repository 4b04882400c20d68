"""
Schema migrations – ordered, idempotent steps run at startup.

Each step checks its own precondition against the live schema, so the list
can be replayed on any database state.
"""
from __future__ import annotations

import logging
from typing import Callable, NamedTuple

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

import giftsync.models  # noqa: F401  - register models
from giftsync.database import Base

logger = logging.getLogger(__name__)


class Migration(NamedTuple):
    name: str
    needed: Callable[[Engine], bool]
    apply: Callable[[Engine], None]


def _tables(engine: Engine) -> set[str]:
    return set(inspect(engine).get_table_names())


def _columns(engine: Engine, table: str) -> set[str]:
    if table not in _tables(engine):
        return set()
    return {c["name"] for c in inspect(engine).get_columns(table)}


def _missing(table: str, column: str) -> Callable[[Engine], bool]:
    def check(engine: Engine) -> bool:
        return table in _tables(engine) and column not in _columns(engine, table)
    return check


def _present(table: str, column: str) -> Callable[[Engine], bool]:
    def check(engine: Engine) -> bool:
        return column in _columns(engine, table)
    return check


def _run(*statements: str) -> Callable[[Engine], None]:
    def apply(engine: Engine) -> None:
        with engine.begin() as conn:
            for stmt in statements:
                conn.execute(text(stmt))
    return apply


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------

def _create_tables_needed(engine: Engine) -> bool:
    return not set(Base.metadata.tables).issubset(_tables(engine))


def _create_tables(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)


def _transactions_amount_columns_needed(engine: Engine) -> bool:
    cols = _columns(engine, "transactions")
    return bool(cols) and not {"amount_source", "manual_amount"}.issubset(cols)


def _add_transactions_amount_columns(engine: Engine) -> None:
    cols = _columns(engine, "transactions")
    with engine.begin() as conn:
        if "manual_amount" not in cols:
            conn.execute(text("ALTER TABLE transactions ADD COLUMN manual_amount NUMERIC(12, 2) NOT NULL DEFAULT 0"))
            conn.execute(text("UPDATE transactions SET manual_amount = amount"))
        if "amount_source" not in cols:
            conn.execute(text("ALTER TABLE transactions ADD COLUMN amount_source VARCHAR NOT NULL DEFAULT 'manual'"))
            conn.execute(text(
                "UPDATE transactions SET amount_source = 'derived' "
                "WHERE id IN (SELECT DISTINCT transaction_id FROM transaction_items)"
            ))


MIGRATIONS: list[Migration] = [
    Migration("create_tables", _create_tables_needed, _create_tables),
    Migration(
        "add_organizations_external_id",
        _missing("organizations", "external_id"),
        _run(
            "ALTER TABLE organizations ADD COLUMN external_id VARCHAR",
            "CREATE UNIQUE INDEX IF NOT EXISTS ix_organizations_external_id ON organizations (external_id)",
        ),
    ),
    Migration(
        "add_transactions_organization_id",
        _missing("transactions", "organization_id"),
        _run("ALTER TABLE transactions ADD COLUMN organization_id INTEGER REFERENCES organizations(id)"),
    ),
    Migration("add_transactions_amount_source", _transactions_amount_columns_needed, _add_transactions_amount_columns),
    Migration(
        "add_transaction_items_line_num",
        _missing("transaction_items", "line_num"),
        _run("ALTER TABLE transaction_items ADD COLUMN line_num INTEGER"),
    ),
    Migration(
        "add_transaction_items_unit_price",
        _missing("transaction_items", "unit_price"),
        _run("ALTER TABLE transaction_items ADD COLUMN unit_price NUMERIC(12, 2)"),
    ),
    Migration(
        "drop_receipts_receipt_filename",
        _present("receipts", "receipt_filename"),
        _run("ALTER TABLE receipts DROP COLUMN receipt_filename"),
    ),
]


def run_migrations(engine: Engine) -> list[str]:
    """Apply every pending step in order; returns the names applied."""
    applied: list[str] = []
    for migration in MIGRATIONS:
        if not migration.needed(engine):
            continue
        logger.info("Applying migration %s", migration.name)
        migration.apply(engine)
        applied.append(migration.name)
    if not applied:
        logger.info("Schema up to date")
    return applied
