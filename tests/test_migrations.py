"""
Unit tests for schema migrations against a legacy database.
"""
import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from giftsync.migrations import run_migrations


@pytest.fixture()
def legacy_engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE organizations (id INTEGER PRIMARY KEY, name VARCHAR NOT NULL, ein VARCHAR)"))
        conn.execute(text(
            "CREATE TABLE transactions (id INTEGER PRIMARY KEY, date DATE NOT NULL, "
            "amount NUMERIC(12, 2) NOT NULL, external_doc_num VARCHAR, donor_id INTEGER, created_at DATETIME)"
        ))
        conn.execute(text(
            "CREATE TABLE transaction_items (id INTEGER PRIMARY KEY, transaction_id INTEGER NOT NULL, "
            "description VARCHAR NOT NULL, quantity INTEGER NOT NULL DEFAULT 1, amount NUMERIC(12, 2), "
            "created_at DATETIME, updated_at DATETIME)"
        ))
        conn.execute(text(
            "CREATE TABLE receipts (id INTEGER PRIMARY KEY, transaction_id INTEGER NOT NULL, "
            "donor_id INTEGER, organization_id INTEGER, content_json JSON, receipt_filename VARCHAR, "
            "date_generated DATETIME, date_sent DATETIME)"
        ))
        conn.execute(text("INSERT INTO transactions (id, date, amount) VALUES (1, '2024-01-01', 40)"))
        conn.execute(text("INSERT INTO transactions (id, date, amount) VALUES (2, '2024-01-02', 15)"))
        conn.execute(text(
            "INSERT INTO transaction_items (transaction_id, description, amount) VALUES (1, 'Gift', 40)"
        ))
    yield engine
    engine.dispose()


def _columns(engine, table):
    return {c["name"] for c in inspect(engine).get_columns(table)}


class TestMigrations:
    def test_fresh_database(self):
        engine = create_engine("sqlite:///:memory:", poolclass=StaticPool)
        assert run_migrations(engine) == ["create_tables"]
        assert run_migrations(engine) == []

    def test_legacy_upgrade(self, legacy_engine):
        applied = run_migrations(legacy_engine)
        assert applied == [
            "create_tables",
            "add_organizations_external_id",
            "add_transactions_organization_id",
            "add_transactions_amount_source",
            "add_transaction_items_line_num",
            "add_transaction_items_unit_price",
            "drop_receipts_receipt_filename",
        ]
        assert "external_id" in _columns(legacy_engine, "organizations")
        assert {"organization_id", "amount_source", "manual_amount"} <= _columns(legacy_engine, "transactions")
        assert {"line_num", "unit_price"} <= _columns(legacy_engine, "transaction_items")
        assert "receipt_filename" not in _columns(legacy_engine, "receipts")
        assert {"donors", "options"} <= set(inspect(legacy_engine).get_table_names())

        with legacy_engine.connect() as conn:
            rows = conn.execute(
                text("SELECT id, amount_source, manual_amount FROM transactions ORDER BY id")
            ).fetchall()
        assert [(r[0], r[1], float(r[2])) for r in rows] == [(1, "derived", 40.0), (2, "manual", 15.0)]

    def test_replay_is_noop(self, legacy_engine):
        run_migrations(legacy_engine)
        assert run_migrations(legacy_engine) == []
