"""
Shared pytest fixtures – in-memory SQLite + fake accounting service.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import giftsync.models  # noqa: F401  - register models
from giftsync.database import Base, enable_sqlite_foreign_keys
from giftsync.exceptions import CollaboratorError
from giftsync.pii import PIICodec
from giftsync.schemas import CompanyDetail, CustomerDetail, SalesReceiptDetail
from giftsync.store import SqlStore

# StaticPool ensures all connections share the same in-memory database
_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(_ENGINE)
_Session = sessionmaker(autocommit=False, autoflush=False, bind=_ENGINE)


class FakeAccountingService:
    """Records every call; ids in ``failing`` raise ``CollaboratorError``."""

    def __init__(self):
        self.customers: dict[str, CustomerDetail] = {}
        self.company = CompanyDetail(company_name="Helping Hands", ein="123456789")
        self.report: dict = {}
        self.sales_receipts: dict[str, SalesReceiptDetail] = {}
        self.failing: set[str] = set()
        self.calls: list[tuple] = []

    def get_customer_by_id(self, customer_id):
        self.calls.append(("customer", customer_id))
        if customer_id in self.failing:
            raise CollaboratorError(f"QuickBooks API error 500: customer {customer_id}", status_code=500)
        return self.customers.get(customer_id) or CustomerDetail(id=customer_id, display_name=f"Customer {customer_id}")

    def get_company_info(self):
        self.calls.append(("company",))
        return self.company

    def get_transaction_report(self, params):
        self.calls.append(("report", params))
        return self.report

    def get_sales_receipt_by_id(self, sales_receipt_id):
        self.calls.append(("sales_receipt", sales_receipt_id))
        if sales_receipt_id in self.failing:
            raise CollaboratorError(f"SalesReceipt {sales_receipt_id} missing from response")
        return self.sales_receipts[sales_receipt_id]


@pytest.fixture(autouse=True)
def _reset_tables():
    Base.metadata.create_all(bind=_ENGINE)
    yield
    Base.metadata.drop_all(bind=_ENGINE)


@pytest.fixture()
def db():
    session = _Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store(db):
    return SqlStore(db)


@pytest.fixture(scope="session")
def codec():
    return PIICodec("test-secret", "test-salt", iterations=1000)


@pytest.fixture()
def accounting():
    return FakeAccountingService()
