"""
SQLAlchemy models for transactions and their line items.

``TransactionModel.amount`` is derived from the items whenever at least one
exists (``amount_source == "derived"``); with no items it holds the amount
supplied at creation (``manual_amount``).
"""
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from giftsync.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class TransactionModel(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    manual_amount = Column(Numeric(12, 2), nullable=False, default=0)
    amount_source = Column(String, nullable=False, default="manual")  # manual | derived
    # QuickBooks DocNumber, dedup key
    external_doc_num = Column(String, unique=True, nullable=True, index=True)
    donor_id = Column(Integer, ForeignKey("donors.id"), nullable=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    items = relationship(
        "TransactionItemModel",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionItemModel.id",
    )


class TransactionItemModel(Base):
    __tablename__ = "transaction_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(
        Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    description = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(12, 2), nullable=True)
    line_num = Column(Integer, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    transaction = relationship("TransactionModel", back_populates="items")
