"""
SQLAlchemy model for compiled receipt content.
"""
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer

from giftsync.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class ReceiptModel(Base):
    __tablename__ = "receipts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(
        Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    donor_id = Column(Integer, ForeignKey("donors.id"), nullable=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True)
    content_json = Column(JSON, nullable=False)
    date_generated = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    date_sent = Column(DateTime(timezone=True), nullable=True)
