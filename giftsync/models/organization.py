"""
SQLAlchemy model for the receipt-issuing organization.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from giftsync.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class OrganizationModel(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # QuickBooks realm id
    external_id = Column(String, unique=True, nullable=True, index=True)
    name = Column(String, nullable=False)
    # Fernet token, see giftsync.pii
    ein = Column(String, nullable=True)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    zip = Column(String, nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    contact = Column(String, nullable=True)
    url = Column(String, nullable=True)
    type = Column(String, nullable=False, default="NonProfit")  # NonProfit | ForProfit
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
