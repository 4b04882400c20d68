"""
SQLAlchemy model for donors linked from accounting-service customers.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint

from giftsync.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class DonorModel(Base):
    __tablename__ = "donors"
    __table_args__ = (
        UniqueConstraint("external_customer_id", "organization_id", name="uq_donor_customer_org"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_customer_id = Column(String, nullable=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    zip = Column(String, nullable=True)
    country = Column(String, nullable=True)
    company = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
