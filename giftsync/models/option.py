"""
SQLAlchemy model for key/value options, global or per organization.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint

from giftsync.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class OptionModel(Base):
    __tablename__ = "options"
    __table_args__ = (
        UniqueConstraint("organization_id", "key", name="uq_option_org_key"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True)
    key = Column(String, nullable=False)
    value = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
