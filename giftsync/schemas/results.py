"""
Outcome models returned by the pipeline stages.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecordError(BaseModel):
    """A per-record failure; the batch continues past it."""
    index: Optional[int] = None
    identifier: Optional[str] = None
    message: str
    kind: str = Field("error", description="validation | collaborator | store | error")


class LinkResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    donor: Optional[Any] = None
    action: str = Field(..., description="created | skipped")
    reason: Optional[str] = None

    @property
    def donor_id(self) -> Optional[int]:
        return getattr(self.donor, "id", None)


class DonorSyncResult(BaseModel):
    created: int = 0
    skipped: int = 0
    errors: list[RecordError] = Field(default_factory=list)
    total: int = 0


class ItemView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_id: int
    description: str
    quantity: int = 1
    unit_price: Optional[Decimal] = None
    line_num: Optional[int] = None
    amount: Decimal


class ItemMutation(BaseModel):
    """Item set and recomputed total after a ledger mutation."""
    transaction_id: int
    items: list[ItemView] = Field(default_factory=list)
    amount: Decimal
    amount_source: str


class ItemImportResult(BaseModel):
    processed: int = 0
    skipped: int = 0


class MultiItemImportResult(BaseModel):
    processed: int = 0
    skipped: int = 0
    errors: list[RecordError] = Field(default_factory=list)
    total: int = 0


class BatchResult(BaseModel):
    created: int = 0
    donors_created: int = 0
    items_created: int = 0
    skipped: int = 0
    errors: list[RecordError] = Field(default_factory=list)
    total: int = 0


class OrganizationSyncResult(BaseModel):
    action: str = Field(..., description="created | updated | skipped")
    organization_id: int
    name: str


class GenerateAllResult(BaseModel):
    generated: int = 0
    skipped: int = 0
    errors: list[RecordError] = Field(default_factory=list)
