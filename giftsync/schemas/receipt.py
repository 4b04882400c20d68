"""
Receipt content – structured, renderer-agnostic sections of a donation receipt.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ReceiptHeader(BaseModel):
    date_generated: str
    donor_name: str
    address_lines: list[str] = Field(default_factory=list)


class DonorBlock(BaseModel):
    first_name: str
    salutation: str
    message: str
    summary_intro: str = "Here is a summary of your donation"


class DonationSummary(BaseModel):
    organization: str
    donor_name: str
    description: str
    amount: str = Field(..., description="'$x.xx' or 'N/A' for a zero amount")
    donated_on: str


class SignatureBlock(BaseModel):
    contact: str
    organization: str
    phone: str


class AttestationBlock(BaseModel):
    retention_notice: str
    tax_status: str
    ein: str = Field(..., description="XX-XXXXXXX, raw digits, or 'N/A'")


class ReceiptContent(BaseModel):
    """Everything a renderer needs to lay out one receipt."""
    transaction_id: int
    donor_id: Optional[int] = None
    organization_id: Optional[int] = None
    organization_type: str = "NonProfit"
    header: ReceiptHeader
    donor_block: DonorBlock
    donation_summary: DonationSummary
    signature: SignatureBlock
    attestation: AttestationBlock
