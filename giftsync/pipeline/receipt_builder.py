"""
Receipt builder – structured donation receipt for one transaction.

``build_receipt_content`` is pure; ``ReceiptCompiler`` resolves the inputs
from the store and keeps at most one stored receipt per transaction.
"""
from __future__ import annotations

import datetime as dt
import logging
from decimal import Decimal
from typing import Any, Iterable, Optional

from giftsync.exceptions import GiftSyncError, NotFoundError
from giftsync.pii import PIICodec
from giftsync.pipeline.organizations import format_tax_id, read_tax_id
from giftsync.schemas import (
    AttestationBlock,
    DonationSummary,
    DonorBlock,
    GenerateAllResult,
    ReceiptContent,
    ReceiptHeader,
    RecordError,
    SignatureBlock,
)
from giftsync.store import Store

logger = logging.getLogger(__name__)

ANONYMOUS_DONOR = {
    "id": None,
    "name": "Anonymous Donor",
    "email": "Not provided",
    "phone": "Not provided",
    "address": None,
    "city": None,
    "state": None,
    "zip": None,
    "company": None,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get(obj: Any, key: str, default: Any = None) -> Any:
    if obj is None:
        return default
    value = obj.get(key) if isinstance(obj, dict) else getattr(obj, key, None)
    return default if value in (None, "") else value


def donor_display_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    return name or "Unknown Donor"


def first_name(name: Optional[str]) -> str:
    parts = (name or "").split()
    return parts[0] if parts else "Friend"


def format_long_date(value: dt.date) -> str:
    return f"{value:%B} {value.day}, {value.year}"


def format_amount(amount: Any) -> str:
    value = Decimal(str(amount or 0))
    if value == 0:
        return "N/A"
    return f"${value:.2f}"


def describe_items(items: Iterable[Any]) -> str:
    parts = []
    for item in items:
        description = _get(item, "description", "")
        quantity = _get(item, "quantity")
        if quantity in (None, 1):
            parts.append(description)
        else:
            parts.append(f"{quantity} {description}")
    return ", ".join(parts) if parts else "N/A"


def address_lines(donor: Any) -> list[str]:
    lines = []
    street = _get(donor, "address")
    if street:
        lines.append(street)
    locality = ", ".join(v for v in (_get(donor, "city"), _get(donor, "state"), _get(donor, "zip")) if v)
    if locality:
        lines.append(locality)
    return lines


def tax_status_clause(org_name: str, org_type: Optional[str], ein_text: str) -> str:
    if (org_type or "NonProfit") == "NonProfit":
        return (
            f"{org_name} is a registered 501(c)(3) non-profit organization with an EIN of {ein_text}. "
            "No goods or services were provided in return for this contribution."
        )
    return f"{org_name}'s EIN is {ein_text}. No goods or services were provided in return for this donation."


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_receipt_content(
    transaction: Any,
    donor: Any,
    organization: Any,
    items: Iterable[Any],
    tax_id: Optional[str],
    today: Optional[dt.date] = None,
) -> ReceiptContent:
    """Assemble receipt sections. ``tax_id`` is the decrypted EIN or None."""
    today = today or dt.date.today()
    donor = donor if donor is not None else ANONYMOUS_DONOR
    donor_name = donor_display_name(_get(donor, "name"))

    org_name = _get(organization, "name", "our organization")
    org_email = _get(organization, "email", "our contact email")
    org_type = _get(organization, "type", "NonProfit")
    ein_text = format_tax_id(tax_id)

    return ReceiptContent(
        transaction_id=transaction.id,
        donor_id=_get(donor, "id"),
        organization_id=_get(organization, "id"),
        organization_type=org_type,
        header=ReceiptHeader(
            date_generated=format_long_date(today),
            donor_name=donor_name,
            address_lines=address_lines(donor),
        ),
        donor_block=DonorBlock(
            first_name=first_name(_get(donor, "name")),
            salutation=f"Dear {first_name(_get(donor, 'name'))},",
            message=(
                f"Here is your receipt for your generous donation to {org_name}. "
                "Thank you so much for donating."
            ),
        ),
        donation_summary=DonationSummary(
            organization=org_name,
            donor_name=donor_name,
            description=describe_items(items),
            amount=format_amount(transaction.amount),
            donated_on=format_long_date(transaction.date),
        ),
        signature=SignatureBlock(
            contact=_get(organization, "contact", "Primary Contact"),
            organization=org_name,
            phone=_get(organization, "phone", "Phone Number"),
        ),
        attestation=AttestationBlock(
            retention_notice=(
                "Please retain for your tax records. Should you have any questions regarding "
                f"this donation, please contact {org_name} at {org_email}."
            ),
            tax_status=tax_status_clause(org_name, org_type, ein_text),
            ein=ein_text,
        ),
    )


class ReceiptCompiler:
    def __init__(self, store: Store, codec: PIICodec):
        self.store = store
        self.codec = codec

    def resolve_organization(self, transaction: Any, realm_id: Optional[str] = None):
        """Transaction's organization, else the one for ``realm_id``, else the first one."""
        if transaction.organization_id is not None:
            org = self.store.get_organization(transaction.organization_id)
            if org is not None:
                return org
        if realm_id:
            org = self.store.find_organization_by_external_id(realm_id)
            if org is not None:
                return org
        return self.store.first_organization()

    def compile_receipt(
        self,
        transaction_id: int,
        realm_id: Optional[str] = None,
        today: Optional[dt.date] = None,
    ) -> ReceiptContent:
        transaction = self.store.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction", transaction_id)

        donor = self.store.get_donor(transaction.donor_id) if transaction.donor_id else None
        organization = self.resolve_organization(transaction, realm_id)
        items = self.store.get_items_by_transaction_id(transaction_id)
        tax_id = read_tax_id(organization, self.codec)

        content = build_receipt_content(transaction, donor, organization, items, tax_id, today=today)

        existing = self.store.get_receipt_by_transaction_id(transaction_id)
        if existing is not None:
            self.store.delete_receipt(existing.id)
        self.store.create_receipt(
            transaction_id,
            content.model_dump(mode="json"),
            donor_id=content.donor_id,
            organization_id=content.organization_id,
        )
        logger.info("Receipt compiled for transaction %s", transaction_id)
        return content

    def generate_missing_receipts(self, realm_id: Optional[str] = None) -> GenerateAllResult:
        """Compile receipts for every transaction that has none yet."""
        result = GenerateAllResult()
        for tx in self.store.list_transactions():
            if self.store.get_receipt_by_transaction_id(tx.id) is not None:
                result.skipped += 1
                continue
            try:
                self.compile_receipt(tx.id, realm_id=realm_id)
                result.generated += 1
            except GiftSyncError as e:
                logger.error("Receipt generation failed for transaction %s: %s", tx.id, e)
                result.errors.append(RecordError(identifier=str(tx.id), message=str(e)))
        return result

    def mark_sent(self, receipt_id: int, sent_at: Optional[dt.datetime] = None):
        return self.store.mark_receipt_sent(receipt_id, sent_at or dt.datetime.now(dt.timezone.utc))
