"""
Donor linker – resolve an accounting-service customer to a local donor.

Existing donors are never overwritten; a missing customer id is a skip,
not an error.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from giftsync.accounting import AccountingService
from giftsync.exceptions import GiftSyncError
from giftsync.schemas import CustomerDetail, DonorSyncResult, LinkResult, RecordError
from giftsync.store import Store

logger = logging.getLogger(__name__)


def donor_fields(detail: CustomerDetail, external_customer_id: str, organization_id: Optional[int]) -> dict:
    return {
        "external_customer_id": external_customer_id,
        "name": detail.display_name or "Unknown",
        "email": detail.email,
        "phone": detail.phone,
        "address": detail.address,
        "city": detail.city,
        "state": detail.state,
        "zip": detail.zip,
        "country": detail.country,
        "company": detail.company,
        "notes": detail.notes,
        "organization_id": organization_id,
    }


class DonorLinker:
    def __init__(self, store: Store, accounting: AccountingService):
        self.store = store
        self.accounting = accounting

    def link_donor(self, external_customer_id: Optional[str], organization_id: Optional[int]) -> LinkResult:
        if not external_customer_id:
            return LinkResult(action="skipped", reason="no_customer_id")

        existing = self.store.find_donor(external_customer_id, organization_id)
        if existing is not None:
            logger.debug("Donor for customer %s already exists (id=%s)", external_customer_id, existing.id)
            return LinkResult(donor=existing, action="skipped", reason="donor_exists")

        detail = self.accounting.get_customer_by_id(external_customer_id)
        donor = self.store.create_donor(**donor_fields(detail, external_customer_id, organization_id))
        logger.info("Created donor %s for customer %s", donor.id, external_customer_id)
        return LinkResult(donor=donor, action="created")

    def link_many(self, customers: Iterable[CustomerDetail], organization_id: Optional[int]) -> DonorSyncResult:
        """Create donors for already-fetched customers; one failure never stops the rest."""
        result = DonorSyncResult()
        for index, detail in enumerate(customers):
            result.total += 1
            if not detail.id:
                result.skipped += 1
                continue
            if self.store.find_donor(detail.id, organization_id) is not None:
                result.skipped += 1
                continue
            try:
                self.store.create_donor(**donor_fields(detail, detail.id, organization_id))
                result.created += 1
            except GiftSyncError as e:
                logger.warning("Donor sync failed for customer %s: %s", detail.id, e)
                result.errors.append(
                    RecordError(index=index, identifier=detail.id, message=str(e), kind="store")
                )
        logger.info(
            "Donor sync: %d created, %d skipped, %d errors", result.created, result.skipped, len(result.errors)
        )
        return result
