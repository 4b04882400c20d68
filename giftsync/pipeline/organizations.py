"""
Organization sync and tax-id helpers.
"""
from __future__ import annotations

import logging
import re
from typing import Optional

from giftsync.accounting import AccountingService
from giftsync.pii import PIICodec
from giftsync.schemas import CompanyDetail, OrganizationSyncResult
from giftsync.store import Store

logger = logging.getLogger(__name__)


def organization_fields(detail: CompanyDetail, realm_id: str, codec: PIICodec) -> dict:
    return {
        "external_id": realm_id,
        "name": detail.company_name or "Unknown Organization",
        "address": detail.address,
        "city": detail.city,
        "state": detail.state,
        "zip": detail.zip,
        "ein": codec.encrypt(detail.ein),
        "phone": detail.phone,
        "url": detail.url,
        "email": detail.email,
        "type": "NonProfit",
        "contact": "QuickBooks Sync",
    }


def sync_organization(
    store: Store,
    accounting: AccountingService,
    realm_id: str,
    codec: PIICodec,
    force: bool = False,
) -> OrganizationSyncResult:
    """Create the organization for ``realm_id`` from company info.

    An existing organization is left as is unless ``force`` is set, in which
    case its fields are refreshed in place so linked rows keep their id.
    """
    existing = store.find_organization_by_external_id(realm_id)
    if existing is not None and not force:
        return OrganizationSyncResult(action="skipped", organization_id=existing.id, name=existing.name)

    detail = accounting.get_company_info()
    fields = organization_fields(detail, realm_id, codec)
    if existing is not None:
        org = store.update_organization(existing.id, **fields)
        action = "updated"
    else:
        org = store.create_organization(**fields)
        action = "created"
    logger.info("Organization %s %s for realm %s (ein: [ENCRYPTED])", org.id, action, realm_id)
    return OrganizationSyncResult(action=action, organization_id=org.id, name=org.name)


def read_tax_id(organization, codec: PIICodec) -> Optional[str]:
    if organization is None or not organization.ein:
        return None
    return codec.try_decrypt(organization.ein, label=f"EIN of organization {organization.id}")


def format_tax_id(ein: Optional[str]) -> str:
    """``123456789`` -> ``12-3456789``; other shapes are returned unchanged."""
    if not ein:
        return "N/A"
    digits = re.sub(r"\D", "", ein)
    if len(digits) == 9:
        return f"{digits[:2]}-{digits[2:]}"
    return ein
