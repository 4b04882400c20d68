"""
Option settings – key/value options with transparent secret encryption.
"""
from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel

from giftsync.pii import PIICodec
from giftsync.store import Store

logger = logging.getLogger(__name__)

ADMIN_PASS = "ADMIN_PASS"
EMAIL_PASS = "EMAIL_PASS"
SECRET_KEYS = frozenset({ADMIN_PASS, EMAIL_PASS})
MASK = "********"


class EmailSettings(BaseModel):
    use_custom: bool = False
    from_address: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    secure: bool = False
    user: Optional[str] = None
    has_password: bool = False


def _truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


class OptionSettings:
    def __init__(self, store: Store, codec: PIICodec):
        self.store = store
        self.codec = codec

    def get(self, organization_id: Optional[int], key: str, default: Optional[str] = None) -> Optional[str]:
        row = self.store.get_option(organization_id, key)
        if row is None or row.value is None:
            return default
        if key in SECRET_KEYS:
            return self.codec.try_decrypt(row.value, label=f"option {key}")
        return row.value

    def set(self, organization_id: Optional[int], key: str, value: Optional[str]):
        if key in SECRET_KEYS:
            value = self.codec.safe_encrypt(value)
        return self.store.set_option(organization_id, key, value)

    def delete(self, organization_id: Optional[int], key: str) -> bool:
        return self.store.delete_option(organization_id, key)

    def all(self, organization_id: Optional[int]) -> dict[str, Optional[str]]:
        """All options for a scope, secrets masked."""
        return {
            row.key: (MASK if row.key in SECRET_KEYS and row.value else row.value)
            for row in self.store.list_options(organization_id)
        }

    def email_settings(self, organization_id: Optional[int]) -> EmailSettings:
        port = self.get(organization_id, "EMAIL_PORT")
        return EmailSettings(
            use_custom=_truthy(self.get(organization_id, "EMAIL_USE_CUSTOM")),
            from_address=self.get(organization_id, "EMAIL_FROM"),
            host=self.get(organization_id, "EMAIL_HOST"),
            port=int(port) if port and port.isdigit() else None,
            secure=_truthy(self.get(organization_id, "EMAIL_SECURE")),
            user=self.get(organization_id, "EMAIL_USER"),
            has_password=bool(self.get(organization_id, EMAIL_PASS)),
        )
