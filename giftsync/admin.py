"""
Admin gate – password check, login throttling and idle-expiring sessions.

Session and attempt state live in injected ``ExpiringStore`` instances, so
tests and multi-worker deployments can swap them out.
"""
from __future__ import annotations

import hmac
import logging
import secrets
import time
from typing import Any, Callable, Optional

from giftsync.config import Settings, settings as default_settings
from giftsync.exceptions import AuthenticationError, LockedOutError, ValidationError
from giftsync.options import ADMIN_PASS, OptionSettings

logger = logging.getLogger(__name__)


class ExpiringStore:
    """In-memory keyed state with a per-entry TTL."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (value, self.clock() + self.ttl_seconds)

    def update(self, key: str, value: Any) -> None:
        """Replace the value but keep the original expiry."""
        if key not in self._entries:
            self.set(key, value)
            return
        _, expires_at = self._entries[key]
        self._entries[key] = (value, expires_at)

    def get(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def touch(self, key: str) -> bool:
        value = self.get(key)
        if value is None:
            return False
        self.set(key, value)
        return True

    def expires_in(self, key: str) -> float:
        entry = self._entries.get(key)
        if entry is None:
            return 0.0
        return max(0.0, entry[1] - self.clock())

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def sweep(self) -> int:
        now = self.clock()
        expired = [k for k, (_, exp) in self._entries.items() if now >= exp]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info("Swept %d expired entries", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class AdminGate:
    def __init__(
        self,
        options: OptionSettings,
        sessions: Optional[ExpiringStore] = None,
        attempts: Optional[ExpiringStore] = None,
        config: Optional[Settings] = None,
    ):
        self.options = options
        self.config = config or default_settings
        self.sessions = sessions if sessions is not None else ExpiringStore(self.config.ADMIN_SESSION_TIMEOUT_MINUTES * 60)
        self.attempts = attempts if attempts is not None else ExpiringStore(self.config.ADMIN_LOCKOUT_MINUTES * 60)

    # ------------------------------------------------------------------
    # Password
    # ------------------------------------------------------------------

    def ensure_password(self) -> None:
        """Seed the admin password, or encrypt a legacy plaintext one."""
        row = self.options.store.get_option(None, ADMIN_PASS)
        if row is None or not row.value:
            self.options.set(None, ADMIN_PASS, self.config.ADMIN_DEFAULT_PASSWORD)
            logger.info("Admin password initialized with default")
            return
        if not self.options.codec.is_encrypted(row.value):
            self.options.set(None, ADMIN_PASS, row.value)
            logger.info("Migrated plaintext admin password to encrypted storage")

    def verify_password(self, password: str) -> bool:
        self.ensure_password()
        stored = self.options.get(None, ADMIN_PASS) or ""
        return hmac.compare_digest(stored.encode("utf-8"), (password or "").encode("utf-8"))

    def change_password(self, current: str, new: str) -> None:
        if not self.verify_password(current):
            raise AuthenticationError("Current password is incorrect")
        if not new or not new.strip():
            raise ValidationError("New password must not be empty", field="password")
        self.options.set(None, ADMIN_PASS, new)
        logger.info("Admin password changed")

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def login(self, client_id: str, password: str) -> str:
        failures = self.attempts.get(client_id) or 0
        if failures >= self.config.ADMIN_MAX_LOGIN_ATTEMPTS:
            raise LockedOutError(int(self.attempts.expires_in(client_id)))

        if not self.verify_password(password):
            self.attempts.update(client_id, failures + 1)
            logger.warning("Failed admin login from %s (%d)", client_id, failures + 1)
            raise AuthenticationError("Invalid password")

        self.attempts.delete(client_id)
        token = secrets.token_urlsafe(32)
        self.sessions.set(token, {"client_id": client_id})
        logger.info("Admin login from %s", client_id)
        return token

    def is_authenticated(self, token: Optional[str]) -> bool:
        if not token:
            return False
        return self.sessions.touch(token)

    def logout(self, token: str) -> None:
        self.sessions.delete(token)

    def sweep(self) -> int:
        return self.sessions.sweep() + self.attempts.sweep()
