"""
PII codec – reversible field encryption for EINs and stored secrets.

Values are Fernet tokens keyed by a PBKDF2-HMAC-SHA256 derivation of the
configured secret, so any codec built from the same key material decrypts
them.
"""
from __future__ import annotations

import base64
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from giftsync.config import settings
from giftsync.exceptions import DecryptError

logger = logging.getLogger(__name__)


def derive_key(secret: str, salt: str, iterations: int) -> bytes:
    """Derive a url-safe base64 Fernet key from ``secret``."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt.encode("utf-8"),
        iterations=iterations,
    )
    return base64.urlsafe_b64encode(kdf.derive(secret.encode("utf-8")))


class PIICodec:
    def __init__(
        self,
        secret: Optional[str] = None,
        salt: Optional[str] = None,
        iterations: Optional[int] = None,
    ):
        key = derive_key(
            secret or settings.ENCRYPTION_KEY,
            salt or settings.ENCRYPTION_SALT,
            iterations or settings.ENCRYPTION_KDF_ITERATIONS,
        )
        self._fernet = Fernet(key)

    def encrypt(self, plain: Optional[str]) -> Optional[str]:
        if plain is None or plain == "":
            return None
        return self._fernet.encrypt(str(plain).encode("utf-8")).decode("ascii")

    def decrypt(self, cipher: Optional[str]) -> Optional[str]:
        if cipher is None or cipher == "":
            return None
        try:
            return self._fernet.decrypt(cipher.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError, ValueError, TypeError) as e:
            raise DecryptError("Failed to decrypt value") from e

    def is_encrypted(self, value: Optional[str]) -> bool:
        if not value:
            return False
        try:
            return bool(self.decrypt(value))
        except DecryptError:
            return False

    def safe_encrypt(self, value: Optional[str]) -> Optional[str]:
        """Encrypt ``value`` unless it is already ciphertext for this key."""
        if not value:
            return None
        if self.is_encrypted(value):
            return value
        return self.encrypt(value)

    def try_decrypt(self, cipher: Optional[str], label: str = "value") -> Optional[str]:
        """Read-path decrypt: a failure is logged and yields ``None``."""
        try:
            return self.decrypt(cipher)
        except DecryptError:
            logger.warning("Could not decrypt %s, treating as missing", label)
            return None

