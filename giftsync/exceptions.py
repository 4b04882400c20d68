"""
Error taxonomy shared by the store, the collaborators and the pipeline.
"""
from __future__ import annotations

from typing import Optional


class GiftSyncError(Exception):
    """Base exception for all GiftSync errors."""

    default_code = "GIFTSYNC_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def __str__(self) -> str:
        return self.message


class ValidationError(GiftSyncError):
    """A record or argument failed shape validation."""

    default_code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message, code)
        self.field = field


class InvalidBatchError(ValidationError):
    """The batch argument itself is malformed."""

    default_code = "INVALID_BATCH"


class DuplicateSkip(GiftSyncError):
    """The record's dedup key already exists."""

    default_code = "DUPLICATE"

    def __init__(self, external_doc_num: str):
        super().__init__(f"Transaction {external_doc_num} already imported")
        self.external_doc_num = external_doc_num


class CollaboratorError(GiftSyncError):
    """The external accounting service failed or returned an unusable payload."""

    default_code = "COLLABORATOR_ERROR"

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message, code)
        self.status_code = status_code


class DecryptError(GiftSyncError):
    """Ciphertext was malformed or produced with a different key."""

    default_code = "DECRYPT_ERROR"


class StoreError(GiftSyncError):
    """The entity store rejected an operation."""

    default_code = "STORE_ERROR"


class NotFoundError(GiftSyncError):
    """A referenced entity does not exist."""

    default_code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class AuthenticationError(GiftSyncError):
    default_code = "AUTHENTICATION_FAILED"


class LockedOutError(AuthenticationError):
    default_code = "LOCKED_OUT"

    def __init__(self, retry_after_seconds: int):
        super().__init__(
            f"Too many failed login attempts. Try again in {retry_after_seconds // 60 + 1} minutes."
        )
        self.retry_after_seconds = retry_after_seconds
