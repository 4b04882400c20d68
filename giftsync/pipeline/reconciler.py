"""
Import reconciler – turn a batch of external records into local transactions.

Records are handled strictly in input order. A failing record is recorded in
``BatchResult.errors`` and the batch moves on; whatever an earlier step
already persisted for that record stays.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Optional

from pydantic import ValidationError as PayloadError

from giftsync.exceptions import (
    CollaboratorError,
    DuplicateSkip,
    GiftSyncError,
    InvalidBatchError,
    StoreError,
    ValidationError,
)
from giftsync.pipeline.donor_linker import DonorLinker
from giftsync.pipeline.item_ledger import ItemLedger
from giftsync.schemas import BatchResult, ExternalRecord, RecordError
from giftsync.store import Store

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _coerce(raw: Any) -> ExternalRecord:
    if isinstance(raw, ExternalRecord):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationError(f"Record must be a mapping, got {type(raw).__name__}")
    try:
        return ExternalRecord.model_validate(dict(raw))
    except PayloadError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ValidationError(f"Malformed record ({fields})") from e


def _identifier(raw: Any, index: int) -> str:
    doc = None
    if isinstance(raw, ExternalRecord):
        doc = raw.external_doc_num
    elif isinstance(raw, Mapping):
        doc = raw.get("externalDocNum", raw.get("external_doc_num"))
    return str(doc) if doc not in (None, "") else f"#{index}"


def _validate(record: ExternalRecord) -> None:
    if record.date is None:
        raise ValidationError("Transaction date is required", field="date")
    if not record.counterparty.display_name:
        raise ValidationError("Counterparty name is required", field="counterpartyName")
    if record.staged_amount() is None:
        raise ValidationError("Transaction amount is required", field="amount")


# ---------------------------------------------------------------------------
# Reconciler
# ---------------------------------------------------------------------------

class ImportReconciler:
    def __init__(self, store: Store, donor_linker: DonorLinker, item_ledger: ItemLedger):
        self.store = store
        self.donor_linker = donor_linker
        self.item_ledger = item_ledger

    def _check_duplicate(self, record: ExternalRecord) -> None:
        doc = record.external_doc_num
        if doc and self.store.find_transaction_by_external_doc_num(doc) is not None:
            raise DuplicateSkip(doc)

    def _import_one(self, record: ExternalRecord, organization_id: Optional[int], result: BatchResult) -> None:
        link = self.donor_linker.link_donor(record.counterparty.external_id, organization_id)
        if link.action == "created":
            result.donors_created += 1

        tx = self.store.insert_transaction_if_absent(
            date=record.date,
            amount=record.staged_amount(),
            external_doc_num=record.external_doc_num,
            donor_id=link.donor_id,
            organization_id=organization_id,
        )
        if tx is None:
            raise DuplicateSkip(record.external_doc_num)
        result.created += 1

        if record.line_items:
            items = self.item_ledger.populate_items_from_external_lines(record.line_items, tx.id)
            result.items_created += items.processed

    def import_batch(self, records: Sequence[Any], organization_id: Optional[int] = None) -> BatchResult:
        if records is None or isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Sequence):
            raise InvalidBatchError("Batch must be a list of records")

        result = BatchResult(total=len(records))
        logger.info("Import start — %d records (organization=%s)", len(records), organization_id)

        for index, raw in enumerate(records):
            identifier = _identifier(raw, index)
            try:
                record = _coerce(raw)
                self._check_duplicate(record)
                _validate(record)
                self._import_one(record, organization_id, result)
            except DuplicateSkip:
                logger.info("Skipping %s — already imported", identifier)
                result.skipped += 1
            except ValidationError as e:
                logger.warning("Record %s invalid: %s", identifier, e)
                result.errors.append(RecordError(index=index, identifier=identifier, message=str(e), kind="validation"))
            except CollaboratorError as e:
                logger.error("Record %s: accounting service failed: %s", identifier, e)
                result.errors.append(
                    RecordError(index=index, identifier=identifier, message=str(e), kind="collaborator")
                )
            except StoreError as e:
                logger.error("Record %s: store failed: %s", identifier, e)
                result.errors.append(RecordError(index=index, identifier=identifier, message=str(e), kind="store"))
            except GiftSyncError as e:
                logger.error("Record %s failed: %s", identifier, e)
                result.errors.append(RecordError(index=index, identifier=identifier, message=str(e)))
            except Exception as e:
                logger.error("Record %s failed unexpectedly", identifier, exc_info=True)
                result.errors.append(RecordError(index=index, identifier=identifier, message=str(e)))

        logger.info(
            "Import done — %d created, %d skipped, %d donors, %d items, %d errors",
            result.created,
            result.skipped,
            result.donors_created,
            result.items_created,
            len(result.errors),
        )
        return result
