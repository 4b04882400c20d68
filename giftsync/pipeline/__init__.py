"""
GiftSync core pipeline.

Orchestrates: fetch report → parse rows → link donors → persist transactions → populate items.
"""
import logging
from typing import Optional

from giftsync.accounting import AccountingService
from giftsync.pipeline.donor_linker import DonorLinker
from giftsync.pipeline.item_ledger import ItemLedger
from giftsync.pipeline.reconciler import ImportReconciler
from giftsync.pipeline.report_parser import collect_records
from giftsync.schemas import BatchResult, ReportParams
from giftsync.store import Store

logger = logging.getLogger(__name__)


def build_reconciler(store: Store, accounting: AccountingService) -> ImportReconciler:
    return ImportReconciler(store, DonorLinker(store, accounting), ItemLedger(store))


def sync_transactions(
    store: Store,
    accounting: AccountingService,
    organization_id: Optional[int] = None,
    params: Optional[ReportParams] = None,
) -> BatchResult:
    """Pull the transaction report and import it.

    Returns the batch outcome of the import step.
    """
    logger.info("Pipeline start — fetch transaction report")
    records = collect_records(accounting, params)
    logger.info("Collected %d records", len(records))

    logger.info("Pipeline — import batch")
    result = build_reconciler(store, accounting).import_batch(records, organization_id)
    logger.info("Imported: %d created, %d skipped", result.created, result.skipped)
    return result
