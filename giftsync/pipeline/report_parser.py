"""
Transaction-report parser – QuickBooks TransactionList rows to records.

The report only names columns by type, so positions are looked up from the
``Columns`` header before any row is read.
"""
from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError as PayloadError

from giftsync.accounting import AccountingService
from giftsync.exceptions import CollaboratorError
from giftsync.schemas import CounterpartyRef, ExternalRecord, ReportParams, ReportRow

logger = logging.getLogger(__name__)

SALES_RECEIPT_TYPE = "Sales Receipt"


def _column_positions(report: dict, columns: list[str]) -> dict[str, int]:
    header = ((report.get("Columns") or {}).get("Column")) or []
    positions: dict[str, int] = {}
    for pos, col in enumerate(header):
        col_type = col.get("ColType")
        if col_type in columns and col_type not in positions:
            positions[col_type] = pos
    return positions


def _cell(row_data: list, positions: dict[str, int], name: str) -> dict:
    pos = positions.get(name)
    if pos is None or pos >= len(row_data):
        return {}
    cell = row_data[pos]
    return cell if isinstance(cell, dict) else {}


def _blank_to_none(value):
    return None if value in (None, "") else value


def parse_transaction_report(report: dict, columns: Optional[str] = None) -> list[ReportRow]:
    """Parse a TransactionList report into typed rows, dropping incomplete ones."""
    wanted = [c.strip() for c in (columns or ReportParams().columns).split(",") if c.strip()]
    positions = _column_positions(report or {}, wanted)
    raw_rows = (((report or {}).get("Rows") or {}).get("Row")) or []

    rows: list[ReportRow] = []
    for raw in raw_rows:
        data = raw.get("ColData") or []
        name = _cell(data, positions, "name")
        txn_type = _cell(data, positions, "txn_type")
        try:
            row = ReportRow(
                tx_date=_blank_to_none(_cell(data, positions, "tx_date").get("value")),
                doc_num=_blank_to_none(_cell(data, positions, "doc_num").get("value")),
                counterparty=CounterpartyRef.from_column(name),
                txn_type=_blank_to_none(txn_type.get("value")),
                sales_receipt_id=_blank_to_none(txn_type.get("id")),
                amount=_blank_to_none(_cell(data, positions, "subt_nat_amount").get("value")),
            )
        except PayloadError as e:
            logger.warning("Dropping unreadable report row: %s", e)
            continue
        if not row.is_valid:
            logger.debug("Dropping incomplete report row %s", row.doc_num)
            continue
        rows.append(row)
    logger.info("Parsed %d of %d report rows", len(rows), len(raw_rows))
    return rows


def collect_records(accounting: AccountingService, params: Optional[ReportParams] = None) -> list[ExternalRecord]:
    """Fetch the report and, for sales receipts, their line items."""
    params = params or ReportParams()
    report = accounting.get_transaction_report(params)
    records: list[ExternalRecord] = []
    for row in parse_transaction_report(report, params.columns):
        line_items = []
        if row.txn_type == SALES_RECEIPT_TYPE and row.sales_receipt_id:
            try:
                line_items = accounting.get_sales_receipt_by_id(row.sales_receipt_id).lines
            except CollaboratorError as e:
                logger.error("Could not fetch sales receipt %s: %s", row.sales_receipt_id, e)
        records.append(
            ExternalRecord(
                date=row.tx_date,
                counterparty=row.counterparty,
                amount=row.amount,
                external_doc_num=row.doc_num,
                line_items=line_items,
            )
        )
    return records
