"""
Transaction-report request parameters and parsed rows.
"""
from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from giftsync.config import settings
from giftsync.schemas.records import CounterpartyRef


def _default_start() -> dt.date:
    return dt.date(dt.date.today().year - 1, 1, 1)


class ReportParams(BaseModel):
    start_date: dt.date = Field(default_factory=_default_start)
    end_date: dt.date = Field(default_factory=dt.date.today)
    report_type: str = "TransactionList"
    transaction_type: str = "SalesReceipt"
    columns: str = Field(default_factory=lambda: settings.REPORT_COLUMNS)
    sort_by: str = "tx_date"
    sort_order: str = "desc"
    max_results: int = Field(default_factory=lambda: settings.REPORT_MAX_RESULTS)

    def to_query(self) -> dict[str, str]:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "transaction_type": self.transaction_type,
            "columns": self.columns,
            "sort_by": self.sort_by,
            "sort_order": self.sort_order,
            "max_results": str(self.max_results),
        }


class ReportRow(BaseModel):
    tx_date: Optional[dt.date] = None
    doc_num: Optional[str] = None
    counterparty: CounterpartyRef = Field(default_factory=CounterpartyRef)
    txn_type: Optional[str] = None
    sales_receipt_id: Optional[str] = None
    amount: Optional[Decimal] = None

    @property
    def is_valid(self) -> bool:
        return bool(self.tx_date and self.counterparty.display_name and self.amount is not None)
