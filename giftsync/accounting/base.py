"""
Accounting-service collaborator interface.
"""
from __future__ import annotations

from typing import Protocol

from giftsync.schemas import CompanyDetail, CustomerDetail, ReportParams, SalesReceiptDetail


class AccountingService(Protocol):
    def get_customer_by_id(self, customer_id: str) -> CustomerDetail: ...

    def get_company_info(self) -> CompanyDetail: ...

    def get_transaction_report(self, params: ReportParams) -> dict: ...

    def get_sales_receipt_by_id(self, sales_receipt_id: str) -> SalesReceiptDetail: ...
