"""
Store interface the pipeline depends on.

``SqlStore`` is the SQLAlchemy implementation; tests may substitute any
object with the same methods.
"""
from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any, Optional, Protocol


class Store(Protocol):
    # transactions
    def get_transaction(self, transaction_id: int) -> Any: ...
    def find_transaction_by_external_doc_num(self, external_doc_num: str) -> Any: ...
    def create_transaction(
        self,
        date: dt.date,
        amount: Decimal,
        external_doc_num: Optional[str] = None,
        donor_id: Optional[int] = None,
        organization_id: Optional[int] = None,
    ) -> Any: ...
    def insert_transaction_if_absent(
        self,
        date: dt.date,
        amount: Decimal,
        external_doc_num: Optional[str] = None,
        donor_id: Optional[int] = None,
        organization_id: Optional[int] = None,
    ) -> Any: ...
    def update_transaction_amount(self, transaction_id: int, amount: Decimal, source: str) -> Any: ...
    def list_transactions(self, organization_id: Optional[int] = None) -> list: ...
    def update_transaction(self, transaction_id: int, **fields) -> Any: ...
    def update_transaction_donor(self, transaction_id: int, donor_id: Optional[int]) -> Any: ...
    def delete_transaction(self, transaction_id: int) -> bool: ...

    # items
    def get_items_by_transaction_id(self, transaction_id: int) -> list: ...
    def get_item(self, item_id: int) -> Any: ...
    def upsert_item(self, transaction_id: int, item_id: Optional[int] = None, **fields) -> Any: ...
    def delete_item(self, item_id: int) -> bool: ...
    def delete_items_by_transaction(self, transaction_id: int) -> int: ...

    # donors
    def get_donor(self, donor_id: int) -> Any: ...
    def find_donor(self, external_customer_id: str, organization_id: Optional[int]) -> Any: ...
    def create_donor(self, **fields) -> Any: ...
    def update_donor(self, donor_id: int, **fields) -> Any: ...
    def delete_donor(self, donor_id: int) -> bool: ...

    # organizations
    def get_organization(self, organization_id: int) -> Any: ...
    def find_organization_by_external_id(self, external_id: str) -> Any: ...
    def first_organization(self) -> Any: ...
    def create_organization(self, **fields) -> Any: ...
    def update_organization(self, organization_id: int, **fields) -> Any: ...
    def delete_organization(self, organization_id: int) -> bool: ...

    # receipts
    def get_receipt(self, receipt_id: int) -> Any: ...
    def get_receipt_by_transaction_id(self, transaction_id: int) -> Any: ...
    def list_receipts(self, donor_id: Optional[int] = None) -> list: ...
    def create_receipt(self, transaction_id: int, content_json: dict, **fields) -> Any: ...
    def delete_receipt(self, receipt_id: int) -> bool: ...
    def mark_receipt_sent(self, receipt_id: int, sent_at: dt.datetime) -> Any: ...

    # options
    def get_option(self, organization_id: Optional[int], key: str) -> Any: ...
    def list_options(self, organization_id: Optional[int]) -> list: ...
    def set_option(self, organization_id: Optional[int], key: str, value: Optional[str]) -> Any: ...
    def delete_option(self, organization_id: Optional[int], key: str) -> bool: ...
