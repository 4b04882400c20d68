"""
Item ledger – line-item mutations that keep the transaction total derived.

Every mutation ends with ``recompute_transaction_amount``: with one or more
items the total is their sum, with none it falls back to the amount supplied
when the transaction was created.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Iterable, Optional

from pydantic import ValidationError as PayloadError

from giftsync.exceptions import GiftSyncError, NotFoundError, ValidationError
from giftsync.schemas import (
    ExternalLineItem,
    ItemImportResult,
    ItemMutation,
    ItemView,
    MultiItemImportResult,
    RecordError,
    SalesReceiptDetail,
)
from giftsync.store import Store

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _decimal(value: Any) -> Decimal:
    if value is None:
        return _ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _as_line(line: Any) -> ExternalLineItem:
    if isinstance(line, ExternalLineItem):
        return line
    if isinstance(line, dict) and "DetailType" in line:
        return ExternalLineItem.from_quickbooks(line)
    return ExternalLineItem.model_validate(line)


def _as_sales_receipt(payload: Any) -> SalesReceiptDetail:
    if isinstance(payload, SalesReceiptDetail):
        return payload
    return SalesReceiptDetail.from_quickbooks(payload)


_PRICING_FIELDS = ("amount", "quantity", "unit_price")


def _unit_amount(amount: Any, unit_price: Any) -> Decimal:
    """Per-unit amount from ``amount`` and/or ``unit_price``; both given must agree."""
    if amount is None and unit_price is None:
        raise ValidationError("Item amount is required", field="amount")
    if amount is not None and unit_price is not None and _decimal(amount) != _decimal(unit_price):
        raise ValidationError("Item unit price must match its per-unit amount", field="unit_price")
    return _decimal(amount if amount is not None else unit_price)


def _check_item(description: Optional[str], quantity: Optional[int], amount: Any) -> None:
    if not description or not str(description).strip():
        raise ValidationError("Item description is required", field="description")
    if quantity is not None and quantity < 1:
        raise ValidationError("Item quantity must be at least 1", field="quantity")
    if amount is None:
        raise ValidationError("Item amount is required", field="amount")


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

class ItemLedger:
    def __init__(self, store: Store):
        self.store = store

    def _require_transaction(self, transaction_id: int):
        tx = self.store.get_transaction(transaction_id)
        if tx is None:
            raise NotFoundError("Transaction", transaction_id)
        return tx

    def _mutation(self, transaction_id: int) -> ItemMutation:
        tx = self.recompute_transaction_amount(transaction_id)
        items = self.store.get_items_by_transaction_id(transaction_id)
        return ItemMutation(
            transaction_id=transaction_id,
            items=[ItemView.model_validate(i) for i in items],
            amount=_decimal(tx.amount),
            amount_source=tx.amount_source,
        )

    def recompute_transaction_amount(self, transaction_id: int):
        tx = self._require_transaction(transaction_id)
        items = self.store.get_items_by_transaction_id(transaction_id)
        if items:
            total = sum((_decimal(i.amount) for i in items), _ZERO)
            source = "derived"
        else:
            total = _decimal(tx.manual_amount)
            source = "manual"
        logger.debug("Transaction %s amount -> %s (%s)", transaction_id, total, source)
        return self.store.update_transaction_amount(transaction_id, total, source)

    def add_item(
        self,
        transaction_id: int,
        description: str,
        amount: Any,
        quantity: Optional[int] = 1,
        unit_price: Any = None,
        line_num: Optional[int] = None,
    ) -> ItemMutation:
        """Add a manual item; ``amount`` is per unit, the stored line amount is ``quantity * amount``.

        ``unit_price`` may be given too, but must equal ``amount``.
        """
        self._require_transaction(transaction_id)
        _check_item(description, quantity, amount)
        quantity = quantity or 1
        unit = _unit_amount(amount, unit_price)
        self.store.upsert_item(
            transaction_id,
            description=description,
            quantity=quantity,
            unit_price=unit,
            line_num=line_num,
            amount=unit * quantity,
        )
        return self._mutation(transaction_id)

    def update_item(self, item_id: int, **fields) -> ItemMutation:
        """Edit an item. The line amount is only recomputed when a pricing field changes."""
        item = self.store.get_item(item_id)
        if item is None:
            raise NotFoundError("TransactionItem", item_id)
        description = fields.get("description", item.description)
        changes = {k: v for k, v in fields.items() if k in ("description", "line_num")}

        if not any(k in fields for k in _PRICING_FIELDS):
            _check_item(description, item.quantity, item.amount)
        else:
            quantity = fields.get("quantity", item.quantity)
            if "amount" in fields or "unit_price" in fields:
                unit = _unit_amount(fields.get("amount"), fields.get("unit_price"))
            elif item.unit_price is not None:
                unit = _decimal(item.unit_price)
            else:
                unit = _decimal(item.amount) / (item.quantity or 1)
            _check_item(description, quantity, unit)
            quantity = quantity or 1
            changes["quantity"] = quantity
            changes["unit_price"] = unit
            changes["amount"] = unit * quantity

        self.store.upsert_item(item.transaction_id, item_id=item_id, **changes)
        return self._mutation(item.transaction_id)

    def delete_item(self, item_id: int) -> ItemMutation:
        item = self.store.get_item(item_id)
        if item is None:
            raise NotFoundError("TransactionItem", item_id)
        transaction_id = item.transaction_id
        self.store.delete_item(item_id)
        return self._mutation(transaction_id)

    def delete_all_items_for_transaction(self, transaction_id: int) -> ItemMutation:
        self._require_transaction(transaction_id)
        removed = self.store.delete_items_by_transaction(transaction_id)
        logger.info("Removed %d items from transaction %s", removed, transaction_id)
        return self._mutation(transaction_id)

    # ------------------------------------------------------------------
    # External import
    # ------------------------------------------------------------------

    def populate_items_from_external_lines(self, lines: Iterable[Any], transaction_id: int) -> ItemImportResult:
        """Store the sales-item lines of one external record; other line kinds are skipped."""
        self._require_transaction(transaction_id)
        result = ItemImportResult()
        for raw in lines or []:
            try:
                line = _as_line(raw)
            except (PayloadError, ValueError, TypeError) as e:
                logger.warning("Unreadable line on transaction %s: %s", transaction_id, e)
                result.skipped += 1
                continue
            if not line.is_sales_item_line:
                result.skipped += 1
                continue
            try:
                self.store.upsert_item(
                    transaction_id,
                    description=line.description or "No Description",
                    quantity=line.quantity or 1,
                    unit_price=line.unit_price,
                    line_num=line.line_num,
                    amount=_decimal(line.amount),
                )
                result.processed += 1
            except GiftSyncError as e:
                logger.warning("Skipping line %s on transaction %s: %s", line.line_num, transaction_id, e)
                result.skipped += 1
        self.recompute_transaction_amount(transaction_id)
        logger.info(
            "Transaction %s items: %d processed, %d skipped", transaction_id, result.processed, result.skipped
        )
        return result

    def populate_items_from_multiple_external(self, batch: Iterable[Any]) -> MultiItemImportResult:
        """Backfill items for already-imported transactions from their sales receipts.

        Transactions that already carry items are left alone. ``skipped`` counts
        both skipped receipts and skipped non-item lines of imported ones.
        """
        result = MultiItemImportResult()
        for index, payload in enumerate(batch or []):
            result.total += 1
            try:
                receipt = _as_sales_receipt(payload)
            except (PayloadError, ValueError, TypeError) as e:
                result.errors.append(RecordError(index=index, message=str(e), kind="validation"))
                continue

            tx = self.store.find_transaction_by_external_doc_num(receipt.doc_number)
            if tx is None:
                logger.info("No transaction for doc %s, skipping", receipt.doc_number)
                result.skipped += 1
                continue
            if self.store.get_items_by_transaction_id(tx.id):
                result.skipped += 1
                continue

            try:
                imported = self.populate_items_from_external_lines(receipt.lines, tx.id)
            except GiftSyncError as e:
                logger.error("Item backfill failed for doc %s: %s", receipt.doc_number, e)
                result.errors.append(
                    RecordError(index=index, identifier=receipt.doc_number, message=str(e), kind="store")
                )
                continue
            result.processed += imported.processed
            result.skipped += imported.skipped
        return result
