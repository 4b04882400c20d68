"""
SQLAlchemy-backed entity store.

Every mutating call commits on its own; there is no transaction spanning
several calls. Driver errors are rolled back and re-raised as ``StoreError``.
"""
from __future__ import annotations

import datetime as dt
import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from giftsync.exceptions import NotFoundError, StoreError, ValidationError
from giftsync.models import (
    DonorModel,
    OptionModel,
    OrganizationModel,
    ReceiptModel,
    TransactionItemModel,
    TransactionModel,
)

logger = logging.getLogger(__name__)

_ITEM_FIELDS = ("description", "quantity", "unit_price", "line_num", "amount")
_TRANSACTION_FIELDS = ("date", "amount", "external_doc_num", "donor_id", "organization_id")


class SqlStore:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _writing(self, action: str):
        try:
            yield
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Store %s failed: %s", action, e)
            raise StoreError(f"{action} failed: {e}") from e

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def get_transaction(self, transaction_id: int) -> Optional[TransactionModel]:
        return self.db.get(TransactionModel, transaction_id)

    def find_transaction_by_external_doc_num(self, external_doc_num: str) -> Optional[TransactionModel]:
        if not external_doc_num:
            return None
        return (
            self.db.query(TransactionModel)
            .filter(TransactionModel.external_doc_num == external_doc_num)
            .first()
        )

    def _new_transaction(self, date, amount, external_doc_num, donor_id, organization_id):
        amount = Decimal(str(amount if amount is not None else 0))
        return TransactionModel(
            date=date,
            amount=amount,
            manual_amount=amount,
            amount_source="manual",
            external_doc_num=external_doc_num or None,
            donor_id=donor_id,
            organization_id=organization_id,
        )

    def create_transaction(
        self,
        date: dt.date,
        amount: Decimal,
        external_doc_num: Optional[str] = None,
        donor_id: Optional[int] = None,
        organization_id: Optional[int] = None,
    ) -> TransactionModel:
        row = self._new_transaction(date, amount, external_doc_num, donor_id, organization_id)
        with self._writing("create_transaction"):
            self.db.add(row)
        return row

    def insert_transaction_if_absent(
        self,
        date: dt.date,
        amount: Decimal,
        external_doc_num: Optional[str] = None,
        donor_id: Optional[int] = None,
        organization_id: Optional[int] = None,
    ) -> Optional[TransactionModel]:
        """Insert unless ``external_doc_num`` is already taken; ``None`` when it is."""
        row = self._new_transaction(date, amount, external_doc_num, donor_id, organization_id)
        try:
            self.db.add(row)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if external_doc_num and self.find_transaction_by_external_doc_num(external_doc_num):
                logger.info("Transaction %s inserted concurrently, skipping", external_doc_num)
                return None
            raise StoreError(f"insert_transaction_if_absent failed: {e}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"insert_transaction_if_absent failed: {e}") from e
        return row

    def update_transaction_amount(self, transaction_id: int, amount: Decimal, source: str) -> TransactionModel:
        row = self.get_transaction(transaction_id)
        if row is None:
            raise NotFoundError("Transaction", transaction_id)
        with self._writing("update_transaction_amount"):
            row.amount = amount
            row.amount_source = source
        return row

    def list_transactions(self, organization_id: Optional[int] = None) -> list[TransactionModel]:
        q = self.db.query(TransactionModel)
        if organization_id is not None:
            q = q.filter(TransactionModel.organization_id == organization_id)
        return q.order_by(TransactionModel.date.desc(), TransactionModel.id.desc()).all()

    def update_transaction(self, transaction_id: int, **fields) -> TransactionModel:
        """Edit a transaction. The amount is only editable while it is not derived from items."""
        unknown = set(fields) - set(_TRANSACTION_FIELDS)
        if unknown:
            raise StoreError(f"Unknown transaction fields: {', '.join(sorted(unknown))}")
        row = self.get_transaction(transaction_id)
        if row is None:
            raise NotFoundError("Transaction", transaction_id)
        if "amount" in fields and row.amount_source == "derived":
            raise ValidationError(
                "Transaction amount is derived from its items; edit the items instead", field="amount"
            )
        if "amount" in fields:
            fields["amount"] = Decimal(str(fields["amount"] if fields["amount"] is not None else 0))
        with self._writing("update_transaction"):
            for key, value in fields.items():
                setattr(row, key, value)
            if "amount" in fields:
                row.manual_amount = fields["amount"]
        return row

    def update_transaction_donor(self, transaction_id: int, donor_id: Optional[int]) -> TransactionModel:
        row = self.get_transaction(transaction_id)
        if row is None:
            raise NotFoundError("Transaction", transaction_id)
        with self._writing("update_transaction_donor"):
            row.donor_id = donor_id
        return row

    def delete_transaction(self, transaction_id: int) -> bool:
        """Delete a transaction with its items and receipt."""
        row = self.get_transaction(transaction_id)
        if row is None:
            return False
        with self._writing("delete_transaction"):
            self.db.query(ReceiptModel).filter(ReceiptModel.transaction_id == transaction_id).delete(
                synchronize_session="fetch"
            )
            self.db.delete(row)
        return True

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def get_items_by_transaction_id(self, transaction_id: int) -> list[TransactionItemModel]:
        return (
            self.db.query(TransactionItemModel)
            .filter(TransactionItemModel.transaction_id == transaction_id)
            .order_by(TransactionItemModel.id)
            .all()
        )

    def get_item(self, item_id: int) -> Optional[TransactionItemModel]:
        return self.db.get(TransactionItemModel, item_id)

    def upsert_item(self, transaction_id: int, item_id: Optional[int] = None, **fields) -> TransactionItemModel:
        unknown = set(fields) - set(_ITEM_FIELDS)
        if unknown:
            raise StoreError(f"Unknown item fields: {', '.join(sorted(unknown))}")
        if item_id is None:
            row = TransactionItemModel(transaction_id=transaction_id, **fields)
            with self._writing("create_item"):
                self.db.add(row)
            return row
        row = self.get_item(item_id)
        if row is None or row.transaction_id != transaction_id:
            raise NotFoundError("TransactionItem", item_id)
        with self._writing("update_item"):
            for key, value in fields.items():
                setattr(row, key, value)
        return row

    def delete_item(self, item_id: int) -> bool:
        row = self.get_item(item_id)
        if row is None:
            return False
        with self._writing("delete_item"):
            self.db.delete(row)
        return True

    def delete_items_by_transaction(self, transaction_id: int) -> int:
        with self._writing("delete_items_by_transaction"):
            count = (
                self.db.query(TransactionItemModel)
                .filter(TransactionItemModel.transaction_id == transaction_id)
                .delete(synchronize_session="fetch")
            )
        return count

    # ------------------------------------------------------------------
    # Donors
    # ------------------------------------------------------------------

    def get_donor(self, donor_id: int) -> Optional[DonorModel]:
        return self.db.get(DonorModel, donor_id)

    def find_donor(self, external_customer_id: str, organization_id: Optional[int]) -> Optional[DonorModel]:
        q = self.db.query(DonorModel).filter(DonorModel.external_customer_id == external_customer_id)
        if organization_id is None:
            q = q.filter(DonorModel.organization_id.is_(None))
        else:
            q = q.filter(DonorModel.organization_id == organization_id)
        return q.first()

    def create_donor(self, **fields) -> DonorModel:
        row = DonorModel(**fields)
        with self._writing("create_donor"):
            self.db.add(row)
        return row

    def update_donor(self, donor_id: int, **fields) -> DonorModel:
        row = self.get_donor(donor_id)
        if row is None:
            raise NotFoundError("Donor", donor_id)
        with self._writing("update_donor"):
            for key, value in fields.items():
                setattr(row, key, value)
        return row

    def delete_donor(self, donor_id: int) -> bool:
        """Delete a donor; its transactions and receipts become anonymous."""
        row = self.get_donor(donor_id)
        if row is None:
            return False
        with self._writing("delete_donor"):
            self.db.query(TransactionModel).filter(TransactionModel.donor_id == donor_id).update(
                {TransactionModel.donor_id: None}, synchronize_session="fetch"
            )
            self.db.query(ReceiptModel).filter(ReceiptModel.donor_id == donor_id).update(
                {ReceiptModel.donor_id: None}, synchronize_session="fetch"
            )
            self.db.delete(row)
        return True

    # ------------------------------------------------------------------
    # Organizations
    # ------------------------------------------------------------------

    def get_organization(self, organization_id: int) -> Optional[OrganizationModel]:
        return self.db.get(OrganizationModel, organization_id)

    def find_organization_by_external_id(self, external_id: str) -> Optional[OrganizationModel]:
        if not external_id:
            return None
        return (
            self.db.query(OrganizationModel)
            .filter(OrganizationModel.external_id == external_id)
            .first()
        )

    def first_organization(self) -> Optional[OrganizationModel]:
        return self.db.query(OrganizationModel).order_by(OrganizationModel.id).first()

    def create_organization(self, **fields) -> OrganizationModel:
        row = OrganizationModel(**fields)
        with self._writing("create_organization"):
            self.db.add(row)
        return row

    def update_organization(self, organization_id: int, **fields) -> OrganizationModel:
        row = self.get_organization(organization_id)
        if row is None:
            raise NotFoundError("Organization", organization_id)
        with self._writing("update_organization"):
            for key, value in fields.items():
                setattr(row, key, value)
        return row

    def delete_organization(self, organization_id: int) -> bool:
        row = self.get_organization(organization_id)
        if row is None:
            return False
        with self._writing("delete_organization"):
            self.db.delete(row)
        return True

    # ------------------------------------------------------------------
    # Receipts
    # ------------------------------------------------------------------

    def get_receipt(self, receipt_id: int) -> Optional[ReceiptModel]:
        return self.db.get(ReceiptModel, receipt_id)

    def get_receipt_by_transaction_id(self, transaction_id: int) -> Optional[ReceiptModel]:
        return (
            self.db.query(ReceiptModel)
            .filter(ReceiptModel.transaction_id == transaction_id)
            .first()
        )

    def list_receipts(self, donor_id: Optional[int] = None) -> list[ReceiptModel]:
        q = self.db.query(ReceiptModel)
        if donor_id is not None:
            q = q.filter(ReceiptModel.donor_id == donor_id)
        return q.order_by(ReceiptModel.date_generated.desc(), ReceiptModel.id.desc()).all()

    def create_receipt(self, transaction_id: int, content_json: dict, **fields) -> ReceiptModel:
        row = ReceiptModel(transaction_id=transaction_id, content_json=content_json, **fields)
        with self._writing("create_receipt"):
            self.db.add(row)
        return row

    def delete_receipt(self, receipt_id: int) -> bool:
        row = self.get_receipt(receipt_id)
        if row is None:
            return False
        with self._writing("delete_receipt"):
            self.db.delete(row)
        return True

    def mark_receipt_sent(self, receipt_id: int, sent_at: dt.datetime) -> ReceiptModel:
        row = self.get_receipt(receipt_id)
        if row is None:
            raise NotFoundError("Receipt", receipt_id)
        with self._writing("mark_receipt_sent"):
            row.date_sent = sent_at
        return row

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    def _option_query(self, organization_id: Optional[int]):
        q = self.db.query(OptionModel)
        if organization_id is None:
            return q.filter(OptionModel.organization_id.is_(None))
        return q.filter(OptionModel.organization_id == organization_id)

    def get_option(self, organization_id: Optional[int], key: str) -> Optional[OptionModel]:
        return self._option_query(organization_id).filter(OptionModel.key == key).first()

    def list_options(self, organization_id: Optional[int]) -> list[OptionModel]:
        return self._option_query(organization_id).order_by(OptionModel.key).all()

    def set_option(self, organization_id: Optional[int], key: str, value: Optional[str]) -> OptionModel:
        row = self.get_option(organization_id, key)
        with self._writing("set_option"):
            if row is None:
                row = OptionModel(organization_id=organization_id, key=key, value=value)
                self.db.add(row)
            else:
                row.value = value
        return row

    def delete_option(self, organization_id: Optional[int], key: str) -> bool:
        row = self.get_option(organization_id, key)
        if row is None:
            return False
        with self._writing("delete_option"):
            self.db.delete(row)
        return True
