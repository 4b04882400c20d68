"""
Unit tests for the import reconciler and the sync pipeline.
"""
import datetime as dt
from decimal import Decimal

import pytest

from giftsync.exceptions import InvalidBatchError
from giftsync.models import DonorModel, TransactionModel
from giftsync.pipeline import build_reconciler, sync_transactions
from giftsync.schemas import CounterpartyRef, ExternalLineItem, ExternalRecord, SalesReceiptDetail
from giftsync.store import SqlStore

RECORD = {
    "date": "2024-01-01",
    "counterpartyName": "Jane Doe",
    "counterpartyExternalId": "C1",
    "amount": 100,
    "externalDocNum": "D1",
}


@pytest.fixture()
def reconciler(store, accounting):
    return build_reconciler(store, accounting)


# =====================================================================
# Batches
# =====================================================================
class TestImportBatch:
    def test_new_record(self, reconciler, store, db):
        result = reconciler.import_batch([RECORD])
        assert (result.created, result.donors_created, result.skipped, result.total) == (1, 1, 0, 1)

        tx = store.find_transaction_by_external_doc_num("D1")
        assert tx.amount == Decimal("100")
        assert tx.date == dt.date(2024, 1, 1)
        donor = store.get_donor(tx.donor_id)
        assert donor.external_customer_id == "C1"

    def test_reimport_is_skipped(self, reconciler, db):
        reconciler.import_batch([RECORD])
        result = reconciler.import_batch([RECORD])
        assert (result.created, result.skipped, result.donors_created) == (0, 1, 0)
        assert db.query(DonorModel).count() == 1
        assert db.query(TransactionModel).count() == 1

    def test_existing_donor_reused(self, reconciler, store, accounting):
        reconciler.import_batch([RECORD])
        result = reconciler.import_batch([dict(RECORD, externalDocNum="D2")])
        assert result.created == 1
        assert result.donors_created == 0
        assert accounting.calls.count(("customer", "C1")) == 1
        first = store.find_transaction_by_external_doc_num("D1")
        second = store.find_transaction_by_external_doc_num("D2")
        assert first.donor_id == second.donor_id

    def test_record_without_customer_id(self, reconciler, store, accounting):
        record = {k: v for k, v in RECORD.items() if k != "counterpartyExternalId"}
        result = reconciler.import_batch([record])
        assert result.created == 1
        assert result.donors_created == 0
        assert store.find_transaction_by_external_doc_num("D1").donor_id is None
        assert not any(call[0] == "customer" for call in accounting.calls)

    def test_validation_errors_do_not_abort(self, reconciler):
        records = [
            {"counterpartyName": "No Date", "amount": 5, "externalDocNum": "X1"},
            {"date": "2024-01-02", "amount": 5, "externalDocNum": "X2"},
            {"date": "2024-01-03", "counterpartyName": "No Amount", "externalDocNum": "X3"},
            {"date": "not-a-date", "counterpartyName": "Bad", "amount": 1, "externalDocNum": "X4"},
            "nonsense",
            dict(RECORD, externalDocNum="OK"),
        ]
        result = reconciler.import_batch(records)
        assert result.total == 6
        assert result.created == 1
        assert [e.index for e in result.errors] == [0, 1, 2, 3, 4]
        assert all(e.kind == "validation" for e in result.errors)
        assert result.errors[0].identifier == "X1"
        assert result.errors[4].identifier == "#4"

    def test_collaborator_failure_is_recorded(self, reconciler, store, accounting):
        accounting.failing.add("BAD")
        records = [
            dict(RECORD, counterpartyExternalId="BAD", externalDocNum="E1"),
            dict(RECORD, externalDocNum="E2"),
        ]
        result = reconciler.import_batch(records)
        assert result.created == 1
        assert len(result.errors) == 1
        assert result.errors[0].kind == "collaborator"
        assert result.errors[0].identifier == "E1"
        assert store.find_transaction_by_external_doc_num("E1") is None

    def test_line_items_derive_amount(self, reconciler, store):
        record = ExternalRecord(
            date=dt.date(2024, 3, 1),
            counterparty=CounterpartyRef(display_name="Sam Lee", external_id="C9"),
            amount=Decimal("999"),
            external_doc_num="S1",
            line_items=[
                ExternalLineItem(description="Books", quantity=2, amount=Decimal("40")),
                ExternalLineItem(description="Subtotal", amount=Decimal("40"), is_sales_item_line=False),
                ExternalLineItem(description="Gift", amount=Decimal("10")),
            ],
        )
        result = reconciler.import_batch([record])
        assert result.created == 1
        assert result.items_created == 2
        tx = store.find_transaction_by_external_doc_num("S1")
        assert tx.amount == Decimal("50")
        assert tx.manual_amount == Decimal("50")
        assert tx.amount_source == "derived"

    def test_records_without_doc_number_are_not_deduped(self, reconciler, db):
        record = {k: v for k, v in RECORD.items() if k != "externalDocNum"}
        reconciler.import_batch([record, record])
        assert db.query(TransactionModel).count() == 2

    def test_malformed_batch(self, reconciler):
        with pytest.raises(InvalidBatchError):
            reconciler.import_batch({"not": "a list"})
        with pytest.raises(InvalidBatchError):
            reconciler.import_batch(None)


class _RacingStore(SqlStore):
    """Misses the first dedup lookup, as if another writer inserted in between."""

    def __init__(self, db):
        super().__init__(db)
        self.lookups = 0

    def find_transaction_by_external_doc_num(self, external_doc_num):
        self.lookups += 1
        if self.lookups == 1:
            return None
        return super().find_transaction_by_external_doc_num(external_doc_num)


class TestDedupRace:
    def test_insert_if_absent(self, store):
        store.create_transaction(date=dt.date(2024, 1, 1), amount=Decimal("1"), external_doc_num="R1")
        assert store.insert_transaction_if_absent(dt.date(2024, 1, 1), Decimal("1"), "R1") is None

    def test_race_lands_as_skip(self, db, accounting):
        SqlStore(db).create_transaction(date=dt.date(2024, 1, 1), amount=Decimal("1"), external_doc_num="D1")
        racing = _RacingStore(db)
        result = build_reconciler(racing, accounting).import_batch([RECORD])
        assert result.created == 0
        assert result.skipped == 1
        assert result.errors == []


# =====================================================================
# Sync pipeline
# =====================================================================
class TestSyncTransactions:
    def test_report_to_transactions(self, store, accounting):
        accounting.report = {
            "Columns": {
                "Column": [
                    {"ColType": "tx_date"},
                    {"ColType": "txn_type"},
                    {"ColType": "doc_num"},
                    {"ColType": "name"},
                    {"ColType": "subt_nat_amount"},
                ]
            },
            "Rows": {
                "Row": [
                    {
                        "ColData": [
                            {"value": "2024-05-01"},
                            {"value": "Sales Receipt", "id": "77"},
                            {"value": "1001"},
                            {"value": "Jane Doe", "id": "C1"},
                            {"value": "25.00"},
                        ]
                    }
                ]
            },
        }
        accounting.sales_receipts["77"] = SalesReceiptDetail.from_quickbooks(
            {
                "SalesReceipt": {
                    "Id": "77",
                    "DocNumber": "1001",
                    "Line": [
                        {
                            "LineNum": 1,
                            "Description": "Donation",
                            "Amount": 25.0,
                            "DetailType": "SalesItemLineDetail",
                            "SalesItemLineDetail": {"Qty": 1},
                        },
                        {"Amount": 25.0, "DetailType": "SubTotalLineDetail", "SubTotalLineDetail": {}},
                    ],
                }
            }
        )
        result = sync_transactions(store, accounting)
        assert (result.created, result.donors_created, result.items_created) == (1, 1, 1)
        tx = store.find_transaction_by_external_doc_num("1001")
        assert tx.amount == Decimal("25")
        assert store.get_donor(tx.donor_id).name == "Customer C1"
