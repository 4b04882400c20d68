"""
Boundary records – what the accounting service reports, normalized once.

QuickBooks payloads (PascalCase) are mapped here through ``from_quickbooks``
constructors; nothing past this module reads raw QuickBooks keys.
"""
from __future__ import annotations

import datetime as dt
import json
import logging
import math
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


logger = logging.getLogger(__name__)

SALES_ITEM_LINE = "SalesItemLineDetail"


def _whole_quantity(qty: Any, line_num: Any) -> Optional[int]:
    """Item quantities are whole units; fractional ones round up."""
    if qty in (None, ""):
        return None
    value = float(qty)
    if value.is_integer():
        return int(value)
    rounded = math.ceil(value)
    logger.warning("Line %s quantity %s is fractional, storing %d", line_num, qty, rounded)
    return rounded


def _unwrap(payload: dict | None, key: str) -> dict:
    if not payload:
        return {}
    inner = payload.get(key)
    return inner if isinstance(inner, dict) else payload


# ---------------------------------------------------------------------------
# Counterparty
# ---------------------------------------------------------------------------

class CounterpartyRef(BaseModel):
    """Display name plus optional accounting-service customer id."""
    display_name: Optional[str] = None
    external_id: Optional[str] = None

    @classmethod
    def from_column(cls, cell: Any) -> "CounterpartyRef":
        """Build from a report ``{"value", "id"}`` cell, a JSON string of one, or a bare name."""
        if isinstance(cell, str):
            try:
                decoded = json.loads(cell)
            except ValueError:
                return cls(display_name=cell or None)
            cell = decoded if isinstance(decoded, dict) else {"value": str(decoded)}
        if not isinstance(cell, dict):
            return cls()
        external_id = cell.get("id")
        return cls(
            display_name=cell.get("value") or cell.get("name") or None,
            external_id=str(external_id) if external_id not in (None, "") else None,
        )


# ---------------------------------------------------------------------------
# Line items
# ---------------------------------------------------------------------------

class ExternalLineItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    description: Optional[str] = None
    quantity: Optional[int] = None
    unit_price: Optional[Decimal] = None
    line_num: Optional[int] = None
    amount: Optional[Decimal] = None
    is_sales_item_line: bool = True

    @classmethod
    def from_quickbooks(cls, line: dict) -> "ExternalLineItem":
        detail = line.get(SALES_ITEM_LINE)
        is_sales = line.get("DetailType") == SALES_ITEM_LINE and isinstance(detail, dict)
        detail = detail if isinstance(detail, dict) else {}
        qty = _whole_quantity(detail.get("Qty"), line.get("LineNum"))
        return cls(
            description=line.get("Description"),
            quantity=qty,
            unit_price=detail.get("UnitPrice"),
            line_num=line.get("LineNum"),
            amount=line.get("Amount"),
            is_sales_item_line=is_sales,
        )


# ---------------------------------------------------------------------------
# Transaction record
# ---------------------------------------------------------------------------

class ExternalRecord(BaseModel):
    """One externally reported transaction row with its parsed line items.

    Accepts snake_case or camelCase keys; flat ``counterpartyName`` /
    ``counterpartyExternalId`` keys are folded into ``counterparty``.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    date: Optional[dt.date] = None
    counterparty: CounterpartyRef = Field(default_factory=CounterpartyRef)
    amount: Optional[Decimal] = None
    external_doc_num: Optional[str] = None
    line_items: list[ExternalLineItem] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _fold_counterparty(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        name = data.pop("counterpartyName", data.pop("counterparty_name", None))
        ext_id = data.pop("counterpartyExternalId", data.pop("counterparty_external_id", None))
        current = data.get("counterparty")
        if isinstance(current, str) or (
            isinstance(current, dict) and ("value" in current or "id" in current)
        ):
            data["counterparty"] = CounterpartyRef.from_column(current)
        if name is not None or ext_id is not None:
            ref = data.get("counterparty")
            if isinstance(ref, dict):
                ref = CounterpartyRef(**ref)
            ref = ref or CounterpartyRef()
            data["counterparty"] = CounterpartyRef(
                display_name=name if name is not None else ref.display_name,
                external_id=str(ext_id) if ext_id not in (None, "") else ref.external_id,
            )
        doc_num = data.get("externalDocNum", data.get("external_doc_num"))
        if doc_num is not None and not isinstance(doc_num, str):
            key = "externalDocNum" if "externalDocNum" in data else "external_doc_num"
            data[key] = str(doc_num)
        return data

    @property
    def sales_lines(self) -> list[ExternalLineItem]:
        return [li for li in self.line_items if li.is_sales_item_line]

    def staged_amount(self) -> Optional[Decimal]:
        """Sum of sales-item lines when present, else the reported amount."""
        lines = self.sales_lines
        if lines:
            return sum((li.amount or Decimal("0") for li in lines), Decimal("0"))
        return self.amount


# ---------------------------------------------------------------------------
# Accounting-service details
# ---------------------------------------------------------------------------

class CustomerDetail(BaseModel):
    id: Optional[str] = None
    display_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    company: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_quickbooks(cls, payload: dict) -> "CustomerDetail":
        c = _unwrap(payload, "Customer")
        bill = c.get("BillAddr") or {}
        return cls(
            id=str(c["Id"]) if c.get("Id") is not None else None,
            display_name=c.get("DisplayName") or c.get("Name"),
            email=(c.get("PrimaryEmailAddr") or {}).get("Address"),
            phone=(c.get("PrimaryPhone") or {}).get("FreeFormNumber"),
            address=bill.get("Line1"),
            city=bill.get("City"),
            state=bill.get("CountrySubDivisionCode"),
            zip=bill.get("PostalCode"),
            country=bill.get("Country"),
            company=c.get("CompanyName"),
            notes=c.get("Notes"),
        )


class CompanyDetail(BaseModel):
    company_name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    ein: Optional[str] = None
    phone: Optional[str] = None
    url: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_quickbooks(cls, payload: dict) -> "CompanyDetail":
        c = _unwrap(payload, "CompanyInfo")
        addr = c.get("CompanyAddr") or {}
        return cls(
            company_name=c.get("CompanyName"),
            address=addr.get("Line1"),
            city=addr.get("City"),
            state=addr.get("CountrySubDivisionCode"),
            zip=addr.get("PostalCode"),
            ein=c.get("EmployerId"),
            phone=(c.get("PrimaryPhone") or {}).get("FreeFormNumber"),
            url=(c.get("WebAddr") or {}).get("URI"),
            email=(c.get("Email") or {}).get("Address"),
        )


class SalesReceiptDetail(BaseModel):
    id: Optional[str] = None
    doc_number: Optional[str] = None
    txn_date: Optional[dt.date] = None
    customer: CounterpartyRef = Field(default_factory=CounterpartyRef)
    total_amount: Optional[Decimal] = None
    lines: list[ExternalLineItem] = Field(default_factory=list)

    @classmethod
    def from_quickbooks(cls, payload: dict) -> "SalesReceiptDetail":
        r = _unwrap(payload, "SalesReceipt")
        ref = r.get("CustomerRef") or {}
        return cls(
            id=str(r["Id"]) if r.get("Id") is not None else None,
            doc_number=r.get("DocNumber"),
            txn_date=r.get("TxnDate"),
            customer=CounterpartyRef(
                display_name=ref.get("name"),
                external_id=str(ref["value"]) if ref.get("value") is not None else None,
            ),
            total_amount=r.get("TotalAmt"),
            lines=[ExternalLineItem.from_quickbooks(line) for line in r.get("Line") or []],
        )
