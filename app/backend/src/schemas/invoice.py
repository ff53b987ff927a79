"""Invoice schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import Field, field_validator

from app.backend.src.services.progress_billing import to_decimal_or_none

from .base import CamelModel


class LinkedLineItemInput(CamelModel):
    """A requested link between an invoice and an order item."""

    order_item_id: int
    amount: Decimal = Decimal("0")

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> Decimal:
        parsed = to_decimal_or_none(value)
        return parsed if parsed is not None else Decimal("0")


class InvoiceWrite(CamelModel):
    """Fields accepted when creating or updating an invoice.

    Every field is optional; on update only the supplied fields change.
    ``linked_line_items`` takes precedence over the older
    ``linked_line_item_ids`` form, which links each item at its full
    remaining billable amount.
    """

    invoice_number: str | None = None
    invoice_date: datetime | None = None
    invoice_amount: Any = None
    payments_received: Any = None
    exclude: bool | None = None
    row_index: int | None = None
    linked_line_items: list[LinkedLineItemInput] | None = None
    linked_line_item_ids: list[int] | None = None

    @field_validator("invoice_date", mode="before")
    @classmethod
    def _blank_date(cls, value: Any) -> Any:
        return None if value == "" else value


class LinkedLineItemRead(CamelModel):
    order_item_id: int
    billed_amount: float


class InvoiceRead(CamelModel):
    id: int
    order_id: int
    invoice_number: str | None
    invoice_date: datetime | None
    invoice_amount: float | None
    payments_received: float
    exclude: bool
    row_index: int | None
    linked_line_items: list[LinkedLineItemRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class InvoiceResponse(CamelModel):
    success: bool = True
    invoice: InvoiceRead
    notices: list[str] = Field(default_factory=list)


class InvoiceListResponse(CamelModel):
    success: bool = True
    invoices: list[InvoiceRead]


class LinkedLineItemDetail(CamelModel):
    """A link expanded with the current state of its order item."""

    order_item_id: int
    billed_amount: float
    product_service: str
    amount: float
    qty: float | None
    rate: float | None
    progress_overall_pct: float | None
    previously_invoiced_pct: float | None
    current_this_bill: float


class LinkedLineItemsResponse(CamelModel):
    success: bool = True
    linked_items: list[LinkedLineItemDetail]
    total_billed_amount: float


class InvoiceSummary(CamelModel):
    """Order-level billing rollup."""

    original_invoice: float
    total_completed: float
    balance_remaining: float
    percent_completed: float
    total_invoiced: float
    less_payments_received: float
    total_due_upon_receipt: float


class InvoiceSummaryResponse(CamelModel):
    success: bool = True
    summary: InvoiceSummary


__all__ = [
    "InvoiceListResponse",
    "InvoiceRead",
    "InvoiceResponse",
    "InvoiceSummary",
    "InvoiceSummaryResponse",
    "InvoiceWrite",
    "LinkedLineItemDetail",
    "LinkedLineItemInput",
    "LinkedLineItemRead",
    "LinkedLineItemsResponse",
]
