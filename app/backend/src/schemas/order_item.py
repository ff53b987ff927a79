"""Order line item schemas."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import Field, field_validator

from app.backend.src.models.enums import ItemType
from app.backend.src.services.progress_billing import Money, Percent, to_decimal_or_none

from .base import CamelModel


class OrderItemInput(CamelModel):
    """A line item as submitted by the items table.

    Derived fields (``completedAmount``, ``thisBill`` ...) may be present in
    the payload but are ignored; they are recomputed on save.
    """

    id: int | None = None
    item_type: ItemType = Field(default=ItemType.ITEM, alias="type")
    product_service: str = ""
    qty: Decimal | None = None
    rate: Decimal | None = None
    amount: Decimal | None = None
    progress_overall_pct: Decimal | None = None
    previously_invoiced_pct: Decimal | None = None
    main_category: str | None = None
    sub_category: str | None = None
    vendor_id: int | None = None
    vendor_percentage: Decimal | None = None

    @field_validator("product_service", mode="before")
    @classmethod
    def _blank_label(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("qty", "rate", mode="before")
    @classmethod
    def _numeric(cls, value: Any) -> Decimal | None:
        return to_decimal_or_none(value)

    @field_validator("amount", mode="before")
    @classmethod
    def _money(cls, value: Any) -> Decimal | None:
        money = Money.parse(value)
        return money.amount if money is not None else None

    @field_validator(
        "progress_overall_pct",
        "previously_invoiced_pct",
        "vendor_percentage",
        mode="before",
    )
    @classmethod
    def _clamped_percent(cls, value: Any) -> Decimal | None:
        percent = Percent.clamp(value)
        return percent.value if percent is not None else None

    @field_validator("vendor_id", mode="before")
    @classmethod
    def _optional_id(cls, value: Any) -> Any:
        return None if value in ("", None) else value


class OrderItemsReplace(CamelModel):
    """Body of ``PUT /orders/{id}/items``."""

    items: list[OrderItemInput] = Field(default_factory=list)


class OrderItemRead(CamelModel):
    """A line item with freshly computed billing fields."""

    id: int
    item_type: ItemType = Field(alias="type")
    product_service: str
    row_index: int
    qty: float | None
    rate: float | None
    amount: float | None
    progress_overall_pct: float | None
    previously_invoiced_pct: float | None
    completed_amount: float | None
    previously_invoiced_amount: float | None
    new_progress_pct: float | None
    this_bill: float | None
    main_category: str | None
    sub_category: str | None
    vendor_id: int | None
    vendor_percentage: float | None


class OrderItemsResponse(CamelModel):
    success: bool = True
    items: list[OrderItemRead]


class BillableItem(CamelModel):
    """An item row as offered to the invoice link selector."""

    id: int
    product_service: str
    amount: float
    progress_overall_pct: float | None
    previously_invoiced_pct: float | None
    this_bill: float
    already_invoiced: float
    remaining_billable: float


class BillableItemsResponse(CamelModel):
    success: bool = True
    items: list[BillableItem]


__all__ = [
    "BillableItem",
    "BillableItemsResponse",
    "OrderItemInput",
    "OrderItemRead",
    "OrderItemsReplace",
    "OrderItemsResponse",
]
