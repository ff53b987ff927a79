"""Order schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from app.backend.src.models.enums import OrderStage, OrderStatus
from app.backend.src.services.progress_billing import to_decimal

from .base import CamelModel


class OrderCreate(CamelModel):
    """Order header as delivered by contract intake."""

    order_no: str = Field(min_length=1)
    order_date: datetime | None = None
    order_po: str | None = None
    order_due_date: datetime | None = None
    order_type: str | None = None
    order_grand_total: float = 0
    progress_payments: str | None = None
    balance_due: float | None = None
    sales_rep: str | None = None
    stage: OrderStage | None = None
    contract_date: str | None = None
    project_start_date: str | None = None
    project_end_date: str | None = None

    @field_validator("order_grand_total", "balance_due", mode="before")
    @classmethod
    def _money(cls, value: Any) -> Any:
        if value is None:
            return None
        return float(to_decimal(value))

    @field_validator("order_date", "order_due_date", mode="before")
    @classmethod
    def _blank_date(cls, value: Any) -> Any:
        return None if value == "" else value


class OrderUpdate(CamelModel):
    """Editable order fields."""

    status: OrderStatus | None = None
    stage: OrderStage | None = None
    order_po: str | None = None
    sales_rep: str | None = None
    balance_due: float | None = None
    contract_date: str | None = None
    project_start_date: str | None = None
    project_end_date: str | None = None


class ItemsValidation(CamelModel):
    """Comparison of the item-row total against the order grand total."""

    is_valid: bool
    items_total: float
    order_grand_total: float
    difference: float
    message: str | None = None


class OrderRead(CamelModel):
    id: int
    customer_id: str
    order_no: str
    order_date: datetime | None
    order_po: str | None
    order_due_date: datetime | None
    order_type: str | None
    order_grand_total: float
    balance_due: float
    sales_rep: str | None
    status: OrderStatus
    stage: OrderStage | None
    contract_date: str | None
    project_start_date: str | None
    project_end_date: str | None
    created_at: datetime
    updated_at: datetime


class OrderDetail(OrderRead):
    items_validation: ItemsValidation | None = None


class OrderResponse(CamelModel):
    success: bool = True
    order: OrderDetail


__all__ = [
    "ItemsValidation",
    "OrderCreate",
    "OrderDetail",
    "OrderRead",
    "OrderResponse",
    "OrderUpdate",
]
