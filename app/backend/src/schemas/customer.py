"""Customer schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import EmailStr, Field

from app.backend.src.models.enums import ChangeType, CustomerStatus, OrderStage

from .address import StreetAddress, StreetAddressInput
from .base import CamelModel
from .order import OrderDetail


class CustomerCreate(CamelModel):
    """Payload for registering a customer."""

    dbx_customer_id: str = Field(min_length=1)
    client_name: str = Field(min_length=1)
    email: EmailStr | None = None
    phone: str | None = None
    address: StreetAddressInput


class CustomerUpdate(CamelModel):
    """Partial customer update."""

    client_name: str | None = Field(default=None, min_length=1)
    email: EmailStr | None = None
    phone: str | None = None
    address: StreetAddressInput | None = None


class CustomerRead(CamelModel):
    dbx_customer_id: str
    client_name: str
    email: str | None
    phone: str | None
    address: StreetAddress | None
    status: CustomerStatus
    deleted_at: datetime | None
    created_at: datetime
    updated_at: datetime


class CustomerSummary(CustomerRead):
    """List entry with the customer's most advanced stage and open alerts."""

    stage: OrderStage | None = None
    contract_count: int = 0
    has_validation_issues: bool = False
    validation_issues: list[str] = Field(default_factory=list)


class CustomerDetail(CustomerRead):
    orders: list[OrderDetail] = Field(default_factory=list)


class CustomerResponse(CamelModel):
    success: bool = True
    customer: CustomerDetail


class CustomerListResponse(CamelModel):
    success: bool = True
    customers: list[CustomerSummary]


class CustomerExistsResponse(CamelModel):
    exists: bool
    customer: CustomerRead | None = None


class ChangeHistoryRead(CamelModel):
    id: int
    order_id: int | None
    order_item_id: int | None
    customer_id: str | None
    change_type: ChangeType
    field_name: str
    old_value: str | None
    new_value: str | None
    row_index: int | None
    changed_at: datetime


class ChangeHistoryResponse(CamelModel):
    success: bool = True
    history: list[ChangeHistoryRead]


__all__ = [
    "ChangeHistoryRead",
    "ChangeHistoryResponse",
    "CustomerCreate",
    "CustomerDetail",
    "CustomerExistsResponse",
    "CustomerListResponse",
    "CustomerRead",
    "CustomerResponse",
    "CustomerSummary",
    "CustomerUpdate",
]
