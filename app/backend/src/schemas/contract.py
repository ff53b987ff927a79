"""Contract intake schemas."""

from __future__ import annotations

from pydantic import Field

from .base import CamelModel
from .customer import CustomerCreate, CustomerDetail
from .order import OrderCreate, OrderDetail
from .order_item import OrderItemInput


class ContractCreate(CamelModel):
    """An already-parsed contract: customer, order header and items."""

    customer: CustomerCreate
    order: OrderCreate
    items: list[OrderItemInput] = Field(default_factory=list)


class ContractResponse(CamelModel):
    success: bool = True
    customer: CustomerDetail
    order: OrderDetail
    customer_created: bool


__all__ = ["ContractCreate", "ContractResponse"]
