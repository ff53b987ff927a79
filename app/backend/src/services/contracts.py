"""Contract intake: store an already-parsed contract.

The customer is created when it does not exist yet and refreshed from the
contract otherwise. The order and its item rows are always new.
"""

from __future__ import annotations

import structlog
from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.backend.src.models import (
    ChangeType,
    Customer,
    CustomerStatus,
    Order,
    OrderStage,
    OrderStatus,
)
from app.backend.src.schemas.contract import ContractCreate
from app.backend.src.schemas.customer import CustomerUpdate

from . import change_history
from .customers import apply_customer_update, normalize_address
from .customer_status import update_customer_status
from .order_items import OrderItemsRepository

LOGGER = structlog.get_logger(__name__)


def _upsert_customer(session: Session, payload: ContractCreate) -> tuple[Customer, bool]:
    data = payload.customer
    customer_id = data.dbx_customer_id.strip()
    customer = session.get(Customer, customer_id)
    if customer is not None:
        # Blank contract fields keep the stored values.
        fields = {
            "client_name": data.client_name,
            "email": data.email,
            "phone": data.phone,
            "address": data.address,
        }
        update = CustomerUpdate(**{key: value for key, value in fields.items() if value})
        apply_customer_update(session, customer, update)
        return customer, False

    address = normalize_address(data.address)
    customer = Customer(
        dbx_customer_id=customer_id,
        client_name=data.client_name.strip(),
        email=data.email,
        phone=data.phone,
        street_address=address.street_address,
        city=address.city,
        state=address.state,
        zip=address.zip,
        status=CustomerStatus.PENDING_UPDATES.value,
    )
    session.add(customer)
    return customer, True


def store_contract(session: Session, payload: ContractCreate) -> tuple[Customer, Order, bool]:
    """Persist a parsed contract and return ``(customer, order, customer_created)``."""

    order_no = payload.order.order_no.strip()
    duplicate = session.execute(
        select(Order.id).where(Order.order_no == order_no)
    ).scalar_one_or_none()
    if duplicate is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Order already exists",
        )

    customer, created = _upsert_customer(session, payload)

    header = payload.order.model_dump(exclude={"order_no", "balance_due", "stage"})
    order = Order(
        **header,
        order_no=order_no,
        customer=customer,
        balance_due=(
            payload.order.balance_due
            if payload.order.balance_due is not None
            else payload.order.order_grand_total
        ),
        status=OrderStatus.PENDING_UPDATES.value,
        stage=(payload.order.stage or OrderStage.WAITING_FOR_PERMIT).value,
    )
    session.add(order)
    session.flush()

    change_history.log_change(
        session,
        ChangeType.CONTRACT_ADD,
        "orderNo",
        None,
        order_no,
        customer_id=customer.dbx_customer_id,
        order_id=order.id,
    )
    OrderItemsRepository(session).replace_items(order.id, payload.items, commit=False)
    update_customer_status(session, customer)
    session.commit()

    LOGGER.info(
        "contract_stored",
        customer_id=customer.dbx_customer_id,
        order_id=order.id,
        order_no=order_no,
        item_count=len(payload.items),
        customer_created=created,
    )
    return customer, order, created


__all__ = ["store_contract"]
