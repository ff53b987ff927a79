"""Service layer functions for customer management."""

from __future__ import annotations

import structlog
from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.backend.src.db.base import utcnow
from app.backend.src.models import ChangeType, Customer, CustomerStatus, Order, OrderStage
from app.backend.src.schemas.address import (
    StreetAddress,
    StreetAddressInput,
    build_street_address,
)
from app.backend.src.schemas.customer import (
    CustomerCreate,
    CustomerDetail,
    CustomerRead,
    CustomerSummary,
    CustomerUpdate,
)

from . import change_history
from .customer_status import update_customer_status
from .order_items import validate_items_total
from .orders import serialize_order

LOGGER = structlog.get_logger(__name__)

_STAGE_PRIORITY = {
    OrderStage.WAITING_FOR_PERMIT.value: 0,
    OrderStage.ACTIVE.value: 1,
    OrderStage.COMPLETED.value: 2,
}


def normalize_address(payload: StreetAddressInput) -> StreetAddress:
    try:
        return payload.normalized()
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


def _read_fields(customer: Customer) -> dict[str, object]:
    return {
        "dbx_customer_id": customer.dbx_customer_id,
        "client_name": customer.client_name,
        "email": customer.email,
        "phone": customer.phone,
        "address": build_street_address(
            customer.street_address, customer.city, customer.state, customer.zip
        ),
        "status": customer.status,
        "deleted_at": customer.deleted_at,
        "created_at": customer.created_at,
        "updated_at": customer.updated_at,
    }


def serialize_customer(customer: Customer) -> CustomerRead:
    return CustomerRead(**_read_fields(customer))


def serialize_customer_summary(customer: Customer) -> CustomerSummary:
    """Return a list entry flagging orders whose items miss the grand total."""

    issues = [
        f"Order {order.order_no}: Items total mismatch"
        for order in customer.orders
        if not validate_items_total(order.items, order.order_grand_total).is_valid
    ]
    stages = [order.stage for order in customer.orders if order.stage in _STAGE_PRIORITY]
    stage = max(stages, key=_STAGE_PRIORITY.__getitem__) if stages else None
    return CustomerSummary(
        **_read_fields(customer),
        stage=stage,
        contract_count=len(customer.orders),
        has_validation_issues=bool(issues),
        validation_issues=issues,
    )


def serialize_customer_detail(customer: Customer) -> CustomerDetail:
    return CustomerDetail(
        **_read_fields(customer),
        orders=[serialize_order(order) for order in customer.orders],
    )


def get_customer_or_404(session: Session, customer_id: str) -> Customer:
    customer = session.get(Customer, customer_id)
    if customer is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Customer not found",
        )
    return customer


def list_customers(
    session: Session,
    *,
    status_filter: CustomerStatus | None = None,
    include_deleted: bool = False,
    trash_only: bool = False,
) -> list[Customer]:
    """Return customers, most recently updated first."""

    statement = select(Customer).options(
        selectinload(Customer.orders).selectinload(Order.items)
    )
    if trash_only:
        statement = statement.where(Customer.deleted_at.is_not(None))
    elif not include_deleted:
        statement = statement.where(Customer.deleted_at.is_(None))
    if status_filter is not None:
        statement = statement.where(Customer.status == CustomerStatus(status_filter).value)
    statement = statement.order_by(Customer.updated_at.desc())
    return list(session.execute(statement).scalars())


def find_customer(session: Session, customer_id: str) -> Customer | None:
    """Return the customer with ``customer_id`` if one exists, trashed or not."""

    return session.get(Customer, customer_id.strip())


def create_customer(session: Session, payload: CustomerCreate) -> Customer:
    customer_id = payload.dbx_customer_id.strip()
    if session.get(Customer, customer_id) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Customer already exists",
        )

    address = normalize_address(payload.address)
    customer = Customer(
        dbx_customer_id=customer_id,
        client_name=payload.client_name.strip(),
        email=payload.email,
        phone=payload.phone,
        street_address=address.street_address,
        city=address.city,
        state=address.state,
        zip=address.zip,
        status=CustomerStatus.PENDING_UPDATES.value,
    )
    session.add(customer)
    session.commit()
    LOGGER.info("customer_created", customer_id=customer_id)
    return customer


def apply_customer_update(
    session: Session, customer: Customer, payload: CustomerUpdate
) -> list[str]:
    """Copy supplied fields onto ``customer``, logging each change.

    Returns the names of the fields that changed. Does not commit.
    """

    supplied = payload.model_fields_set
    updates: dict[str, object] = {}
    if "client_name" in supplied and payload.client_name is not None:
        updates["client_name"] = payload.client_name.strip()
    if "email" in supplied:
        updates["email"] = payload.email
    if "phone" in supplied:
        updates["phone"] = payload.phone
    if "address" in supplied and payload.address is not None:
        address = normalize_address(payload.address)
        updates.update(
            street_address=address.street_address,
            city=address.city,
            state=address.state,
            zip=address.zip,
        )

    changed: list[str] = []
    for field, value in updates.items():
        entry = change_history.log_if_changed(
            session,
            ChangeType.CUSTOMER_EDIT,
            field,
            getattr(customer, field),
            value,
            customer_id=customer.dbx_customer_id,
        )
        if entry is not None:
            changed.append(field)
        setattr(customer, field, value)
    return changed


def update_customer(session: Session, customer_id: str, payload: CustomerUpdate) -> Customer:
    customer = get_customer_or_404(session, customer_id)
    changed = apply_customer_update(session, customer, payload)
    session.commit()
    LOGGER.info("customer_updated", customer_id=customer_id, fields=changed)
    return customer


def soft_delete_customer(session: Session, customer_id: str) -> Customer:
    """Move a customer to the trash."""

    customer = get_customer_or_404(session, customer_id)
    if customer.is_deleted:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Customer is already in trash",
        )
    customer.deleted_at = utcnow()
    change_history.log_change(
        session,
        ChangeType.CUSTOMER_DELETE,
        "deletedAt",
        None,
        customer.deleted_at,
        customer_id=customer.dbx_customer_id,
    )
    session.commit()
    LOGGER.info("customer_trashed", customer_id=customer_id)
    return customer


def recover_customer(session: Session, customer_id: str) -> Customer:
    """Restore a customer from the trash."""

    customer = get_customer_or_404(session, customer_id)
    if not customer.is_deleted:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Customer is not in trash",
        )
    change_history.log_change(
        session,
        ChangeType.CUSTOMER_RESTORE,
        "deletedAt",
        customer.deleted_at,
        None,
        customer_id=customer.dbx_customer_id,
    )
    customer.deleted_at = None
    update_customer_status(session, customer)
    session.commit()
    LOGGER.info("customer_recovered", customer_id=customer_id)
    return customer


def permanently_delete_customer(session: Session, customer_id: str) -> None:
    """Delete a trashed customer together with its orders, items and invoices."""

    customer = get_customer_or_404(session, customer_id)
    if not customer.is_deleted:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Customer must be in trash before permanent deletion",
        )
    order_count = len(customer.orders)
    session.delete(customer)
    session.commit()
    LOGGER.warning(
        "customer_permanently_deleted",
        customer_id=customer_id,
        order_count=order_count,
    )


__all__ = [
    "apply_customer_update",
    "create_customer",
    "find_customer",
    "get_customer_or_404",
    "list_customers",
    "normalize_address",
    "permanently_delete_customer",
    "recover_customer",
    "serialize_customer",
    "serialize_customer_detail",
    "serialize_customer_summary",
    "soft_delete_customer",
    "update_customer",
]
