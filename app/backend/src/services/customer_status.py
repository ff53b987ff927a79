"""Customer status rollup.

A customer stays ``pending_updates`` while it has no orders, while any of its
orders is pending, or while any of its non-excluded invoices still has an open
balance. Otherwise it is ``completed``.
"""

from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.backend.src.models import Customer, CustomerStatus, Invoice, Order, OrderStatus

LOGGER = structlog.get_logger(__name__)


def calculate_customer_status(session: Session, customer_id: str) -> CustomerStatus:
    orders = list(
        session.execute(select(Order).where(Order.customer_id == customer_id)).scalars()
    )
    if not orders:
        return CustomerStatus.PENDING_UPDATES

    if any(order.status != OrderStatus.COMPLETED.value for order in orders):
        return CustomerStatus.PENDING_UPDATES

    invoices = session.execute(
        select(Invoice).where(
            Invoice.order_id.in_([order.id for order in orders]),
            Invoice.exclude.is_(False),
        )
    ).scalars()
    if any(invoice.open_balance > 0 for invoice in invoices):
        return CustomerStatus.PENDING_UPDATES

    return CustomerStatus.COMPLETED


def update_customer_status(session: Session, customer: Customer) -> CustomerStatus:
    """Recompute and store the customer's status."""

    status = calculate_customer_status(session, customer.dbx_customer_id)
    if customer.status != status.value:
        LOGGER.info(
            "customer_status_changed",
            customer_id=customer.dbx_customer_id,
            old_status=customer.status,
            new_status=status.value,
        )
        customer.status = status.value
    return status


def recalculate_for_order(session: Session, order: Order) -> CustomerStatus | None:
    """Recompute the status of the customer owning ``order``."""

    customer = session.get(Customer, order.customer_id)
    if customer is None:
        LOGGER.warning("customer_status_order_orphaned", order_id=order.id)
        return None
    return update_customer_status(session, customer)


__all__ = [
    "calculate_customer_status",
    "recalculate_for_order",
    "update_customer_status",
]
