"""Order header reads and edits."""

from __future__ import annotations

import structlog
from sqlalchemy.orm import Session

from app.backend.src.models import ChangeType, Order
from app.backend.src.schemas.order import OrderDetail, OrderUpdate

from . import change_history
from .customer_status import recalculate_for_order
from .order_items import get_order_or_404, validate_items_total

LOGGER = structlog.get_logger(__name__)

_REQUIRED_FIELDS = {"status", "balance_due"}


def serialize_order(order: Order) -> OrderDetail:
    """Return the order header with its item-total check."""

    detail = OrderDetail.model_validate(order)
    detail.items_validation = validate_items_total(order.items, order.order_grand_total)
    return detail


def get_order(session: Session, order_id: int) -> Order:
    return get_order_or_404(session, order_id)


def update_order(session: Session, order_id: int, payload: OrderUpdate) -> Order:
    """Apply the supplied header fields and log each change."""

    order = get_order_or_404(session, order_id)
    changes = payload.model_dump(exclude_unset=True, mode="json")

    for field, value in changes.items():
        if value is None and field in _REQUIRED_FIELDS:
            continue
        old_value = getattr(order, field)
        change_type = ChangeType.STAGE_UPDATE if field == "stage" else ChangeType.ORDER_EDIT
        change_history.log_if_changed(
            session,
            change_type,
            field,
            old_value,
            value,
            order_id=order.id,
            customer_id=order.customer_id,
        )
        setattr(order, field, value)

    session.flush()
    recalculate_for_order(session, order)
    session.commit()
    LOGGER.info("order_updated", order_id=order.id, fields=sorted(changes))
    return order


__all__ = ["get_order", "serialize_order", "update_order"]
