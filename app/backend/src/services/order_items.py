"""Order line item persistence.

The stored derived billing columns are a cache: they are rewritten on every
save and ignored on read, where :func:`serialize_item` recomputes them from
the item's inputs.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Any

import structlog
from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.backend.src.core.config import get_settings
from app.backend.src.db.base import utcnow
from app.backend.src.models import ChangeType, ItemType, Order, OrderItem, Vendor
from app.backend.src.schemas.order import ItemsValidation
from app.backend.src.schemas.order_item import OrderItemInput, OrderItemRead

from . import change_history
from .customer_status import recalculate_for_order
from .metrics import order_item_save_seconds, order_item_saves_total
from .progress_billing import (
    ZERO,
    calculate_for_item,
    derive_unit_rate,
    quantize_money,
    to_decimal_or_none,
)

LOGGER = structlog.get_logger(__name__)

# Input columns compared when an existing row is re-saved.
_TRACKED_FIELDS = (
    "item_type",
    "product_service",
    "qty",
    "rate",
    "amount",
    "progress_overall_pct",
    "previously_invoiced_pct",
    "main_category",
    "sub_category",
    "vendor_id",
    "vendor_percentage",
)


def _as_float(value: Any) -> float | None:
    parsed = to_decimal_or_none(value)
    return float(parsed) if parsed is not None else None


def get_order_or_404(session: Session, order_id: int) -> Order:
    order = session.get(Order, order_id)
    if order is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found",
        )
    return order


def serialize_item(item: OrderItem) -> OrderItemRead:
    """Return ``item`` with its billing fields computed from its inputs."""

    billing = calculate_for_item(item)
    derived: dict[str, float | None]
    if item.kind is ItemType.ITEM:
        derived = billing.as_floats()
    else:
        derived = dict.fromkeys(billing.as_floats(), None)

    return OrderItemRead(
        id=item.id,
        item_type=item.kind,
        product_service=item.product_service or "",
        row_index=item.row_index,
        qty=item.qty,
        rate=item.rate,
        amount=item.amount,
        progress_overall_pct=item.progress_overall_pct,
        previously_invoiced_pct=item.previously_invoiced_pct,
        main_category=item.main_category,
        sub_category=item.sub_category,
        vendor_id=item.vendor_id,
        vendor_percentage=item.vendor_percentage,
        **derived,
    )


def items_total(items: Iterable[Any]) -> Decimal:
    """Sum the positive amounts of ``item`` rows."""

    total = ZERO
    for item in items:
        if ItemType(getattr(item, "item_type", ItemType.ITEM)) is not ItemType.ITEM:
            continue
        amount = to_decimal_or_none(getattr(item, "amount", None))
        if amount is not None and amount > ZERO:
            total += amount
    return total


def validate_items_total(
    items: Iterable[Any],
    order_grand_total: Any,
    tolerance: float | None = None,
) -> ItemsValidation:
    """Check that the item rows add up to the order grand total."""

    if tolerance is None:
        tolerance = get_settings().items_total_tolerance

    total = items_total(items)
    grand_total = to_decimal_or_none(order_grand_total)
    if not grand_total:
        return ItemsValidation(
            is_valid=False,
            items_total=float(total),
            order_grand_total=0,
            difference=float(total),
            message="Order Grand Total is missing or zero",
        )

    difference = abs(total - grand_total)
    if difference <= Decimal(str(tolerance)):
        return ItemsValidation(
            is_valid=True,
            items_total=float(total),
            order_grand_total=float(grand_total),
            difference=0,
        )

    return ItemsValidation(
        is_valid=False,
        items_total=float(total),
        order_grand_total=float(grand_total),
        difference=float(quantize_money(difference)),
        message=(
            f"Order items total (${total:,.2f}) does not match Order Grand Total "
            f"(${grand_total:,.2f}). Difference: ${difference:,.2f}"
        ),
    )


class OrderItemsRepository:
    """Reads and replaces the item set of an order."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_items(self, order_id: int) -> list[OrderItemRead]:
        order = get_order_or_404(self.session, order_id)
        return [serialize_item(item) for item in order.items]

    def replace_items(
        self,
        order_id: int,
        items: Sequence[OrderItemInput],
        *,
        commit: bool = True,
    ) -> list[OrderItemRead]:
        """Replace the full item set of an order.

        Rows carrying the ``id`` of an existing item of this order update that
        item in place, so invoice links to it survive. Other rows are
        inserted and items missing from ``items`` are deleted. Row order is
        taken from list position.
        """

        with order_item_save_seconds.time():
            order = get_order_or_404(self.session, order_id)
            self._check_vendors(items)
            existing = {item.id: item for item in order.items}
            kept: list[OrderItem] = []

            for row_index, payload in enumerate(items):
                item = existing.pop(payload.id, None) if payload.id is not None else None
                if item is None:
                    item = OrderItem(order_id=order.id)
                    self._apply(item, payload, row_index)
                    change_history.log_change(
                        self.session,
                        ChangeType.ROW_ADD,
                        "productService",
                        None,
                        item.product_service,
                        order_id=order.id,
                        customer_id=order.customer_id,
                        row_index=row_index,
                    )
                else:
                    before = {field: getattr(item, field) for field in _TRACKED_FIELDS}
                    self._apply(item, payload, row_index)
                    for field, old_value in before.items():
                        change_history.log_if_changed(
                            self.session,
                            ChangeType.CELL_EDIT,
                            field,
                            old_value,
                            getattr(item, field),
                            order_id=order.id,
                            customer_id=order.customer_id,
                            order_item_id=item.id,
                            row_index=row_index,
                        )
                kept.append(item)

            for removed in existing.values():
                change_history.log_change(
                    self.session,
                    ChangeType.ROW_DELETE,
                    "productService",
                    removed.product_service,
                    None,
                    order_id=order.id,
                    customer_id=order.customer_id,
                    order_item_id=removed.id,
                    row_index=removed.row_index,
                )

            # delete-orphan removes the rows left out of the new list
            order.items = kept
            order.updated_at = utcnow()
            self.session.flush()
            recalculate_for_order(self.session, order)
            if commit:
                self.session.commit()

        order_item_saves_total.inc()
        LOGGER.info(
            "order_items_replaced",
            order_id=order.id,
            item_count=len(kept),
            removed_count=len(existing),
        )
        return [serialize_item(item) for item in kept]

    def _check_vendors(self, items: Sequence[OrderItemInput]) -> None:
        vendor_ids = {payload.vendor_id for payload in items if payload.vendor_id is not None}
        if not vendor_ids:
            return
        known = set(
            self.session.execute(select(Vendor.id).where(Vendor.id.in_(vendor_ids))).scalars()
        )
        missing = sorted(vendor_ids - known)
        if missing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Vendor not found: {', '.join(str(vendor_id) for vendor_id in missing)}",
            )

    @staticmethod
    def _apply(item: OrderItem, payload: OrderItemInput, row_index: int) -> None:
        item.row_index = row_index
        item.item_type = payload.item_type.value
        item.product_service = payload.product_service
        item.qty = _as_float(payload.qty)
        item.amount = _as_float(payload.amount)
        item.rate = _as_float(derive_unit_rate(payload.amount, payload.qty, payload.rate))
        item.progress_overall_pct = _as_float(payload.progress_overall_pct)
        item.previously_invoiced_pct = _as_float(payload.previously_invoiced_pct)
        item.main_category = payload.main_category
        item.sub_category = payload.sub_category
        item.vendor_id = payload.vendor_id
        item.vendor_percentage = _as_float(payload.vendor_percentage)

        if payload.item_type is ItemType.ITEM:
            for column, value in calculate_for_item(item).storage_values().items():
                setattr(item, column, value)
        else:
            item.completed_amount = None
            item.previously_invoiced_amount = None
            item.new_progress_pct = None
            item.this_bill = None


__all__ = [
    "OrderItemsRepository",
    "get_order_or_404",
    "items_total",
    "serialize_item",
    "validate_items_total",
]
