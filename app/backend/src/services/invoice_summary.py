"""Order-level billing rollup shown beneath the invoice table."""

from __future__ import annotations

import structlog
from sqlalchemy.orm import Session

from app.backend.src.models import ItemType
from app.backend.src.schemas.invoice import InvoiceSummary

from .order_items import get_order_or_404
from .progress_billing import HUNDRED, ZERO, calculate_for_item, to_decimal

LOGGER = structlog.get_logger(__name__)


def invoice_summary(session: Session, order_id: int) -> InvoiceSummary:
    """Summarise how much of an order is completed, billed and paid.

    ``lessPaymentsReceived`` is reported as a negative number so that
    ``totalDueUponReceipt`` is the plain sum of it and ``totalCompleted``.
    """

    order = get_order_or_404(session, order_id)

    original = to_decimal(order.order_grand_total)
    completed = sum(
        (
            calculate_for_item(item).completed_amount
            for item in order.items
            if item.kind is ItemType.ITEM
        ),
        ZERO,
    )
    active_invoices = [invoice for invoice in order.invoices if not invoice.exclude]
    invoiced = sum((to_decimal(invoice.invoice_amount) for invoice in active_invoices), ZERO)
    payments = sum((to_decimal(invoice.payments_received) for invoice in active_invoices), ZERO)

    less_payments = -payments if payments else ZERO
    percent_completed = completed / original * HUNDRED if original > ZERO else ZERO

    summary = InvoiceSummary(
        original_invoice=float(original),
        total_completed=float(completed),
        balance_remaining=float(original - completed),
        percent_completed=float(percent_completed),
        total_invoiced=float(invoiced),
        less_payments_received=float(less_payments),
        total_due_upon_receipt=float(completed + less_payments),
    )
    LOGGER.debug(
        "invoice_summary_calculated",
        order_id=order.id,
        total_completed=summary.total_completed,
        percent_completed=summary.percent_completed,
    )
    return summary


__all__ = ["invoice_summary"]
