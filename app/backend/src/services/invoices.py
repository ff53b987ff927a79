"""Invoice service: creation, updates, deletion and line item linking."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import structlog
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.backend.src.core.config import get_settings
from app.backend.src.models import ChangeType, Invoice, ItemType, Order, OrderItem
from app.backend.src.schemas.invoice import (
    InvoiceRead,
    InvoiceWrite,
    LinkedLineItemDetail,
    LinkedLineItemRead,
    LinkedLineItemsResponse,
)
from app.backend.src.schemas.order_item import BillableItem

from . import change_history
from .customer_status import recalculate_for_order
from .invoice_linking import (
    LinkSelection,
    LinkedLineItem,
    invoiced_by_item,
    parse_links,
    reconcile_invoice_amount,
    remaining_billable,
)
from .metrics import billed_amount_clamps_total, invoice_mutations_total
from .order_items import get_order_or_404
from .progress_billing import ZERO, calculate_for_item, quantize_money, to_decimal_or_none

LOGGER = structlog.get_logger(__name__)

# Fields compared for the audit trail, keyed by their wire name.
_AUDITED_FIELDS = {
    "invoiceNumber": "invoice_number",
    "invoiceDate": "invoice_date",
    "invoiceAmount": "invoice_amount",
    "paymentsReceived": "payments_received",
    "exclude": "exclude",
}


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def get_invoice_or_404(session: Session, order_id: int, invoice_id: int) -> Invoice:
    invoice = session.get(Invoice, invoice_id)
    if invoice is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invoice not found",
        )
    if invoice.order_id != order_id:
        raise _bad_request("Invoice does not belong to this order")
    return invoice


def serialize_invoice(invoice: Invoice) -> InvoiceRead:
    return InvoiceRead(
        id=invoice.id,
        order_id=invoice.order_id,
        invoice_number=invoice.invoice_number,
        invoice_date=invoice.invoice_date,
        invoice_amount=invoice.invoice_amount,
        payments_received=invoice.payments_received or 0,
        exclude=bool(invoice.exclude),
        row_index=invoice.row_index,
        linked_line_items=[
            LinkedLineItemRead(
                order_item_id=link.order_item_id,
                billed_amount=float(link.billed_amount),
            )
            for link in parse_links(invoice.links)
        ],
        created_at=invoice.created_at,
        updated_at=invoice.updated_at,
    )


def _parse_amount(value: Any, detail: str) -> Decimal | None:
    """Return a non-negative amount, ``None`` for blanks, or raise 400."""

    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise _bad_request(detail)
    amount = to_decimal_or_none(value)
    if amount is None or amount < ZERO:
        raise _bad_request(detail)
    return amount


def _billable_rows(order: Order) -> dict[int, OrderItem]:
    return {item.id: item for item in order.items if item.kind is ItemType.ITEM}


def _remaining_by_item(order: Order, exclude_invoice_id: int | None) -> dict[int, Decimal]:
    already = invoiced_by_item(order.invoices, exclude_invoice_id=exclude_invoice_id)
    return {
        item_id: remaining_billable(
            calculate_for_item(item).this_bill, already.get(item_id, ZERO)
        )
        for item_id, item in _billable_rows(order).items()
    }


def list_invoices(session: Session, order_id: int) -> list[Invoice]:
    """Return an order's invoices in spreadsheet row order."""

    order = get_order_or_404(session, order_id)
    return list(order.invoices)


def billable_items(
    session: Session, order_id: int, exclude_invoice_id: int | None = None
) -> list[BillableItem]:
    """Return the ``item`` rows of an order with what is left to bill on each."""

    order = get_order_or_404(session, order_id)
    already = invoiced_by_item(order.invoices, exclude_invoice_id=exclude_invoice_id)
    rows: list[BillableItem] = []
    for item_id, item in _billable_rows(order).items():
        this_bill = calculate_for_item(item).this_bill
        invoiced = already.get(item_id, ZERO)
        rows.append(
            BillableItem(
                id=item_id,
                product_service=item.product_service or "",
                amount=item.amount or 0,
                progress_overall_pct=item.progress_overall_pct,
                previously_invoiced_pct=item.previously_invoiced_pct,
                this_bill=float(this_bill),
                already_invoiced=float(invoiced),
                remaining_billable=float(remaining_billable(this_bill, invoiced)),
            )
        )
    return rows


def _resolve_links(
    order: Order, invoice_id: int | None, payload: InvoiceWrite
) -> tuple[list[LinkedLineItem] | None, list[str]]:
    """Turn the requested links into clamped :class:`LinkedLineItem` records.

    Returns ``None`` when the payload does not touch the links.
    """

    if payload.linked_line_items is not None:
        requested: list[tuple[int, Any]] = [
            (link.order_item_id, link.amount) for link in payload.linked_line_items
        ]
    elif payload.linked_line_item_ids is not None:
        requested = [(item_id, None) for item_id in payload.linked_line_item_ids]
    else:
        return None, []

    if not requested:
        return [], []

    remaining = _remaining_by_item(order, invoice_id)
    valid = [(item_id, amount) for item_id, amount in requested if item_id in remaining]
    if not valid:
        LOGGER.warning(
            "invoice_link_targets_invalid",
            order_id=order.id,
            invoice_id=invoice_id,
            requested=[item_id for item_id, _ in requested],
        )
        raise _bad_request("No valid order items found for linking")

    selection = LinkSelection(remaining)
    notices: list[str] = []
    for item_id, amount in valid:
        notice = selection.select(item_id, amount)
        if notice:
            billed_amount_clamps_total.inc()
            LOGGER.info(
                "billed_amount_clamped",
                order_id=order.id,
                invoice_id=invoice_id,
                order_item_id=item_id,
                requested=str(amount),
                remaining=str(remaining[item_id]),
            )
            notices.append(notice)
    return selection.links(), notices


def _store_links(invoice: Invoice, links: list[LinkedLineItem]) -> None:
    invoice.linked_line_items = [link.to_record() for link in links] or None


def _next_row_index(order: Order) -> int:
    settings = get_settings()
    rows = [invoice.row_index for invoice in order.invoices if invoice.row_index is not None]
    next_row = max(rows) + 1 if rows else settings.invoice_first_row
    if next_row > settings.invoice_last_row:
        raise _bad_request(
            f"Maximum number of invoices reached ({settings.max_invoices_per_order} invoices)"
        )
    return next_row


def create_invoice(
    session: Session, order_id: int, payload: InvoiceWrite
) -> tuple[Invoice, list[str]]:
    """Add an invoice to the next free spreadsheet row of an order."""

    order = get_order_or_404(session, order_id)
    row_index = _next_row_index(order)
    manual_amount = _parse_amount(payload.invoice_amount, "Invalid invoice amount")
    payments = _parse_amount(payload.payments_received, "Invalid payments received amount")
    links, notices = _resolve_links(order, None, payload)
    links = links or []

    invoice = Invoice(
        order_id=order.id,
        invoice_number=payload.invoice_number,
        invoice_date=payload.invoice_date,
        payments_received=float(payments) if payments is not None else 0,
        exclude=bool(payload.exclude),
        row_index=row_index,
    )
    _store_links(invoice, links)
    amount = reconcile_invoice_amount(parse_links(invoice.links), manual_amount)
    invoice.invoice_amount = float(quantize_money(amount)) if amount is not None else None
    order.invoices.append(invoice)

    change_history.log_change(
        session,
        ChangeType.ROW_ADD,
        "invoice",
        None,
        f"Invoice {invoice.invoice_number or row_index}",
        order_id=order.id,
        customer_id=order.customer_id,
        row_index=row_index,
    )
    session.flush()
    recalculate_for_order(session, order)
    session.commit()

    invoice_mutations_total.labels(action="create").inc()
    LOGGER.info(
        "invoice_created",
        order_id=order.id,
        invoice_id=invoice.id,
        row_index=row_index,
        linked_items=len(links),
    )
    return invoice, notices


def update_invoice(
    session: Session, order_id: int, invoice_id: int, payload: InvoiceWrite
) -> tuple[Invoice, list[str]]:
    """Apply a partial update to an invoice.

    While the invoice has links its amount is the sum of the billed amounts;
    a manually supplied ``invoiceAmount`` only applies once the links are
    cleared.
    """

    supplied = payload.model_fields_set
    manual_amount = None
    if "invoice_amount" in supplied:
        manual_amount = _parse_amount(payload.invoice_amount, "Invalid invoice amount")
    payments = None
    if "payments_received" in supplied:
        payments = _parse_amount(payload.payments_received, "Invalid payments received amount")

    invoice = get_invoice_or_404(session, order_id, invoice_id)
    order = invoice.order
    new_links, notices = _resolve_links(order, invoice.id, payload)

    before = {
        wire_name: getattr(invoice, attribute)
        for wire_name, attribute in _AUDITED_FIELDS.items()
    }

    if "invoice_number" in supplied:
        invoice.invoice_number = payload.invoice_number
    if "invoice_date" in supplied:
        invoice.invoice_date = payload.invoice_date
    if "payments_received" in supplied:
        invoice.payments_received = float(payments) if payments is not None else 0
    if "exclude" in supplied and payload.exclude is not None:
        invoice.exclude = payload.exclude
    if "row_index" in supplied and payload.row_index is not None:
        invoice.row_index = payload.row_index

    if new_links is not None:
        _store_links(invoice, new_links)
    links = parse_links(invoice.links)
    if links:
        amount = reconcile_invoice_amount(links)
    elif "invoice_amount" in supplied:
        amount = manual_amount
    else:
        amount = to_decimal_or_none(invoice.invoice_amount)
    invoice.invoice_amount = float(quantize_money(amount)) if amount is not None else None

    for wire_name, attribute in _AUDITED_FIELDS.items():
        change_history.log_if_changed(
            session,
            ChangeType.ROW_UPDATE,
            wire_name,
            before[wire_name],
            getattr(invoice, attribute),
            order_id=order.id,
            customer_id=order.customer_id,
            row_index=invoice.row_index,
        )

    session.flush()
    recalculate_for_order(session, order)
    session.commit()

    invoice_mutations_total.labels(action="update").inc()
    LOGGER.info(
        "invoice_updated",
        order_id=order.id,
        invoice_id=invoice.id,
        fields=sorted(supplied),
        linked_items=len(links),
        notices=len(notices),
    )
    return invoice, notices


def delete_invoice(session: Session, order_id: int, invoice_id: int) -> None:
    invoice = get_invoice_or_404(session, order_id, invoice_id)
    order = invoice.order

    change_history.log_change(
        session,
        ChangeType.ROW_DELETE,
        "invoice",
        f"Invoice {invoice.invoice_number or invoice.id}",
        None,
        order_id=order.id,
        customer_id=order.customer_id,
        row_index=invoice.row_index,
    )
    order.invoices.remove(invoice)
    session.flush()
    recalculate_for_order(session, order)
    session.commit()

    invoice_mutations_total.labels(action="delete").inc()
    LOGGER.info("invoice_deleted", order_id=order.id, invoice_id=invoice_id)


def linked_line_items(
    session: Session, order_id: int, invoice_id: int
) -> LinkedLineItemsResponse:
    """Expand an invoice's links with the current state of each item.

    Links whose item no longer exists are left out.
    """

    invoice = get_invoice_or_404(session, order_id, invoice_id)
    items = {item.id: item for item in invoice.order.items}
    details: list[LinkedLineItemDetail] = []
    total = ZERO
    for link in parse_links(invoice.links):
        item = items.get(link.order_item_id)
        if item is None:
            continue
        total += link.billed_amount
        details.append(
            LinkedLineItemDetail(
                order_item_id=item.id,
                billed_amount=float(link.billed_amount),
                product_service=item.product_service or "",
                amount=item.amount or 0,
                qty=item.qty,
                rate=item.rate,
                progress_overall_pct=item.progress_overall_pct,
                previously_invoiced_pct=item.previously_invoiced_pct,
                current_this_bill=float(calculate_for_item(item).this_bill),
            )
        )
    return LinkedLineItemsResponse(
        linked_items=details,
        total_billed_amount=float(quantize_money(total)),
    )


__all__ = [
    "billable_items",
    "create_invoice",
    "delete_invoice",
    "get_invoice_or_404",
    "linked_line_items",
    "list_invoices",
    "serialize_invoice",
    "update_invoice",
]
