"""Order, line item and invoice endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.backend.src.db import get_session_dependency
from app.backend.src.schemas.invoice import (
    InvoiceListResponse,
    InvoiceResponse,
    InvoiceSummaryResponse,
    InvoiceWrite,
    LinkedLineItemsResponse,
)
from app.backend.src.schemas.order import OrderResponse, OrderUpdate
from app.backend.src.schemas.order_item import (
    BillableItemsResponse,
    OrderItemsReplace,
    OrderItemsResponse,
)
from app.backend.src.services import invoices as invoice_service
from app.backend.src.services import orders as order_service
from app.backend.src.services.invoice_summary import invoice_summary
from app.backend.src.services.order_items import OrderItemsRepository

router = APIRouter(prefix="/orders", tags=["orders"])

SessionDep = Annotated[Session, Depends(get_session_dependency)]


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, session: SessionDep) -> OrderResponse:
    order = order_service.get_order(session, order_id)
    return OrderResponse(order=order_service.serialize_order(order))


@router.patch("/{order_id}", response_model=OrderResponse)
def update_order(order_id: int, payload: OrderUpdate, session: SessionDep) -> OrderResponse:
    """Edit the order header (status, stage, PO, dates ...)."""

    order = order_service.update_order(session, order_id, payload)
    return OrderResponse(order=order_service.serialize_order(order))


@router.get("/{order_id}/items", response_model=OrderItemsResponse)
def list_items(order_id: int, session: SessionDep) -> OrderItemsResponse:
    """Return the order's items with freshly computed billing fields."""

    return OrderItemsResponse(items=OrderItemsRepository(session).list_items(order_id))


@router.put("/{order_id}/items", response_model=OrderItemsResponse)
def replace_items(
    order_id: int, payload: OrderItemsReplace, session: SessionDep
) -> OrderItemsResponse:
    """Replace the full item set; derived fields sent by the client are ignored."""

    items = OrderItemsRepository(session).replace_items(order_id, payload.items)
    return OrderItemsResponse(items=items)


@router.get("/{order_id}/billable-items", response_model=BillableItemsResponse)
def billable_items(
    order_id: int,
    session: SessionDep,
    exclude_invoice_id: Annotated[int | None, Query(alias="excludeInvoiceId")] = None,
) -> BillableItemsResponse:
    return BillableItemsResponse(
        items=invoice_service.billable_items(session, order_id, exclude_invoice_id)
    )


@router.get("/{order_id}/invoice-summary", response_model=InvoiceSummaryResponse)
def get_invoice_summary(order_id: int, session: SessionDep) -> InvoiceSummaryResponse:
    return InvoiceSummaryResponse(summary=invoice_summary(session, order_id))


@router.get("/{order_id}/invoices", response_model=InvoiceListResponse)
def list_invoices(order_id: int, session: SessionDep) -> InvoiceListResponse:
    invoices = invoice_service.list_invoices(session, order_id)
    return InvoiceListResponse(
        invoices=[invoice_service.serialize_invoice(invoice) for invoice in invoices]
    )


@router.post(
    "/{order_id}/invoices",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_invoice(
    order_id: int, payload: InvoiceWrite, session: SessionDep
) -> InvoiceResponse:
    invoice, notices = invoice_service.create_invoice(session, order_id, payload)
    return InvoiceResponse(invoice=invoice_service.serialize_invoice(invoice), notices=notices)


@router.get("/{order_id}/invoices/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(order_id: int, invoice_id: int, session: SessionDep) -> InvoiceResponse:
    invoice = invoice_service.get_invoice_or_404(session, order_id, invoice_id)
    return InvoiceResponse(invoice=invoice_service.serialize_invoice(invoice))


@router.patch("/{order_id}/invoices/{invoice_id}", response_model=InvoiceResponse)
def update_invoice(
    order_id: int, invoice_id: int, payload: InvoiceWrite, session: SessionDep
) -> InvoiceResponse:
    """Partially update an invoice.

    Billed amounts above what is still billable are adjusted down and each
    adjustment is reported in ``notices``.
    """

    invoice, notices = invoice_service.update_invoice(session, order_id, invoice_id, payload)
    return InvoiceResponse(invoice=invoice_service.serialize_invoice(invoice), notices=notices)


@router.delete("/{order_id}/invoices/{invoice_id}")
def delete_invoice(order_id: int, invoice_id: int, session: SessionDep) -> dict[str, bool]:
    invoice_service.delete_invoice(session, order_id, invoice_id)
    return {"success": True}


@router.get(
    "/{order_id}/invoices/{invoice_id}/line-items",
    response_model=LinkedLineItemsResponse,
)
def get_linked_line_items(
    order_id: int, invoice_id: int, session: SessionDep
) -> LinkedLineItemsResponse:
    return invoice_service.linked_line_items(session, order_id, invoice_id)
