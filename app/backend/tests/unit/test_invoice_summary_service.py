"""Unit tests for the order invoice summary."""

from __future__ import annotations

import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_billing.db")

import pytest
from fastapi import HTTPException

from app.backend.src.db import get_engine, session_scope
from app.backend.src.db.base import Base
from app.backend.src.models import Customer, Invoice, Order, OrderItem
from app.backend.src.services.invoice_summary import invoice_summary


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def _seed_order(grand_total: float) -> int:
    with session_scope() as session:
        customer = Customer(
            dbx_customer_id="C-300",
            client_name="Maple Court",
            street_address="3 Maple Ct",
            city="Denver",
            state="CO",
            zip="80202",
        )
        order = Order(
            order_no="SO-300",
            order_grand_total=grand_total,
            balance_due=grand_total,
            customer=customer,
        )
        order.items = [
            OrderItem(row_index=0, item_type="item", product_service="Framing", amount=1000, progress_overall_pct=50),
            OrderItem(row_index=1, item_type="item", product_service="Drywall", amount=400, progress_overall_pct=25),
            # Stale cached values on category rows are never counted.
            OrderItem(row_index=2, item_type="maincategory", product_service="Interior", completed_amount=999),
        ]
        order.invoices = [
            Invoice(row_index=354, invoice_amount=500, payments_received=200),
            Invoice(row_index=355, invoice_amount=100, payments_received=100, exclude=True),
        ]
        session.add(customer)
        session.flush()
        return order.id


def test_summary_rolls_up_items_and_active_invoices() -> None:
    order_id = _seed_order(1400)

    with session_scope() as session:
        summary = invoice_summary(session, order_id)

    assert summary.original_invoice == 1400
    assert summary.total_completed == 600
    assert summary.balance_remaining == 800
    assert summary.percent_completed == pytest.approx(42.857142857)
    assert summary.total_invoiced == 500
    assert summary.less_payments_received == -200
    assert summary.total_due_upon_receipt == 400


def test_percent_completed_is_zero_without_grand_total() -> None:
    order_id = _seed_order(0)

    with session_scope() as session:
        summary = invoice_summary(session, order_id)

    assert summary.percent_completed == 0
    assert summary.balance_remaining == -600


def test_summary_serializes_with_camel_case_keys() -> None:
    order_id = _seed_order(1400)

    with session_scope() as session:
        payload = invoice_summary(session, order_id).model_dump(by_alias=True)

    assert set(payload) == {
        "originalInvoice",
        "totalCompleted",
        "balanceRemaining",
        "percentCompleted",
        "totalInvoiced",
        "lessPaymentsReceived",
        "totalDueUponReceipt",
    }


def test_unknown_order_raises_404() -> None:
    with session_scope() as session:
        with pytest.raises(HTTPException) as exc_info:
            invoice_summary(session, 404)

    assert exc_info.value.status_code == 404
