"""Tests for the dashboard analytics service and endpoints."""

from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_billing.db")

import pytest
from fastapi.testclient import TestClient

from app.backend.src.db import get_engine, session_scope
from app.backend.src.db.base import Base
from app.backend.src.main import app
from app.backend.src.models import Customer, Invoice, Order, OrderItem, OrderStatus
from app.backend.src.schemas.dashboard import SalesPeriod, StatsPeriod
from app.backend.src.services import dashboard

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def _customer(customer_id: str, name: str, deleted: bool = False) -> Customer:
    return Customer(
        dbx_customer_id=customer_id,
        client_name=name,
        street_address="9 Elm St",
        city="Reno",
        state="NV",
        zip="89501",
        deleted_at=NOW if deleted else None,
    )


def _invoice(amount: float, paid: float, age: timedelta, exclude: bool = False) -> Invoice:
    return Invoice(
        invoice_amount=amount,
        payments_received=paid,
        exclude=exclude,
        updated_at=NOW - age,
    )


@pytest.fixture()
def seeded() -> None:
    with session_scope() as session:
        north = _customer("C-1", "North Tower")
        south = _customer("C-2", "South Plaza")
        trashed = _customer("C-3", "Old Mill", deleted=True)
        session.add_all([north, south, trashed])

        recent = Order(
            order_no="SO-1",
            customer=north,
            balance_due=1000,
            order_date=NOW - timedelta(days=10),
        )
        recent.invoices = [
            _invoice(100, 100, timedelta(hours=1)),
            _invoice(400, 200, timedelta(days=3)),
        ]
        undated = Order(
            order_no="SO-2",
            customer=north,
            balance_due=500,
            created_at=NOW - timedelta(days=45),
        )
        undated.invoices = [_invoice(500, 400, timedelta(days=20))]
        old = Order(
            order_no="SO-3",
            customer=south,
            balance_due=2000,
            order_date=NOW - timedelta(days=100),
        )
        old.invoices = [
            _invoice(1000, 800, timedelta(days=90)),
            _invoice(1600, 1600, timedelta(hours=1), exclude=True),
        ]
        unbilled = Order(
            order_no="SO-4",
            customer=south,
            balance_due=300,
            order_date=NOW - timedelta(days=75),
        )
        ignored = Order(
            order_no="SO-5",
            customer=trashed,
            balance_due=5000,
            order_date=NOW - timedelta(days=5),
        )
        session.add_all([recent, undated, old, unbilled, ignored])


@pytest.mark.parametrize(
    "period, expected",
    [
        (StatsPeriod.DAY, 100),
        (StatsPeriod.WEEK, 300),
        (StatsPeriod.MONTH, 700),
        (StatsPeriod.ALL, 1500),
    ],
)
def test_stats_sums_payments_in_period(seeded, period, expected) -> None:  # type: ignore[no-untyped-def]
    with session_scope() as session:
        result = dashboard.stats(session, period, now=NOW)

    assert result.total_paid == expected
    assert result.period is period


@pytest.mark.parametrize(
    "days, bucket",
    [
        (0, "days_0_30"),
        (30, "days_0_30"),
        (31, "days_31_60"),
        (60, "days_31_60"),
        (61, "days_61_90"),
        (90, "days_61_90"),
        (91, "days_90_plus"),
    ],
)
def test_aging_bucket_boundaries(days: int, bucket: str) -> None:
    assert dashboard.aging_bucket(days) == bucket


def test_day_period_starts_at_midnight() -> None:
    assert dashboard.period_start(StatsPeriod.DAY, NOW) == datetime(2024, 6, 15, tzinfo=timezone.utc)
    assert dashboard.period_start(StatsPeriod.ALL, NOW) is None


def test_receivables_ages_outstanding_balances(seeded) -> None:  # type: ignore[no-untyped-def]
    with session_scope() as session:
        summary = dashboard.receivables(session, now=NOW)

    assert summary.total_outstanding == 2300
    assert summary.receivables_count == 4
    assert summary.aging_buckets.days_0_30 == 700
    assert summary.aging_buckets.days_31_60 == 100
    assert summary.aging_buckets.days_61_90 == 300
    assert summary.aging_buckets.days_90_plus == 1200
    assert [(top.customer_id, top.total) for top in summary.top_customers] == [
        ("C-2", 1500),
        ("C-1", 800),
    ]
    assert summary.total_invoiced == 2000
    assert summary.total_collected == 1500
    assert summary.collection_rate == 75


def test_receivables_endpoint_uses_bucket_labels(seeded) -> None:  # type: ignore[no-untyped-def]
    client = TestClient(app)

    response = client.get("/api/dashboard/receivables")

    assert response.status_code == 200
    data = response.json()["data"]
    assert set(data["agingBuckets"]) == {"0-30", "31-60", "61-90", "90+"}
    assert data["totalOutstanding"] == 2300


def test_stats_endpoint_rejects_unknown_period() -> None:
    client = TestClient(app)

    response = client.get("/api/dashboard/stats", params={"period": "year"})

    assert response.status_code == 422
    assert response.json()["error"] == "Invalid request"


def _row(amount: float | None, progress: float | None, item_type: str = "item") -> OrderItem:
    return OrderItem(
        item_type=item_type,
        product_service="Work",
        amount=amount,
        progress_overall_pct=progress,
        previously_invoiced_pct=0 if progress is not None else None,
    )


@pytest.fixture()
def portfolio() -> None:
    with session_scope() as session:
        harbor = _customer("C-10", "Harbor View")
        trashed = _customer("C-11", "Closed Account", deleted=True)
        session.add_all([harbor, trashed])

        stalled = Order(
            order_no="SO-10",
            customer=harbor,
            sales_rep="Dana",
            order_grand_total=1000,
            order_date=NOW - timedelta(days=40),
            order_due_date=NOW - timedelta(days=5),
        )
        stalled.items = [_row(None, None, "maincategory"), _row(1000, 10)]
        stalled.invoices = [
            _invoice(100, 50, timedelta(days=2)),
            _invoice(900, 900, timedelta(days=2), exclude=True),
        ]
        finished = Order(
            order_no="SO-11",
            customer=harbor,
            sales_rep="Dana",
            order_grand_total=3000,
            status=OrderStatus.COMPLETED.value,
            order_date=NOW - timedelta(days=10),
            order_due_date=NOW + timedelta(days=3),
            updated_at=NOW,
        )
        finished.items = [_row(2000, 60)]
        finished.invoices = [_invoice(1000, 800, timedelta(days=1))]
        fresh = Order(
            order_no="SO-12",
            customer=harbor,
            sales_rep=None,
            order_grand_total=500,
            order_date=NOW - timedelta(days=20),
            order_due_date=NOW + timedelta(days=20),
        )
        fresh.items = [_row(500, 0)]
        hidden = Order(
            order_no="SO-13",
            customer=trashed,
            sales_rep="Dana",
            order_grand_total=9999,
            order_date=NOW - timedelta(days=1),
            order_due_date=NOW - timedelta(days=50),
        )
        hidden.items = [_row(9999, 100)]
        hidden.invoices = [_invoice(5000, 5000, timedelta(days=1))]
        session.add_all([stalled, finished, fresh, hidden])


def test_revenue_compares_earned_invoiced_and_collected(portfolio) -> None:  # type: ignore[no-untyped-def]
    with session_scope() as session:
        summary = dashboard.revenue(session)

    assert summary.total_earned == 1300
    assert summary.total_invoiced == 1100
    assert summary.total_collected == 850
    assert summary.revenue_gap == -650
    assert summary.collection_efficiency == 77.27
    assert summary.billing_efficiency == 84.62


def test_revenue_without_work_has_zero_efficiency() -> None:
    with session_scope() as session:
        summary = dashboard.revenue(session)

    assert summary.total_earned == 0
    assert summary.collection_efficiency == 0
    assert summary.billing_efficiency == 0


def test_project_health_flags_schedule_and_progress(portfolio) -> None:  # type: ignore[no-untyped-def]
    with session_scope() as session:
        health = dashboard.project_health(session, now=NOW)

    assert health.overdue_count == 1
    assert [(p.order_no, p.days_overdue) for p in health.overdue_projects] == [("SO-10", 4)]
    assert [p.order_no for p in health.due_soon_7_days] == ["SO-11"]
    assert [p.order_no for p in health.due_soon_30_days] == ["SO-12"]
    assert health.low_progress_count == 1
    stalled = health.low_progress_projects[0]
    assert stalled.order_no == "SO-10"
    assert stalled.average_progress == 10
    assert stalled.days_since_start == 39
    assert health.average_completion_time == 10


def test_sales_performance_groups_by_rep(portfolio) -> None:  # type: ignore[no-untyped-def]
    with session_scope() as session:
        result = dashboard.sales_performance(session, SalesPeriod.ALL, now=NOW)

    assert [(rep.rep_name, rep.total_sales) for rep in result.rep_performance] == [
        ("Dana", 4000),
        ("Unassigned", 500),
    ]
    dana = result.rep_performance[0]
    assert (dana.order_count, dana.completed_count, dana.pending_count) == (2, 1, 1)
    assert dana.average_order_value == 2000
    assert dana.completion_rate == 50
    assert result.totals.total_sales == 4500
    assert result.totals.total_orders == 3
    assert result.month_comparison is None


def test_sales_performance_month_compares_with_last_month(portfolio) -> None:  # type: ignore[no-untyped-def]
    with session_scope() as session:
        result = dashboard.sales_performance(session, SalesPeriod.MONTH, now=NOW)

    assert [(rep.rep_name, rep.total_sales) for rep in result.rep_performance] == [("Dana", 3000)]
    assert result.rep_performance[0].completion_rate == 100
    assert result.month_comparison is not None
    assert result.month_comparison.this_month == 3000
    assert result.month_comparison.last_month == 1500
    assert result.month_comparison.change == 1500
    assert result.month_comparison.change_percent == 100


def test_analytics_endpoints_use_camel_case(portfolio) -> None:  # type: ignore[no-untyped-def]
    client = TestClient(app)

    revenue = client.get("/api/dashboard/revenue").json()
    assert revenue["success"] is True
    assert revenue["data"]["totalEarned"] == 1300

    health = client.get("/api/dashboard/project-health").json()["data"]
    assert {"overdueCount", "dueSoon7Days", "lowProgressProjects"} <= set(health)

    sales = client.get("/api/dashboard/sales-performance", params={"period": "month"})
    assert sales.status_code == 200
    assert sales.json()["data"]["period"] == "month"

    rejected = client.get("/api/dashboard/sales-performance", params={"period": "week"})
    assert rejected.status_code == 422
