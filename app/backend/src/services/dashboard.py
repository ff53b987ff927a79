"""Dashboard analytics.

Payments collected, receivables aging, revenue recognition, project health
and sales performance. Orders of trashed customers are left out everywhere.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.backend.src.db.base import as_utc, utcnow
from app.backend.src.models import Customer, Invoice, ItemType, Order, OrderStatus
from app.backend.src.schemas.dashboard import (
    AgingBuckets,
    DashboardStats,
    LowProgressProject,
    MonthComparison,
    ProjectHealth,
    ReceivablesSummary,
    RepPerformance,
    RevenueSummary,
    SalesPerformance,
    SalesPeriod,
    SalesTotals,
    ScheduledProject,
    StatsPeriod,
    TopCustomer,
)

from .progress_billing import HUNDRED, ZERO, calculate_for_item, quantize_money, to_decimal

LOGGER = structlog.get_logger(__name__)

TOP_CUSTOMER_LIMIT = 10
PROJECT_LIST_LIMIT = 10
LOW_PROGRESS_THRESHOLD = Decimal("25")
LOW_PROGRESS_AFTER_DAYS = 30
UNASSIGNED_REP = "Unassigned"

# Upper bound in days (inclusive) -> bucket attribute
_AGING_BUCKETS = (
    (30, "days_0_30"),
    (60, "days_31_60"),
    (90, "days_61_90"),
)


def period_start(period: StatsPeriod, now: datetime) -> datetime | None:
    """Return the earliest ``updated_at`` counted for ``period``."""

    if period is StatsPeriod.DAY:
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period is StatsPeriod.WEEK:
        return now - timedelta(days=7)
    if period is StatsPeriod.MONTH:
        return now - timedelta(days=30)
    return None


def aging_bucket(days_outstanding: int) -> str:
    for limit, bucket in _AGING_BUCKETS:
        if days_outstanding <= limit:
            return bucket
    return "days_90_plus"


def _active_invoices(session: Session) -> list[Invoice]:
    return list(session.execute(select(Invoice).where(Invoice.exclude.is_(False))).scalars())


def stats(session: Session, period: StatsPeriod, now: datetime | None = None) -> DashboardStats:
    """Sum payments on non-excluded invoices updated within ``period``."""

    now = as_utc(now) or utcnow()
    start = period_start(period, now)
    total = ZERO
    for invoice in _active_invoices(session):
        if start is not None and as_utc(invoice.updated_at) < start:
            continue
        total += to_decimal(invoice.payments_received)
    return DashboardStats(total_paid=float(total), period=period)


def receivables(session: Session, now: datetime | None = None) -> ReceivablesSummary:
    """Age every order's unpaid balance.

    An order's outstanding amount is its balance due less the payments on its
    non-excluded invoices. Age counts from the order date, or from when the
    order was recorded if it has none. Orders of trashed customers are
    skipped.
    """

    now = as_utc(now) or utcnow()
    invoices = _active_invoices(session)
    payments_by_order: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for invoice in invoices:
        payments_by_order[invoice.order_id] += to_decimal(invoice.payments_received)

    orders = session.execute(
        select(Order)
        .join(Customer, Order.customer_id == Customer.dbx_customer_id)
        .where(Customer.deleted_at.is_(None))
        .options(selectinload(Order.customer))
    ).scalars()

    buckets: dict[str, Decimal] = defaultdict(lambda: ZERO)
    by_customer: dict[str, Decimal] = defaultdict(lambda: ZERO)
    names: dict[str, str] = {}
    total_outstanding = ZERO
    count = 0
    for order in orders:
        outstanding = to_decimal(order.balance_due) - payments_by_order[order.id]
        if outstanding <= ZERO:
            continue
        opened = as_utc(order.order_date or order.created_at)
        days = (now - opened).days if opened is not None else 0
        buckets[aging_bucket(days)] += outstanding
        by_customer[order.customer_id] += outstanding
        names[order.customer_id] = order.customer.client_name
        total_outstanding += outstanding
        count += 1

    top = sorted(by_customer.items(), key=lambda entry: entry[1], reverse=True)
    total_invoiced = sum((to_decimal(invoice.invoice_amount) for invoice in invoices), ZERO)
    total_collected = sum((to_decimal(invoice.payments_received) for invoice in invoices), ZERO)
    collection_rate = ZERO
    if total_invoiced > ZERO:
        collection_rate = quantize_money(total_collected / total_invoiced * HUNDRED)

    LOGGER.debug("receivables_calculated", receivables_count=count)
    return ReceivablesSummary(
        total_outstanding=float(total_outstanding),
        aging_buckets=AgingBuckets(**{name: float(value) for name, value in buckets.items()}),
        top_customers=[
            TopCustomer(
                customer_id=customer_id,
                client_name=names[customer_id],
                total=float(total),
            )
            for customer_id, total in top[:TOP_CUSTOMER_LIMIT]
        ],
        collection_rate=float(collection_rate),
        total_invoiced=float(total_invoiced),
        total_collected=float(total_collected),
        receivables_count=count,
    )


def _live_orders(session: Session) -> list[Order]:
    return list(
        session.execute(
            select(Order)
            .join(Customer, Order.customer_id == Customer.dbx_customer_id)
            .where(Customer.deleted_at.is_(None))
            .options(
                selectinload(Order.customer),
                selectinload(Order.items),
                selectinload(Order.invoices),
            )
            .order_by(Order.id)
        ).scalars()
    )


def _percent_of(part: Decimal, whole: Decimal) -> Decimal:
    if whole > ZERO:
        return quantize_money(part / whole * HUNDRED)
    return ZERO


def revenue(session: Session) -> RevenueSummary:
    """Compare work earned to date with what was invoiced and collected.

    Earned is the completed amount of every billable row, recomputed from the
    row's progress. The gap is earned less invoiced less collected.
    """

    earned = invoiced = collected = ZERO
    for order in _live_orders(session):
        for item in order.items:
            earned += calculate_for_item(item).completed_amount
        for invoice in order.invoices:
            if invoice.exclude:
                continue
            invoiced += to_decimal(invoice.invoice_amount)
            collected += to_decimal(invoice.payments_received)

    return RevenueSummary(
        total_earned=float(quantize_money(earned)),
        total_invoiced=float(quantize_money(invoiced)),
        total_collected=float(quantize_money(collected)),
        revenue_gap=float(quantize_money(earned - invoiced - collected)),
        collection_efficiency=float(_percent_of(collected, invoiced)),
        billing_efficiency=float(_percent_of(invoiced, earned)),
    )


def _scheduled(order: Order, days_overdue: int = 0) -> ScheduledProject:
    return ScheduledProject(
        order_id=order.id,
        order_no=order.order_no,
        customer_id=order.customer_id,
        client_name=order.customer.client_name,
        order_due_date=as_utc(order.order_due_date),
        days_overdue=days_overdue,
        status=order.status,
    )


def _average_progress(order: Order) -> Decimal | None:
    rows = [item for item in order.items if item.kind is ItemType.ITEM]
    if not rows:
        return None
    total = sum((to_decimal(item.progress_overall_pct) for item in rows), ZERO)
    return total / len(rows)


def project_health(session: Session, now: datetime | None = None) -> ProjectHealth:
    """Flag overdue, soon-due and slow-moving orders.

    Windows count from UTC midnight. Overdue and low-progress checks only
    look at orders still pending updates; low progress means an average
    overall progress under 25 % on an order opened at least 30 days ago.
    """

    now = as_utc(now) or utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_ahead = today + timedelta(days=7)
    month_ahead = today + timedelta(days=30)
    started_before = today - timedelta(days=LOW_PROGRESS_AFTER_DAYS)

    overdue: list[ScheduledProject] = []
    due_7: list[ScheduledProject] = []
    due_30: list[ScheduledProject] = []
    low_progress: list[LowProgressProject] = []
    completion_days: list[int] = []

    for order in _live_orders(session):
        pending = order.status == OrderStatus.PENDING_UPDATES.value
        opened = as_utc(order.order_date or order.created_at)
        due = as_utc(order.order_due_date)

        if due is not None:
            if due < today and pending:
                overdue.append(_scheduled(order, (today - due).days))
            elif today <= due <= week_ahead:
                due_7.append(_scheduled(order))
            elif week_ahead < due <= month_ahead:
                due_30.append(_scheduled(order))

        if pending and opened is not None and opened <= started_before:
            average = _average_progress(order)
            if average is not None and average < LOW_PROGRESS_THRESHOLD:
                low_progress.append(
                    LowProgressProject(
                        order_id=order.id,
                        order_no=order.order_no,
                        customer_id=order.customer_id,
                        client_name=order.customer.client_name,
                        order_date=opened,
                        days_since_start=(today - opened).days,
                        average_progress=float(quantize_money(average)),
                    )
                )

        if order.status == OrderStatus.COMPLETED.value and opened is not None:
            completion_days.append((as_utc(order.updated_at) - opened).days)

    overdue.sort(key=lambda project: project.days_overdue, reverse=True)
    average_completion = sum(completion_days) // len(completion_days) if completion_days else 0

    LOGGER.debug(
        "project_health_calculated",
        overdue=len(overdue),
        due_soon_7_days=len(due_7),
        due_soon_30_days=len(due_30),
        low_progress=len(low_progress),
    )
    return ProjectHealth(
        overdue_count=len(overdue),
        overdue_projects=overdue[:PROJECT_LIST_LIMIT],
        due_soon_7_days_count=len(due_7),
        due_soon_7_days=due_7[:PROJECT_LIST_LIMIT],
        due_soon_30_days_count=len(due_30),
        due_soon_30_days=due_30[:PROJECT_LIST_LIMIT],
        low_progress_count=len(low_progress),
        low_progress_projects=low_progress[:PROJECT_LIST_LIMIT],
        average_completion_time=average_completion,
    )


def _month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def sales_performance(
    session: Session, period: SalesPeriod, now: datetime | None = None
) -> SalesPerformance:
    """Total each sales rep's contract value, optionally for this month only.

    Orders are dated by ``order_date``, falling back to when they were
    recorded. The ``month`` period also compares against last month.
    """

    now = as_utc(now) or utcnow()
    this_month = _month_start(now)
    last_month = _month_start(this_month - timedelta(days=1))

    dated = [
        (order, as_utc(order.order_date or order.created_at)) for order in _live_orders(session)
    ]
    if period is SalesPeriod.MONTH:
        selected = [order for order, opened in dated if opened is not None and opened >= this_month]
    else:
        selected = [order for order, _ in dated]

    sales: dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: dict[str, list[int]] = defaultdict(lambda: [0, 0])
    for order in selected:
        rep = (order.sales_rep or "").strip() or UNASSIGNED_REP
        sales[rep] += to_decimal(order.order_grand_total)
        counts[rep][0 if order.status == OrderStatus.COMPLETED.value else 1] += 1

    reps = []
    for rep, total in sales.items():
        completed, pending = counts[rep]
        order_count = completed + pending
        reps.append(
            RepPerformance(
                rep_name=rep,
                total_sales=float(quantize_money(total)),
                order_count=order_count,
                completed_count=completed,
                pending_count=pending,
                average_order_value=float(quantize_money(total / order_count)),
                completion_rate=float(
                    _percent_of(Decimal(completed), Decimal(order_count))
                ),
            )
        )
    reps.sort(key=lambda rep: rep.total_sales, reverse=True)

    total_sales = sum(sales.values(), ZERO)
    comparison = None
    if period is SalesPeriod.MONTH:
        previous = sum(
            (
                to_decimal(order.order_grand_total)
                for order, opened in dated
                if opened is not None and last_month <= opened < this_month
            ),
            ZERO,
        )
        change = total_sales - previous
        comparison = MonthComparison(
            this_month=float(quantize_money(total_sales)),
            last_month=float(quantize_money(previous)),
            change=float(quantize_money(change)),
            change_percent=float(_percent_of(change, previous)),
        )

    return SalesPerformance(
        rep_performance=reps,
        totals=SalesTotals(
            total_sales=float(quantize_money(total_sales)),
            total_orders=sum(rep.order_count for rep in reps),
            total_completed=sum(rep.completed_count for rep in reps),
            total_pending=sum(rep.pending_count for rep in reps),
        ),
        month_comparison=comparison,
        period=period,
    )


__all__ = [
    "aging_bucket",
    "period_start",
    "project_health",
    "receivables",
    "revenue",
    "sales_performance",
    "stats",
]
