"""Dashboard analytics schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import Field

from .base import CamelModel


class StatsPeriod(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    ALL = "all"


class DashboardStats(CamelModel):
    success: bool = True
    total_paid: float
    period: StatsPeriod


class AgingBuckets(CamelModel):
    """Outstanding balances grouped by age in days."""

    days_0_30: float = Field(default=0, alias="0-30")
    days_31_60: float = Field(default=0, alias="31-60")
    days_61_90: float = Field(default=0, alias="61-90")
    days_90_plus: float = Field(default=0, alias="90+")


class TopCustomer(CamelModel):
    customer_id: str
    client_name: str
    total: float


class ReceivablesSummary(CamelModel):
    total_outstanding: float
    aging_buckets: AgingBuckets
    top_customers: list[TopCustomer]
    collection_rate: float
    total_invoiced: float
    total_collected: float
    receivables_count: int


class ReceivablesResponse(CamelModel):
    success: bool = True
    data: ReceivablesSummary


class RevenueSummary(CamelModel):
    """Earned versus invoiced versus collected, across all live orders."""

    total_earned: float
    total_invoiced: float
    total_collected: float
    revenue_gap: float
    collection_efficiency: float
    billing_efficiency: float


class RevenueResponse(CamelModel):
    success: bool = True
    data: RevenueSummary


class ScheduledProject(CamelModel):
    order_id: int
    order_no: str
    customer_id: str
    client_name: str
    order_due_date: datetime | None = None
    days_overdue: int = 0
    status: str


class LowProgressProject(CamelModel):
    order_id: int
    order_no: str
    customer_id: str
    client_name: str
    order_date: datetime | None = None
    days_since_start: int
    average_progress: float


class ProjectHealth(CamelModel):
    overdue_count: int
    overdue_projects: list[ScheduledProject]
    due_soon_7_days_count: int
    due_soon_7_days: list[ScheduledProject]
    due_soon_30_days_count: int
    due_soon_30_days: list[ScheduledProject]
    low_progress_count: int
    low_progress_projects: list[LowProgressProject]
    average_completion_time: int


class ProjectHealthResponse(CamelModel):
    success: bool = True
    data: ProjectHealth


class SalesPeriod(str, Enum):
    MONTH = "month"
    ALL = "all"


class RepPerformance(CamelModel):
    rep_name: str
    total_sales: float
    order_count: int
    completed_count: int
    pending_count: int
    average_order_value: float
    completion_rate: float


class SalesTotals(CamelModel):
    total_sales: float
    total_orders: int
    total_completed: int
    total_pending: int


class MonthComparison(CamelModel):
    this_month: float
    last_month: float
    change: float
    change_percent: float


class SalesPerformance(CamelModel):
    rep_performance: list[RepPerformance]
    totals: SalesTotals
    month_comparison: MonthComparison | None = None
    period: SalesPeriod


class SalesPerformanceResponse(CamelModel):
    success: bool = True
    data: SalesPerformance


__all__ = [
    "AgingBuckets",
    "DashboardStats",
    "LowProgressProject",
    "MonthComparison",
    "ProjectHealth",
    "ProjectHealthResponse",
    "ReceivablesResponse",
    "ReceivablesSummary",
    "RepPerformance",
    "RevenueResponse",
    "RevenueSummary",
    "SalesPerformance",
    "SalesPerformanceResponse",
    "SalesPeriod",
    "SalesTotals",
    "ScheduledProject",
    "StatsPeriod",
    "TopCustomer",
]
