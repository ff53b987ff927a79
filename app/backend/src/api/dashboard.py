"""Dashboard analytics endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.backend.src.db import get_session_dependency
from app.backend.src.schemas.dashboard import (
    DashboardStats,
    ProjectHealthResponse,
    ReceivablesResponse,
    RevenueResponse,
    SalesPerformanceResponse,
    SalesPeriod,
    StatsPeriod,
)
from app.backend.src.services import dashboard as dashboard_service

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStats)
def get_stats(
    session: Annotated[Session, Depends(get_session_dependency)],
    period: StatsPeriod = StatsPeriod.ALL,
) -> DashboardStats:
    """Return payments collected during ``period``."""

    return dashboard_service.stats(session, period)


@router.get("/receivables", response_model=ReceivablesResponse)
def get_receivables(
    session: Annotated[Session, Depends(get_session_dependency)],
) -> ReceivablesResponse:
    return ReceivablesResponse(data=dashboard_service.receivables(session))


@router.get("/revenue", response_model=RevenueResponse)
def get_revenue(
    session: Annotated[Session, Depends(get_session_dependency)],
) -> RevenueResponse:
    return RevenueResponse(data=dashboard_service.revenue(session))


@router.get("/project-health", response_model=ProjectHealthResponse)
def get_project_health(
    session: Annotated[Session, Depends(get_session_dependency)],
) -> ProjectHealthResponse:
    """Return overdue, soon-due and low-progress orders."""

    return ProjectHealthResponse(data=dashboard_service.project_health(session))


@router.get("/sales-performance", response_model=SalesPerformanceResponse)
def get_sales_performance(
    session: Annotated[Session, Depends(get_session_dependency)],
    period: SalesPeriod = SalesPeriod.ALL,
) -> SalesPerformanceResponse:
    return SalesPerformanceResponse(
        data=dashboard_service.sales_performance(session, period)
    )
