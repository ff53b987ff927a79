"""Liveness, readiness and Prometheus metrics endpoints."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.backend.src.db import get_session_dependency
from app.backend.src.models import Order

LOGGER = structlog.get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health/live")
def liveness() -> dict[str, str]:
    return {"status": "live"}


@router.get("/health/ready")
def readiness(
    session: Annotated[Session, Depends(get_session_dependency)],
) -> dict[str, str]:
    """Report ready once the billing tables answer a query.

    Responds 503 while the database is unreachable or not yet migrated.
    """

    try:
        session.execute(text("SELECT 1"))
        session.execute(select(Order.id).limit(1))
    except SQLAlchemyError as exc:
        LOGGER.warning("readiness_failed", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable",
        ) from exc
    return {"status": "ready", "database": "ok"}


@router.get("/metrics")
def metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
