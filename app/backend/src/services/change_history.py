"""Audit trail helpers.

Changes are added to the caller's session and committed together with the
change they describe.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.backend.src.models import ChangeHistory, ChangeType

LOGGER = structlog.get_logger(__name__)


def value_to_string(value: Any) -> str | None:
    """Normalise a field value for storage in the audit trail."""

    if value is None:
        return None
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (int, float, Decimal)):
        try:
            number = Decimal(str(value)).normalize()
        except InvalidOperation:
            return str(value)
        # normalize() turns 100 into 1E+2
        return format(number, "f")
    text = str(value).strip()
    return text or None


def values_equal(old: Any, new: Any) -> bool:
    """Compare two field values, treating numerically equal strings as equal."""

    old_text = value_to_string(old)
    new_text = value_to_string(new)
    if old_text is None or new_text is None:
        return old_text == new_text
    try:
        return abs(Decimal(old_text) - Decimal(new_text)) < Decimal("0.0001")
    except InvalidOperation:
        return old_text == new_text


def log_change(
    session: Session,
    change_type: ChangeType,
    field_name: str,
    old_value: Any,
    new_value: Any,
    *,
    customer_id: str | None = None,
    order_id: int | None = None,
    order_item_id: int | None = None,
    row_index: int | None = None,
) -> ChangeHistory:
    """Record a single change."""

    entry = ChangeHistory(
        change_type=ChangeType(change_type).value,
        field_name=field_name,
        old_value=value_to_string(old_value),
        new_value=value_to_string(new_value),
        customer_id=customer_id,
        order_id=order_id,
        order_item_id=order_item_id,
        row_index=row_index,
    )
    session.add(entry)
    LOGGER.debug(
        "change_logged",
        change_type=entry.change_type,
        field_name=field_name,
        customer_id=customer_id,
        order_id=order_id,
    )
    return entry


def log_if_changed(
    session: Session,
    change_type: ChangeType,
    field_name: str,
    old_value: Any,
    new_value: Any,
    **references: Any,
) -> ChangeHistory | None:
    """Record a change only when the value actually differs."""

    if values_equal(old_value, new_value):
        return None
    return log_change(session, change_type, field_name, old_value, new_value, **references)


def list_customer_history(
    session: Session, customer_id: str, *, limit: int | None = None
) -> list[ChangeHistory]:
    """Return a customer's changes, newest first."""

    statement = (
        select(ChangeHistory)
        .where(ChangeHistory.customer_id == customer_id)
        .order_by(ChangeHistory.changed_at.desc(), ChangeHistory.id.desc())
    )
    if limit is not None:
        statement = statement.limit(limit)
    return list(session.execute(statement).scalars())


__all__ = [
    "list_customer_history",
    "log_change",
    "log_if_changed",
    "value_to_string",
    "values_equal",
]
