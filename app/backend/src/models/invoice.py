"""Invoice model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.backend.src.db.base import Base, utcnow


class Invoice(Base):
    """Represents a billing event against an order.

    ``linked_line_items`` holds ``{"orderItemId": int, "billedAmount": float}``
    records. While it is non-empty, ``invoice_amount`` equals the sum of the
    billed amounts.
    """

    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), nullable=False, index=True)
    invoice_number: Mapped[str | None] = mapped_column(String(255), nullable=True)
    invoice_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    invoice_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    payments_received: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    exclude: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    row_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    linked_line_items: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, index=True
    )

    order: Mapped["Order"] = relationship("Order", back_populates="invoices")

    @property
    def links(self) -> list[dict[str, Any]]:
        """Return the linked line items as a list, never ``None``."""

        return list(self.linked_line_items or [])

    @property
    def open_balance(self) -> float:
        return float(self.invoice_amount or 0) - float(self.payments_received or 0)


__all__ = ["Invoice"]
