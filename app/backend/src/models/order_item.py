"""Order line item model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.backend.src.db.base import Base, utcnow

from .enums import ItemType


class OrderItem(Base):
    """One row of an order's billable work breakdown.

    The ``completed_amount``, ``previously_invoiced_amount``,
    ``new_progress_pct`` and ``this_bill`` columns are a cache of the
    progress-billing calculation and are rewritten on every save.
    """

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), nullable=False, index=True)
    row_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    item_type: Mapped[str] = mapped_column(String(20), nullable=False, default=ItemType.ITEM.value)
    product_service: Mapped[str] = mapped_column(Text, nullable=False, default="")
    qty: Mapped[float | None] = mapped_column(Float, nullable=True)
    rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    progress_overall_pct: Mapped[float | None] = mapped_column(Float, nullable=True)
    completed_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    previously_invoiced_pct: Mapped[float | None] = mapped_column(Float, nullable=True)
    previously_invoiced_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    new_progress_pct: Mapped[float | None] = mapped_column(Float, nullable=True)
    this_bill: Mapped[float | None] = mapped_column(Float, nullable=True)
    main_category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sub_category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    vendor_id: Mapped[int | None] = mapped_column(
        ForeignKey("vendors.id"), nullable=True, index=True
    )
    vendor_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    order: Mapped["Order"] = relationship("Order", back_populates="items")
    vendor: Mapped["Vendor | None"] = relationship("Vendor", back_populates="order_items")

    @property
    def kind(self) -> ItemType:
        return ItemType(self.item_type)


__all__ = ["OrderItem"]
