"""Order (contract) model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.backend.src.db.base import Base, utcnow

from .enums import OrderStatus


class Order(Base):
    """Represents a signed contract for a customer."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[str] = mapped_column(
        ForeignKey("customers.dbx_customer_id"), nullable=False, index=True
    )
    order_no: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    order_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    order_po: Mapped[str | None] = mapped_column(String(255), nullable=True)
    order_due_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    order_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    order_grand_total: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    progress_payments: Mapped[str | None] = mapped_column(Text, nullable=True)
    balance_due: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    sales_rep: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=OrderStatus.PENDING_UPDATES.value
    )
    stage: Mapped[str | None] = mapped_column(String(50), nullable=True)
    contract_date: Mapped[str | None] = mapped_column(String(20), nullable=True)
    project_start_date: Mapped[str | None] = mapped_column(String(20), nullable=True)
    project_end_date: Mapped[str | None] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    customer: Mapped["Customer"] = relationship("Customer", back_populates="orders")
    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.row_index",
    )
    invoices: Mapped[list["Invoice"]] = relationship(
        "Invoice",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="Invoice.row_index",
    )
    history: Mapped[list["ChangeHistory"]] = relationship(
        "ChangeHistory",
        back_populates="order",
        cascade="all, delete-orphan",
    )


__all__ = ["Order"]
