"""Customer model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.backend.src.db.base import Base, utcnow

from .enums import CustomerStatus


class Customer(Base):
    """Represents a billed customer, keyed by its external DBX identifier."""

    __tablename__ = "customers"

    dbx_customer_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    street_address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(50), nullable=False)
    zip: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=CustomerStatus.PENDING_UPDATES.value, index=True
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, index=True
    )

    orders: Mapped[list["Order"]] = relationship(
        "Order",
        back_populates="customer",
        cascade="all, delete-orphan",
        order_by="Order.created_at.desc()",
    )
    history: Mapped[list["ChangeHistory"]] = relationship(
        "ChangeHistory",
        back_populates="customer",
        cascade="all, delete-orphan",
    )

    @property
    def is_deleted(self) -> bool:
        """Return ``True`` when the customer sits in the trash."""

        return self.deleted_at is not None


__all__ = ["Customer"]
