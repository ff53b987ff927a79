"""Vendor schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import EmailStr, Field, field_validator

from app.backend.src.models.enums import VendorStatus

from .base import CamelModel


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip() or None
    return value


class VendorCreate(CamelModel):
    """Payload for registering a vendor."""

    name: str = Field(min_length=1)
    email: EmailStr | None = None
    phone: str | None = None
    contact_person: str | None = None
    street_address: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    category: str | None = None
    status: VendorStatus = VendorStatus.ACTIVE
    notes: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return _blank_to_none(value)


class VendorUpdate(CamelModel):
    """Partial vendor update."""

    name: str | None = Field(default=None, min_length=1)
    email: EmailStr | None = None
    phone: str | None = None
    contact_person: str | None = None
    street_address: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    category: str | None = None
    status: VendorStatus | None = None
    notes: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return _blank_to_none(value)


class VendorRead(CamelModel):
    id: int
    name: str
    email: str | None
    phone: str | None
    contact_person: str | None
    street_address: str | None
    city: str | None
    state: str | None
    zip: str | None
    category: str | None
    status: VendorStatus
    notes: str | None
    deleted_at: datetime | None
    created_at: datetime
    updated_at: datetime


class Pagination(CamelModel):
    page: int
    page_size: int
    total: int
    total_pages: int


class VendorListResponse(CamelModel):
    success: bool = True
    data: list[VendorRead]
    pagination: Pagination


class VendorResponse(CamelModel):
    success: bool = True
    vendor: VendorRead


class VendorImportResult(CamelModel):
    success: bool = True
    message: str
    created: int
    skipped: int
    total: int
    errors: list[str] = Field(default_factory=list)


class VendorProject(CamelModel):
    """An order that has item rows assigned to a vendor."""

    order_id: int
    order_no: str
    customer_id: str
    customer_name: str
    project_start_date: str | None
    project_end_date: str | None
    item_count: int
    total_contract_amount: float
    total_work_assigned: float
    total_completed: float


class VendorProjectsResponse(CamelModel):
    success: bool = True
    vendor: VendorRead
    projects: list[VendorProject]
    total_work_assigned: float


__all__ = [
    "Pagination",
    "VendorCreate",
    "VendorImportResult",
    "VendorListResponse",
    "VendorProject",
    "VendorProjectsResponse",
    "VendorRead",
    "VendorResponse",
    "VendorUpdate",
]
