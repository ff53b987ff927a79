"""Service layer functions for the vendor directory."""

from __future__ import annotations

import math
from collections import defaultdict
from decimal import Decimal

import structlog
from fastapi import HTTPException, status
from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from app.backend.src.db.base import utcnow
from app.backend.src.models import Customer, ItemType, Order, OrderItem, Vendor, VendorStatus
from app.backend.src.schemas.vendor import (
    Pagination,
    VendorCreate,
    VendorImportResult,
    VendorProject,
    VendorUpdate,
)

from . import vendor_csv
from .progress_billing import HUNDRED, ZERO, calculate_for_item, to_decimal, to_decimal_or_none

LOGGER = structlog.get_logger(__name__)

_ALL = "all"


def get_vendor_or_404(session: Session, vendor_id: int) -> Vendor:
    vendor = session.get(Vendor, vendor_id)
    if vendor is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Vendor not found",
        )
    return vendor


def _ensure_unique_name(session: Session, name: str, vendor_id: int | None = None) -> None:
    statement = select(Vendor.id).where(Vendor.name == name)
    if vendor_id is not None:
        statement = statement.where(Vendor.id != vendor_id)
    if session.execute(statement).first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Vendor with this name already exists",
        )


def _filtered(
    *,
    search: str | None = None,
    status_filter: str | None = None,
    category: str | None = None,
    include_deleted: bool = False,
    trash_only: bool = False,
) -> Select:
    statement = select(Vendor)
    if trash_only:
        statement = statement.where(Vendor.deleted_at.is_not(None))
    elif not include_deleted:
        statement = statement.where(Vendor.deleted_at.is_(None))

    if status_filter and status_filter != _ALL:
        try:
            vendor_status = VendorStatus(status_filter)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid vendor status",
            ) from exc
        statement = statement.where(Vendor.status == vendor_status.value)
    elif status_filter is None and not (trash_only or include_deleted):
        # The directory shows active vendors unless asked otherwise.
        statement = statement.where(Vendor.status == VendorStatus.ACTIVE.value)

    if category and category != _ALL:
        statement = statement.where(Vendor.category == category)

    if search:
        pattern = f"%{search.strip()}%"
        statement = statement.where(
            or_(
                Vendor.name.ilike(pattern),
                Vendor.email.ilike(pattern),
                Vendor.phone.ilike(pattern),
            )
        )
    return statement


def list_vendors(
    session: Session,
    *,
    search: str | None = None,
    status_filter: str | None = None,
    category: str | None = None,
    include_deleted: bool = False,
    trash_only: bool = False,
    page: int = 1,
    page_size: int = 10,
) -> tuple[list[Vendor], Pagination]:
    """Return one page of vendors sorted by name, plus pagination details."""

    statement = _filtered(
        search=search,
        status_filter=status_filter,
        category=category,
        include_deleted=include_deleted,
        trash_only=trash_only,
    )
    total = session.execute(
        select(func.count()).select_from(statement.subquery())
    ).scalar_one()
    vendors = list(
        session.execute(
            statement.order_by(Vendor.name).offset((page - 1) * page_size).limit(page_size)
        ).scalars()
    )
    pagination = Pagination(
        page=page,
        page_size=page_size,
        total=total,
        total_pages=math.ceil(total / page_size),
    )
    return vendors, pagination


def create_vendor(session: Session, payload: VendorCreate) -> Vendor:
    _ensure_unique_name(session, payload.name)
    vendor = Vendor(**payload.model_dump(exclude={"status"}), status=payload.status.value)
    session.add(vendor)
    session.commit()
    LOGGER.info("vendor_created", vendor_id=vendor.id, name=vendor.name)
    return vendor


def update_vendor(session: Session, vendor_id: int, payload: VendorUpdate) -> Vendor:
    vendor = get_vendor_or_404(session, vendor_id)
    changes = payload.model_dump(exclude_unset=True)

    if "name" in changes:
        name = changes.pop("name")
        if name is not None and name != vendor.name:
            _ensure_unique_name(session, name, vendor.id)
            vendor.name = name
    if "status" in changes:
        new_status = changes.pop("status")
        if new_status is not None:
            vendor.status = VendorStatus(new_status).value
    for field, value in changes.items():
        setattr(vendor, field, value)

    session.commit()
    LOGGER.info("vendor_updated", vendor_id=vendor.id, fields=sorted(payload.model_fields_set))
    return vendor


def delete_vendor(session: Session, vendor_id: int) -> Vendor:
    """Move a vendor to the trash."""

    vendor = get_vendor_or_404(session, vendor_id)
    vendor.deleted_at = utcnow()
    session.commit()
    LOGGER.info("vendor_trashed", vendor_id=vendor.id)
    return vendor


def export_vendors(
    session: Session,
    *,
    status_filter: str | None = None,
    category: str | None = None,
    include_deleted: bool = False,
) -> str:
    """Return matching vendors as CSV text."""

    statement = _filtered(
        status_filter=status_filter or _ALL,
        category=category,
        include_deleted=include_deleted,
    )
    vendors = list(session.execute(statement.order_by(Vendor.name)).scalars())
    LOGGER.info("vendors_exported", count=len(vendors))
    return vendor_csv.export_csv(vendors)


def import_vendors(session: Session, content: bytes | str) -> VendorImportResult:
    """Create vendors from an uploaded CSV; existing names are skipped."""

    try:
        rows = vendor_csv.read_vendor_rows(content)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    existing = set(session.execute(select(Vendor.name)).scalars())
    created = skipped = 0
    errors: list[str] = []
    for row in rows:
        name = row["name"]
        if name in existing:
            skipped += 1
            continue
        try:
            vendor_status = VendorStatus(row.get("status") or VendorStatus.ACTIVE.value)
        except ValueError:
            errors.append(f'Failed to import "{name}": unknown status {row["status"]!r}')
            skipped += 1
            continue
        session.add(Vendor(**{**row, "status": vendor_status.value}))
        existing.add(name)
        created += 1

    session.commit()
    LOGGER.info("vendors_imported", created=created, skipped=skipped, errors=len(errors))
    return VendorImportResult(
        message=f"Imported {created} new vendors, skipped {skipped} existing",
        created=created,
        skipped=skipped,
        total=len(rows),
        errors=errors,
    )


def assigned_work(item: OrderItem) -> Decimal:
    """Return the share of an item's amount assigned to its vendor."""

    percentage = to_decimal_or_none(item.vendor_percentage)
    if percentage is None:
        percentage = HUNDRED
    return to_decimal(item.amount) * percentage / HUNDRED


def vendor_projects(session: Session, vendor_id: int) -> tuple[Vendor, list[VendorProject]]:
    """Return the orders with item rows assigned to a vendor, by order number.

    Orders of trashed customers are left out.
    """

    vendor = get_vendor_or_404(session, vendor_id)
    rows = session.execute(
        select(OrderItem, Order, Customer)
        .join(Order, OrderItem.order_id == Order.id)
        .join(Customer, Order.customer_id == Customer.dbx_customer_id)
        .where(
            OrderItem.vendor_id == vendor.id,
            OrderItem.item_type == ItemType.ITEM.value,
            Customer.deleted_at.is_(None),
        )
    ).all()

    grouped: dict[int, list[OrderItem]] = defaultdict(list)
    headers: dict[int, tuple[Order, Customer]] = {}
    for item, order, customer in rows:
        grouped[order.id].append(item)
        headers[order.id] = (order, customer)

    projects: list[VendorProject] = []
    for order_id, items in grouped.items():
        order, customer = headers[order_id]
        projects.append(
            VendorProject(
                order_id=order.id,
                order_no=order.order_no,
                customer_id=customer.dbx_customer_id,
                customer_name=customer.client_name,
                project_start_date=order.project_start_date,
                project_end_date=order.project_end_date,
                item_count=len(items),
                total_contract_amount=float(sum((to_decimal(i.amount) for i in items), ZERO)),
                total_work_assigned=float(sum((assigned_work(i) for i in items), ZERO)),
                total_completed=float(
                    sum((calculate_for_item(i).completed_amount for i in items), ZERO)
                ),
            )
        )
    projects.sort(key=lambda project: project.order_no)
    return vendor, projects


__all__ = [
    "assigned_work",
    "create_vendor",
    "delete_vendor",
    "export_vendors",
    "get_vendor_or_404",
    "import_vendors",
    "list_vendors",
    "update_vendor",
    "vendor_projects",
]
