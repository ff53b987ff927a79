"""Vendor directory endpoints."""

from __future__ import annotations

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from app.backend.src.core.config import get_settings
from app.backend.src.db import get_session_dependency
from app.backend.src.schemas.vendor import (
    VendorCreate,
    VendorImportResult,
    VendorListResponse,
    VendorProjectsResponse,
    VendorRead,
    VendorResponse,
    VendorUpdate,
)
from app.backend.src.services import vendors as vendor_service

router = APIRouter(prefix="/vendors", tags=["vendors"])

SessionDep = Annotated[Session, Depends(get_session_dependency)]


@router.get("", response_model=VendorListResponse)
def list_vendors(
    session: SessionDep,
    search: str | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    category: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int | None, Query(alias="pageSize", ge=1, le=500)] = None,
    include_deleted: Annotated[bool, Query(alias="includeDeleted")] = False,
    trash_only: Annotated[bool, Query(alias="trashOnly")] = False,
) -> VendorListResponse:
    """Search the directory; only active vendors are listed unless ``status`` says otherwise."""

    vendors, pagination = vendor_service.list_vendors(
        session,
        search=search,
        status_filter=status_filter,
        category=category,
        include_deleted=include_deleted,
        trash_only=trash_only,
        page=page,
        page_size=page_size or get_settings().default_page_size,
    )
    return VendorListResponse(
        data=[VendorRead.model_validate(vendor) for vendor in vendors],
        pagination=pagination,
    )


@router.post("", response_model=VendorResponse, status_code=status.HTTP_201_CREATED)
def create_vendor(payload: VendorCreate, session: SessionDep) -> VendorResponse:
    vendor = vendor_service.create_vendor(session, payload)
    return VendorResponse(vendor=VendorRead.model_validate(vendor))


@router.get("/export")
def export_vendors(
    session: SessionDep,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    category: str | None = None,
    include_deleted: Annotated[bool, Query(alias="includeDeleted")] = False,
) -> Response:
    """Download the directory as CSV."""

    content = vendor_service.export_vendors(
        session,
        status_filter=status_filter,
        category=category,
        include_deleted=include_deleted,
    )
    filename = f"vendors-export-{date.today().isoformat()}.csv"
    return Response(
        content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import", response_model=VendorImportResult)
async def import_vendors(file: UploadFile, session: SessionDep) -> VendorImportResult:
    """Create vendors from an uploaded CSV, skipping names already on file."""

    content = await file.read()
    return vendor_service.import_vendors(session, content)


@router.get("/{vendor_id}", response_model=VendorResponse)
def get_vendor(vendor_id: int, session: SessionDep) -> VendorResponse:
    vendor = vendor_service.get_vendor_or_404(session, vendor_id)
    return VendorResponse(vendor=VendorRead.model_validate(vendor))


@router.patch("/{vendor_id}", response_model=VendorResponse)
def update_vendor(vendor_id: int, payload: VendorUpdate, session: SessionDep) -> VendorResponse:
    vendor = vendor_service.update_vendor(session, vendor_id, payload)
    return VendorResponse(vendor=VendorRead.model_validate(vendor))


@router.delete("/{vendor_id}", response_model=VendorResponse)
def delete_vendor(vendor_id: int, session: SessionDep) -> VendorResponse:
    vendor = vendor_service.delete_vendor(session, vendor_id)
    return VendorResponse(vendor=VendorRead.model_validate(vendor))


@router.get("/{vendor_id}/projects", response_model=VendorProjectsResponse)
def vendor_projects(vendor_id: int, session: SessionDep) -> VendorProjectsResponse:
    """List the orders with work assigned to a vendor."""

    vendor, projects = vendor_service.vendor_projects(session, vendor_id)
    return VendorProjectsResponse(
        vendor=VendorRead.model_validate(vendor),
        projects=projects,
        total_work_assigned=sum(project.total_work_assigned for project in projects),
    )
