"""Customer management endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.backend.src.db import get_session_dependency
from app.backend.src.models import CustomerStatus
from app.backend.src.schemas.customer import (
    ChangeHistoryRead,
    ChangeHistoryResponse,
    CustomerCreate,
    CustomerExistsResponse,
    CustomerListResponse,
    CustomerResponse,
    CustomerUpdate,
)
from app.backend.src.services import change_history
from app.backend.src.services import customers as customer_service

router = APIRouter(prefix="/customers", tags=["customers"])

SessionDep = Annotated[Session, Depends(get_session_dependency)]


@router.get("", response_model=CustomerListResponse)
def list_customers(
    session: SessionDep,
    status_filter: Annotated[CustomerStatus | None, Query(alias="status")] = None,
    include_deleted: Annotated[bool, Query(alias="includeDeleted")] = False,
    trash_only: Annotated[bool, Query(alias="trashOnly")] = False,
) -> CustomerListResponse:
    """Return customers, newest activity first."""

    customers = customer_service.list_customers(
        session,
        status_filter=status_filter,
        include_deleted=include_deleted,
        trash_only=trash_only,
    )
    return CustomerListResponse(
        customers=[customer_service.serialize_customer_summary(c) for c in customers]
    )


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
def create_customer(payload: CustomerCreate, session: SessionDep) -> CustomerResponse:
    customer = customer_service.create_customer(session, payload)
    return CustomerResponse(customer=customer_service.serialize_customer_detail(customer))


@router.get("/check-exists", response_model=CustomerExistsResponse)
def check_exists(
    session: SessionDep,
    customer_id: Annotated[str, Query(alias="dbxCustomerId", min_length=1)],
) -> CustomerExistsResponse:
    """Tell contract intake whether a DBX customer id is already known."""

    customer = customer_service.find_customer(session, customer_id)
    if customer is None:
        return CustomerExistsResponse(exists=False)
    return CustomerExistsResponse(
        exists=True, customer=customer_service.serialize_customer(customer)
    )


@router.get("/{customer_id}", response_model=CustomerResponse)
def get_customer(customer_id: str, session: SessionDep) -> CustomerResponse:
    customer = customer_service.get_customer_or_404(session, customer_id)
    return CustomerResponse(customer=customer_service.serialize_customer_detail(customer))


@router.patch("/{customer_id}", response_model=CustomerResponse)
def update_customer(
    customer_id: str, payload: CustomerUpdate, session: SessionDep
) -> CustomerResponse:
    customer = customer_service.update_customer(session, customer_id, payload)
    return CustomerResponse(customer=customer_service.serialize_customer_detail(customer))


@router.delete("/{customer_id}", response_model=CustomerResponse)
def delete_customer(customer_id: str, session: SessionDep) -> CustomerResponse:
    """Move a customer to the trash."""

    customer = customer_service.soft_delete_customer(session, customer_id)
    return CustomerResponse(customer=customer_service.serialize_customer_detail(customer))


@router.post("/{customer_id}/recover", response_model=CustomerResponse)
def recover_customer(customer_id: str, session: SessionDep) -> CustomerResponse:
    customer = customer_service.recover_customer(session, customer_id)
    return CustomerResponse(customer=customer_service.serialize_customer_detail(customer))


@router.delete("/{customer_id}/permanent-delete")
def permanently_delete_customer(customer_id: str, session: SessionDep) -> dict[str, bool]:
    """Delete a trashed customer and everything recorded under it."""

    customer_service.permanently_delete_customer(session, customer_id)
    return {"success": True}


@router.get("/{customer_id}/history", response_model=ChangeHistoryResponse)
def customer_history(
    customer_id: str,
    session: SessionDep,
    limit: Annotated[int | None, Query(ge=1, le=1000)] = None,
) -> ChangeHistoryResponse:
    customer_service.get_customer_or_404(session, customer_id)
    entries = change_history.list_customer_history(session, customer_id, limit=limit)
    return ChangeHistoryResponse(
        history=[ChangeHistoryRead.model_validate(entry) for entry in entries]
    )
