"""Contract intake endpoint."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.backend.src.db import get_session_dependency
from app.backend.src.schemas.contract import ContractCreate, ContractResponse
from app.backend.src.services.contracts import store_contract
from app.backend.src.services.customers import serialize_customer_detail
from app.backend.src.services.orders import serialize_order

router = APIRouter(prefix="/contracts", tags=["contracts"])


@router.post("", response_model=ContractResponse, status_code=status.HTTP_201_CREATED)
def create_contract(
    payload: ContractCreate,
    session: Annotated[Session, Depends(get_session_dependency)],
) -> ContractResponse:
    """Store an already-parsed contract as customer, order and item rows."""

    customer, order, created = store_contract(session, payload)
    return ContractResponse(
        customer=serialize_customer_detail(customer),
        order=serialize_order(order),
        customer_created=created,
    )
