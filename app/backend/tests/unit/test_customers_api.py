"""API tests for customer management endpoints."""

from __future__ import annotations

import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_billing.db")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from app.backend.src.db import get_engine, session_scope
from app.backend.src.db.base import Base
from app.backend.src.main import app
from app.backend.src.models import ChangeHistory, Invoice, Order, OrderItem


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


CUSTOMER = {
    "dbxCustomerId": "C-400",
    "clientName": "Cedar Ridge HOA",
    "email": "manager@cedarridge.example.com",
    "phone": "555-0140",
    "address": {
        "streetAddress": " 40 Cedar Ridge Rd ",
        "city": "Boise",
        "state": "id",
        "zip": "83702",
    },
}

CONTRACT = {
    "customer": CUSTOMER,
    "order": {"orderNo": "SO-400", "orderGrandTotal": 1000},
    "items": [
        {"type": "item", "productService": "Siding", "amount": 1000, "progressOverallPct": 100, "previouslyInvoicedPct": 0},
    ],
}


def test_create_customer_normalizes_address(client: TestClient) -> None:
    response = client.post("/api/customers", json=CUSTOMER)

    assert response.status_code == 201
    customer = response.json()["customer"]
    assert customer["dbxCustomerId"] == "C-400"
    assert customer["status"] == "pending_updates"
    assert customer["address"] == {
        "streetAddress": "40 Cedar Ridge Rd",
        "city": "Boise",
        "state": "ID",
        "zip": "83702",
    }
    assert customer["orders"] == []


def test_duplicate_customer_returns_409(client: TestClient) -> None:
    client.post("/api/customers", json=CUSTOMER)

    response = client.post("/api/customers", json=CUSTOMER)

    assert response.status_code == 409
    assert response.json() == {"error": "Customer already exists"}


def test_invalid_address_returns_400(client: TestClient) -> None:
    payload = dict(CUSTOMER, address=dict(CUSTOMER["address"], zip="ABCDE"))

    response = client.post("/api/customers", json=payload)

    assert response.status_code == 400
    assert response.json() == {"error": "Enter a valid ZIP code (##### or #####-####)."}


def test_check_exists(client: TestClient) -> None:
    missing = client.get("/api/customers/check-exists", params={"dbxCustomerId": "C-400"})
    client.post("/api/customers", json=CUSTOMER)
    found = client.get("/api/customers/check-exists", params={"dbxCustomerId": "C-400"})

    assert missing.json() == {"exists": False, "customer": None}
    assert found.json()["exists"] is True
    assert found.json()["customer"]["clientName"] == "Cedar Ridge HOA"


def test_update_customer_logs_changes(client: TestClient) -> None:
    client.post("/api/customers", json=CUSTOMER)

    response = client.patch("/api/customers/C-400", json={"clientName": "Cedar Ridge", "phone": "555-0199"})

    assert response.status_code == 200
    assert response.json()["customer"]["clientName"] == "Cedar Ridge"

    history = client.get("/api/customers/C-400/history").json()["history"]
    changes = {entry["fieldName"]: (entry["oldValue"], entry["newValue"]) for entry in history}
    assert changes == {
        "client_name": ("Cedar Ridge HOA", "Cedar Ridge"),
        "phone": ("555-0140", "555-0199"),
    }
    assert {entry["changeType"] for entry in history} == {"customer_edit"}


def test_trash_recover_and_permanent_delete(client: TestClient) -> None:
    client.post("/api/contracts", json=CONTRACT)

    early = client.delete("/api/customers/C-400/permanent-delete")
    assert early.status_code == 400
    assert early.json() == {"error": "Customer must be in trash before permanent deletion"}

    trashed = client.delete("/api/customers/C-400")
    assert trashed.json()["customer"]["deletedAt"] is not None
    assert client.delete("/api/customers/C-400").json() == {"error": "Customer is already in trash"}
    assert client.get("/api/customers").json()["customers"] == []
    assert [c["dbxCustomerId"] for c in client.get("/api/customers", params={"trashOnly": True}).json()["customers"]] == ["C-400"]

    recovered = client.post("/api/customers/C-400/recover")
    assert recovered.json()["customer"]["deletedAt"] is None
    assert client.post("/api/customers/C-400/recover").json() == {"error": "Customer is not in trash"}

    client.delete("/api/customers/C-400")
    response = client.delete("/api/customers/C-400/permanent-delete")

    assert response.json() == {"success": True}
    assert client.get("/api/customers/C-400").status_code == 404
    with session_scope() as session:
        for model in (Order, OrderItem, Invoice, ChangeHistory):
            assert session.execute(select(func.count()).select_from(model)).scalar_one() == 0


def test_list_flags_orders_with_item_mismatch(client: TestClient) -> None:
    contract = dict(CONTRACT, order={"orderNo": "SO-400", "orderGrandTotal": 1200})
    client.post("/api/contracts", json=contract)

    customers = client.get("/api/customers").json()["customers"]

    assert len(customers) == 1
    assert customers[0]["contractCount"] == 1
    assert customers[0]["stage"] == "waiting_for_permit"
    assert customers[0]["hasValidationIssues"] is True
    assert customers[0]["validationIssues"] == ["Order SO-400: Items total mismatch"]


def test_status_completes_when_orders_done_and_invoices_paid(client: TestClient) -> None:
    order = client.post("/api/contracts", json=CONTRACT).json()["order"]
    invoices_url = f"/api/orders/{order['id']}/invoices"

    invoice = client.post(invoices_url, json={"invoiceAmount": 1000}).json()["invoice"]
    client.patch(f"/api/orders/{order['id']}", json={"status": "completed"})
    assert client.get("/api/customers/C-400").json()["customer"]["status"] == "pending_updates"

    client.patch(f"{invoices_url}/{invoice['id']}", json={"paymentsReceived": 1000})
    assert client.get("/api/customers/C-400").json()["customer"]["status"] == "completed"

    completed = client.get("/api/customers", params={"status": "completed"}).json()["customers"]
    assert [c["dbxCustomerId"] for c in completed] == ["C-400"]

    client.patch(f"{invoices_url}/{invoice['id']}", json={"paymentsReceived": 400})
    assert client.get("/api/customers/C-400").json()["customer"]["status"] == "pending_updates"


def test_unknown_customer_returns_404(client: TestClient) -> None:
    response = client.get("/api/customers/nope")

    assert response.status_code == 404
    assert response.json() == {"error": "Customer not found"}
