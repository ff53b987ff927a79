"""Integration-flavored smoke tests for the FastAPI app."""

from __future__ import annotations

import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

import pytest
from fastapi.testclient import TestClient

# Configure environment before application imports
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_billing.db")

from app.backend.src.db import get_engine
from app.backend.src.db.base import Base
from app.backend.src.main import app


@pytest.fixture(scope="module", autouse=True)
def setup_database() -> None:
    engine = get_engine()
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


def test_health_endpoints(client: TestClient) -> None:
    assert client.get("/api/health/live").json() == {"status": "live"}
    assert client.get("/api/health/ready").json() == {"status": "ready", "database": "ok"}


def test_unknown_route_uses_error_body(client: TestClient) -> None:
    response = client.get("/api/nowhere")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_contract_to_invoice_flow(client: TestClient) -> None:
    contract = {
        "customer": {
            "dbxCustomerId": "C-900",
            "clientName": "Summit Lofts",
            "address": {"streetAddress": "9 Summit Ave", "city": "Ogden", "state": "UT", "zip": "84401"},
        },
        "order": {"orderNo": "SO-900", "orderGrandTotal": 2000},
        "items": [
            {"type": "maincategory", "productService": "Decks"},
            {"productService": "Deck boards", "amount": 1200, "progressOverallPct": 50, "previouslyInvoicedPct": 0},
            {"productService": "Railings", "amount": 800, "progressOverallPct": 25, "previouslyInvoicedPct": 0},
        ],
    }
    order = client.post("/api/contracts", json=contract).json()["order"]
    order_url = f"/api/orders/{order['id']}"
    boards, railings = [
        item["id"] for item in client.get(f"{order_url}/items").json()["items"] if item["type"] == "item"
    ]

    created = client.post(
        f"{order_url}/invoices",
        json={
            "invoiceNumber": "INV-900",
            "paymentsReceived": 500,
            "linkedLineItems": [
                {"orderItemId": boards, "amount": 600},
                {"orderItemId": railings, "amount": 1000},
            ],
        },
    )
    assert created.status_code == 201
    assert created.json()["invoice"]["invoiceAmount"] == 800
    assert len(created.json()["notices"]) == 1

    summary = client.get(f"{order_url}/invoice-summary").json()["summary"]
    assert summary == {
        "originalInvoice": 2000,
        "totalCompleted": 800,
        "balanceRemaining": 1200,
        "percentCompleted": 40,
        "totalInvoiced": 800,
        "lessPaymentsReceived": -500,
        "totalDueUponReceipt": 300,
    }

    metrics = client.get("/api/metrics")
    assert metrics.status_code == 200
    assert "invoice_mutations_total" in metrics.text
    assert "billed_amount_clamps_total" in metrics.text
