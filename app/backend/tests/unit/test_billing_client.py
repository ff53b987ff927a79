"""Unit tests for the billing API client."""

from __future__ import annotations

import json
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

import httpx
import pytest

from app.backend.src.services.billing_client import ApiError, BillingApiClient


def _client(handler) -> BillingApiClient:  # type: ignore[no-untyped-def]
    transport = httpx.MockTransport(handler)
    return BillingApiClient("http://billing.test/api/", client=httpx.Client(transport=transport))


def test_get_order_items_unwraps_items() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "items": [{"id": 1}]})

    with _client(handler) as client:
        assert client.get_order_items(7) == [{"id": 1}]

    assert seen[0].method == "GET"
    assert str(seen[0].url) == "http://billing.test/api/orders/7/items"


def test_save_order_items_sends_full_set() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert request.method == "PUT"
        assert body == {"items": [{"id": None, "productService": "Paint"}]}
        return httpx.Response(200, json={"success": True, "items": [{"id": 9}]})

    client = _client(handler)

    assert client.save_order_items(3, [{"id": None, "productService": "Paint"}]) == [{"id": 9}]


def test_error_message_is_passed_through_verbatim() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "Maximum number of invoices reached (38 invoices)"})

    client = _client(handler)

    with pytest.raises(ApiError) as exc_info:
        client.create_invoice(3, {"invoiceNumber": "INV-39"})

    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "Maximum number of invoices reached (38 invoices)"


def test_error_without_message_uses_generic_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, json={"detail": "upstream"})

    client = _client(handler)

    with pytest.raises(ApiError) as exc_info:
        client.list_invoices(3)

    assert exc_info.value.message == "Request failed (502)"


def test_transport_failure_raises_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)

    with pytest.raises(ApiError) as exc_info:
        client.get_invoice_summary(3)

    assert exc_info.value.status_code == 0
    assert "connection refused" in exc_info.value.message


def test_billable_items_passes_excluded_invoice() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["excludeInvoiceId"] == "12"
        return httpx.Response(200, json={"items": []})

    client = _client(handler)

    assert client.get_billable_items(3, exclude_invoice_id=12) == []


def test_delete_invoice_accepts_empty_body() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(f"{request.method} {request.url.path}")
        return httpx.Response(204)

    client = _client(handler)
    client.delete_invoice(3, 4)

    assert calls == ["DELETE /api/orders/3/invoices/4"]


def test_unreadable_success_body_raises_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>")

    client = _client(handler)

    with pytest.raises(ApiError) as exc_info:
        client.get_order_items(3)

    assert exc_info.value.status_code == 200
    assert exc_info.value.message == "Invalid response from billing API (200)"
