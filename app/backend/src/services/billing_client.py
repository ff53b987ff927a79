"""HTTP client for the billing API.

Errors are surfaced as :class:`ApiError` carrying the API's ``error`` message
verbatim. Requests are never retried.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from app.backend.src.core.config import get_settings

LOGGER = structlog.get_logger(__name__)

GENERIC_ERROR = "Request failed"


class ApiError(Exception):
    """A non-successful response from the billing API."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or f"{GENERIC_ERROR} ({response.status_code})"
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return f"{GENERIC_ERROR} ({response.status_code})"


class BillingApiClient:
    """Thin wrapper over the order, item and invoice endpoints."""

    def __init__(self, base_url: str | None = None, client: httpx.Client | None = None) -> None:
        self.base_url = (base_url or get_settings().billing_api_url).rstrip("/")
        self._client = client or httpx.Client()
        self._owns_client = client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "BillingApiClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            LOGGER.warning("billing_api_unreachable", method=method, url=url, error=str(exc))
            raise ApiError(0, str(exc) or GENERIC_ERROR) from exc

        if response.is_error:
            message = _error_message(response)
            LOGGER.info(
                "billing_api_error",
                method=method,
                url=url,
                status_code=response.status_code,
                message=message,
            )
            raise ApiError(response.status_code, message)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            LOGGER.warning(
                "billing_api_invalid_body",
                method=method,
                url=url,
                status_code=response.status_code,
            )
            raise ApiError(
                response.status_code,
                f"Invalid response from billing API ({response.status_code})",
            ) from exc

    def get_order_items(self, order_id: int) -> list[dict[str, Any]]:
        return self._request("GET", f"/orders/{order_id}/items").get("items", [])

    def save_order_items(self, order_id: int, items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        body = self._request("PUT", f"/orders/{order_id}/items", json={"items": items})
        return body.get("items", [])

    def list_invoices(self, order_id: int) -> list[dict[str, Any]]:
        return self._request("GET", f"/orders/{order_id}/invoices").get("invoices", [])

    def create_invoice(self, order_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", f"/orders/{order_id}/invoices", json=payload)

    def update_invoice(
        self, order_id: int, invoice_id: int, payload: dict[str, Any]
    ) -> dict[str, Any]:
        return self._request(
            "PATCH", f"/orders/{order_id}/invoices/{invoice_id}", json=payload
        )

    def delete_invoice(self, order_id: int, invoice_id: int) -> None:
        self._request("DELETE", f"/orders/{order_id}/invoices/{invoice_id}")

    def get_billable_items(
        self, order_id: int, exclude_invoice_id: int | None = None
    ) -> list[dict[str, Any]]:
        params = {"excludeInvoiceId": exclude_invoice_id} if exclude_invoice_id else None
        body = self._request("GET", f"/orders/{order_id}/billable-items", params=params)
        return body.get("items", [])

    def get_invoice_summary(self, order_id: int) -> dict[str, Any]:
        return self._request("GET", f"/orders/{order_id}/invoice-summary").get("summary", {})


__all__ = ["ApiError", "BillingApiClient"]
