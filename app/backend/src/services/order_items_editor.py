"""Client-side edit session for an order's items table.

Rows are kept as wire-format dictionaries. Percent cells are clamped to
``[0, 100]`` as they are entered and an empty rate is derived from amount and
quantity. Derived billing columns are never edited; :meth:`OrderItemsEditor.rows`
computes them on the fly with the same calculator the server uses.
"""

from __future__ import annotations

import copy
from typing import Any

import structlog

from app.backend.src.models.enums import ItemType

from .billing_client import ApiError, BillingApiClient
from .progress_billing import (
    Percent,
    calculate_progress_billing,
    derive_unit_rate,
    to_decimal_or_none,
)

LOGGER = structlog.get_logger(__name__)

PERCENT_FIELDS = frozenset({"progressOverallPct", "previouslyInvoicedPct", "vendorPercentage"})
NUMERIC_FIELDS = frozenset({"qty", "rate", "amount"})
TEXT_FIELDS = frozenset({"productService", "mainCategory", "subCategory"})
EDITABLE_FIELDS = PERCENT_FIELDS | NUMERIC_FIELDS | TEXT_FIELDS | {"type", "vendorId"}
DERIVED_FIELDS = ("completedAmount", "previouslyInvoicedAmount", "newProgressPct", "thisBill")


def _number(value: Any) -> float | None:
    parsed = to_decimal_or_none(value)
    return float(parsed) if parsed is not None else None


class OrderItemsEditor:
    """Holds the local state of one order's items between loads and saves.

    Rows added locally get negative temporary ids until they are saved.
    """

    def __init__(self, client: BillingApiClient, order_id: int) -> None:
        self.client = client
        self.order_id = order_id
        self.editing = False
        self.last_error: str | None = None
        self._rows: list[dict[str, Any]] = []
        self._next_temp_id = -1

    def load(self) -> list[dict[str, Any]]:
        """Replace local state with the server's canonical items."""

        self._rows = [
            {key: value for key, value in row.items() if key not in DERIVED_FIELDS}
            for row in self.client.get_order_items(self.order_id)
        ]
        self.editing = False
        return self.rows()

    def _find(self, item_id: int) -> dict[str, Any]:
        for row in self._rows:
            if row.get("id") == item_id:
                return row
        raise KeyError(f"Row {item_id} not found")

    def _index(self, item_id: int) -> int:
        return self._rows.index(self._find(item_id))

    def set_cell(self, item_id: int, field: str, value: Any) -> Any:
        """Edit one cell and return the value actually stored."""

        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Column {field!r} is not editable")

        row = self._find(item_id)
        if field in PERCENT_FIELDS:
            percent = Percent.clamp(value)
            stored: Any = float(percent) if percent is not None else None
        elif field in NUMERIC_FIELDS:
            stored = _number(value)
        elif field == "type":
            stored = ItemType(value).value
        elif field == "vendorId":
            stored = int(value) if value not in (None, "") else None
        else:
            stored = "" if value is None else str(value)

        row[field] = stored
        if field in ("amount", "qty"):
            rate = derive_unit_rate(row.get("amount"), row.get("qty"), row.get("rate"))
            row["rate"] = _number(rate)
        self.editing = True
        return stored

    def rows(self) -> list[dict[str, Any]]:
        """Return the rows with derived billing columns filled in."""

        result: list[dict[str, Any]] = []
        for index, row in enumerate(self._rows):
            view = dict(row, rowIndex=index)
            item_type = row.get("type", ItemType.ITEM.value)
            if ItemType(item_type) is ItemType.ITEM:
                billing = calculate_progress_billing(
                    row.get("amount"),
                    row.get("progressOverallPct"),
                    row.get("previouslyInvoicedPct"),
                )
                view.update(
                    completedAmount=float(billing.completed_amount),
                    previouslyInvoicedAmount=float(billing.previously_invoiced_amount),
                    newProgressPct=float(billing.new_progress_pct),
                    thisBill=float(billing.this_bill),
                )
            else:
                view.update(dict.fromkeys(DERIVED_FIELDS))
            result.append(view)
        return result

    def add_row(
        self,
        item_type: ItemType | str = ItemType.ITEM,
        *,
        position: int | None = None,
        **values: Any,
    ) -> int:
        """Insert a blank row and return its temporary id."""

        temp_id = self._next_temp_id
        self._next_temp_id -= 1
        row: dict[str, Any] = {
            "id": temp_id,
            "type": ItemType(item_type).value,
            "productService": "",
        }
        if position is None:
            self._rows.append(row)
        else:
            self._rows.insert(position, row)
        for field, value in values.items():
            self.set_cell(temp_id, field, value)
        self.editing = True
        return temp_id

    def delete_row(self, item_id: int) -> None:
        del self._rows[self._index(item_id)]
        self.editing = True

    def move_row(self, item_id: int, new_index: int) -> None:
        row = self._rows.pop(self._index(item_id))
        self._rows.insert(max(0, min(new_index, len(self._rows))), row)
        self.editing = True

    def _payload(self) -> list[dict[str, Any]]:
        payload = []
        for row in copy.deepcopy(self._rows):
            if isinstance(row.get("id"), int) and row["id"] < 0:
                row["id"] = None
            row.pop("rowIndex", None)
            payload.append(row)
        return payload

    def save(self) -> list[dict[str, Any]]:
        """Send the full item set, then reload the canonical state.

        On failure the local rows are kept as they were, ``last_error`` holds
        the API's message and the :class:`ApiError` is re-raised.
        """

        try:
            self.client.save_order_items(self.order_id, self._payload())
            rows = self.load()
        except ApiError as exc:
            self.last_error = exc.message
            LOGGER.warning(
                "order_items_save_failed",
                order_id=self.order_id,
                status_code=exc.status_code,
                message=exc.message,
            )
            raise
        self.last_error = None
        return rows


__all__ = ["OrderItemsEditor"]
