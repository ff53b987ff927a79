"""Rules for linking order line items to invoices.

A linked invoice bills a chosen amount against each selected item. The amount
for an item may not exceed what is still billable on it: the item's current
``this_bill`` minus everything already billed against it on the order's other
(non-excluded) invoices. Amounts above that are clamped down, not rejected,
and the caller receives a notice to show the user. While an invoice has links,
its total is the sum of the billed amounts.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from typing import Any

from .progress_billing import (
    CENTS,
    ZERO,
    quantize_money,
    to_decimal,
    to_decimal_or_none,
)


@dataclass(frozen=True)
class LinkedLineItem:
    """One ``{orderItemId, billedAmount}`` record on an invoice."""

    order_item_id: int
    billed_amount: Decimal

    def to_record(self) -> dict[str, Any]:
        return {
            "orderItemId": self.order_item_id,
            "billedAmount": float(quantize_money(self.billed_amount)),
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "LinkedLineItem | None":
        """Parse a stored link, returning ``None`` for malformed entries."""

        if not isinstance(record, Mapping):
            return None
        raw_id = record.get("orderItemId")
        try:
            order_item_id = int(raw_id)
        except (TypeError, ValueError):
            return None
        # Older records stored the amount under ``thisBillAmount``.
        amount = record.get("billedAmount", record.get("thisBillAmount"))
        return cls(order_item_id=order_item_id, billed_amount=to_decimal(amount))


def parse_links(records: Iterable[Mapping[str, Any]] | None) -> list[LinkedLineItem]:
    """Return the well-formed links from a stored ``linked_line_items`` value."""

    links: list[LinkedLineItem] = []
    for record in records or []:
        link = LinkedLineItem.from_record(record)
        if link is not None:
            links.append(link)
    return links


def invoiced_by_item(
    invoices: Iterable[Any], *, exclude_invoice_id: int | None = None
) -> dict[int, Decimal]:
    """Sum billed amounts per order item across invoices.

    Excluded invoices and the invoice identified by ``exclude_invoice_id``
    are skipped.
    """

    totals: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for invoice in invoices:
        if getattr(invoice, "exclude", False):
            continue
        if exclude_invoice_id is not None and invoice.id == exclude_invoice_id:
            continue
        for link in parse_links(getattr(invoice, "linked_line_items", None)):
            totals[link.order_item_id] += link.billed_amount
    return dict(totals)


def remaining_billable(this_bill: Any, already_invoiced: Any) -> Decimal:
    """Return how much of an item can still be billed, never below zero."""

    remaining = to_decimal(this_bill) - to_decimal(already_invoiced)
    return remaining if remaining > ZERO else ZERO


@dataclass(frozen=True)
class ClampResult:
    """Outcome of fitting a requested billed amount into its limit."""

    requested: Decimal
    amount: Decimal
    notice: str | None = None

    @property
    def clamped(self) -> bool:
        return self.amount != self.requested


def clamp_billed_amount(requested: Any, remaining: Any) -> ClampResult:
    """Clamp a requested billed amount into ``[0, remaining]``.

    Both sides are taken in whole cents, so the returned amount is exactly
    what gets stored on the invoice.
    """

    raw = to_decimal(requested)
    value = quantize_money(raw)
    # Round the limit down so a stored cent amount never exceeds what is left.
    limit = to_decimal(remaining).quantize(CENTS, rounding=ROUND_DOWN)
    if limit <= ZERO:
        limit = ZERO

    if value > limit and raw <= to_decimal(remaining):
        # Only the rounding overshot.
        return ClampResult(requested=limit, amount=limit)
    if value > limit:
        return ClampResult(
            requested=value,
            amount=limit,
            notice=f"Amount exceeds remaining billable. Adjusted to ${limit:,.2f}",
        )
    if value < ZERO:
        return ClampResult(
            requested=value,
            amount=ZERO,
            notice="Amount cannot be negative. Adjusted to $0.00",
        )
    return ClampResult(requested=value, amount=value)


def reconcile_invoice_amount(
    links: Iterable[LinkedLineItem], manual_amount: Any = None
) -> Decimal | None:
    """Return the invoice total implied by its links.

    With at least one link the total is the sum of billed amounts and the
    manual amount is ignored. Without links the manual amount stands.
    """

    link_list = list(links)
    if link_list:
        return sum((link.billed_amount for link in link_list), ZERO)
    return to_decimal_or_none(manual_amount)


class LinkSelection:
    """Selection of line items being linked to a single invoice."""

    def __init__(self, remaining: Mapping[int, Any]) -> None:
        self._remaining = {item_id: to_decimal(value) for item_id, value in remaining.items()}
        self._amounts: dict[int, Decimal] = {}

    def remaining_for(self, item_id: int) -> Decimal:
        try:
            return self._remaining[item_id]
        except KeyError:
            raise ValueError(f"Order item {item_id} is not billable") from None

    def select(self, item_id: int, amount: Any = None) -> str | None:
        """Select an item, defaulting its amount to everything still billable."""

        if amount is None:
            amount = self.remaining_for(item_id)
        return self.set_amount(item_id, amount)

    def deselect(self, item_id: int) -> None:
        self._amounts.pop(item_id, None)

    def set_amount(self, item_id: int, value: Any) -> str | None:
        """Record a billed amount, returning a notice when it was adjusted."""

        result = clamp_billed_amount(value, self.remaining_for(item_id))
        self._amounts[item_id] = result.amount
        return result.notice

    @property
    def selected_ids(self) -> list[int]:
        return list(self._amounts)

    @property
    def total(self) -> Decimal:
        return sum(self._amounts.values(), ZERO)

    def links(self) -> list[LinkedLineItem]:
        """Return the selection as links.

        Items adjusted down to zero stay linked so the invoice total still
        follows its links.
        """

        return [
            LinkedLineItem(order_item_id=item_id, billed_amount=amount)
            for item_id, amount in self._amounts.items()
        ]

    def invoice_amount(self, manual_amount: Any = None) -> Decimal | None:
        return reconcile_invoice_amount(self.links(), manual_amount)


__all__ = [
    "ClampResult",
    "LinkSelection",
    "LinkedLineItem",
    "clamp_billed_amount",
    "invoiced_by_item",
    "parse_links",
    "reconcile_invoice_amount",
    "remaining_billable",
]
