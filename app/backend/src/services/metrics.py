"""Prometheus metric definitions for billing operations."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

order_item_saves_total = Counter(
    "order_item_saves_total",
    "Total order item set replacements.",
)

order_item_save_seconds = Histogram(
    "order_item_save_seconds",
    "Time spent replacing an order's item set.",
)

invoice_mutations_total = Counter(
    "invoice_mutations_total",
    "Total invoice mutations by action.",
    labelnames=["action"],
)

billed_amount_clamps_total = Counter(
    "billed_amount_clamps_total",
    "Linked billed amounts adjusted to fit the remaining billable.",
)

__all__ = [
    "billed_amount_clamps_total",
    "invoice_mutations_total",
    "order_item_save_seconds",
    "order_item_saves_total",
]
