"""Unit tests for invoice line item linking rules."""

from __future__ import annotations

import os
import sys
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_billing.db")

import pytest

from app.backend.src.services.invoice_linking import (
    LinkSelection,
    LinkedLineItem,
    clamp_billed_amount,
    invoiced_by_item,
    parse_links,
    reconcile_invoice_amount,
    remaining_billable,
)


def _invoice(invoice_id: int, links: list[dict], exclude: bool = False) -> SimpleNamespace:
    return SimpleNamespace(id=invoice_id, exclude=exclude, linked_line_items=links)


def test_invoiced_by_item_skips_excluded_and_current_invoice() -> None:
    invoices = [
        _invoice(1, [{"orderItemId": 10, "billedAmount": 100}]),
        _invoice(2, [{"orderItemId": 10, "billedAmount": 50}, {"orderItemId": 11, "billedAmount": 5}]),
        _invoice(3, [{"orderItemId": 10, "billedAmount": 999}], exclude=True),
    ]

    assert invoiced_by_item(invoices) == {10: Decimal("150"), 11: Decimal("5")}
    assert invoiced_by_item(invoices, exclude_invoice_id=2) == {10: Decimal("100")}


def test_parse_links_reads_legacy_amount_key_and_drops_garbage() -> None:
    links = parse_links(
        [
            {"orderItemId": "7", "thisBillAmount": "25.5"},
            {"orderItemId": None, "billedAmount": 3},
            "not-a-link",
        ]
    )

    assert links == [LinkedLineItem(order_item_id=7, billed_amount=Decimal("25.5"))]


def test_remaining_billable_never_goes_below_zero() -> None:
    assert remaining_billable(300, 100) == Decimal("200")
    assert remaining_billable(100, 300) == 0
    assert remaining_billable(-200, 0) == 0


def test_clamp_adjusts_amount_above_remaining() -> None:
    result = clamp_billed_amount(500, 200)

    assert result.amount == Decimal("200")
    assert result.clamped
    assert result.notice == "Amount exceeds remaining billable. Adjusted to $200.00"


def test_clamp_adjusts_negative_amount_to_zero() -> None:
    result = clamp_billed_amount(-10, 200)

    assert result.amount == 0
    assert result.notice == "Amount cannot be negative. Adjusted to $0.00"


def test_clamp_works_in_whole_cents() -> None:
    result = clamp_billed_amount(None, Decimal("33.0033"))
    assert result.amount == Decimal("0")

    full = clamp_billed_amount(Decimal("33.0033"), Decimal("33.0033"))
    assert full.amount == Decimal("33.00")
    assert full.notice is None

    rounded = clamp_billed_amount("12.345", 100)
    assert rounded.amount == Decimal("12.35")

    remainder = clamp_billed_amount(Decimal("33.006"), Decimal("33.006"))
    assert remainder.amount == Decimal("33.00")
    assert remainder.notice is None


def test_clamp_keeps_amount_within_limit() -> None:
    result = clamp_billed_amount("150.25", 200)

    assert result.amount == Decimal("150.25")
    assert result.notice is None
    assert not result.clamped


def test_links_override_manual_amount() -> None:
    links = [
        LinkedLineItem(order_item_id=1, billed_amount=Decimal("100")),
        LinkedLineItem(order_item_id=2, billed_amount=Decimal("25.50")),
    ]

    assert reconcile_invoice_amount(links, manual_amount=9999) == Decimal("125.50")
    assert reconcile_invoice_amount([], manual_amount="400") == Decimal("400")
    assert reconcile_invoice_amount([], manual_amount="") is None


def test_selection_defaults_to_full_remaining_and_totals() -> None:
    selection = LinkSelection({1: Decimal("300"), 2: Decimal("80")})

    assert selection.select(1) is None
    notice = selection.select(2, 100)

    assert notice is not None
    assert selection.total == Decimal("380")
    assert selection.invoice_amount(manual_amount=1) == Decimal("380")
    assert all(link.billed_amount <= Decimal("300") for link in selection.links())


def test_selection_keeps_zero_amount_links() -> None:
    selection = LinkSelection({1: Decimal("0"), 2: Decimal("40")})
    selection.select(1, 25)
    selection.set_amount(2, 15)

    assert [(link.order_item_id, link.billed_amount) for link in selection.links()] == [(1, 0), (2, 15)]
    assert selection.invoice_amount(manual_amount=500) == Decimal("15")


def test_selection_of_only_zero_amounts_overrides_manual_amount() -> None:
    selection = LinkSelection({1: Decimal("0")})
    selection.select(1)

    assert selection.invoice_amount(manual_amount=5000) == 0


def test_selection_rejects_unknown_items() -> None:
    selection = LinkSelection({1: Decimal("10")})

    with pytest.raises(ValueError):
        selection.select(99)


def test_link_record_rounds_to_cents() -> None:
    record = LinkedLineItem(order_item_id=3, billed_amount=Decimal("10.005")).to_record()

    assert record == {"orderItemId": 3, "billedAmount": 10.01}
