"""Unit tests for the progress-billing calculator and value types."""

from __future__ import annotations

import os
import sys
from decimal import Decimal
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_billing.db")

import pytest

from app.backend.src.models.enums import ItemType
from app.backend.src.services.progress_billing import (
    NO_BILLING,
    Money,
    Percent,
    calculate_progress_billing,
    derive_unit_rate,
    has_value,
    to_decimal,
    to_decimal_or_none,
    to_number_or_none,
)


@pytest.mark.parametrize("amount", [0, 1000, "2500.50", None])
def test_missing_percents_yield_zero_billing(amount) -> None:  # type: ignore[no-untyped-def]
    result = calculate_progress_billing(amount, None, None)

    assert result.completed_amount == 0
    assert result.previously_invoiced_amount == 0
    assert result.new_progress_pct == 0
    assert result.this_bill == 0


def test_nothing_invoiced_bills_completed_amount() -> None:
    result = calculate_progress_billing(1000, 30, 0)

    assert result.completed_amount == Decimal("300")
    assert result.this_bill == result.completed_amount
    assert result.new_progress_pct == Decimal("30")


def test_identical_inputs_give_identical_results() -> None:
    first = calculate_progress_billing("1234.56", "47.5", "12.25")
    second = calculate_progress_billing("1234.56", "47.5", "12.25")

    assert first == second


def test_this_bill_grows_with_progress() -> None:
    bills = [calculate_progress_billing(800, pct, 10).this_bill for pct in range(0, 101, 5)]

    assert bills == sorted(bills)


def test_overbilled_item_yields_negative_new_progress() -> None:
    result = calculate_progress_billing(1000, 30, 50)

    assert result.new_progress_pct == Decimal("-20")
    assert result.this_bill == Decimal("-200")
    assert result.previously_invoiced_amount == Decimal("500")


def test_only_progress_known_leaves_new_progress_zero() -> None:
    result = calculate_progress_billing(1000, 40, None)

    assert result.completed_amount == Decimal("400")
    assert result.new_progress_pct == 0
    assert result.this_bill == 0


@pytest.mark.parametrize("item_type", [ItemType.MAIN_CATEGORY, "subcategory", "SUB_CATEGORY"])
def test_category_rows_never_bill(item_type) -> None:  # type: ignore[no-untyped-def]
    assert calculate_progress_billing(1000, 50, 10, item_type=item_type) == NO_BILLING


@pytest.mark.parametrize("bad", ["", "abc", float("nan"), float("inf"), None])
def test_unparseable_amount_counts_as_zero(bad) -> None:  # type: ignore[no-untyped-def]
    result = calculate_progress_billing(bad, 50, 10)

    assert result.completed_amount == 0
    assert result.this_bill == 0
    assert not result.this_bill.is_signed()


def test_out_of_range_percents_are_used_literally() -> None:
    result = calculate_progress_billing(100, 150, -10)

    assert result.completed_amount == Decimal("150")
    assert result.new_progress_pct == Decimal("160")


def test_storage_values_are_rounded() -> None:
    stored = calculate_progress_billing("333.33", "33.333", 0).storage_values()

    assert stored["completed_amount"] == pytest.approx(111.11)
    assert stored["new_progress_pct"] == pytest.approx(33.333)


def test_auto_rate_fills_empty_rate() -> None:
    assert derive_unit_rate(500, 10, "") == Decimal("50")
    assert derive_unit_rate(500, 10, None) == Decimal("50")


def test_auto_rate_keeps_existing_rate() -> None:
    assert derive_unit_rate(500, 10, 25) == 25


@pytest.mark.parametrize("amount, qty", [(0, 10), (500, 0), (None, 5), (-100, 2)])
def test_auto_rate_needs_positive_amount_and_qty(amount, qty) -> None:  # type: ignore[no-untyped-def]
    assert derive_unit_rate(amount, qty, None) is None


def test_auto_rate_is_idempotent() -> None:
    rate = derive_unit_rate(500, 10, None)

    assert derive_unit_rate(500, 10, rate) == rate


def test_formatted_text_is_not_a_progress_value() -> None:
    result = calculate_progress_billing("1000", "1,000", "10")

    assert result.completed_amount == 0
    assert result.new_progress_pct == 0
    assert result.previously_invoiced_amount == Decimal("100")
    assert calculate_progress_billing("$1,000", 50, 0).this_bill == 0
    assert calculate_progress_billing(" 1000 ", " 50 ", "0").this_bill == Decimal("500")


def test_coercion_helpers_accept_currency_text() -> None:
    assert to_decimal_or_none("$1,250.00") == Decimal("1250.00")
    assert to_decimal_or_none(True) is None
    assert to_decimal("n/a") == 0
    assert has_value("0")
    assert not has_value("  ")
    assert not has_value("1,000")
    assert to_number_or_none("1,000") is None
    assert to_number_or_none(" 12.5 ") == Decimal("12.5")


def test_percent_clamps_user_input() -> None:
    assert Percent.clamp("150").value == Decimal("100")
    assert Percent.clamp(-5).value == Decimal("0")
    assert Percent.clamp("") is None


def test_percent_rejects_out_of_range_values() -> None:
    with pytest.raises(ValueError):
        Percent(Decimal("101"))


def test_money_rejects_negative_amounts() -> None:
    assert Money.parse("$12.345").rounded() == Decimal("12.35")
    assert Money.parse(None) is None
    with pytest.raises(ValueError):
        Money.parse(-1)
