"""Progress-billing calculations for order line items.

Percent inputs are whole numbers (``50`` means 50 %) and are divided by 100
before use, mirroring the spreadsheet template the billing tables come from:

- completed amount = % progress overall x amount
- previously invoiced amount = amount x % previously invoiced
- % new progress = % progress overall - % previously invoiced
- this bill = % new progress x amount

The calculation is pure and total. Missing or non-numeric inputs degrade to
zero, category rows never carry money, and out-of-range percents are used
literally. A previously-invoiced percent above the overall progress yields a
negative new progress and a negative bill; that result is passed through.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from app.backend.src.models.enums import ItemType

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENTS = Decimal("0.01")
PERCENT_PLACES = Decimal("0.0001")

_FORMATTING_CHARACTERS = str.maketrans("", "", "$,* ")


def to_decimal_or_none(value: Any) -> Decimal | None:
    """Return ``value`` as a finite :class:`~decimal.Decimal` or ``None``.

    ``None``, empty strings, booleans, NaN and infinities are treated as
    missing. Strings may carry currency formatting (``"$1,250.00"``).
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return Decimal(str(value))
    if isinstance(value, str):
        cleaned = value.translate(_FORMATTING_CHARACTERS)
        if not cleaned:
            return None
        try:
            parsed = Decimal(cleaned)
        except InvalidOperation:
            return None
        return parsed if parsed.is_finite() else None
    return None


def to_number_or_none(value: Any) -> Decimal | None:
    """Strictly parse a calculator input.

    Unlike :func:`to_decimal_or_none` no currency formatting is stripped, so
    ``"1,000"`` or ``"$5"`` count as missing. Surrounding whitespace is
    ignored.
    """

    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return None
        try:
            parsed = Decimal(cleaned)
        except InvalidOperation:
            return None
        return parsed if parsed.is_finite() else None
    return to_decimal_or_none(value)


def to_decimal(value: Any) -> Decimal:
    """Return ``value`` as a Decimal, falling back to zero."""

    parsed = to_decimal_or_none(value)
    return ZERO if parsed is None else parsed


def has_value(value: Any) -> bool:
    """Return ``True`` when ``value`` is present and a plain number."""

    return to_number_or_none(value) is not None


def _unsigned_zero(value: Decimal) -> Decimal:
    # Decimal keeps the sign of zero (0 * -1 == Decimal("-0")).
    return value if value else ZERO


def quantize_money(value: Decimal) -> Decimal:
    return _unsigned_zero(value.quantize(CENTS, rounding=ROUND_HALF_UP))


def quantize_percent(value: Decimal) -> Decimal:
    return _unsigned_zero(value.quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class Percent:
    """A whole-number percentage constrained to ``[0, 100]``."""

    value: Decimal

    def __post_init__(self) -> None:
        parsed = to_decimal_or_none(self.value)
        if parsed is None:
            raise ValueError(f"Invalid percentage: {self.value!r}")
        if parsed < ZERO or parsed > HUNDRED:
            raise ValueError("Percentage must be between 0 and 100")
        object.__setattr__(self, "value", _unsigned_zero(parsed))

    @classmethod
    def clamp(cls, raw: Any) -> "Percent | None":
        """Build a percentage from user input, clamping it into range.

        Returns ``None`` when the input is empty or not numeric.
        """

        parsed = to_decimal_or_none(raw)
        if parsed is None:
            return None
        return cls(min(max(parsed, ZERO), HUNDRED))

    @property
    def fraction(self) -> Decimal:
        return self.value / HUNDRED

    def __float__(self) -> float:
        return float(self.value)


@dataclass(frozen=True)
class Money:
    """A non-negative currency amount."""

    amount: Decimal

    def __post_init__(self) -> None:
        parsed = to_decimal_or_none(self.amount)
        if parsed is None:
            raise ValueError(f"Invalid amount: {self.amount!r}")
        if parsed < ZERO:
            raise ValueError("Amount must not be negative")
        object.__setattr__(self, "amount", _unsigned_zero(parsed))

    @classmethod
    def parse(cls, raw: Any) -> "Money | None":
        """Return ``None`` for empty input, a :class:`Money` otherwise.

        Raises:
            ValueError: If the amount is negative.
        """

        parsed = to_decimal_or_none(raw)
        if parsed is None:
            return None
        return cls(parsed)

    def rounded(self) -> Decimal:
        return quantize_money(self.amount)

    def __float__(self) -> float:
        return float(self.amount)


@dataclass(frozen=True)
class ProgressBilling:
    """Derived billing values for one line item."""

    completed_amount: Decimal = ZERO
    previously_invoiced_amount: Decimal = ZERO
    new_progress_pct: Decimal = ZERO
    this_bill: Decimal = ZERO

    def as_floats(self) -> dict[str, float]:
        return {
            "completed_amount": float(self.completed_amount),
            "previously_invoiced_amount": float(self.previously_invoiced_amount),
            "new_progress_pct": float(self.new_progress_pct),
            "this_bill": float(self.this_bill),
        }

    def storage_values(self) -> dict[str, float]:
        """Return column values rounded to their storage precision."""

        return {
            "completed_amount": float(quantize_money(self.completed_amount)),
            "previously_invoiced_amount": float(
                quantize_money(self.previously_invoiced_amount)
            ),
            "new_progress_pct": float(quantize_percent(self.new_progress_pct)),
            "this_bill": float(quantize_money(self.this_bill)),
        }


NO_BILLING = ProgressBilling()


def _coerce_item_type(item_type: Any) -> ItemType | None:
    if isinstance(item_type, ItemType):
        return item_type
    try:
        return ItemType(item_type)
    except ValueError:
        return None


def calculate_progress_billing(
    amount: Any,
    progress_overall_pct: Any,
    previously_invoiced_pct: Any,
    *,
    item_type: ItemType | str = ItemType.ITEM,
) -> ProgressBilling:
    """Compute the four derived billing fields for a line item."""

    if _coerce_item_type(item_type) is not ItemType.ITEM:
        return NO_BILLING

    base = to_number_or_none(amount) or ZERO
    progress = to_number_or_none(progress_overall_pct)
    invoiced = to_number_or_none(previously_invoiced_pct)

    completed = (progress / HUNDRED) * base if progress is not None else ZERO
    previously_invoiced = base * (invoiced / HUNDRED) if invoiced is not None else ZERO
    if progress is not None and invoiced is not None:
        new_progress = progress - invoiced
    else:
        new_progress = ZERO
    this_bill = (new_progress / HUNDRED) * base

    return ProgressBilling(
        completed_amount=_unsigned_zero(completed),
        previously_invoiced_amount=_unsigned_zero(previously_invoiced),
        new_progress_pct=_unsigned_zero(new_progress),
        this_bill=_unsigned_zero(this_bill),
    )


def calculate_for_item(item: Any) -> ProgressBilling:
    """Run :func:`calculate_progress_billing` on an item-like object."""

    return calculate_progress_billing(
        getattr(item, "amount", None),
        getattr(item, "progress_overall_pct", None),
        getattr(item, "previously_invoiced_pct", None),
        item_type=getattr(item, "item_type", ItemType.ITEM),
    )


def derive_unit_rate(amount: Any, qty: Any, rate: Any) -> Any:
    """Return the unit rate for a line item.

    An empty ``rate`` is derived as ``amount / qty`` when both are positive.
    A rate that already holds a value is returned unchanged.
    """

    if has_value(rate):
        return rate

    base = to_decimal(amount)
    quantity = to_decimal(qty)
    if base > ZERO and quantity > ZERO:
        return base / quantity
    return rate


__all__ = [
    "HUNDRED",
    "Money",
    "NO_BILLING",
    "Percent",
    "ProgressBilling",
    "ZERO",
    "calculate_for_item",
    "calculate_progress_billing",
    "derive_unit_rate",
    "has_value",
    "quantize_money",
    "quantize_percent",
    "to_decimal",
    "to_decimal_or_none",
    "to_number_or_none",
]
