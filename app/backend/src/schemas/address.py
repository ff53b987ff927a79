"""Shared address schemas."""

from __future__ import annotations

import re

from pydantic import Field

from .base import CamelModel

STATE_PATTERN = re.compile(r"^[A-Z]{2}$")
ZIP_PATTERN = re.compile(r"^[0-9]{5}(?:[-\s]?[0-9]{4})?$")


class StreetAddress(CamelModel):
    """A normalized street address."""

    street_address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    zip: str = Field(min_length=1)


class StreetAddressInput(CamelModel):
    """User-submitted street address payload."""

    street_address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    zip: str = Field(min_length=1)

    def normalized(self) -> StreetAddress:
        """Return a :class:`StreetAddress` with trimmed, validated values."""

        state = self.state.strip().upper()
        zip_code = self.zip.strip()

        if STATE_PATTERN.match(state) is None:
            raise ValueError("State must be a two-letter abbreviation.")

        if ZIP_PATTERN.match(zip_code) is None:
            raise ValueError("Enter a valid ZIP code (##### or #####-####).")

        return StreetAddress(
            street_address=self.street_address.strip(),
            city=self.city.strip(),
            state=state,
            zip=zip_code,
        )


def build_street_address(
    street_address: str | None,
    city: str | None,
    state: str | None,
    zip_code: str | None,
) -> StreetAddress | None:
    """Create a :class:`StreetAddress` if all components are present."""

    parts = [street_address, city, state, zip_code]
    if any(part is None or not str(part).strip() for part in parts):
        return None

    return StreetAddress(
        street_address=str(street_address).strip(),
        city=str(city).strip(),
        state=str(state).strip(),
        zip=str(zip_code).strip(),
    )


__all__ = [
    "StreetAddress",
    "StreetAddressInput",
    "build_street_address",
]
