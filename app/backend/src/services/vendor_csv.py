"""CSV export and import of the vendor directory."""

from __future__ import annotations

import io
from collections.abc import Iterable
from typing import Any

import pandas as pd

from app.backend.src.models import Vendor

# CSV header -> model attribute
EXPORT_COLUMNS: dict[str, str] = {
    "VENDOR": "name",
    "EMAIL": "email",
    "PHONE": "phone",
    "CONTACT_PERSON": "contact_person",
    "ADDRESS": "street_address",
    "CITY": "city",
    "STATE": "state",
    "ZIP": "zip",
    "CATEGORY": "category",
    "STATUS": "status",
    "NOTES": "notes",
}


def vendors_to_dataframe(vendors: Iterable[Vendor]) -> pd.DataFrame:
    records = [
        {header: getattr(vendor, attribute) for header, attribute in EXPORT_COLUMNS.items()}
        for vendor in vendors
    ]
    return pd.DataFrame.from_records(records, columns=list(EXPORT_COLUMNS))


def export_csv(vendors: Iterable[Vendor]) -> str:
    """Render vendors as CSV text with the export header row."""

    buffer = io.StringIO()
    vendors_to_dataframe(vendors).to_csv(buffer, index=False)
    return buffer.getvalue()


_HEADER_ALIASES: dict[str, str] = {"VENDOR_NAME": "name", "NAME": "name"}


def _clean_frame(df: pd.DataFrame) -> pd.DataFrame:
    cleaned = df.copy()
    cleaned.columns = [str(column).strip().upper().replace(" ", "_") for column in cleaned.columns]
    return cleaned.rename(columns={**EXPORT_COLUMNS, **_HEADER_ALIASES})


def read_vendor_rows(content: bytes | str) -> list[dict[str, Any]]:
    """Parse an uploaded vendor CSV into attribute dictionaries.

    The file either carries the export header row or is a bare list of vendor
    names, one per line. Blank cells become ``None`` and rows without a name
    are dropped.

    Raises:
        ValueError: If the file holds no vendor names.
    """

    text = content.decode("utf-8-sig") if isinstance(content, bytes) else content
    if not text.strip():
        raise ValueError("CSV file is empty")

    first_line = text.lstrip().splitlines()[0].strip().strip('"').lower()
    has_header = first_line.startswith("vendor")
    frame = pd.read_csv(
        io.StringIO(text),
        dtype=str,
        header=0 if has_header else None,
        skip_blank_lines=True,
        keep_default_na=False,
    )
    if has_header:
        frame = _clean_frame(frame)
    else:
        frame = frame.iloc[:, :1].set_axis(["name"], axis=1)

    if "name" not in frame.columns:
        raise ValueError("CSV file has no VENDOR column")

    known = [column for column in EXPORT_COLUMNS.values() if column in frame.columns]
    frame = frame[known].fillna("").apply(lambda column: column.str.strip())
    frame = frame[frame["name"] != ""]
    if frame.empty:
        raise ValueError("No vendor names found in CSV file")

    rows: list[dict[str, Any]] = []
    for record in frame.to_dict(orient="records"):
        rows.append({key: (value or None) for key, value in record.items()})
    return rows


__all__ = ["EXPORT_COLUMNS", "export_csv", "read_vendor_rows", "vendors_to_dataframe"]
