"""
Spreadsheet cell coercion for RegistryVerify.

Registry matrices hold strings, numbers, dates or empty values at arbitrary
positions. Every field access classifies the cell first and coerces it
explicitly instead of relying on implicit stringification.
"""

import math
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional, Sequence

import pandas as pd


class CellKind(Enum):
    ABSENT = "absent"
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"


def classify_cell(value: Any) -> CellKind:
    """Classify a raw cell value."""
    if value is None:
        return CellKind.ABSENT
    if isinstance(value, str):
        return CellKind.TEXT if value.strip() else CellKind.ABSENT
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return CellKind.ABSENT
    if isinstance(value, bool):
        return CellKind.TEXT
    if isinstance(value, (datetime, date)):
        return CellKind.DATE
    if pd.api.types.is_number(value):
        return CellKind.NUMBER
    return CellKind.TEXT


def cell_text(value: Any) -> Optional[str]:
    """
    Coerce a cell to text.

    Integral numbers lose their ".0" (Excel stores "10600" as 10600.0) and
    dates render as ISO "YYYY-MM-DD".

    Args:
        value: Raw cell value

    Returns:
        Stripped text, or None for absent cells
    """
    kind = classify_cell(value)

    if kind is CellKind.ABSENT:
        return None
    if kind is CellKind.TEXT:
        return str(value).strip()
    if kind is CellKind.DATE:
        return value.date().isoformat() if isinstance(value, datetime) else value.isoformat()

    number = float(value)
    if math.isfinite(number) and number.is_integer():
        return str(int(number))
    return str(value)


def postal_cell_text(value: Any) -> Optional[str]:
    """
    Coerce a postal code cell to text.

    Spreadsheets store postal codes as numbers and drop the leading zero
    (08001 becomes 8001), so integral numbers below 100000 are zero-padded
    to 5 digits. Other cells coerce like ``cell_text``.
    """
    if classify_cell(value) is CellKind.NUMBER:
        number = float(value)
        if math.isfinite(number) and number.is_integer() and 0 < number < 100000:
            return f"{int(number):05d}"
    return cell_text(value)


def cell_at(row: Sequence[Any], index: Optional[int]) -> Any:
    """Cell at index, or None when the index is missing or out of range."""
    if index is None or index < 0 or index >= len(row):
        return None
    return row[index]


def is_blank_row(row: Sequence[Any]) -> bool:
    """True if every cell in the row is absent."""
    return all(classify_cell(value) is CellKind.ABSENT for value in row)
