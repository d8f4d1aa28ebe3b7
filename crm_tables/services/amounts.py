from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any


def parse_amount(value: Any) -> float | None:
    """Read an amount sent by the backend or typed into a form.

    Commas are digit grouping (``"1,000"``, ``"1,00,000"``), never a decimal
    point. Missing, boolean, blank and unparseable input gives ``None``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    text = str(value).strip().replace(",", "")
    if not text:
        return None
    try:
        return float(Decimal(text))
    except InvalidOperation:
        return None


def to_float(value: Any) -> float:
    parsed = parse_amount(value)
    return 0.0 if parsed is None else parsed
