from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from crm_tables.services.amounts import to_float


def _status_key(record: Mapping[str, Any], status_field: str) -> str:
    return str(record.get(status_field) or "").strip()


def count_by_status(
    records: Iterable[Mapping[str, Any]],
    status_field: str = "status",
    statuses: Sequence[str] | None = None,
) -> dict[str, int]:
    by_status: dict[str, int] = {status: 0 for status in statuses or ()}
    for record in records:
        key = _status_key(record, status_field)
        by_status[key] = by_status.get(key, 0) + 1
    return by_status


def sum_by_status(
    records: Iterable[Mapping[str, Any]],
    amount_field: str,
    status_field: str = "status",
    statuses: Sequence[str] | None = None,
) -> dict[str, float]:
    totals: dict[str, float] = {status: 0.0 for status in statuses or ()}
    for record in records:
        key = _status_key(record, status_field)
        totals[key] = totals.get(key, 0.0) + to_float(record.get(amount_field))
    return totals
