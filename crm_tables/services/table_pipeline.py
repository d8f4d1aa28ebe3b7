from __future__ import annotations

import math
from datetime import date, datetime
from decimal import Decimal
from functools import cmp_to_key
from typing import Any, Callable, Iterable, Mapping

from crm_tables.schemas.table import FilterCondition, SortDescriptor, TablePage

Record = Mapping[str, Any]
Accessor = Callable[[Record], Any]
Accessors = Mapping[str, Accessor]

SORT_SCOPE_GLOBAL = "global"
SORT_SCOPE_PAGE = "page"


def stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def field_value(record: Record, field: str | None, accessors: Accessors | None = None) -> Any:
    if field is None:
        return None
    getter = (accessors or {}).get(field)
    if getter is not None:
        return getter(record)
    return record.get(field)


def _condition_parts(condition: FilterCondition | Mapping[str, Any]) -> tuple[str, Any]:
    if isinstance(condition, FilterCondition):
        return condition.operator, condition.value
    return str(condition.get("operator") or ""), condition.get("value")


def matches_query(record: Record, query: str, accessors: Accessors | None = None) -> bool:
    needle = str(query or "").lower()
    if not needle:
        return True
    values = [stringify(value) for value in record.values()]
    # Accessor columns may be computed and absent from the raw record.
    for column, getter in (accessors or {}).items():
        if column not in record:
            values.append(stringify(getter(record)))
    return any(needle in value.lower() for value in values)


def evaluate_condition(raw_value: Any, operator: str, value: Any = None) -> bool:
    left = stringify(raw_value).lower()
    right = stringify(value).lower()
    if operator == "is":
        return left == right
    if operator == "isn't":
        return left != right
    if operator == "contains":
        return right in left
    if operator == "doesn't contain":
        return right not in left
    if operator == "starts with":
        return left.startswith(right)
    if operator == "ends with":
        return left.endswith(right)
    if operator == "is empty":
        return left == ""
    if operator == "is not empty":
        return left != ""
    return True


def matches_conditions(
    record: Record,
    conditions: Mapping[str, FilterCondition | Mapping[str, Any]] | None,
    accessors: Accessors | None = None,
) -> bool:
    for field, condition in (conditions or {}).items():
        operator, value = _condition_parts(condition)
        if not evaluate_condition(field_value(record, field, accessors), operator, value):
            return False
    return True


def filter_records(
    records: Iterable[Record],
    query: str = "",
    conditions: Mapping[str, FilterCondition | Mapping[str, Any]] | None = None,
    accessors: Accessors | None = None,
) -> list[Record]:
    rows = list(records)
    if query:
        rows = [row for row in rows if matches_query(row, query, accessors)]
    if conditions:
        rows = [row for row in rows if matches_conditions(row, conditions, accessors)]
    return rows


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, (float, Decimal)) and value != value)


def _rank(value: Any) -> tuple:
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return (0, value, "")
    return (1, 0, stringify(value))


def compare_values(first: Any, second: Any) -> int:
    """Order two cell values; missing values go after everything else.

    Numbers compare numerically and precede other values, which compare by
    their ``stringify`` text, so any mix of types has one consistent order.
    """
    first_missing, second_missing = _is_missing(first), _is_missing(second)
    if first_missing or second_missing:
        return int(first_missing) - int(second_missing)
    left, right = _rank(first), _rank(second)
    return -1 if left < right else 1 if left > right else 0


def sort_records(
    records: Iterable[Record],
    sort: SortDescriptor | None,
    accessors: Accessors | None = None,
    sort_keys: Accessors | None = None,
) -> list[Record]:
    rows = list(records)
    if sort is None or sort.column is None or sort.direction is None:
        return rows
    sort_key = (sort_keys or {}).get(sort.column)

    def _value(record: Record) -> Any:
        if sort_key is not None:
            return sort_key(record)
        return field_value(record, sort.column, accessors)

    keyed = [(_value(row), row) for row in rows]
    present = [pair for pair in keyed if not _is_missing(pair[0])]
    missing = [row for value, row in keyed if _is_missing(value)]
    # Missing values stay last in both directions.
    present.sort(
        key=cmp_to_key(lambda a, b: compare_values(a[0], b[0])),
        reverse=sort.direction == "descending",
    )
    return [row for _, row in present] + missing


def page_count(total: int, rows_per_page: int) -> int:
    if rows_per_page <= 0:
        return 0
    return math.ceil(total / rows_per_page)


def paginate(records: list[Record], page: int, rows_per_page: int) -> list[Record]:
    start = max(page - 1, 0) * rows_per_page
    end = start + rows_per_page
    return records[start:end]


def _run_pipeline(
    records: Iterable[Record],
    query: str,
    conditions,
    sort: SortDescriptor | None,
    page: int,
    rows_per_page: int,
    accessors: Accessors | None,
    sort_scope: str,
    sort_keys: Accessors | None,
) -> tuple[list[Record], int]:
    filtered = filter_records(records, query, conditions, accessors)
    if sort_scope == SORT_SCOPE_PAGE:
        rows = sort_records(paginate(filtered, page, rows_per_page), sort, accessors, sort_keys)
    else:
        rows = paginate(sort_records(filtered, sort, accessors, sort_keys), page, rows_per_page)
    return rows, len(filtered)


def visible_page(
    records: Iterable[Record],
    query: str = "",
    conditions=None,
    sort: SortDescriptor | None = None,
    page: int = 1,
    rows_per_page: int = 5,
    accessors: Accessors | None = None,
    sort_scope: str = SORT_SCOPE_GLOBAL,
    sort_keys: Accessors | None = None,
) -> list[Record]:
    """Return the rows shown for one page of a table.

    ``sort_scope="global"`` sorts the whole filtered set before slicing.
    ``sort_scope="page"`` slices first and only reorders the rows of the
    current page, matching the legacy dashboard tables.
    """
    rows, _ = _run_pipeline(records, query, conditions, sort, page, rows_per_page, accessors, sort_scope, sort_keys)
    return rows


def build_table_page(
    records: Iterable[Record],
    query: str = "",
    conditions=None,
    sort: SortDescriptor | None = None,
    page: int = 1,
    rows_per_page: int = 5,
    accessors: Accessors | None = None,
    sort_scope: str = SORT_SCOPE_GLOBAL,
    sort_keys: Accessors | None = None,
) -> TablePage:
    rows, total = _run_pipeline(records, query, conditions, sort, page, rows_per_page, accessors, sort_scope, sort_keys)
    pages = page_count(total, rows_per_page)
    return TablePage(
        rows=[dict(row) for row in rows],
        total=total,
        pages=pages,
        page=page,
        rows_per_page=rows_per_page,
        has_previous=page > 1,
        has_next=page < pages,
    )
