from __future__ import annotations

from typing import Any, Iterable, Mapping

from crm_tables.schemas.table import (
    VALUELESS_OPERATORS,
    FilterCondition,
    FilterDraft,
    SortDescriptor,
    TablePage,
)
from crm_tables.services.table_pipeline import (
    SORT_SCOPE_GLOBAL,
    Accessors,
    Record,
    build_table_page,
    page_count,
)


def conditions_from_drafts(drafts: Iterable[FilterDraft | Mapping[str, Any]]) -> dict[str, FilterCondition]:
    conditions: dict[str, FilterCondition] = {}
    for raw in drafts:
        draft = raw if isinstance(raw, FilterDraft) else FilterDraft.model_validate(raw)
        field = str(draft.field or "").strip()
        operator = str(draft.operator or "").strip()
        if not field or not operator:
            continue
        value = None if operator in VALUELESS_OPERATORS else draft.value
        conditions[field] = FilterCondition(operator=operator, value=value)
    return conditions


class TableState:
    """Query, filter, sort, paging and selection state for one entity table.

    Records are replaced wholesale by :meth:`replace_records`; every read
    through :meth:`view` recomputes the visible page from the current inputs.
    """

    def __init__(
        self,
        *,
        accessors: Accessors | None = None,
        sort_keys: Accessors | None = None,
        key_field: str = "key",
        rows_per_page: int = 5,
        sort: SortDescriptor | None = None,
        sort_scope: str = SORT_SCOPE_GLOBAL,
    ):
        if rows_per_page < 1:
            raise ValueError("rows_per_page must be positive")
        self.accessors = dict(accessors or {})
        self.sort_keys = dict(sort_keys or {})
        self.key_field = key_field
        self.sort_scope = sort_scope
        self._records: tuple[Record, ...] = ()
        self.query = ""
        self.conditions: dict[str, FilterCondition] = {}
        self.sort = sort or SortDescriptor()
        self.page = 1
        self.rows_per_page = rows_per_page
        self._selected: set[str] = set()

    @property
    def records(self) -> tuple[Record, ...]:
        return self._records

    def replace_records(self, records: Iterable[Record]) -> None:
        self._records = tuple(records)
        known = {str(row.get(self.key_field)) for row in self._records}
        self._selected &= known

    def set_query(self, text: str | None) -> None:
        value = str(text or "")
        if value:
            self.query = value
            self.page = 1
        else:
            self.query = ""

    def clear_query(self) -> None:
        self.query = ""
        self.page = 1

    def apply_filters(self, drafts: Iterable[FilterDraft | Mapping[str, Any]]) -> None:
        self.conditions = conditions_from_drafts(drafts)

    def set_conditions(self, conditions: Mapping[str, FilterCondition | Mapping[str, Any]]) -> None:
        self.conditions = {
            str(field).strip(): (
                condition if isinstance(condition, FilterCondition) else FilterCondition.model_validate(condition)
            )
            for field, condition in conditions.items()
            if str(field).strip()
        }

    def remove_condition(self, field: str) -> None:
        self.conditions.pop(field, None)

    def clear_filters(self) -> None:
        self.conditions = {}
        self.query = ""
        self.page = 1

    def set_sort(self, column: str | None, direction: str | None) -> None:
        self.sort = SortDescriptor(column=column, direction=direction)

    def set_rows_per_page(self, rows_per_page: int) -> None:
        if rows_per_page < 1:
            raise ValueError("rows_per_page must be positive")
        self.rows_per_page = rows_per_page
        self.page = 1

    def set_page(self, page: int) -> None:
        if page < 1:
            raise ValueError("page must be positive")
        self.page = page

    @property
    def pages(self) -> int:
        return page_count(self.view().total, self.rows_per_page)

    def next_page(self) -> None:
        if self.page < self.pages:
            self.page += 1

    def previous_page(self) -> None:
        if self.page > 1:
            self.page -= 1

    def view(self) -> TablePage:
        return build_table_page(
            self._records,
            self.query,
            self.conditions,
            self.sort,
            self.page,
            self.rows_per_page,
            accessors=self.accessors,
            sort_scope=self.sort_scope,
            sort_keys=self.sort_keys,
        )

    def selected_keys(self) -> set[str]:
        return set(self._selected)

    def toggle_row(self, key: str) -> None:
        if key in self._selected:
            self._selected.discard(key)
        else:
            self._selected.add(key)

    def select_all_on_page(self) -> None:
        keys = {str(row.get(self.key_field)) for row in self.view().rows}
        if keys and keys <= self._selected:
            self._selected -= keys
        else:
            self._selected |= keys

    def clear_selection(self) -> None:
        self._selected.clear()
