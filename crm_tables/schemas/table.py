from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

Operator = Literal[
    "is",
    "isn't",
    "contains",
    "doesn't contain",
    "starts with",
    "ends with",
    "is empty",
    "is not empty",
]
Direction = Literal["ascending", "descending"]
SortScope = Literal["global", "page"]

VALUELESS_OPERATORS = {"is empty", "is not empty"}


class FilterCondition(BaseModel):
    operator: str
    value: Optional[str] = None


class FilterDraft(BaseModel):
    field: str = ""
    operator: str = ""
    value: Optional[str] = ""


class SortDescriptor(BaseModel):
    column: Optional[str] = None
    direction: Optional[Direction] = None


class PageWindow(BaseModel):
    page: int = Field(default=1, ge=1)
    rows_per_page: int = Field(default=5, ge=1)


class TableQuery(BaseModel):
    query: str = ""
    conditions: Dict[str, FilterCondition] = {}
    sort: SortDescriptor = SortDescriptor()
    window: PageWindow = PageWindow()


class TablePage(BaseModel):
    rows: List[Dict[str, Any]] = []
    total: int = 0
    pages: int = 0
    page: int = 1
    rows_per_page: int = 5
    has_previous: bool = False
    has_next: bool = False
