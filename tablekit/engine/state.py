# tablekit/engine/state.py
# Canonical in-memory shape of a table's query state

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from tablekit.constants import DEFAULT_PAGE_SIZE
from tablekit.engine.operators import FilterOperator, FilterVariant


class RelativeDateValue(BaseModel):
    """A moving date target such as "3 days ago"; resolved on every use."""
    type: Literal["relative"] = "relative"
    amount: int = Field(..., ge=0)
    unit: Literal["days", "weeks", "months", "years"]
    direction: Literal["ago", "from_now"]


Scalar = Union[bool, int, float, str, datetime, date, None]
FilterValue = Union[RelativeDateValue, List[Any], Scalar]


class ColumnFilter(BaseModel):
    column_id: str = Field(..., alias="id", min_length=1)
    # Unknown operator tokens are kept so the evaluator can let them through.
    operator: Union[FilterOperator, str] = Field(FilterOperator.EQ, union_mode="left_to_right")
    value: FilterValue = None
    variant: FilterVariant = FilterVariant.TEXT

    class Config:
        populate_by_name = True

    @model_validator(mode="before")
    @classmethod
    def unwrap_nested_value(cls, data: Any) -> Any:
        """Accept ``{"id": ..., "value": {"operator", "value", "variant"}}`` too."""
        if isinstance(data, dict) and "operator" not in data:
            nested = data.get("value")
            if isinstance(nested, dict) and "operator" in nested:
                return {**nested, "id": data.get("id", data.get("column_id"))}
        return data


class SortSpec(BaseModel):
    column_id: str = Field(..., alias="id", min_length=1)
    descending: bool = Field(False, alias="desc")

    class Config:
        populate_by_name = True


class PaginationState(BaseModel):
    page_index: int = Field(0, alias="pageIndex", ge=0)
    page_size: int = Field(DEFAULT_PAGE_SIZE, alias="pageSize", ge=1)

    class Config:
        populate_by_name = True


class TableQueryState(BaseModel):
    """Filtering, sorting, pagination, visibility and order of one table.

    ``column_visibility`` maps column id to bool; absent means visible.
    ``column_order`` may be partial; missing ids follow in original order.
    """
    pagination: PaginationState = Field(default_factory=PaginationState)
    sorting: List[SortSpec] = Field(default_factory=list)
    filters: List[ColumnFilter] = Field(default_factory=list, alias="columnFilters")
    column_visibility: Dict[str, bool] = Field(default_factory=dict, alias="columnVisibility")
    column_order: List[str] = Field(default_factory=list, alias="columnOrder")

    class Config:
        populate_by_name = True

    def hidden_columns(self) -> List[str]:
        return [column_id for column_id, visible in self.column_visibility.items() if not visible]

    def has_customizations(self) -> bool:
        """True when there is anything worth saving as a view."""
        return bool(self.filters or self.sorting or self.column_visibility or self.column_order)

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys, as stored in saved views."""
        return self.model_dump(mode="json", by_alias=True)
