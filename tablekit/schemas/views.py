from __future__ import annotations

from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

from tablekit.engine.state import TableQueryState


class SavedView(BaseModel):
    id: str
    table_key: str = Field(..., alias="tableKey")
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    state: TableQueryState = Field(default_factory=TableQueryState)
    updated_at: datetime = Field(..., alias="updatedAt")

    class Config:
        from_attributes = True
        populate_by_name = True


class SaveViewRequest(BaseModel):
    table_key: str = Field(..., alias="tableKey")
    name: str
    description: Optional[str] = None
    state: TableQueryState = Field(default_factory=TableQueryState)
    view_id: Optional[str] = Field(None, alias="viewId")

    class Config:
        populate_by_name = True


class SummaryFilter(BaseModel):
    column: str
    value: Any = None
    operator: Optional[str] = None
    variant: Optional[str] = None


class SummarySort(BaseModel):
    column: str
    direction: Literal["asc", "desc"]


class SuggestionSummary(BaseModel):
    """What the name suggester sees about the table being saved."""
    table_key: str = Field(..., alias="tableKey")
    filters: List[SummaryFilter] = Field(default_factory=list)
    sorting: List[SummarySort] = Field(default_factory=list)
    hidden_columns: List[str] = Field(default_factory=list, alias="hiddenColumns")
    visible_columns: List[str] = Field(default_factory=list, alias="visibleColumns")
    column_order: List[str] = Field(default_factory=list, alias="columnOrder")

    class Config:
        populate_by_name = True


class ViewSuggestion(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
