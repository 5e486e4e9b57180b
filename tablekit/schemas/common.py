from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class ActionResult(BaseModel):
    """Outcome of a CRUD or saved-view action; failures never raise."""
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    deleted_count: Optional[int] = Field(None, alias="deletedCount")

    class Config:
        populate_by_name = True

    @classmethod
    def ok(cls, data: Any = None, **kwargs: Any) -> "ActionResult":
        return cls(success=True, data=data, **kwargs)

    @classmethod
    def fail(cls, error: str) -> "ActionResult":
        return cls(success=False, error=error)
