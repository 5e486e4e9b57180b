from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class Record(BaseModel):
    id: str
    title: str
    description: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CreateRecordInput(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=255)


class UpdateRecordInput(BaseModel):
    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=255)


class RecordUpdates(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1, max_length=255)


class BulkUpdateInput(BaseModel):
    ids: List[str] = Field(..., min_length=1)
    updates: RecordUpdates


class DeleteRecordsInput(BaseModel):
    ids: List[str] = Field(default_factory=list)


class RecordsPage(BaseModel):
    data: List[Record] = Field(default_factory=list)
    count: int = 0
    page_count: int = 0
    error: Optional[str] = None
