# tablekit/services/records_service.py

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from tablekit.engine.evaluator import filter_rows, page_count, paginate, sort_rows, validate_filters
from tablekit.engine.operators import is_operator_allowed
from tablekit.engine.serializer import deserialize_state
from tablekit.schemas.common import ActionResult
from tablekit.schemas.records import (
    BulkUpdateInput,
    CreateRecordInput,
    Record,
    RecordsPage,
    UpdateRecordInput,
)
from tablekit.utils.logger import log_info

RECORD_COLUMNS: List[str] = list(Record.model_fields)
RECORD_NOT_FOUND = "Record not found"


def _seed() -> List[Record]:
    return [
        Record(
            id="1",
            title="Getting Started with React",
            description="This is a description of the Getting Started with React",
            created_at=datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc),
            updated_at=datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc),
        ),
        Record(
            id="2",
            title="Advanced TypeScript Patterns",
            description="This is a description of the Advanced TypeScript Patterns",
            created_at=datetime(2024, 1, 16, 14, 20, tzinfo=timezone.utc),
            updated_at=datetime(2024, 1, 17, 9, 15, tzinfo=timezone.utc),
        ),
        Record(
            id="3",
            title="Building Scalable APIs",
            description="This is a description of the Building Scalable APIs",
            created_at=datetime(2024, 1, 18, 16, 45, tzinfo=timezone.utc),
            updated_at=datetime(2024, 1, 18, 16, 45, tzinfo=timezone.utc),
        ),
    ]


def _validation_message(e: ValidationError) -> str:
    first = e.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    return f"{field}: {first['msg']}" if field else first["msg"]


class RecordStore:
    """In-process record collection the table is demonstrated on."""

    def __init__(self, records: Optional[List[Record]] = None):
        self._records: List[Record] = list(records) if records is not None else _seed()
        self._next_id = len(self._records) + 1

    def all(self) -> List[Record]:
        return list(self._records)

    def add(self, title: str, description: str) -> Record:
        now = datetime.now(timezone.utc)
        record = Record(id=str(self._next_id), title=title, description=description, created_at=now, updated_at=now)
        self._next_id += 1
        self._records.append(record)
        return record

    def update(self, record_id: str, updates: Dict[str, Any]) -> Optional[Record]:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                changed = record.model_copy(update={**updates, "updated_at": datetime.now(timezone.utc)})
                self._records[index] = changed
                return changed
        return None

    def delete(self, record_ids: List[str]) -> List[Record]:
        wanted = set(record_ids)
        deleted = [r for r in self._records if r.id in wanted]
        self._records = [r for r in self._records if r.id not in wanted]
        return deleted


class RecordsService:
    """CRUD actions and the filtered/sorted/paged read path over a RecordStore."""

    def __init__(self, store: RecordStore):
        self._store = store

    def get_records(self, search_params: Mapping[str, Any]) -> RecordsPage:
        state = deserialize_state(search_params)
        error = validate_filters(state.filters, RECORD_COLUMNS)
        if error:
            log_info(f"RecordsService: rejected filters - {error}")
            return RecordsPage(error=error)
        for f in state.filters:
            if not is_operator_allowed(f.operator, f.variant):
                log_info(f"RecordsService: operator {f.operator} is not listed for {f.variant.value} filters, matching all rows")

        rows = [r.model_dump() for r in self._store.all()]
        rows = sort_rows(filter_rows(rows, state.filters), state.sorting)
        return RecordsPage(
            data=[Record(**row) for row in paginate(rows, state.pagination)],
            count=len(rows),
            page_count=page_count(len(rows), state.pagination.page_size),
        )

    def create(self, data: Dict[str, Any]) -> ActionResult:
        try:
            payload = CreateRecordInput(**data)
        except ValidationError as e:
            return ActionResult.fail(_validation_message(e))
        record = self._store.add(payload.title, payload.description)
        log_info(f"RecordsService: created record id={record.id}")
        return ActionResult.ok(record)

    def update_one(self, record_id: str, data: Dict[str, Any]) -> ActionResult:
        try:
            payload = UpdateRecordInput(
                id=record_id,
                title=data.get("title") or "",
                description=data.get("description") or "",
            )
        except ValidationError as e:
            return ActionResult.fail(_validation_message(e))
        record = self._store.update(payload.id, {"title": payload.title, "description": payload.description})
        if record is None:
            return ActionResult.fail(RECORD_NOT_FOUND)
        return ActionResult.ok(record)

    def update_many(self, record_ids: List[str], data: Dict[str, Any]) -> ActionResult:
        try:
            payload = BulkUpdateInput(ids=record_ids, updates=data)
        except ValidationError as e:
            return ActionResult.fail(_validation_message(e))
        updates = payload.updates.model_dump(exclude_none=True)
        updated = [r for r in (self._store.update(i, updates) for i in payload.ids) if r is not None]
        log_info(f"RecordsService: bulk updated {len(updated)} records")
        return ActionResult.ok(updated)

    def delete_many(self, record_ids: List[str]) -> ActionResult:
        if not record_ids:
            return ActionResult.fail("No IDs provided")
        deleted = self._store.delete(record_ids)
        log_info(f"RecordsService: deleted {len(deleted)} records")
        return ActionResult.ok(deleted, deleted_count=len(deleted))
