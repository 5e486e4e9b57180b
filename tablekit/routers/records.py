# tablekit/routers/records.py
# FastAPI router for the records collection the table renders

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import JSONResponse

from tablekit.middleware.error_handler import NotFoundError, ValidationError
from tablekit.schemas.common import ActionResult
from tablekit.schemas.records import DeleteRecordsInput, RecordsPage
from tablekit.services.records_service import RECORD_NOT_FOUND, RecordStore, RecordsService

router = APIRouter(tags=["Records"])

_store = RecordStore()


def get_records_service() -> RecordsService:
    return RecordsService(_store)


def _action_response(result: ActionResult, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    if not result.success:
        message = result.error or "Record action failed"
        if message == RECORD_NOT_FOUND:
            raise NotFoundError(message)
        raise ValidationError(message)
    return JSONResponse(
        status_code=success_status,
        content=result.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


@router.get("/records", response_model=RecordsPage)
async def list_records(request: Request, service: RecordsService = Depends(get_records_service)):
    """Filtered, sorted, paginated rows; accepts the same query keys the table writes to the URL."""
    params: Dict[str, Any] = {}
    for key, value in request.query_params.multi_items():
        params.setdefault(key, []).append(value)
    page = service.get_records(params)
    if page.error:
        raise ValidationError(page.error, details={"query": dict(request.query_params)})
    return page


@router.post("/records")
async def create_record(
    payload: Dict[str, Any] = Body(...),
    service: RecordsService = Depends(get_records_service),
):
    return _action_response(service.create(payload), status.HTTP_201_CREATED)


@router.patch("/records/{record_id}")
async def update_record(
    record_id: str,
    payload: Dict[str, Any] = Body(...),
    service: RecordsService = Depends(get_records_service),
):
    return _action_response(service.update_one(record_id, payload))


@router.patch("/records")
async def update_records(
    payload: Dict[str, Any] = Body(...),
    service: RecordsService = Depends(get_records_service),
):
    ids: List[str] = payload.get("ids") or []
    return _action_response(service.update_many(ids, payload.get("updates") or {}))


@router.delete("/records")
async def delete_records(
    payload: DeleteRecordsInput = Body(...),
    service: RecordsService = Depends(get_records_service),
):
    return _action_response(service.delete_many(payload.ids))
