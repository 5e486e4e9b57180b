# tablekit/routers/views.py
# FastAPI router for saved table views and view-name suggestions

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from tablekit.constants import SUGGESTION_CACHE_PREFIX
from tablekit.middleware.error_handler import DatabaseError, NotFoundError, ValidationError
from tablekit.repositories.saved_view_repository import SavedViewRepository
from tablekit.schemas.common import ActionResult
from tablekit.schemas.views import SaveViewRequest, SuggestionSummary, ViewSuggestion
from tablekit.services.saved_views_service import (
    STORAGE_FAILURES,
    VIEW_NOT_FOUND,
    SavedViewActions,
    SavedViewStore,
)
from tablekit.services.suggestions import HeuristicViewSuggester, ViewSuggester
from tablekit.utils.cache import Cache
from tablekit.utils.logger import log_exception

router = APIRouter(tags=["Saved views"])


def get_repository() -> SavedViewStore:
    return SavedViewRepository()


def get_actions(repository: SavedViewStore = Depends(get_repository)) -> SavedViewActions:
    return SavedViewActions(repository)


def get_suggester() -> ViewSuggester:
    return HeuristicViewSuggester()


def get_cache() -> Cache:
    return Cache()


def _result_response(result: ActionResult, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    if not result.success:
        message = result.error or "Saved view action failed"
        if message == VIEW_NOT_FOUND:
            raise NotFoundError(message)
        if message in STORAGE_FAILURES:
            raise DatabaseError(message)
        raise ValidationError(message)
    return JSONResponse(
        status_code=success_status,
        content=result.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


@router.get("/views/{table_key}")
async def list_views(table_key: str, actions: SavedViewActions = Depends(get_actions)):
    """Saved views for one table, most recently updated first."""
    return _result_response(await actions.list_saved_views(table_key))


@router.post("/views")
async def save_view(payload: SaveViewRequest, actions: SavedViewActions = Depends(get_actions)):
    """Create a view, or update it in place when viewId is given."""
    success_status = status.HTTP_200_OK if payload.view_id else status.HTTP_201_CREATED
    return _result_response(await actions.save_view(payload), success_status)


@router.delete("/views/{view_id}")
async def delete_view(view_id: str, actions: SavedViewActions = Depends(get_actions)):
    return _result_response(await actions.delete_view(view_id))


@router.post("/views/suggest", response_model=ViewSuggestion)
async def suggest_view(
    summary: SuggestionSummary,
    suggester: ViewSuggester = Depends(get_suggester),
    cache: Cache = Depends(get_cache),
) -> ViewSuggestion:
    """Draft a name/description for the summarized table state.

    Results are cached by summary content; an unreachable cache only
    costs a recomputation.
    """
    key = Cache.build_key(SUGGESTION_CACHE_PREFIX, summary.model_dump(mode="json", by_alias=True))
    try:
        cached = await cache.get_json(key)
    except Exception as e:
        log_exception(e, "suggest_view: cache read failed")
        cached = None
    if cached is not None:
        return ViewSuggestion(**cached)

    suggestion = await suggester.suggest(summary)
    try:
        await cache.set_json(key, suggestion.model_dump())
    except Exception as e:
        log_exception(e, "suggest_view: cache write failed")
    return suggestion
