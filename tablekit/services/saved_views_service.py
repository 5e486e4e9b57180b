# tablekit/services/saved_views_service.py

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError

from tablekit import config
from tablekit.engine.session import TableSession
from tablekit.engine.state import TableQueryState
from tablekit.observability.metrics import SAVED_VIEW_OPERATIONS
from tablekit.schemas.common import ActionResult
from tablekit.schemas.views import SavedView, SaveViewRequest
from tablekit.services.suggestions import (
    SuggestionCoordinator,
    ViewDraft,
    ViewSuggester,
    build_suggestion_summary,
)
from tablekit.utils.logger import log_exception, log_info

VIEW_NOT_FOUND = "View not found"
NAME_REQUIRED = "Give your view a name before saving."
LOAD_FAILED = "Failed to load saved views."
SAVE_FAILED = "Failed to save view."
DELETE_FAILED = "Failed to delete view."
# Store outages, as opposed to bad input
STORAGE_FAILURES = frozenset({LOAD_FAILED, SAVE_FAILED, DELETE_FAILED})


class SavedViewStore(Protocol):
    async def list_views(self, table_key: str) -> List[Dict[str, Any]]: ...

    async def create(self, table_key: str, name: str, description: Optional[str], state: Dict[str, Any]) -> Dict[str, Any]: ...

    async def update(self, view_id: str, table_key: str, name: str, description: Optional[str], state: Dict[str, Any]) -> Optional[Dict[str, Any]]: ...

    async def delete(self, view_id: str) -> bool: ...


def _to_view(row: Dict[str, Any]) -> SavedView:
    # Stored state that no longer validates degrades to an empty state.
    try:
        state = TableQueryState.model_validate(row.get("state") or {})
    except ValidationError as e:
        log_info(f"SavedViewActions: resetting malformed state of view {row.get('id')} - {e.error_count()} errors")
        state = TableQueryState()
    return SavedView(
        id=row["id"],
        table_key=row["table_key"],
        name=row["name"],
        description=row.get("description"),
        state=state,
        updated_at=row["updated_at"],
    )


class SavedViewActions:
    """Saved-view persistence contract: list, save (create or update), delete."""

    def __init__(self, repository: SavedViewStore):
        self._repo = repository

    async def list_saved_views(self, table_key: str) -> ActionResult:
        if not table_key:
            return ActionResult.fail("A table key is required")
        try:
            rows = await self._repo.list_views(table_key)
        except Exception as e:
            log_exception(e, "SavedViewActions.list_saved_views")
            SAVED_VIEW_OPERATIONS.labels("list", "error").inc()
            return ActionResult.fail(LOAD_FAILED)
        SAVED_VIEW_OPERATIONS.labels("list", "ok").inc()
        return ActionResult.ok([_to_view(row) for row in rows])

    async def save_view(self, request: SaveViewRequest) -> ActionResult:
        name = request.name.strip()
        if not name:
            return ActionResult.fail(NAME_REQUIRED)
        if not request.table_key:
            return ActionResult.fail("A table key is required")
        description = (request.description or "").strip() or None
        state = request.state.to_wire()

        try:
            if request.view_id:
                row = await self._repo.update(request.view_id, request.table_key, name, description, state)
            else:
                row = await self._repo.create(request.table_key, name, description, state)
        except Exception as e:
            log_exception(e, "SavedViewActions.save_view")
            SAVED_VIEW_OPERATIONS.labels("save", "error").inc()
            return ActionResult.fail(SAVE_FAILED)

        if row is None:
            SAVED_VIEW_OPERATIONS.labels("save", "not_found").inc()
            return ActionResult.fail(VIEW_NOT_FOUND)
        SAVED_VIEW_OPERATIONS.labels("save", "ok").inc()
        log_info(f"SavedViewActions: saved view id={row['id']} table={request.table_key}")
        return ActionResult.ok(_to_view(row))

    async def delete_view(self, view_id: str) -> ActionResult:
        try:
            deleted = await self._repo.delete(view_id)
        except Exception as e:
            log_exception(e, "SavedViewActions.delete_view")
            SAVED_VIEW_OPERATIONS.labels("delete", "error").inc()
            return ActionResult.fail(DELETE_FAILED)
        if not deleted:
            SAVED_VIEW_OPERATIONS.labels("delete", "not_found").inc()
            return ActionResult.fail(VIEW_NOT_FOUND)
        SAVED_VIEW_OPERATIONS.labels("delete", "ok").inc()
        return ActionResult.ok()


class SavedViewManager:
    """Client-side list of saved views for one table, plus the save dialog.

    The list is loaded wholesale and then patched locally on save/delete
    instead of being re-fetched. Nothing here retries: a failed call returns
    its ActionResult and the caller decides whether to try again.
    """

    def __init__(
        self,
        actions: SavedViewActions,
        table_key: str,
        suggester: Optional[ViewSuggester] = None,
        debounce_seconds: Optional[float] = None,
    ):
        self._actions = actions
        self.table_key = table_key
        self.views: List[SavedView] = []
        self.selected_view_id: Optional[str] = None
        self.is_loading = False
        self.draft: Optional[ViewDraft] = None
        self._load_generation = 0
        self._closed = False
        if debounce_seconds is None:
            debounce_seconds = config.SUGGESTION_DEBOUNCE_SECONDS
        self._suggestions = SuggestionCoordinator(suggester, debounce_seconds) if suggester else None

    @property
    def selected_view(self) -> Optional[SavedView]:
        return next((v for v in self.views if v.id == self.selected_view_id), None)

    @property
    def suggestions(self) -> Optional[SuggestionCoordinator]:
        return self._suggestions

    # --- list / save / delete ----------------------------------------------

    async def load(self) -> ActionResult:
        """Replace the cached list. A response that lands after close() or
        after a newer load() started is dropped."""
        self._load_generation += 1
        generation = self._load_generation
        self.is_loading = True
        self.selected_view_id = None

        result = await self._actions.list_saved_views(self.table_key)

        if self._closed or generation != self._load_generation:
            return result
        if result.success and result.data is not None:
            self.views = list(result.data)
        self.is_loading = False
        return result

    def close(self) -> None:
        """Stop accepting async results (component unmount)."""
        self._closed = True
        self.close_save_dialog()

    async def save(
        self,
        name: str,
        state: TableQueryState,
        description: Optional[str] = None,
        view_id: Optional[str] = None,
    ) -> ActionResult:
        if not name.strip():
            return ActionResult.fail(NAME_REQUIRED)

        result = await self._actions.save_view(
            SaveViewRequest(
                table_key=self.table_key,
                name=name,
                description=description,
                state=state,
                view_id=view_id,
            )
        )
        if not result.success or result.data is None or self._closed:
            return result

        saved: SavedView = result.data
        others = [v for v in self.views if v.id != saved.id]
        self.views = sorted([saved, *others], key=lambda v: v.updated_at, reverse=True)
        self.selected_view_id = saved.id
        return result

    async def delete(self, view_id: str) -> ActionResult:
        result = await self._actions.delete_view(view_id)
        if not result.success or self._closed:
            return result
        self.views = [v for v in self.views if v.id != view_id]
        if self.selected_view_id == view_id:
            self.selected_view_id = None
        return result

    def reorder(self, active_id: str, over_id: str) -> None:
        """Move one view onto another's position (local only)."""
        ids = [v.id for v in self.views]
        if active_id == over_id or active_id not in ids or over_id not in ids:
            return
        view = self.views.pop(ids.index(active_id))
        self.views.insert(ids.index(over_id), view)

    # --- applying ------------------------------------------------------------

    def apply(self, view: SavedView, session: TableSession) -> None:
        session.apply_state(view.state)
        self.selected_view_id = view.id
        log_info(f"SavedViewManager: applied view id={view.id} table={self.table_key}")

    def reset(self, session: TableSession) -> None:
        session.reset()
        self.selected_view_id = None

    # --- save dialog ---------------------------------------------------------

    def open_save_dialog(self, session: TableSession) -> ViewDraft:
        selected = self.selected_view
        if selected is not None:
            draft = ViewDraft(mode="edit", name=selected.name, description=selected.description or "")
        else:
            draft = ViewDraft(mode="create", name=f"View {len(self.views) + 1}")
        self.draft = draft
        if self._suggestions is not None:
            self._suggestions.open(draft)
            self.refresh_suggestion(session)
        return draft

    def refresh_suggestion(self, session: TableSession) -> bool:
        """Call after any table state change while the dialog is open."""
        if self._suggestions is None or self.draft is None:
            return False
        return self._suggestions.update(build_suggestion_summary(self.table_key, session.state, session.columns))

    async def submit_save_dialog(self, session: TableSession) -> ActionResult:
        draft = self.draft
        if draft is None:
            return ActionResult.fail("Save dialog is not open")
        view_id = self.selected_view_id if draft.mode == "edit" else None
        result = await self.save(draft.name.strip(), session.state, draft.description, view_id=view_id)
        if result.success:
            self.close_save_dialog()
            self.draft = None
        return result

    def close_save_dialog(self) -> None:
        if self._suggestions is not None:
            self._suggestions.close()
