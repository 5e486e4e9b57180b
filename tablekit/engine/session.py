# tablekit/engine/session.py
"""
Live table state with a one-way mirror into a URL parameter store.

The session's own state is canonical for reads. Every mutation replaces the
state object as a whole and then pushes the serialized form into the store
through ``_sync_url``, the only code path that writes to it.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, MutableMapping, Optional, Sequence, Set

from tablekit.engine.evaluator import move_column, resolve_column_order, visible_columns
from tablekit.engine.serializer import deserialize_state, serialize_state, update_search_params
from tablekit.engine.state import ColumnFilter, PaginationState, SortSpec, TableQueryState

logger = logging.getLogger(__name__)

UrlReplacer = Callable[[Dict[str, Any]], None]


class TableSession:
    """State holder for one rendered table.

    ``url_params`` is the external store (e.g. the current query string as a
    dict). ``replace_url`` is called with the full updated mapping whenever the
    engine keys change; other keys in the store are preserved.
    """

    def __init__(
        self,
        columns: Sequence[str],
        url_params: Optional[MutableMapping[str, Any]] = None,
        replace_url: Optional[UrlReplacer] = None,
    ):
        self.columns: List[str] = list(columns)
        self._url_params: MutableMapping[str, Any] = url_params if url_params is not None else {}
        self._replace_url = replace_url
        self._state = deserialize_state(self._url_params)
        self.row_selection: Set[str] = set()

    @property
    def state(self) -> TableQueryState:
        return self._state

    @property
    def url_params(self) -> Mapping[str, Any]:
        return self._url_params

    # --- mutation -----------------------------------------------------------

    def _commit(self, state: TableQueryState) -> None:
        self._state = state
        self._sync_url()

    def _sync_url(self) -> None:
        updated = update_search_params(self._url_params, serialize_state(self._state))
        if updated == dict(self._url_params):
            return
        self._url_params.clear()
        self._url_params.update(updated)
        if self._replace_url is not None:
            self._replace_url(dict(updated))

    def set_filters(self, filters: Iterable[ColumnFilter]) -> None:
        # New filters invalidate the current page
        pagination = self._state.pagination.model_copy(update={"page_index": 0})
        self._commit(self._state.model_copy(update={"filters": list(filters), "pagination": pagination}))

    def set_sorting(self, sorting: Iterable[SortSpec]) -> None:
        self._commit(self._state.model_copy(update={"sorting": list(sorting)}))

    def set_column_visibility(self, column_id: str, visible: bool) -> None:
        visibility = dict(self._state.column_visibility)
        if visible:
            visibility.pop(column_id, None)
        else:
            visibility[column_id] = False
        self._commit(self._state.model_copy(update={"column_visibility": visibility}))

    def set_column_order(self, column_order: Iterable[str]) -> None:
        self._commit(self._state.model_copy(update={"column_order": list(column_order)}))

    def move_column(self, active_id: str, over_id: str) -> None:
        self.set_column_order(move_column(self.columns, self._state.column_order, active_id, over_id))

    def set_page_index(self, page_index: int) -> None:
        pagination = self._state.pagination.model_copy(update={"page_index": max(0, page_index)})
        self._commit(self._state.model_copy(update={"pagination": pagination}))

    def set_page_size(self, page_size: int) -> None:
        pagination = PaginationState(page_index=0, page_size=max(1, page_size))
        self._commit(self._state.model_copy(update={"pagination": pagination}))

    def apply_state(self, state: TableQueryState) -> None:
        """Replace every field at once and drop the row selection."""
        self.row_selection.clear()
        self._commit(state.model_copy(deep=True))

    def reset(self) -> None:
        """Back to defaults, keeping the current page size."""
        pagination = PaginationState(page_size=self._state.pagination.page_size)
        self.apply_state(TableQueryState(pagination=pagination))

    # --- reads --------------------------------------------------------------

    def ordered_columns(self) -> List[str]:
        return resolve_column_order(self.columns, self._state.column_order)

    def visible_columns(self) -> List[str]:
        return visible_columns(self.columns, self._state.column_order, self._state.column_visibility)
