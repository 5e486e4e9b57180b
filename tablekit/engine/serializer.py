# tablekit/engine/serializer.py
"""
TableQueryState <-> flat URL parameter mapping.

The round trip is lossy by design: defaults are omitted on the wire and any
malformed fragment parses to the field's default instead of raising.

Wire format (all keys optional):
    page        1-based page number, omitted for the first page
    pageSize    omitted when equal to DEFAULT_PAGE_SIZE
    sort        "title:asc,created_at:desc"
    filters     percent-encoded JSON array of filter records
    visibility  percent-encoded JSON object of hidden columns only
    order       "title,description,created_at"
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote, unquote

from pydantic import TypeAdapter, ValidationError

from tablekit.constants import (
    DEFAULT_PAGE_SIZE,
    ENGINE_PARAM_KEYS,
    FILTERS_KEY,
    ORDER_KEY,
    PAGE_KEY,
    PAGE_SIZE_KEY,
    SORT_KEY,
    URI_COMPONENT_SAFE,
    VISIBILITY_KEY,
)
from tablekit.engine.state import ColumnFilter, PaginationState, SortSpec, TableQueryState

logger = logging.getLogger(__name__)

_filters_adapter = TypeAdapter(List[ColumnFilter])
_visibility_adapter = TypeAdapter(Dict[str, bool])


def _encode_json(value: Any) -> str:
    return quote(json.dumps(value, separators=(",", ":"), ensure_ascii=False), safe=URI_COMPONENT_SAFE)


def _first(value: Any) -> Optional[str]:
    """Flatten multi-valued params (``?page=2&page=3``) to the first value."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    return str(value)


def _parse_int(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Serialize
# ---------------------------------------------------------------------------

def serialize_state(state: TableQueryState) -> Dict[str, str]:
    params: Dict[str, str] = {}

    if state.pagination.page_index > 0:
        params[PAGE_KEY] = str(state.pagination.page_index + 1)
    if state.pagination.page_size != DEFAULT_PAGE_SIZE:
        params[PAGE_SIZE_KEY] = str(state.pagination.page_size)

    if state.sorting:
        params[SORT_KEY] = ",".join(
            f"{s.column_id}:{'desc' if s.descending else 'asc'}" for s in state.sorting
        )

    if state.filters:
        params[FILTERS_KEY] = _encode_json(
            [f.model_dump(mode="json", by_alias=True) for f in state.filters]
        )

    hidden = {column_id: False for column_id in state.hidden_columns()}
    if hidden:
        params[VISIBILITY_KEY] = _encode_json(hidden)

    if state.column_order:
        params[ORDER_KEY] = ",".join(state.column_order)

    return params


# ---------------------------------------------------------------------------
# Deserialize
# ---------------------------------------------------------------------------

def parse_pagination(page: Optional[str], page_size: Optional[str]) -> PaginationState:
    page_number = _parse_int(page)
    size = _parse_int(page_size)
    return PaginationState(
        page_index=max(0, (page_number if page_number is not None else 1) - 1),
        page_size=max(1, size if size is not None else DEFAULT_PAGE_SIZE),
    )


def parse_sorting(raw: Optional[str]) -> List[SortSpec]:
    if not raw:
        return []
    sorting: List[SortSpec] = []
    for token in raw.split(","):
        parts = token.split(":")
        column_id = parts[0].strip()
        direction = parts[1].strip() if len(parts) > 1 else "asc"
        if not column_id or len(parts) > 2 or direction not in ("asc", "desc"):
            logger.debug("discarding malformed sort param %r", raw)
            return []
        sorting.append(SortSpec(column_id=column_id, descending=direction == "desc"))
    return sorting


def parse_filters(raw: Optional[str]) -> List[ColumnFilter]:
    if not raw:
        return []
    try:
        return _filters_adapter.validate_python(json.loads(unquote(raw)))
    except (ValueError, ValidationError) as e:
        logger.warning("discarding malformed filters param: %s", e)
        return []


def parse_visibility(raw: Optional[str]) -> Dict[str, bool]:
    if not raw:
        return {}
    try:
        visibility = _visibility_adapter.validate_python(json.loads(unquote(raw)))
    except (ValueError, ValidationError) as e:
        logger.warning("discarding malformed visibility param: %s", e)
        return {}
    # visible is the implicit default
    return {column_id: False for column_id, visible in visibility.items() if not visible}


def parse_column_order(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [column_id for column_id in (part.strip() for part in raw.split(",")) if column_id]


def deserialize_state(params: Mapping[str, Any]) -> TableQueryState:
    """Build a state from URL params; never raises on malformed input."""
    return TableQueryState(
        pagination=parse_pagination(_first(params.get(PAGE_KEY)), _first(params.get(PAGE_SIZE_KEY))),
        sorting=parse_sorting(_first(params.get(SORT_KEY))),
        filters=parse_filters(_first(params.get(FILTERS_KEY))),
        column_visibility=parse_visibility(_first(params.get(VISIBILITY_KEY))),
        column_order=parse_column_order(_first(params.get(ORDER_KEY))),
    )


def update_search_params(current: Mapping[str, Any], new_params: Mapping[str, str]) -> Dict[str, Any]:
    """Copy of ``current`` with only the engine's own keys replaced."""
    updated = {key: value for key, value in current.items() if key not in ENGINE_PARAM_KEYS}
    for key, value in new_params.items():
        if key in ENGINE_PARAM_KEYS and value:
            updated[key] = value
    return updated
