# tablekit/services/suggestions.py
"""
Drafting a name and description for a view that is about to be saved.

Requests are keyed by the canonical JSON of the table summary: asking again
with the same summary is a no-op, and a new summary cancels the request in
flight. A result is only committed when its token is still live and its
signature is still the latest one, so a late answer for an old summary can
never overwrite the fields.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Literal, Optional, Protocol, Sequence

from pydantic import ValidationError

from tablekit.engine.evaluator import describe_filter
from tablekit.engine.operators import FilterVariant
from tablekit.engine.state import ColumnFilter, TableQueryState
from tablekit.observability.metrics import SUGGESTION_REQUESTS
from tablekit.schemas.views import (
    SuggestionSummary,
    SummaryFilter,
    SummarySort,
    ViewSuggestion,
)
from tablekit.utils.logger import log_exception

logger = logging.getLogger(__name__)


def build_suggestion_summary(
    table_key: str,
    state: TableQueryState,
    columns: Sequence[str],
) -> Optional[SuggestionSummary]:
    """Summary of what makes ``state`` worth saving, or None if nothing does."""
    if not state.has_customizations():
        return None

    hidden = set(state.hidden_columns())
    return SuggestionSummary(
        table_key=table_key,
        filters=[
            SummaryFilter(column=f.column_id, **f.model_dump(mode="json", include={"value", "operator", "variant"}))
            for f in state.filters
        ],
        sorting=[
            SummarySort(column=s.column_id, direction="desc" if s.descending else "asc")
            for s in state.sorting
        ],
        hidden_columns=[c for c in dict.fromkeys(columns) if c in hidden],
        visible_columns=[c for c in dict.fromkeys(columns) if c not in hidden],
        column_order=list(state.column_order),
    )


def summary_signature(summary: SuggestionSummary) -> str:
    return json.dumps(summary.model_dump(mode="json", by_alias=True), sort_keys=True, separators=(",", ":"))


class ViewSuggester(Protocol):
    async def suggest(self, summary: SuggestionSummary) -> ViewSuggestion:
        ...


def _humanize(column_id: str) -> str:
    return column_id.replace("_", " ").strip().capitalize()


def _describe_summary_filter(summary_filter: SummaryFilter) -> str:
    label = _humanize(summary_filter.column)
    if summary_filter.operator:
        try:
            column_filter = ColumnFilter(
                column_id=summary_filter.column,
                operator=summary_filter.operator,
                value=summary_filter.value,
                variant=summary_filter.variant or FilterVariant.TEXT,
            )
        except ValidationError:
            pass
        else:
            return describe_filter(column_filter, label)
    return f"{label}: {summary_filter.value}"


class HeuristicViewSuggester:
    """Local suggester: composes a name from filters and sort keys."""

    async def suggest(self, summary: SuggestionSummary) -> ViewSuggestion:
        parts = [_describe_summary_filter(f) for f in summary.filters]

        sort_text = ""
        if summary.sorting:
            keys = ", ".join(
                f"{_humanize(s.column)}{' descending' if s.direction == 'desc' else ''}"
                for s in summary.sorting
            )
            sort_text = f"sorted by {keys}"

        if parts:
            name = parts[0] if len(parts) == 1 else f"{parts[0]} +{len(parts) - 1}"
        elif sort_text:
            name = sort_text[0].upper() + sort_text[1:]
        elif summary.hidden_columns:
            name = f"Without {', '.join(_humanize(c) for c in summary.hidden_columns)}"
        else:
            name = "Custom column order"

        details = list(parts)
        if sort_text:
            details.append(sort_text)
        if summary.hidden_columns:
            details.append(f"hiding {', '.join(_humanize(c) for c in summary.hidden_columns)}")
        return ViewSuggestion(name=name[:80], description="; ".join(details) or None)


class CancellationToken:
    __slots__ = ("signature", "cancelled")

    def __init__(self, signature: str):
        self.signature = signature
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ViewDraft:
    """Name/description fields of the save dialog for one editing session."""
    mode: Literal["create", "edit"] = "create"
    name: str = ""
    description: str = ""
    name_edited: bool = False
    description_edited: bool = False

    def edit_name(self, value: str) -> None:
        # A user edit wins over any later suggestion for the rest of the session
        self.name = value
        self.name_edited = True

    def edit_description(self, value: str) -> None:
        self.description = value
        self.description_edited = True


class SuggestionCoordinator:
    """Single-slot, content-addressed, cancellable suggestion requests."""

    def __init__(self, suggester: ViewSuggester, debounce_seconds: float = 0.0):
        self._suggester = suggester
        self._debounce = debounce_seconds
        self._draft: Optional[ViewDraft] = None
        self._signature: Optional[str] = None
        self._token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task] = None
        self.is_suggesting = False
        self.error: Optional[str] = None

    @property
    def signature(self) -> Optional[str]:
        return self._signature

    def open(self, draft: ViewDraft) -> None:
        self._cancel_current()
        self._draft = draft
        self._signature = None
        self.error = None

    def close(self) -> None:
        self._cancel_current()
        self._draft = None
        self._signature = None

    def update(self, summary: Optional[SuggestionSummary]) -> bool:
        """Request a suggestion for ``summary``; returns True if one was started."""
        draft = self._draft
        if draft is None or draft.mode == "edit" or summary is None or draft.name_edited:
            return False

        signature = summary_signature(summary)
        if signature == self._signature:
            return False

        self._cancel_current()
        token = CancellationToken(signature)
        self._token = token
        self._signature = signature
        self.is_suggesting = True
        self.error = None
        self._task = asyncio.get_running_loop().create_task(self._run(summary, token, draft))
        return True

    async def wait(self) -> None:
        """Wait for the request in flight, if any (cancellation is not an error)."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    def _cancel_current(self) -> None:
        if self._token is not None:
            self._token.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._token = None
        self._task = None
        self.is_suggesting = False

    def _is_live(self, token: CancellationToken) -> bool:
        return not token.cancelled and token is self._token and token.signature == self._signature

    async def _run(self, summary: SuggestionSummary, token: CancellationToken, draft: ViewDraft) -> None:
        try:
            if self._debounce > 0:
                await asyncio.sleep(self._debounce)
            result = await self._suggester.suggest(summary)
        except asyncio.CancelledError:
            SUGGESTION_REQUESTS.labels("cancelled").inc()
            raise
        except Exception as e:
            if not self._is_live(token):
                return
            log_exception(e, "SuggestionCoordinator: suggester failed")
            SUGGESTION_REQUESTS.labels("failed").inc()
            self.error = "Could not draft a suggested view name."
            # allow a retry when the summary changes again
            self._signature = None
            self.is_suggesting = False
            return

        if not self._is_live(token):
            logger.debug("discarding stale view suggestion")
            SUGGESTION_REQUESTS.labels("discarded").inc()
            return

        if not draft.name_edited and result.name:
            draft.name = result.name
        if not draft.description_edited and isinstance(result.description, str):
            draft.description = result.description
        SUGGESTION_REQUESTS.labels("completed").inc()
        self.is_suggesting = False
        self._task = None
