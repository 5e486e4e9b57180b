# tests/unit/test_suggestions.py
# Unit tests for view-name suggestions: summary, heuristics, coordinator

import asyncio

import pytest

from tablekit.engine.state import ColumnFilter, SortSpec, TableQueryState
from tablekit.schemas.views import SuggestionSummary, SummaryFilter, SummarySort, ViewSuggestion
from tablekit.services.suggestions import (
    HeuristicViewSuggester,
    SuggestionCoordinator,
    ViewDraft,
    build_suggestion_summary,
    summary_signature,
)

COLUMNS = ["id", "title", "description", "created_at"]


def summary_for(value: str) -> SuggestionSummary:
    return SuggestionSummary(
        table_key="records",
        filters=[SummaryFilter(column="title", value=value, operator="iLike", variant="text")],
    )


class EchoSuggester:
    """Names the view after the first filter value."""

    def __init__(self, gate: asyncio.Event = None):
        self.calls = []
        self.gate = gate

    async def suggest(self, summary):
        self.calls.append(summary)
        if self.gate is not None:
            await self.gate.wait()
        value = summary.filters[0].value
        return ViewSuggestion(name=f"About {value}", description=f"Rows mentioning {value}")


class FailingSuggester:
    async def suggest(self, summary):
        raise RuntimeError("model unavailable")


class TestBuildSummary:

    def test_nothing_to_summarize(self):
        assert build_suggestion_summary("records", TableQueryState(), COLUMNS) is None

    def test_summary_contents(self):
        state = TableQueryState(
            filters=[ColumnFilter(column_id="title", operator="iLike", value="react")],
            sorting=[SortSpec(column_id="created_at", descending=True)],
            column_visibility={"description": False},
        )
        summary = build_suggestion_summary("records", state, COLUMNS)
        assert summary.table_key == "records"
        assert summary.filters == [SummaryFilter(column="title", value="react", operator="iLike", variant="text")]
        assert summary.sorting == [SummarySort(column="created_at", direction="desc")]
        assert summary.hidden_columns == ["description"]
        assert summary.visible_columns == ["id", "title", "created_at"]

    def test_signature_is_content_based(self):
        assert summary_signature(summary_for("a")) == summary_signature(summary_for("a"))
        assert summary_signature(summary_for("a")) != summary_signature(summary_for("b"))


class TestHeuristicSuggester:

    @pytest.mark.asyncio
    async def test_single_filter(self):
        result = await HeuristicViewSuggester().suggest(summary_for("react"))
        assert result.name == "Title contains react"
        assert result.description == "Title contains react"

    @pytest.mark.asyncio
    async def test_multiple_filters_and_sort(self):
        summary = SuggestionSummary(
            table_key="records",
            filters=[
                SummaryFilter(column="title", value="react", operator="iLike", variant="text"),
                SummaryFilter(column="created_at", value="2024-01-01", operator="gt", variant="date"),
            ],
            sorting=[SummarySort(column="created_at", direction="desc")],
        )
        result = await HeuristicViewSuggester().suggest(summary)
        assert result.name == "Title contains react +1"
        assert result.description == "Title contains react; Created at is after 2024-01-01; sorted by Created at descending"

    @pytest.mark.asyncio
    async def test_sort_only(self):
        summary = SuggestionSummary(table_key="records", sorting=[SummarySort(column="title", direction="asc")])
        assert (await HeuristicViewSuggester().suggest(summary)).name == "Sorted by Title"

    @pytest.mark.asyncio
    async def test_hidden_only(self):
        summary = SuggestionSummary(table_key="records", hidden_columns=["description"])
        assert (await HeuristicViewSuggester().suggest(summary)).name == "Without Description"


class TestSuggestionCoordinator:

    @pytest.mark.asyncio
    async def test_fills_draft(self):
        suggester = EchoSuggester()
        coordinator = SuggestionCoordinator(suggester)
        draft = ViewDraft(name="View 1")
        coordinator.open(draft)

        assert coordinator.update(summary_for("react"))
        await coordinator.wait()

        assert draft.name == "About react"
        assert draft.description == "Rows mentioning react"
        assert not coordinator.is_suggesting

    @pytest.mark.asyncio
    async def test_same_signature_does_not_retrigger(self):
        suggester = EchoSuggester()
        coordinator = SuggestionCoordinator(suggester)
        coordinator.open(ViewDraft())

        assert coordinator.update(summary_for("react"))
        assert not coordinator.update(summary_for("react"))
        await coordinator.wait()
        assert not coordinator.update(summary_for("react"))
        assert len(suggester.calls) == 1

    @pytest.mark.asyncio
    async def test_superseded_request_is_cancelled(self):
        gate = asyncio.Event()
        suggester = EchoSuggester(gate)
        coordinator = SuggestionCoordinator(suggester)
        draft = ViewDraft()
        coordinator.open(draft)

        coordinator.update(summary_for("first"))
        first_task = coordinator._task
        await asyncio.sleep(0)
        coordinator.update(summary_for("second"))
        gate.set()
        await coordinator.wait()
        await asyncio.gather(first_task, return_exceptions=True)

        assert first_task.cancelled()
        assert draft.name == "About second"

    @pytest.mark.asyncio
    async def test_close_discards_pending_result(self):
        gate = asyncio.Event()
        coordinator = SuggestionCoordinator(EchoSuggester(gate))
        draft = ViewDraft(name="View 3")
        coordinator.open(draft)

        coordinator.update(summary_for("late"))
        task = coordinator._task
        coordinator.close()
        gate.set()
        await asyncio.gather(task, return_exceptions=True)

        assert draft.name == "View 3"
        assert coordinator.signature is None

    @pytest.mark.asyncio
    async def test_user_edit_suppresses_name_suggestions(self):
        coordinator = SuggestionCoordinator(EchoSuggester())
        draft = ViewDraft()
        coordinator.open(draft)
        coordinator.update(summary_for("react"))
        await coordinator.wait()

        draft.edit_name("My view")
        assert not coordinator.update(summary_for("vue"))
        assert draft.name == "My view"

    @pytest.mark.asyncio
    async def test_edited_description_is_kept(self):
        coordinator = SuggestionCoordinator(EchoSuggester())
        draft = ViewDraft()
        coordinator.open(draft)
        draft.edit_description("Handwritten")

        coordinator.update(summary_for("react"))
        await coordinator.wait()

        assert draft.name == "About react"
        assert draft.description == "Handwritten"

    @pytest.mark.asyncio
    async def test_edit_mode_never_suggests(self):
        suggester = EchoSuggester()
        coordinator = SuggestionCoordinator(suggester)
        coordinator.open(ViewDraft(mode="edit", name="Saved"))
        assert not coordinator.update(summary_for("react"))
        assert not coordinator.update(None)
        assert suggester.calls == []

    @pytest.mark.asyncio
    async def test_failure_is_reported_and_retryable(self):
        coordinator = SuggestionCoordinator(FailingSuggester())
        draft = ViewDraft(name="View 1")
        coordinator.open(draft)

        coordinator.update(summary_for("react"))
        await coordinator.wait()

        assert coordinator.error is not None
        assert draft.name == "View 1"
        assert not coordinator.is_suggesting
        assert coordinator.update(summary_for("react"))
        await coordinator.wait()

    @pytest.mark.asyncio
    async def test_debounce_delays_request(self):
        suggester = EchoSuggester()
        coordinator = SuggestionCoordinator(suggester, debounce_seconds=0.05)
        coordinator.open(ViewDraft())

        coordinator.update(summary_for("a"))
        await asyncio.sleep(0)
        coordinator.update(summary_for("b"))
        await coordinator.wait()

        assert [s.filters[0].value for s in suggester.calls] == ["b"]
