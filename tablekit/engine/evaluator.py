# tablekit/engine/evaluator.py
"""
Row matching, sorting and paging for a TableQueryState.

The evaluator is permissive by contract: a filter that cannot be applied
(missing value, unparseable bound, unknown operator) lets rows through
instead of raising. Filters always combine with logical AND.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from functools import cmp_to_key
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from dateutil.parser import isoparse

from tablekit.engine.operators import FilterOperator, FilterVariant, is_operator_allowed, label_for
from tablekit.engine.relative_dates import resolve_relative_date
from tablekit.engine.state import ColumnFilter, PaginationState, RelativeDateValue, SortSpec

Row = Mapping[str, Any]


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------

def is_empty(value: Any) -> bool:
    return value is None or value == ""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_number(value: Any) -> Optional[float]:
    """Number for numeric values and numeric strings, else None."""
    if _is_number(value):
        return None if isinstance(value, float) and math.isnan(value) else value
    if isinstance(value, str) and value.strip():
        try:
            parsed = float(value)
        except ValueError:
            return None
        return None if math.isnan(parsed) else parsed
    return None


def _to_utc_aware(dt: datetime) -> datetime:
    # Naive values are treated as UTC
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc)
    return dt.replace(tzinfo=timezone.utc)


def to_datetime(value: Any, reference: Optional[datetime] = None) -> Optional[datetime]:
    """UTC-aware datetime for dates, ISO strings and relative dates, else None."""
    if isinstance(value, RelativeDateValue):
        try:
            return _to_utc_aware(resolve_relative_date(value, reference))
        except (ValueError, OverflowError):
            # amount pushes the result past datetime.min/max
            return None
    if isinstance(value, datetime):
        return _to_utc_aware(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str) and value.strip():
        try:
            return _to_utc_aware(isoparse(value.strip()))
        except (ValueError, OverflowError):
            return None
    return None


def _coerce_number(value: Any, reference: Optional[datetime]) -> Any:
    parsed = to_number(value) if isinstance(value, str) else None
    return value if parsed is None else parsed


def _coerce_date(value: Any, reference: Optional[datetime]) -> Any:
    if isinstance(value, (RelativeDateValue, str)):
        parsed = to_datetime(value, reference)
        return value if parsed is None else parsed
    return value


def _coerce_boolean(value: Any, reference: Optional[datetime]) -> Any:
    if value == "true":
        return True
    if value == "false":
        return False
    return value


def _coerce_passthrough(value: Any, reference: Optional[datetime]) -> Any:
    return value


_COERCERS: Dict[FilterVariant, Callable[[Any, Optional[datetime]], Any]] = {
    FilterVariant.TEXT: _coerce_passthrough,
    FilterVariant.NUMBER: _coerce_number,
    FilterVariant.RANGE: _coerce_number,
    FilterVariant.DATE: _coerce_date,
    FilterVariant.DATE_RANGE: _coerce_date,
    FilterVariant.BOOLEAN: _coerce_boolean,
    FilterVariant.SELECT: _coerce_passthrough,
    FilterVariant.MULTI_SELECT: _coerce_passthrough,
}

_DATE_VARIANTS = (FilterVariant.DATE, FilterVariant.DATE_RANGE)
_NUMERIC_VARIANTS = (FilterVariant.NUMBER, FilterVariant.RANGE)


def coerce_filter_value(value: Any, variant: FilterVariant, reference: Optional[datetime] = None) -> Any:
    """Comparison value for ``value`` under ``variant``; arrays are left as-is."""
    if isinstance(value, list):
        return value
    return _COERCERS[variant](value, reference)


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------

def _same_day(cell: Any, compare: Any, reference: Optional[datetime]) -> Optional[bool]:
    cell_dt = to_datetime(cell, reference)
    compare_dt = to_datetime(compare, reference)
    if cell_dt is None or compare_dt is None:
        return None
    return cell_dt.date() == compare_dt.date()


def _ordered(cell: Any, compare: Any, variant: FilterVariant, reference: Optional[datetime]) -> Optional[int]:
    """-1/0/1 for cell vs compare when both are numbers or both are dates."""
    if _is_number(cell) and _is_number(compare):
        return (cell > compare) - (cell < compare)
    if variant in _DATE_VARIANTS or isinstance(cell, (date, datetime)):
        cell_dt = to_datetime(cell, reference)
        compare_dt = to_datetime(compare, reference)
        if cell_dt is not None and compare_dt is not None:
            return (cell_dt > compare_dt) - (cell_dt < compare_dt)
    return None


def _between_numbers(cell: Any, bounds: list) -> bool:
    low, high = to_number(bounds[0]), to_number(bounds[1])
    value = to_number(cell)
    if low is None or high is None or value is None:
        return True
    return low <= value <= high


def _date_bound(bound: Any, reference: Optional[datetime]) -> Optional[datetime]:
    # Bounds arrive as plain dicts when a relative date sits inside the array.
    if isinstance(bound, dict) and bound.get("type") == "relative":
        try:
            bound = RelativeDateValue.model_validate(bound)
        except ValueError:
            return None
    return to_datetime(bound, reference)


def _between_days(cell: Any, bounds: list, reference: Optional[datetime]) -> bool:
    low = _date_bound(bounds[0], reference)
    high = _date_bound(bounds[1], reference)
    value = to_datetime(cell, reference)
    if low is None or high is None or value is None:
        return True
    return low.date() <= value.date() <= high.date()


def matches(row: Row, column_filter: ColumnFilter, reference: Optional[datetime] = None) -> bool:
    """Decide whether ``row`` passes ``column_filter``.

    ``reference`` is the instant relative dates resolve against; it defaults
    to now on every call.
    """
    cell = row.get(column_filter.column_id)
    operator = column_filter.operator
    variant = column_filter.variant

    # Unknown operators and operators outside the variant's list let the row through.
    if not is_operator_allowed(operator, variant):
        return True

    if operator == FilterOperator.IS_EMPTY:
        return is_empty(cell)
    if operator == FilterOperator.IS_NOT_EMPTY:
        return not is_empty(cell)

    raw = column_filter.value
    if is_empty(raw):
        # inactive filter
        return True

    if reference is None:
        reference = datetime.now(timezone.utc)
    compare = coerce_filter_value(raw, variant, reference)

    if operator in (FilterOperator.EQ, FilterOperator.NE):
        equal: Optional[bool] = None
        if variant == FilterVariant.DATE:
            equal = _same_day(cell, compare, reference)
        if equal is None:
            equal = cell == compare
        return equal if operator == FilterOperator.EQ else not equal

    if operator in (FilterOperator.ILIKE, FilterOperator.NOT_ILIKE):
        if isinstance(cell, str) and isinstance(compare, str):
            contained = compare.lower() in cell.lower()
            return contained if operator == FilterOperator.ILIKE else not contained
        return operator == FilterOperator.NOT_ILIKE

    if operator in (FilterOperator.LT, FilterOperator.GT):
        order = _ordered(cell, compare, variant, reference)
        if order is None:
            return False
        return order < 0 if operator == FilterOperator.LT else order > 0

    if operator in (FilterOperator.IN_ARRAY, FilterOperator.NOT_IN_ARRAY):
        if not isinstance(compare, list):
            return operator == FilterOperator.NOT_IN_ARRAY
        member = any(cell == item for item in compare)
        return member if operator == FilterOperator.IN_ARRAY else not member

    if operator == FilterOperator.IS_BETWEEN:
        # Wrong arity or unparseable bounds fail open.
        if not isinstance(raw, list) or len(raw) != 2:
            return True
        if variant in _DATE_VARIANTS:
            return _between_days(cell, raw, reference)
        return _between_numbers(cell, raw)

    return True


def filter_rows(rows: Iterable[Row], filters: Sequence[ColumnFilter], reference: Optional[datetime] = None) -> List[Row]:
    """Rows matching every filter (logical AND)."""
    if reference is None:
        reference = datetime.now(timezone.utc)
    return [row for row in rows if all(matches(row, f, reference) for f in filters)]


def validate_filters(filters: Sequence[ColumnFilter], column_ids: Iterable[str]) -> Optional[str]:
    """Return an error message for the first filter on an unknown column, or None.

    Operators are not checked here: `matches` already lets unknown or
    mismatched operators through.
    """
    known = set(column_ids)
    for f in filters:
        if f.column_id not in known:
            return f"Unknown column in filter: {f.column_id}"
    return None


def describe_filter(column_filter: ColumnFilter, column_label: Optional[str] = None) -> str:
    """Human readable filter, e.g. "Title contains react"."""
    label = column_label or column_filter.column_id
    operator_label = label_for(column_filter.operator, column_filter.variant).lower()
    if column_filter.operator in (FilterOperator.IS_EMPTY, FilterOperator.IS_NOT_EMPTY):
        return f"{label} {operator_label}"

    value = column_filter.value
    if isinstance(value, RelativeDateValue):
        direction = "ago" if value.direction == "ago" else "from now"
        text = f"{value.amount} {value.unit} {direction}"
    elif isinstance(value, list):
        if column_filter.operator == FilterOperator.IS_BETWEEN and len(value) == 2:
            text = f"{value[0]} - {value[1]}"
        else:
            text = ", ".join(str(v) for v in value)
    elif column_filter.variant == FilterVariant.BOOLEAN and isinstance(value, str):
        text = "True" if value == "true" else "False"
    else:
        text = str(value)
    return f"{label} {operator_label} {text}"


# ---------------------------------------------------------------------------
# Sorting, paging, column order
# ---------------------------------------------------------------------------

def _compare_values(a: Any, b: Any) -> int:
    # None sorts after any value
    if a is None or b is None:
        return (a is None) - (b is None)
    try:
        return (a > b) - (a < b)
    except TypeError:
        sa, sb = str(a), str(b)
        return (sa > sb) - (sa < sb)


def sort_rows(rows: Iterable[Row], sorting: Sequence[SortSpec]) -> List[Row]:
    """Stable multi-key sort; the first SortSpec is the primary key."""
    items = list(rows)
    if not sorting:
        return items

    def compare(left: Row, right: Row) -> int:
        for sort_spec in sorting:
            result = _compare_values(left.get(sort_spec.column_id), right.get(sort_spec.column_id))
            if result:
                return -result if sort_spec.descending else result
        return 0

    return sorted(items, key=cmp_to_key(compare))


def page_count(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if total else 0


def paginate(rows: Sequence[Row], pagination: PaginationState) -> List[Row]:
    start = pagination.page_index * pagination.page_size
    return list(rows[start:start + pagination.page_size])


def resolve_column_order(all_columns: Sequence[str], column_order: Sequence[str]) -> List[str]:
    """Known ids in the requested order, then the rest in original order."""
    known = set(all_columns)
    ordered: List[str] = []
    for column_id in column_order:
        if column_id in known and column_id not in ordered:
            ordered.append(column_id)
    ordered.extend(c for c in all_columns if c not in ordered)
    return ordered


def move_column(all_columns: Sequence[str], column_order: Sequence[str], active_id: str, over_id: str) -> List[str]:
    """Full column order after dragging ``active_id`` onto ``over_id``."""
    order = resolve_column_order(all_columns, column_order)
    if active_id == over_id or active_id not in order or over_id not in order:
        return order
    new_index = order.index(over_id)
    order.remove(active_id)
    order.insert(new_index, active_id)
    return order


def visible_columns(all_columns: Sequence[str], column_order: Sequence[str], column_visibility: Mapping[str, bool]) -> List[str]:
    return [c for c in resolve_column_order(all_columns, column_order) if column_visibility.get(c, True)]
