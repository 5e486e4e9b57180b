# tablekit/engine/relative_dates.py
# Calendar arithmetic for "N units ago / from now" filter values

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from dateutil.relativedelta import relativedelta

from tablekit.engine.state import RelativeDateValue


def resolve_relative_date(value: RelativeDateValue, reference: Optional[datetime] = None) -> datetime:
    """Turn a relative date into an absolute instant against ``reference``.

    Days and weeks add fixed day counts. Months and years use calendar
    arithmetic; when the target month is shorter the day is clamped to the
    last day of that month (Jan 31 + 1 month -> Feb 29 in a leap year).

    ``reference`` defaults to the current UTC instant and must not be cached
    across calls: a relative date is a moving target.

    Raises ValueError or OverflowError when the result falls outside the
    datetime range; callers in the evaluator treat that as unresolvable.
    """
    if reference is None:
        reference = datetime.now(timezone.utc)

    if value.amount == 0:
        return reference

    offset = value.amount * (-1 if value.direction == "ago" else 1)

    if value.unit == "days":
        return reference + timedelta(days=offset)
    if value.unit == "weeks":
        return reference + timedelta(days=offset * 7)
    if value.unit == "months":
        return reference + relativedelta(months=offset)
    return reference + relativedelta(years=offset)
