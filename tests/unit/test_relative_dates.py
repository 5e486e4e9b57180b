# tests/unit/test_relative_dates.py

from datetime import datetime, timezone

import pytest

from tablekit.engine.relative_dates import resolve_relative_date
from tablekit.engine.state import RelativeDateValue

REF = datetime(2024, 1, 31, 12, 0, tzinfo=timezone.utc)


def rel(amount, unit, direction="ago"):
    return RelativeDateValue(amount=amount, unit=unit, direction=direction)


class TestResolveRelativeDate:

    @pytest.mark.parametrize("unit", ["days", "weeks", "months", "years"])
    @pytest.mark.parametrize("direction", ["ago", "from_now"])
    def test_zero_amount_returns_reference(self, unit, direction):
        assert resolve_relative_date(rel(0, unit, direction), REF) == REF

    def test_days_and_weeks(self):
        assert resolve_relative_date(rel(3, "days"), REF) == datetime(2024, 1, 28, 12, 0, tzinfo=timezone.utc)
        assert resolve_relative_date(rel(2, "weeks", "from_now"), REF) == datetime(2024, 2, 14, 12, 0, tzinfo=timezone.utc)

    def test_month_end_clamps_to_last_day(self):
        # 2024 is a leap year
        assert resolve_relative_date(rel(1, "months", "from_now"), REF) == datetime(2024, 2, 29, 12, 0, tzinfo=timezone.utc)
        assert resolve_relative_date(rel(2, "months", "ago"), REF) == datetime(2023, 11, 30, 12, 0, tzinfo=timezone.utc)

    def test_leap_day_year_rollover(self):
        leap_day = datetime(2024, 2, 29, tzinfo=timezone.utc)
        assert resolve_relative_date(rel(1, "years", "from_now"), leap_day) == datetime(2025, 2, 28, tzinfo=timezone.utc)

    def test_defaults_to_now(self):
        before = datetime.now(timezone.utc)
        resolved = resolve_relative_date(rel(0, "days"))
        after = datetime.now(timezone.utc)
        assert before <= resolved <= after

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError):
            rel(-1, "days")

    @pytest.mark.parametrize("unit", ["days", "years"])
    def test_out_of_range_raises(self, unit):
        with pytest.raises((ValueError, OverflowError)):
            resolve_relative_date(rel(99999999 if unit == "days" else 99999, unit, "from_now"), REF)
