"""
Execution-date generation for recurring transfers.
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from config.settings import Frequency, UnknownFrequencyPolicy
from services.schedule_dates import (
    add_months,
    format_utc,
    next_dates,
    parse_frequency,
    parse_start,
)


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestNextDates:

    def test_weekly(self):
        dates = next_dates("weekly", "2024-01-01T00:00:00Z", 3)
        assert [format_utc(d) for d in dates] == [
            "2024-01-01T00:00:00Z", "2024-01-08T00:00:00Z", "2024-01-15T00:00:00Z",
        ]

    def test_biweekly_alias(self):
        dates = next_dates("bi-weekly", _utc(2024, 1, 1), 3)
        assert dates[1] == _utc(2024, 1, 15)
        assert dates[2] == _utc(2024, 1, 29)

    def test_monthly_end_of_month_rolls_over(self):
        dates = next_dates("monthly", _utc(2024, 1, 31), 3)
        # Jan 31 → "Feb 31" = Mar 2 (leap year) → Apr 2
        assert dates == [_utc(2024, 1, 31), _utc(2024, 3, 2), _utc(2024, 4, 2)]

    def test_quarterly(self):
        dates = next_dates(Frequency.QUARTERLY, _utc(2024, 2, 15, 9, 30), 3)
        assert dates == [_utc(2024, 2, 15, 9, 30), _utc(2024, 5, 15, 9, 30), _utc(2024, 8, 15, 9, 30)]

    def test_count_zero_and_one(self):
        assert next_dates("weekly", _utc(2024, 1, 1), 0) == []
        assert next_dates("weekly", _utc(2024, 1, 1), 1) == [_utc(2024, 1, 1)]

    def test_negative_count_raises(self):
        with pytest.raises(ValueError):
            next_dates("weekly", _utc(2024, 1, 1), -1)

    def test_strictly_increasing(self):
        dates = next_dates("monthly", _utc(2024, 1, 31), 12)
        assert all(a < b for a, b in zip(dates, dates[1:]))

    def test_unknown_frequency_repeats_start_by_default(self):
        dates = next_dates("daily", _utc(2024, 1, 1), 3)
        assert dates == [_utc(2024, 1, 1)] * 3

    def test_unknown_frequency_rejected_when_configured(self):
        with pytest.raises(ValueError, match="Unknown frequency"):
            next_dates("daily", _utc(2024, 1, 1), 3, UnknownFrequencyPolicy.REJECT)


class TestHelpers:

    def test_parse_frequency_aliases(self):
        assert parse_frequency("Fortnightly") == Frequency.BIWEEKLY
        assert parse_frequency(" MONTHLY ") == Frequency.MONTHLY
        assert parse_frequency("yearly") is None
        assert parse_frequency(None) is None
        assert parse_frequency(7) is None

    def test_naive_start_treated_as_utc(self):
        assert parse_start(datetime(2024, 1, 1, 12)) == _utc(2024, 1, 1, 12)

    @pytest.mark.parametrize("value", [5, None, 2024.5])
    def test_start_of_other_type_raises_type_error(self, value):
        with pytest.raises(TypeError):
            parse_start(value)

    def test_add_months_across_year(self):
        assert add_months(_utc(2023, 11, 30), 3) == _utc(2024, 3, 1)

    def test_add_months_plain(self):
        assert add_months(_utc(2024, 1, 15), 1) == _utc(2024, 2, 15)
