"""
Execution-date generator for recurring transfers.

    next_dates("weekly", "2024-01-01T00:00:00Z", 3)
      → 2024-01-01, 2024-01-08, 2024-01-15  (00:00 UTC)

Month steps are applied to the previous entry, and a day-of-month that does
not exist in the target month rolls over into the next month (Jan 31 + 1
month → Mar 2 in a leap year), matching calendar-date arithmetic in most
client runtimes.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone

from config.settings import Frequency, UnknownFrequencyPolicy

_FREQUENCY_ALIASES: dict[str, Frequency] = {
    "weekly":     Frequency.WEEKLY,
    "biweekly":   Frequency.BIWEEKLY,
    "bi-weekly":  Frequency.BIWEEKLY,
    "bi_weekly":  Frequency.BIWEEKLY,
    "fortnightly": Frequency.BIWEEKLY,
    "monthly":    Frequency.MONTHLY,
    "quarterly":  Frequency.QUARTERLY,
}

_DAY_STEPS = {Frequency.WEEKLY: 7, Frequency.BIWEEKLY: 14}
_MONTH_STEPS = {Frequency.MONTHLY: 1, Frequency.QUARTERLY: 3}


def parse_frequency(value: str | Frequency | None) -> Frequency | None:
    """Return the Frequency for a user string, or None if unrecognised."""
    if isinstance(value, Frequency):
        return value
    if not isinstance(value, str) or not value:
        return None
    return _FREQUENCY_ALIASES.get(value.strip().lower())


def parse_start(value: str | datetime) -> datetime:
    """Accept an ISO-8601 string (trailing Z allowed) or datetime; naive → UTC."""
    if isinstance(value, str):
        dt = datetime.fromisoformat(value)
    elif isinstance(value, datetime):
        dt = value
    else:
        raise TypeError(f"expected ISO-8601 string or datetime, got {type(value).__name__}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_utc(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def add_months(dt: datetime, months: int) -> datetime:
    """Calendar-month step with day overflow rolled into the following month."""
    month_index = dt.month - 1 + months
    year, month = dt.year + month_index // 12, month_index % 12 + 1
    days_in_month = calendar.monthrange(year, month)[1]
    overflow = dt.day - days_in_month
    if overflow <= 0:
        return dt.replace(year=year, month=month)
    return dt.replace(year=year, month=month, day=days_in_month) + timedelta(days=overflow)


def step(dt: datetime, frequency: Frequency) -> datetime:
    if frequency in _DAY_STEPS:
        return dt + timedelta(days=_DAY_STEPS[frequency])
    return add_months(dt, _MONTH_STEPS[frequency])


def next_dates(
    frequency: str | Frequency,
    start: str | datetime,
    count: int,
    unknown_policy: UnknownFrequencyPolicy | str = UnknownFrequencyPolicy.REPEAT,
) -> list[datetime]:
    """
    Return exactly `count` execution timestamps, the first being `start`.

    An unrecognised frequency either repeats `start` for every entry
    (policy "repeat") or raises ValueError (policy "reject").
    """
    if count < 0:
        raise ValueError("count must be non-negative")

    start_dt = parse_start(start)
    freq     = parse_frequency(frequency)

    if freq is None:
        if UnknownFrequencyPolicy(unknown_policy) == UnknownFrequencyPolicy.REJECT:
            raise ValueError(
                f"Unknown frequency '{frequency}'. "
                f"Use one of: {', '.join(f.value for f in Frequency)}"
            )
        return [start_dt] * count

    dates: list[datetime] = []
    current = start_dt
    for _ in range(count):
        dates.append(current)
        current = step(current, freq)
    return dates
