from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Literal, get_args

ReportMode = Literal["daily", "weekly"]
SundayPolicy = Literal["previous_week", "following_week"]

WINDOW_END_TIME = time(23, 59, 59, 999000)
DAYS_PER_WEEK = 7


@dataclass(frozen=True, slots=True)
class DateWindow:
    mode: ReportMode
    start: datetime
    end: datetime

    @property
    def start_date(self) -> date:
        return self.start.date()

    @property
    def end_date(self) -> date:
        return self.end.date()

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end

    def dates(self) -> list[date]:
        span = (self.end_date - self.start_date).days
        return [self.start_date + timedelta(days=offset) for offset in range(span + 1)]


def parse_reference_date(value: str) -> date:
    """Parse a YYYY-MM-DD string."""
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def sunday_based_weekday(day: date) -> int:
    """Weekday numbered Sunday=0 .. Saturday=6."""
    return day.isoweekday() % DAYS_PER_WEEK


def week_start(reference_date: date, *, sunday_policy: SundayPolicy = "previous_week") -> date:
    """Monday that opens the reporting week of ``reference_date``.

    The week runs Monday..Sunday and the Monday is ``reference_date - (weekday - 1)``
    with Sunday numbered 0. Applied literally to a Sunday that lands on the following
    day, leaving the Sunday outside its own window; ``following_week`` keeps that
    result. ``previous_week`` treats a Sunday as the last day of the week that started
    six days earlier, so the reference date always sits inside its window.
    """
    if sunday_policy not in get_args(SundayPolicy):
        raise ValueError(f"Unknown sunday policy: {sunday_policy!r}")

    weekday = sunday_based_weekday(reference_date)
    if weekday == 0 and sunday_policy == "previous_week":
        return reference_date - timedelta(days=DAYS_PER_WEEK - 1)
    return reference_date - timedelta(days=weekday - 1)


def compute_date_window(
    reference_date: date,
    mode: ReportMode,
    *,
    sunday_policy: SundayPolicy = "previous_week",
) -> DateWindow:
    if mode == "daily":
        first_day = last_day = reference_date
    elif mode == "weekly":
        first_day = week_start(reference_date, sunday_policy=sunday_policy)
        last_day = first_day + timedelta(days=DAYS_PER_WEEK - 1)
    else:
        raise ValueError(f"Unknown report mode: {mode!r}")

    return DateWindow(
        mode=mode,
        start=datetime.combine(first_day, time.min),
        end=datetime.combine(last_day, WINDOW_END_TIME),
    )
