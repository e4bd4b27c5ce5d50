from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from math import floor

from app.services.records import AttendanceRecord


def round_half_up(value: float) -> int:
    return int(floor(value + 0.5))


def percentage(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)


@dataclass(frozen=True, slots=True)
class AttendanceSummary:
    headcount: int
    present: int
    absent: int
    percentage: int


def summarize_attendance(roster_count: int, records: Sequence[AttendanceRecord]) -> AttendanceSummary:
    """Overall presence figures.

    Every record counts once; repeated check-ins by the same employee are not merged.
    ``absent`` goes negative when present exceeds the roster and is returned as is.
    """
    if roster_count < 0:
        raise ValueError("roster_count must be non-negative")

    present = len(records)
    return AttendanceSummary(
        headcount=roster_count,
        present=present,
        absent=roster_count - present,
        percentage=percentage(present, roster_count),
    )
