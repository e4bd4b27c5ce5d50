from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from app.services.aggregation import percentage, round_half_up
from app.services.date_windows import DAYS_PER_WEEK, ReportMode
from app.services.records import AttendanceRecord, RosterEntry


@dataclass(frozen=True, slots=True)
class DepartmentTaxonomy:
    departments: tuple[str, ...]
    version: str = "unversioned"

    @classmethod
    def from_names(cls, names: Iterable[str], *, version: str = "unversioned") -> DepartmentTaxonomy:
        ordered: list[str] = []
        for name in names:
            if name not in ordered:
                ordered.append(name)
        return cls(departments=tuple(ordered), version=version)

    def __contains__(self, name: object) -> bool:
        return name in self.departments

    def __iter__(self) -> Iterator[str]:
        return iter(self.departments)

    def __len__(self) -> int:
        return len(self.departments)


@dataclass(frozen=True, slots=True)
class DepartmentStat:
    department: str
    total: int
    present: int
    absent: int

    @property
    def rate(self) -> int:
        return percentage(self.present, self.total)


def _count_by_department(names: Iterable[str | None], taxonomy: DepartmentTaxonomy) -> dict[str, int]:
    counts = {department: 0 for department in taxonomy}
    for name in names:
        # exact, case-sensitive match; anything else is left out of department stats
        if name in counts:
            counts[name] += 1
    return counts


def calculate_department_stats(
    records: Sequence[AttendanceRecord],
    roster: Sequence[RosterEntry],
    taxonomy: DepartmentTaxonomy,
    mode: ReportMode,
    *,
    weekly_attendance_days: int = DAYS_PER_WEEK,
) -> tuple[DepartmentStat, ...]:
    """One stat per taxonomy department, in taxonomy order.

    Weekly mode scales the roster total by ``weekly_attendance_days`` (one attendance
    opportunity per employee per day). The figure is an approximation and is not checked
    against actual working days. The present count passes through ``round(p / d * d)``.
    """
    if mode not in ("daily", "weekly"):
        raise ValueError(f"Unknown report mode: {mode!r}")
    if weekly_attendance_days < 1:
        raise ValueError("weekly_attendance_days must be at least 1")

    present_counts = _count_by_department((record.department_name for record in records), taxonomy)
    total_counts = _count_by_department((entry.department_name for entry in roster), taxonomy)

    stats: list[DepartmentStat] = []
    for department in taxonomy:
        present = present_counts[department]
        total = total_counts[department]
        if mode == "weekly":
            present = round_half_up(present / weekly_attendance_days * weekly_attendance_days)
            total = total * weekly_attendance_days
        stats.append(
            DepartmentStat(
                department=department,
                total=total,
                present=present,
                absent=total - present,
            )
        )
    return tuple(stats)
