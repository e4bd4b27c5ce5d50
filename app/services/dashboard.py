from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Literal, get_args

from app.errors import FetchFailure
from app.services.aggregation import AttendanceSummary, summarize_attendance
from app.services.data_store import AttendanceDataStore
from app.services.date_windows import (
    DAYS_PER_WEEK,
    DateWindow,
    ReportMode,
    SundayPolicy,
    compute_date_window,
    parse_reference_date,
)
from app.services.department_stats import DepartmentStat, DepartmentTaxonomy, calculate_department_stats
from app.services.records import AttendanceRecord, RosterEntry
from app.services.reports import Report, build_report
from app.settings import Settings, get_department_names, get_detail_columns

logger = logging.getLogger("app.dashboard")

SummaryScope = Literal["window", "reference_day"]


@dataclass(frozen=True, slots=True)
class ReportOptions:
    taxonomy: DepartmentTaxonomy
    sunday_policy: SundayPolicy = "previous_week"
    weekly_attendance_days: int = DAYS_PER_WEEK
    weekly_summary_scope: SummaryScope = "window"
    detail_columns: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        if self.sunday_policy not in get_args(SundayPolicy):
            raise ValueError(f"Unknown sunday policy: {self.sunday_policy!r}")
        if self.weekly_summary_scope not in get_args(SummaryScope):
            raise ValueError(f"Unknown weekly summary scope: {self.weekly_summary_scope!r}")
        if self.weekly_attendance_days < 1:
            raise ValueError("weekly_attendance_days must be at least 1")


def report_options_from_settings(settings: Settings) -> ReportOptions:
    columns = get_detail_columns(settings)
    return ReportOptions(
        taxonomy=DepartmentTaxonomy.from_names(
            get_department_names(settings),
            version=settings.department_taxonomy_version,
        ),
        sunday_policy=settings.sunday_week_policy,  # type: ignore[arg-type]
        weekly_attendance_days=settings.weekly_attendance_days,
        weekly_summary_scope=settings.weekly_summary_scope,  # type: ignore[arg-type]
        detail_columns=tuple(columns) if columns else None,
    )


@dataclass(frozen=True, slots=True)
class FetchedInputs:
    roster_count: int
    roster: tuple[RosterEntry, ...]
    window_records: tuple[AttendanceRecord, ...]
    reference_day_records: tuple[AttendanceRecord, ...]


@dataclass(frozen=True, slots=True)
class DashboardSnapshot:
    mode: ReportMode
    reference_date: date
    window: DateWindow
    summary: AttendanceSummary
    departments: tuple[DepartmentStat, ...]
    detail_records: tuple[AttendanceRecord, ...]
    report: Report

    @property
    def chart_max(self) -> int:
        return max([1, *(max(item.present, item.absent) for item in self.departments)])


def _coerce_reference_date(value: date | str) -> date:
    if isinstance(value, str):
        return parse_reference_date(value)
    return value


def fetch_inputs(store: AttendanceDataStore, window: DateWindow, reference_date: date) -> FetchedInputs:
    roster_count = store.count_roster()
    roster = store.fetch_roster()
    reference_day_records = store.fetch_attendance(reference_date)
    if window.mode == "daily":
        window_records = reference_day_records
    else:
        window_records = store.fetch_attendance_range(window.start_date, window.end_date)
    return FetchedInputs(
        roster_count=roster_count,
        roster=tuple(roster),
        window_records=tuple(window_records),
        reference_day_records=tuple(reference_day_records),
    )


async def fetch_inputs_concurrently(
    store: AttendanceDataStore,
    window: DateWindow,
    reference_date: date,
) -> FetchedInputs:
    """Same reads as ``fetch_inputs``, issued in parallel worker threads and joined."""
    calls = [
        asyncio.to_thread(store.count_roster),
        asyncio.to_thread(store.fetch_roster),
        asyncio.to_thread(store.fetch_attendance, reference_date),
    ]
    if window.mode == "weekly":
        calls.append(asyncio.to_thread(store.fetch_attendance_range, window.start_date, window.end_date))

    results = await asyncio.gather(*calls)
    roster_count, roster, reference_day_records = results[0], results[1], results[2]
    window_records = results[3] if window.mode == "weekly" else reference_day_records
    return FetchedInputs(
        roster_count=roster_count,
        roster=tuple(roster),
        window_records=tuple(window_records),
        reference_day_records=tuple(reference_day_records),
    )


def assemble_dashboard(
    inputs: FetchedInputs,
    *,
    window: DateWindow,
    reference_date: date,
    generated_at: datetime,
    options: ReportOptions,
) -> DashboardSnapshot:
    mode = window.mode
    in_window = tuple(record for record in inputs.window_records if window.contains(record.checked_in_at))

    summary_records: Sequence[AttendanceRecord] = in_window
    if mode == "weekly" and options.weekly_summary_scope == "reference_day":
        summary_records = inputs.reference_day_records

    summary = summarize_attendance(inputs.roster_count, summary_records)
    departments = calculate_department_stats(
        in_window,
        inputs.roster,
        options.taxonomy,
        mode,
        weekly_attendance_days=options.weekly_attendance_days,
    )
    report = build_report(
        summary,
        departments,
        in_window,
        mode=mode,
        reference_date=reference_date,
        generated_at=generated_at,
        detail_columns=options.detail_columns,
    )
    return DashboardSnapshot(
        mode=mode,
        reference_date=reference_date,
        window=window,
        summary=summary,
        departments=departments,
        detail_records=in_window,
        report=report,
    )


def compute_dashboard(
    store: AttendanceDataStore,
    mode: ReportMode,
    reference_date: date | str,
    *,
    generated_at: datetime,
    options: ReportOptions,
) -> DashboardSnapshot:
    reference_day = _coerce_reference_date(reference_date)
    window = compute_date_window(reference_day, mode, sunday_policy=options.sunday_policy)
    inputs = fetch_inputs(store, window, reference_day)
    return assemble_dashboard(
        inputs,
        window=window,
        reference_date=reference_day,
        generated_at=generated_at,
        options=options,
    )


def compute(
    store: AttendanceDataStore,
    mode: ReportMode,
    reference_date: date | str,
    *,
    generated_at: datetime,
    options: ReportOptions,
) -> Report:
    return compute_dashboard(
        store,
        mode,
        reference_date,
        generated_at=generated_at,
        options=options,
    ).report


@dataclass(frozen=True, slots=True)
class DashboardState:
    generation: int = 0
    daily_records: tuple[AttendanceRecord, ...] = ()
    weekly_records: tuple[AttendanceRecord, ...] = ()
    summary: AttendanceSummary | None = None
    departments: tuple[DepartmentStat, ...] = ()
    snapshot: DashboardSnapshot | None = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class RefreshResult:
    snapshot: DashboardSnapshot
    generation: int
    applied: bool


@dataclass
class DashboardRefresher:
    """Holds the latest published dashboard state.

    Each refresh takes a generation number when it starts. A refresh only publishes
    if no later refresh has started in the meantime, so a slow, superseded request
    never replaces the result of a newer one.
    """

    store: AttendanceDataStore
    options: ReportOptions
    _state: DashboardState = field(default_factory=DashboardState, init=False)
    _latest_generation: int = field(default=0, init=False)
    _generations: itertools.count = field(default_factory=lambda: itertools.count(1), init=False)

    @property
    def state(self) -> DashboardState:
        return self._state

    def is_latest(self, generation: int) -> bool:
        return generation == self._latest_generation

    async def refresh(
        self,
        mode: ReportMode,
        reference_date: date | str,
        *,
        generated_at: datetime,
    ) -> RefreshResult:
        # rejected input must not supersede a refresh already in flight
        reference_day = _coerce_reference_date(reference_date)
        window = compute_date_window(reference_day, mode, sunday_policy=self.options.sunday_policy)

        generation = next(self._generations)
        self._latest_generation = generation
        try:
            inputs = await fetch_inputs_concurrently(self.store, window, reference_day)
        except FetchFailure as exc:
            logger.error(
                "dashboard_fetch_failed",
                extra={
                    "generation": generation,
                    "mode": mode,
                    "reference_date": reference_day.isoformat(),
                    "operation": exc.operation,
                },
            )
            if self.is_latest(generation):
                # row sets from earlier refreshes stay; only department stats are cleared
                self._state = replace(self._state, generation=generation, departments=(), error=exc.code)
            raise

        snapshot = assemble_dashboard(
            inputs,
            window=window,
            reference_date=reference_day,
            generated_at=generated_at,
            options=self.options,
        )
        if not self.is_latest(generation):
            logger.info(
                "dashboard_refresh_superseded",
                extra={"generation": generation, "latest_generation": self._latest_generation},
            )
            return RefreshResult(snapshot=snapshot, generation=generation, applied=False)

        self._state = DashboardState(
            generation=generation,
            daily_records=inputs.reference_day_records,
            weekly_records=snapshot.detail_records if mode == "weekly" else self._state.weekly_records,
            summary=snapshot.summary,
            departments=snapshot.departments,
            snapshot=snapshot,
        )
        logger.info(
            "dashboard_refresh_complete",
            extra={
                "generation": generation,
                "mode": mode,
                "reference_date": reference_day.isoformat(),
                "present": snapshot.summary.present,
                "headcount": snapshot.summary.headcount,
                "detail_rows": len(snapshot.detail_records),
            },
        )
        return RefreshResult(snapshot=snapshot, generation=generation, applied=True)
