from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Literal

from app.services.aggregation import AttendanceSummary
from app.services.date_windows import ReportMode
from app.services.department_stats import DepartmentStat
from app.services.records import AttendanceRecord

SheetKind = Literal["key_value", "table"]

SUMMARY_SHEET_TITLE = "Summary"
DEPARTMENT_SHEET_TITLE = "Department Data"
DETAIL_SHEET_TITLE = "Detailed Attendance"

SUMMARY_REPORT_TITLE = "Attendance Summary Report"
# label/value rows before the headcount figures start
SUMMARY_METADATA_ROWS = 3

DEPARTMENT_HEADERS = ("Department", "Total Employees", "Present", "Absent", "Attendance Rate")

PERIOD_LABELS: dict[str, str] = {"daily": "Daily", "weekly": "Weekly"}


@dataclass(frozen=True, slots=True)
class ReportSheet:
    title: str
    kind: SheetKind
    rows: tuple[tuple[Any, ...], ...]

    @property
    def header(self) -> tuple[Any, ...] | None:
        if self.kind != "table" or not self.rows:
            return None
        return self.rows[0]

    @property
    def body(self) -> tuple[tuple[Any, ...], ...]:
        if self.kind == "table":
            return self.rows[1:]
        return self.rows


@dataclass(frozen=True, slots=True)
class Report:
    artifact_name: str
    mode: ReportMode
    reference_date: date
    generated_at: datetime
    summary: AttendanceSummary
    departments: tuple[DepartmentStat, ...]
    sheets: tuple[ReportSheet, ...]

    @property
    def filename(self) -> str:
        return f"{self.artifact_name}.xlsx"

    def sheet(self, title: str) -> ReportSheet | None:
        for item in self.sheets:
            if item.title == title:
                return item
        return None


def build_artifact_name(mode: ReportMode, reference_date: date) -> str:
    return f"Attendance_Report_{PERIOD_LABELS[mode]}_{reference_date.isoformat()}"


def format_rate(value: int) -> str:
    return f"{value}%"


def build_summary_sheet(
    summary: AttendanceSummary,
    *,
    mode: ReportMode,
    reference_date: date,
    generated_at: datetime,
) -> ReportSheet:
    rows = (
        ("Report Type", f"{PERIOD_LABELS[mode]} Report"),
        ("Date", reference_date.isoformat()),
        ("Generated On", generated_at.strftime("%Y-%m-%d %H:%M:%S")),
        ("Total Head Count", summary.headcount),
        ("Total Present", summary.present),
        ("Total Absent", summary.absent),
        ("Attendance Percentage", format_rate(summary.percentage)),
    )
    return ReportSheet(title=SUMMARY_SHEET_TITLE, kind="key_value", rows=rows)


def build_department_sheet(departments: Sequence[DepartmentStat]) -> ReportSheet:
    rows: list[tuple[Any, ...]] = [DEPARTMENT_HEADERS]
    for stat in departments:
        rows.append((stat.department, stat.total, stat.present, stat.absent, format_rate(stat.rate)))
    return ReportSheet(title=DEPARTMENT_SHEET_TITLE, kind="table", rows=tuple(rows))


def build_detail_sheet(
    records: Sequence[AttendanceRecord],
    *,
    columns: Sequence[str] | None = None,
) -> ReportSheet | None:
    """Row dump of ``records`` projected onto ``columns``.

    Without explicit columns the header comes from the first record only and later
    records are projected onto it; fields a record lacks become empty cells.
    """
    if not records:
        return None

    row_dicts = [record.as_row() for record in records]
    header = tuple(columns) if columns else tuple(row_dicts[0].keys())
    rows: list[tuple[Any, ...]] = [header]
    for row in row_dicts:
        rows.append(tuple(row.get(column) for column in header))
    return ReportSheet(title=DETAIL_SHEET_TITLE, kind="table", rows=tuple(rows))


def build_report(
    summary: AttendanceSummary,
    departments: Sequence[DepartmentStat],
    records: Sequence[AttendanceRecord],
    *,
    mode: ReportMode,
    reference_date: date,
    generated_at: datetime,
    detail_columns: Sequence[str] | None = None,
) -> Report:
    sheets = [
        build_summary_sheet(summary, mode=mode, reference_date=reference_date, generated_at=generated_at),
        build_department_sheet(departments),
    ]
    detail_sheet = build_detail_sheet(records, columns=detail_columns)
    if detail_sheet is not None:
        sheets.append(detail_sheet)

    return Report(
        artifact_name=build_artifact_name(mode, reference_date),
        mode=mode,
        reference_date=reference_date,
        generated_at=generated_at,
        summary=summary,
        departments=tuple(departments),
        sheets=tuple(sheets),
    )
