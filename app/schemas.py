from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict


class DateWindowRead(BaseModel):
    start: datetime
    end: datetime
    start_date: date
    end_date: date

    model_config = ConfigDict(from_attributes=True)


class AttendanceSummaryRead(BaseModel):
    headcount: int
    present: int
    absent: int
    percentage: int

    model_config = ConfigDict(from_attributes=True)


class DepartmentStatRead(BaseModel):
    department: str
    total: int
    present: int
    absent: int
    rate: int

    model_config = ConfigDict(from_attributes=True)


class DashboardResponse(BaseModel):
    mode: Literal["daily", "weekly"]
    reference_date: date
    generated_at: datetime
    generation: int
    stale: bool
    taxonomy_version: str
    window: DateWindowRead
    summary: AttendanceSummaryRead
    departments: list[DepartmentStatRead]
    detail_row_count: int
    chart_max: int
    artifact_name: str


class ReportExportResponse(BaseModel):
    artifact_name: str
    filename: str
    sheets: list[str]
