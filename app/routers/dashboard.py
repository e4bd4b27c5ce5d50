import asyncio
from datetime import date, datetime, timezone
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request, Response, status

from app.db import SessionLocal
from app.errors import ApiError, ExportFailure, FetchFailure
from app.schemas import (
    AttendanceSummaryRead,
    DashboardResponse,
    DateWindowRead,
    DepartmentStatRead,
    ReportExportResponse,
)
from app.services.dashboard import DashboardRefresher, RefreshResult, report_options_from_settings
from app.services.data_store import SqlAlchemyAttendanceStore
from app.services.exports import XLSX_MEDIA_TYPE, build_report_xlsx_bytes, export_report
from app.settings import get_settings

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_dashboard_refresher(request: Request) -> DashboardRefresher:
    refresher = getattr(request.app.state, "dashboard_refresher", None)
    if refresher is None:
        refresher = DashboardRefresher(
            store=SqlAlchemyAttendanceStore(SessionLocal),
            options=report_options_from_settings(get_settings()),
        )
        request.app.state.dashboard_refresher = refresher
    return refresher


def get_report_output_dir() -> str:
    return get_settings().report_output_dir


async def _refresh(refresher: DashboardRefresher, mode: str, reference_date: date) -> RefreshResult:
    try:
        return await refresher.refresh(mode, reference_date, generated_at=utc_now())  # type: ignore[arg-type]
    except FetchFailure as exc:
        raise ApiError(
            status_code=status.HTTP_502_BAD_GATEWAY,
            code=exc.code,
            message=f"Attendance data could not be loaded ({exc.operation}).",
        ) from exc


@router.get("", response_model=DashboardResponse)
async def read_dashboard(
    mode: Literal["daily", "weekly"] = Query(default="daily"),
    reference_date: date = Query(..., alias="date"),
    refresher: DashboardRefresher = Depends(get_dashboard_refresher),
) -> DashboardResponse:
    result = await _refresh(refresher, mode, reference_date)
    snapshot = result.snapshot
    return DashboardResponse(
        mode=snapshot.mode,
        reference_date=snapshot.reference_date,
        generated_at=snapshot.report.generated_at,
        generation=result.generation,
        stale=not result.applied,
        taxonomy_version=refresher.options.taxonomy.version,
        window=DateWindowRead.model_validate(snapshot.window),
        summary=AttendanceSummaryRead.model_validate(snapshot.summary),
        departments=[DepartmentStatRead.model_validate(item) for item in snapshot.departments],
        detail_row_count=len(snapshot.detail_records),
        chart_max=snapshot.chart_max,
        artifact_name=snapshot.report.artifact_name,
    )


@router.get("/export.xlsx")
async def download_report(
    mode: Literal["daily", "weekly"] = Query(default="daily"),
    reference_date: date = Query(..., alias="date"),
    refresher: DashboardRefresher = Depends(get_dashboard_refresher),
) -> Response:
    result = await _refresh(refresher, mode, reference_date)
    report = result.snapshot.report
    try:
        payload = await asyncio.to_thread(build_report_xlsx_bytes, report)
    except ExportFailure as exc:
        raise ApiError(status_code=500, code=exc.code, message=exc.user_message) from exc

    return Response(
        content=payload,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{report.filename}"'},
    )


@router.post("/exports", response_model=ReportExportResponse)
async def create_report_export(
    mode: Literal["daily", "weekly"] = Query(default="daily"),
    reference_date: date = Query(..., alias="date"),
    refresher: DashboardRefresher = Depends(get_dashboard_refresher),
    output_dir: str = Depends(get_report_output_dir),
) -> ReportExportResponse:
    result = await _refresh(refresher, mode, reference_date)
    report = result.snapshot.report
    try:
        artifact_name = await asyncio.to_thread(export_report, report, output_dir)
    except ExportFailure as exc:
        raise ApiError(status_code=500, code=exc.code, message=exc.user_message) from exc

    return ReportExportResponse(
        artifact_name=artifact_name,
        filename=report.filename,
        sheets=[sheet.title for sheet in report.sheets],
    )
