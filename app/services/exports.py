from __future__ import annotations

import logging
from datetime import date, datetime, time
from io import BytesIO
from pathlib import Path

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import IllegalCharacterError
from openpyxl.worksheet.worksheet import Worksheet

from app.errors import ExportFailure
from app.services.reports import (
    SUMMARY_METADATA_ROWS,
    SUMMARY_REPORT_TITLE,
    Report,
    ReportSheet,
)

logger = logging.getLogger("app.exports")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

HEADER_FILL = PatternFill(fill_type="solid", fgColor="0B4F73")
META_LABEL_FILL = PatternFill(fill_type="solid", fgColor="EAF4F9")
META_VALUE_FILL = PatternFill(fill_type="solid", fgColor="F8FCFF")
SUMMARY_FILL = PatternFill(fill_type="solid", fgColor="E9F1F7")
ZEBRA_FILL = PatternFill(fill_type="solid", fgColor="F7FBFE")
ALERT_FILL = PatternFill(fill_type="solid", fgColor="FDE2E4")

HEADER_FONT = Font(bold=True, color="FFFFFF")
BOLD_FONT = Font(bold=True, color="0F172A")
TITLE_FONT = Font(bold=True, color="0B4F73", size=14)
MUTED_FONT = Font(color="334155")

THIN_SIDE = Side(style="thin", color="D5E2EC")
THIN_BORDER = Border(left=THIN_SIDE, right=THIN_SIDE, top=THIN_SIDE, bottom=THIN_SIDE)


def _style_header(ws: Worksheet, row: int = 1) -> None:
    for cell in ws[row]:
        if cell.value is None:
            continue
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = THIN_BORDER


def _auto_width(ws: Worksheet) -> None:
    for column_cells in ws.iter_cols(min_row=1, max_row=ws.max_row, min_col=1, max_col=ws.max_column):
        max_len = 0
        col_letter = get_column_letter(column_cells[0].column)
        for cell in column_cells:
            if cell.coordinate in ws.merged_cells:
                continue
            value = "" if cell.value is None else str(cell.value)
            max_len = max(max_len, len(value))
        ws.column_dimensions[col_letter].width = min(max_len + 2, 45)


def _merge_title(ws: Worksheet, row: int, text: str, *, width: int) -> None:
    ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=max(width, 1))
    cell = ws.cell(row=row, column=1, value=text)
    cell.font = TITLE_FONT
    cell.alignment = Alignment(horizontal="left", vertical="center")


def _style_key_value_rows(ws: Worksheet, *, start_row: int, end_row: int, label_fill: PatternFill) -> None:
    for row_idx in range(start_row, end_row + 1):
        label_cell = ws.cell(row=row_idx, column=1)
        value_cell = ws.cell(row=row_idx, column=2)
        label_cell.font = BOLD_FONT
        label_cell.fill = label_fill
        label_cell.alignment = Alignment(horizontal="left", vertical="center")
        label_cell.border = THIN_BORDER

        value_cell.font = MUTED_FONT
        value_cell.fill = META_VALUE_FILL
        value_cell.alignment = Alignment(horizontal="left", vertical="center")
        value_cell.border = THIN_BORDER


def _style_table_region(ws: Worksheet, *, header_row: int, data_end_row: int, alert_col: int | None = None) -> None:
    ws.freeze_panes = f"A{header_row + 1}"
    if data_end_row <= header_row:
        return

    ws.auto_filter.ref = f"A{header_row}:{get_column_letter(ws.max_column)}{data_end_row}"
    for row_idx in range(header_row + 1, data_end_row + 1):
        row_fill = ZEBRA_FILL if row_idx % 2 == 0 else None
        for col_idx in range(1, ws.max_column + 1):
            cell = ws.cell(row=row_idx, column=col_idx)
            cell.border = THIN_BORDER
            if row_fill is not None:
                cell.fill = row_fill
            if isinstance(cell.value, (int, float)):
                cell.alignment = Alignment(horizontal="center", vertical="center")
            else:
                cell.alignment = Alignment(horizontal="left", vertical="center")
            if isinstance(cell.value, datetime):
                cell.number_format = "yyyy-mm-dd hh:mm:ss"
            elif isinstance(cell.value, date):
                cell.number_format = "yyyy-mm-dd"
            elif isinstance(cell.value, time):
                cell.number_format = "hh:mm:ss"

        if alert_col is not None:
            alert_cell = ws.cell(row=row_idx, column=alert_col)
            # more check-ins than roster members
            if isinstance(alert_cell.value, int) and alert_cell.value < 0:
                alert_cell.fill = ALERT_FILL
                alert_cell.font = Font(bold=True, color="9F1239")


def _safe_sheet_title(title: str, fallback: str) -> str:
    cleaned = "".join(ch for ch in title if ch not in ['\\', '/', '*', '?', ':', '[', ']']).strip()
    if not cleaned:
        cleaned = fallback
    return cleaned[:31]


def _cell_value(value: object) -> object:
    if isinstance(value, str):
        # free-text columns can carry control characters that worksheets reject
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    if value is None or isinstance(value, (int, float, bool, date, time)):
        return value
    return ILLEGAL_CHARACTERS_RE.sub("", str(value))


def _write_summary_sheet(ws: Worksheet, sheet: ReportSheet) -> None:
    ws.title = _safe_sheet_title(sheet.title, "Summary")
    _merge_title(ws, 1, SUMMARY_REPORT_TITLE, width=2)
    ws.append([])

    metadata = sheet.rows[:SUMMARY_METADATA_ROWS]
    figures = sheet.rows[SUMMARY_METADATA_ROWS:]

    # max_row ignores blank appended rows, so ranges are counted back from the last written row
    for label, value in metadata:
        ws.append([label, _cell_value(value)])
    meta_end = ws.max_row
    _style_key_value_rows(ws, start_row=meta_end - len(metadata) + 1, end_row=meta_end, label_fill=META_LABEL_FILL)

    ws.append([])
    for label, value in figures:
        ws.append([label, _cell_value(value)])
    figures_end = ws.max_row
    _style_key_value_rows(
        ws,
        start_row=figures_end - len(figures) + 1,
        end_row=figures_end,
        label_fill=SUMMARY_FILL,
    )
    _auto_width(ws)


def _write_table_sheet(ws: Worksheet, sheet: ReportSheet, *, alert_header: str | None = None) -> None:
    ws.title = _safe_sheet_title(sheet.title, "Sheet")
    header = sheet.header or ()
    ws.append([_cell_value(str(column)) for column in header])
    _style_header(ws, 1)
    for row in sheet.body:
        ws.append([_cell_value(value) for value in row])

    alert_col = None
    if alert_header is not None and alert_header in header:
        alert_col = header.index(alert_header) + 1
    _style_table_region(ws, header_row=1, data_end_row=ws.max_row, alert_col=alert_col)
    _auto_width(ws)


def build_report_workbook(report: Report) -> Workbook:
    wb = Workbook()
    first = True
    for sheet in report.sheets:
        if first:
            ws = wb.active
            first = False
        else:
            ws = wb.create_sheet()

        if sheet.kind == "key_value":
            _write_summary_sheet(ws, sheet)
        else:
            _write_table_sheet(ws, sheet, alert_header="Absent")

    wb.properties.title = report.artifact_name
    wb.properties.created = report.generated_at.replace(tzinfo=None)
    return wb


def build_report_xlsx_bytes(report: Report) -> bytes:
    try:
        wb = build_report_workbook(report)
        stream = BytesIO()
        wb.save(stream)
    except (ValueError, TypeError, KeyError, IllegalCharacterError) as exc:
        logger.exception("report_export_failed", extra={"artifact_name": report.artifact_name})
        raise ExportFailure(f"Could not build workbook {report.artifact_name}: {exc}") from exc
    return stream.getvalue()


def export_report(report: Report, output_dir: str | Path) -> str:
    """Write ``<artifact_name>.xlsx`` into ``output_dir`` and return the artifact name."""
    payload = build_report_xlsx_bytes(report)
    target = Path(output_dir) / report.filename
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(payload)
    except OSError as exc:
        logger.exception(
            "report_export_failed",
            extra={"artifact_name": report.artifact_name, "path": str(target)},
        )
        raise ExportFailure(f"Could not write {target}: {exc}") from exc

    logger.info(
        "report_exported",
        extra={"artifact_name": report.artifact_name, "path": str(target), "size_bytes": len(payload)},
    )
    return report.artifact_name
