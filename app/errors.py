from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


class ReportError(Exception):
    """Base class for failures raised while producing an attendance report."""

    code = "REPORT_FAILED"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class FetchFailure(ReportError):
    """A data-store read failed; the refresh that issued it is aborted."""

    code = "FETCH_FAILED"

    def __init__(self, operation: str, message: str):
        super().__init__(message)
        self.operation = operation


class ExportFailure(ReportError):
    """The report artifact could not be assembled or written."""

    code = "EXPORT_FAILED"
    user_message = "Error exporting report. Please try again."


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(request: Request, *, status_code: int, code: str, message: str) -> JSONResponse:
    payload = {
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
        }
    }
    return JSONResponse(status_code=status_code, content=payload)
