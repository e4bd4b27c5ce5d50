from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date
from typing import Protocol, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import FetchFailure
from app.models import Attendance, Employee
from app.services.records import AttendanceRecord, RosterEntry

logger = logging.getLogger("app.data_store")

T = TypeVar("T")


class AttendanceDataStore(Protocol):
    def count_roster(self) -> int: ...

    def fetch_roster(self) -> list[RosterEntry]: ...

    def fetch_attendance(self, day: date) -> list[AttendanceRecord]: ...

    def fetch_attendance_range(self, start_date: date, end_date: date) -> list[AttendanceRecord]: ...


ATTENDANCE_COLUMNS = tuple(Attendance.__table__.columns.keys())


def _to_record(row: Attendance) -> AttendanceRecord:
    return AttendanceRecord(
        department_name=row.department_name,
        check_in_date=row.check_in_date,
        check_in_time=row.check_in_time,
        extra={
            "id": row.id,
            "employee_id": row.employee_id,
            "employee_name": row.employee_name,
            "remarks": row.remarks,
        },
        field_order=ATTENDANCE_COLUMNS,
    )


class SqlAlchemyAttendanceStore:
    """Reads roster and check-ins; every call opens its own session so calls can run in parallel."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def _run(self, operation: str, query: Callable[[Session], T]) -> T:
        try:
            with self._session_factory() as db:
                return query(db)
        except SQLAlchemyError as exc:
            logger.exception("data_store_query_failed", extra={"operation": operation})
            raise FetchFailure(operation, f"{operation} failed: {exc.__class__.__name__}") from exc

    def count_roster(self) -> int:
        return self._run(
            "count_roster",
            lambda db: int(db.scalar(select(func.count()).select_from(Employee)) or 0),
        )

    def fetch_roster(self) -> list[RosterEntry]:
        def _query(db: Session) -> list[RosterEntry]:
            employees = db.scalars(select(Employee).order_by(Employee.id)).all()
            return [
                RosterEntry(employee_id=item.id, department_name=item.department, full_name=item.full_name)
                for item in employees
            ]

        return self._run("fetch_roster", _query)

    def fetch_attendance(self, day: date) -> list[AttendanceRecord]:
        def _query(db: Session) -> list[AttendanceRecord]:
            rows = db.scalars(
                select(Attendance)
                .where(Attendance.check_in_date == day)
                .order_by(Attendance.check_in_time.desc(), Attendance.id.desc())
            ).all()
            return [_to_record(row) for row in rows]

        return self._run("fetch_attendance", _query)

    def fetch_attendance_range(self, start_date: date, end_date: date) -> list[AttendanceRecord]:
        def _query(db: Session) -> list[AttendanceRecord]:
            rows = db.scalars(
                select(Attendance)
                .where(
                    Attendance.check_in_date >= start_date,
                    Attendance.check_in_date <= end_date,
                )
                .order_by(Attendance.check_in_date, Attendance.check_in_time, Attendance.id)
            ).all()
            return [_to_record(row) for row in rows]

        return self._run("fetch_attendance_range", _query)
