from datetime import date, time
import unittest

from sqlalchemy.exc import OperationalError

from app.errors import FetchFailure
from app.models import Attendance
from app.services.data_store import SqlAlchemyAttendanceStore, _to_record


class _BrokenSession:
    def __enter__(self):  # type: ignore[no-untyped-def]
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    def __exit__(self, *exc_info: object) -> bool:
        return False


class AttendanceDataStoreTests(unittest.TestCase):
    def test_record_keeps_table_column_order(self) -> None:
        row = Attendance(
            id=7,
            employee_id=3,
            employee_name="Ada",
            department_name="HR",
            check_in_date=date(2024, 6, 12),
            check_in_time=time(8, 30),
            remarks=None,
        )

        record = _to_record(row)

        self.assertEqual(
            list(record.as_row()),
            ["id", "employee_id", "employee_name", "department_name", "check_in_date", "check_in_time", "remarks"],
        )
        self.assertEqual(record.as_row()["employee_name"], "Ada")

    def test_database_error_becomes_fetch_failure(self) -> None:
        store = SqlAlchemyAttendanceStore(_BrokenSession)

        with self.assertRaises(FetchFailure) as ctx:
            store.fetch_attendance(date(2024, 6, 12))

        self.assertEqual(ctx.exception.operation, "fetch_attendance")
        self.assertEqual(ctx.exception.code, "FETCH_FAILED")
        self.assertIsInstance(ctx.exception.__cause__, OperationalError)


if __name__ == "__main__":
    unittest.main()
