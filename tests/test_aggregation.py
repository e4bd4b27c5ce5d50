from datetime import date, time
import unittest

from app.services.aggregation import AttendanceSummary, percentage, round_half_up, summarize_attendance
from app.services.records import AttendanceRecord


def _records(count: int, department: str = "HR") -> list[AttendanceRecord]:
    return [
        AttendanceRecord(
            department_name=department,
            check_in_date=date(2024, 6, 12),
            check_in_time=time(8, 0),
            extra={"employee_id": index},
        )
        for index in range(count)
    ]


class AttendanceAggregationTests(unittest.TestCase):
    def test_headcount_100_present_45(self) -> None:
        summary = summarize_attendance(100, _records(45))

        self.assertEqual(summary, AttendanceSummary(headcount=100, present=45, absent=55, percentage=45))

    def test_zero_headcount_gives_zero_percentage(self) -> None:
        summary = summarize_attendance(0, [])

        self.assertEqual(summary.percentage, 0)
        self.assertEqual(summary.absent, 0)

    def test_zero_headcount_with_records_passes_negative_absent_through(self) -> None:
        summary = summarize_attendance(0, _records(3))

        self.assertEqual(summary.present, 3)
        self.assertEqual(summary.absent, -3)
        self.assertEqual(summary.percentage, 0)

    def test_duplicate_check_ins_are_not_merged(self) -> None:
        duplicated = _records(1) * 3

        summary = summarize_attendance(2, duplicated)

        self.assertEqual(summary.present, 3)
        self.assertEqual(summary.absent, -1)
        self.assertEqual(summary.percentage, 150)

    def test_departments_outside_taxonomy_still_count(self) -> None:
        rows = _records(2, "HR") + _records(3, "Unknown Dept")

        summary = summarize_attendance(10, rows)

        self.assertEqual(summary.present, 5)

    def test_percentage_rounds_half_up(self) -> None:
        self.assertEqual(percentage(1, 8), 13)  # 12.5
        self.assertEqual(percentage(1, 3), 33)
        self.assertEqual(percentage(2, 3), 67)
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(4.999999999), 5)

    def test_absent_and_percentage_invariants(self) -> None:
        for headcount in range(0, 12):
            for present in range(0, 15):
                summary = summarize_attendance(headcount, _records(present))
                self.assertEqual(summary.absent, headcount - present)
                expected = round_half_up(present / headcount * 100) if headcount > 0 else 0
                self.assertEqual(summary.percentage, expected)

    def test_negative_roster_rejected(self) -> None:
        with self.assertRaises(ValueError):
            summarize_attendance(-1, [])


if __name__ == "__main__":
    unittest.main()
