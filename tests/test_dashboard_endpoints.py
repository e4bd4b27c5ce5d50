from datetime import date, time
from io import BytesIO
from pathlib import Path
import tempfile
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient
from openpyxl import load_workbook

from app.errors import ExportFailure, FetchFailure
from app.main import app
from app.routers.dashboard import get_dashboard_refresher, get_report_output_dir
from app.services.dashboard import DashboardRefresher, ReportOptions
from app.services.department_stats import DepartmentTaxonomy
from app.services.records import AttendanceRecord, RosterEntry


class FakeStore:
    def __init__(self, *, failing: bool = False):
        self.failing = failing
        self.roster = [RosterEntry(employee_id=index, department_name="R&D") for index in range(1, 21)]
        self.records = [
            AttendanceRecord(
                department_name="R&D",
                check_in_date=date(2024, 6, 12),
                check_in_time=time(8, index),
                extra={"employee_id": index},
            )
            for index in range(1, 6)
        ]

    def count_roster(self) -> int:
        return len(self.roster)

    def fetch_roster(self) -> list[RosterEntry]:
        if self.failing:
            raise FetchFailure("fetch_roster", "connection refused")
        return self.roster

    def fetch_attendance(self, day: date) -> list[AttendanceRecord]:
        return [item for item in self.records if item.check_in_date == day]

    def fetch_attendance_range(self, start_date: date, end_date: date) -> list[AttendanceRecord]:
        return [item for item in self.records if start_date <= item.check_in_date <= end_date]


def override_refresher(store: FakeStore) -> DashboardRefresher:
    refresher = DashboardRefresher(
        store=store,
        options=ReportOptions(taxonomy=DepartmentTaxonomy.from_names(["R&D", "HR"], version="2024.1")),
    )

    def _override() -> DashboardRefresher:
        return refresher

    app.dependency_overrides[get_dashboard_refresher] = _override
    return refresher


class DashboardEndpointTests(unittest.TestCase):
    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def test_daily_dashboard(self) -> None:
        override_refresher(FakeStore())
        client = TestClient(app)

        response = client.get("/api/dashboard", params={"mode": "daily", "date": "2024-06-12"})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["summary"], {"headcount": 20, "present": 5, "absent": 15, "percentage": 25})
        self.assertEqual(body["departments"][0], {"department": "R&D", "total": 20, "present": 5, "absent": 15, "rate": 25})
        self.assertEqual(body["departments"][1]["department"], "HR")
        self.assertEqual(body["artifact_name"], "Attendance_Report_Daily_2024-06-12")
        self.assertEqual(body["detail_row_count"], 5)
        self.assertEqual(body["chart_max"], 15)
        self.assertEqual(body["generation"], 1)
        self.assertFalse(body["stale"])
        self.assertEqual(body["taxonomy_version"], "2024.1")
        self.assertEqual(body["window"]["start_date"], "2024-06-12")
        self.assertIn("X-Request-Id", response.headers)

    def test_weekly_dashboard_window(self) -> None:
        override_refresher(FakeStore())
        client = TestClient(app)

        response = client.get("/api/dashboard", params={"mode": "weekly", "date": "2024-06-12"})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["window"]["start_date"], "2024-06-10")
        self.assertEqual(body["window"]["end_date"], "2024-06-16")
        self.assertEqual(body["departments"][0]["total"], 140)

    def test_invalid_date_is_validation_error(self) -> None:
        override_refresher(FakeStore())
        client = TestClient(app)

        response = client.get("/api/dashboard", params={"mode": "daily", "date": "12/06/2024"})

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "VALIDATION_ERROR")

    def test_fetch_failure_returns_502(self) -> None:
        override_refresher(FakeStore(failing=True))
        client = TestClient(app)

        response = client.get("/api/dashboard", params={"mode": "daily", "date": "2024-06-12"})

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()["error"]["code"], "FETCH_FAILED")

    def test_download_xlsx(self) -> None:
        override_refresher(FakeStore())
        client = TestClient(app)

        response = client.get("/api/dashboard/export.xlsx", params={"mode": "weekly", "date": "2024-06-12"})

        self.assertEqual(response.status_code, 200)
        self.assertIn(
            'filename="Attendance_Report_Weekly_2024-06-12.xlsx"',
            response.headers["content-disposition"],
        )
        wb = load_workbook(BytesIO(response.content))
        self.assertEqual(wb.sheetnames, ["Summary", "Department Data", "Detailed Attendance"])

    def test_create_export_writes_artifact(self) -> None:
        override_refresher(FakeStore())
        with tempfile.TemporaryDirectory() as tmp_dir:
            app.dependency_overrides[get_report_output_dir] = lambda: tmp_dir
            client = TestClient(app)

            response = client.post("/api/dashboard/exports", params={"mode": "daily", "date": "2024-06-12"})

            self.assertEqual(response.status_code, 200)
            body = response.json()
            self.assertEqual(body["artifact_name"], "Attendance_Report_Daily_2024-06-12")
            self.assertEqual(body["sheets"], ["Summary", "Department Data", "Detailed Attendance"])
            self.assertTrue((Path(tmp_dir) / "Attendance_Report_Daily_2024-06-12.xlsx").exists())

    def test_export_failure_is_reported_to_user(self) -> None:
        override_refresher(FakeStore())
        client = TestClient(app)

        with patch("app.routers.dashboard.export_report", side_effect=ExportFailure("disk full")):
            response = client.post("/api/dashboard/exports", params={"mode": "daily", "date": "2024-06-12"})

        self.assertEqual(response.status_code, 500)
        error = response.json()["error"]
        self.assertEqual(error["code"], "EXPORT_FAILED")
        self.assertEqual(error["message"], "Error exporting report. Please try again.")

    def test_health(self) -> None:
        client = TestClient(app)

        response = client.get("/health")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")


if __name__ == "__main__":
    unittest.main()
