from __future__ import annotations

import unittest
from unittest.mock import patch

from app.services.schema_guard import verify_runtime_schema


class _FakeResult:
    def __init__(self, value):
        self._value = value

    def scalar(self):  # type: ignore[no-untyped-def]
        return self._value


class _FakeConnection:
    def __init__(self, version_value):
        self._version_value = version_value

    def __enter__(self):  # type: ignore[no-untyped-def]
        return self

    def __exit__(self, exc_type, exc, tb):  # type: ignore[no-untyped-def]
        return False

    def execute(self, _statement):  # type: ignore[no-untyped-def]
        return _FakeResult(self._version_value)


class _FakeEngine:
    def __init__(self, version_value):
        self._version_value = version_value

    def connect(self):  # type: ignore[no-untyped-def]
        return _FakeConnection(self._version_value)


class _FakeInspector:
    def __init__(self, *, columns_by_table: dict[str, set[str]]):
        self._columns_by_table = columns_by_table

    def get_columns(self, table_name: str):  # type: ignore[no-untyped-def]
        columns = self._columns_by_table[table_name]
        return [{"name": item} for item in columns]


class SchemaGuardTests(unittest.TestCase):
    def test_verify_runtime_schema_ok_when_required_columns_exist(self) -> None:
        fake_inspector = _FakeInspector(
            columns_by_table={
                "employees": {"id", "full_name", "department"},
                "attendance": {
                    "id",
                    "employee_id",
                    "employee_name",
                    "department_name",
                    "check_in_date",
                    "check_in_time",
                    "remarks",
                },
                "alembic_version": {"version_num"},
            },
        )
        fake_engine = _FakeEngine("0001_initial")

        with patch("app.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]

        self.assertTrue(result.ok)
        self.assertEqual(result.issues, [])
        self.assertEqual(result.warnings, [])

    def test_verify_runtime_schema_reports_missing_columns(self) -> None:
        fake_inspector = _FakeInspector(
            columns_by_table={
                "employees": {"id", "full_name"},
                "attendance": {"id", "department_name", "check_in_date"},
                "alembic_version": {"version_num"},
            },
        )
        fake_engine = _FakeEngine("")

        with patch("app.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]

        self.assertFalse(result.ok)
        self.assertIn("MISSING_COLUMNS:employees:department", result.issues)
        self.assertIn("MISSING_COLUMNS:attendance:check_in_time", result.issues)
        self.assertIn("ALEMBIC_VERSION_EMPTY", result.issues)
        self.assertIn("MISSING_OPTIONAL_COLUMNS:attendance:employee_id,employee_name,remarks", result.warnings)

    def test_result_to_dict_counts(self) -> None:
        fake_inspector = _FakeInspector(
            columns_by_table={
                "employees": {"id", "department"},
                "attendance": {"id", "department_name", "check_in_date", "check_in_time"},
                "alembic_version": {"version_num"},
            },
        )

        with patch("app.services.schema_guard.inspect", return_value=fake_inspector):
            payload = verify_runtime_schema(_FakeEngine("0001_initial")).to_dict()  # type: ignore[arg-type]

        self.assertTrue(payload["ok"])
        self.assertEqual(payload["issue_count"], 0)
        self.assertEqual(payload["warning_count"], 1)


if __name__ == "__main__":
    unittest.main()
