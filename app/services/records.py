from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True, slots=True)
class AttendanceRecord:
    """One check-in row. ``extra`` holds whatever descriptive columns the store returned.

    ``field_order`` is the store's column order; ``as_row`` follows it when given.
    """

    department_name: str | None
    check_in_date: date
    check_in_time: time
    extra: Mapping[str, Any] = field(default_factory=dict)
    field_order: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))
        object.__setattr__(self, "field_order", tuple(self.field_order))

    @property
    def checked_in_at(self) -> datetime:
        return datetime.combine(self.check_in_date, self.check_in_time)

    def as_row(self) -> dict[str, Any]:
        values: dict[str, Any] = {
            "department_name": self.department_name,
            "check_in_date": self.check_in_date,
            "check_in_time": self.check_in_time,
        }
        for key, value in self.extra.items():
            values.setdefault(key, value)

        row = {key: values[key] for key in self.field_order if key in values}
        for key, value in values.items():
            row.setdefault(key, value)
        return row


@dataclass(frozen=True, slots=True)
class RosterEntry:
    employee_id: int | str
    department_name: str | None
    full_name: str | None = None
