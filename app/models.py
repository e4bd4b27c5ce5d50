from __future__ import annotations

from datetime import date, time

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


class Employee(Base):
    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    department: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    attendance: Mapped[list[Attendance]] = relationship(back_populates="employee")


class Attendance(Base):
    __tablename__ = "attendance"
    __table_args__ = (Index("ix_attendance_check_in", "check_in_date", "check_in_time"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int | None] = mapped_column(
        ForeignKey("employees.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    employee_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    department_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    check_in_date: Mapped[date] = mapped_column(Date, nullable=False)
    check_in_time: Mapped[time] = mapped_column(Time, nullable=False)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    employee: Mapped[Employee | None] = relationship(back_populates="attendance")
