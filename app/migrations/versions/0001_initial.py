"""Initial roster and attendance schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("department", sa.String(length=255), nullable=True),
    )
    op.create_index("ix_employees_department", "employees", ["department"])

    op.create_table(
        "attendance",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=True),
        sa.Column("employee_name", sa.String(length=255), nullable=True),
        sa.Column("department_name", sa.String(length=255), nullable=True),
        sa.Column("check_in_date", sa.Date(), nullable=False),
        sa.Column("check_in_time", sa.Time(), nullable=False),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_attendance_employee_id", "attendance", ["employee_id"])
    op.create_index("ix_attendance_check_in", "attendance", ["check_in_date", "check_in_time"])


def downgrade() -> None:
    op.drop_index("ix_attendance_check_in", table_name="attendance")
    op.drop_index("ix_attendance_employee_id", table_name="attendance")
    op.drop_table("attendance")
    op.drop_index("ix_employees_department", table_name="employees")
    op.drop_table("employees")
