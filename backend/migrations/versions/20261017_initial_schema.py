"""Initial StudyHall schema

Revision ID: 20261017_initial
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_initial"
down_revision = None
branch_labels = None
depends_on = None


def _money(name):
    return sa.Column(name, sa.Numeric(10, 2), nullable=False, server_default=sa.text("0"))


def upgrade():
    op.create_table(
        "branches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "schedules",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(120), nullable=False),
        sa.Column("time", sa.String(64), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "seats",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("seat_number", sa.String(32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("branch_id", "seat_number", name="uq_seats_branch_number"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("seats", schema=None) as batch_op:
        batch_op.create_index("ix_seats_branch_id", ["branch_id"], unique=False)

    op.create_table(
        "students",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("profile_image_url", sa.String(512), nullable=True),
        sa.Column("membership_start", sa.Date(), nullable=False),
        sa.Column("membership_end", sa.Date(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("deactivated_at", sa.Date(), nullable=True),
        _money("total_fee"),
        _money("amount_paid"),
        _money("due_amount"),
        _money("cash"),
        _money("online"),
        _money("security_money"),
        sa.Column("remark", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("students", schema=None) as batch_op:
        batch_op.create_index("ix_students_branch_id", ["branch_id"], unique=False)
        batch_op.create_index("ix_students_name", ["name"], unique=False)
        batch_op.create_index("ix_students_membership_end", ["membership_end"], unique=False)
        batch_op.create_index("ix_students_status", ["status"], unique=False)
        batch_op.create_index("ix_students_branch_end", ["branch_id", "membership_end"], unique=False)

    op.create_table(
        "seat_assignments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("seat_id", sa.Integer(), nullable=True),
        sa.Column("shift_id", sa.Integer(), nullable=False),
        sa.Column("student_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["seat_id"], ["seats.id"]),
        sa.ForeignKeyConstraint(["shift_id"], ["schedules.id"]),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("seat_id", "shift_id", name="uq_seat_assignments_seat_shift"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("seat_assignments", schema=None) as batch_op:
        batch_op.create_index("ix_seat_assignments_seat_id", ["seat_id"], unique=False)
        batch_op.create_index("ix_seat_assignments_student_id", ["student_id"], unique=False)
        batch_op.create_index("ix_seat_assignments_shift", ["shift_id"], unique=False)

    op.create_table(
        "student_membership_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("student_id", sa.Integer(), nullable=False),
        sa.Column("change_type", sa.String(16), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("membership_start", sa.Date(), nullable=False),
        sa.Column("membership_end", sa.Date(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        _money("total_fee"),
        _money("amount_paid"),
        _money("due_amount"),
        _money("cash"),
        _money("online"),
        _money("security_money"),
        sa.Column("remark", sa.Text(), nullable=True),
        sa.Column("seat_id", sa.Integer(), nullable=True),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column("changed_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"]),
        sa.ForeignKeyConstraint(["seat_id"], ["seats.id"]),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("student_membership_history", schema=None) as batch_op:
        batch_op.create_index("ix_student_membership_history_student_id", ["student_id"], unique=False)
        batch_op.create_index("ix_student_membership_history_branch_id", ["branch_id"], unique=False)
        batch_op.create_index("ix_membership_history_student_changed", ["student_id", "changed_at"], unique=False)
        batch_op.create_index("ix_membership_history_changed", ["changed_at"], unique=False)

    op.create_table(
        "membership_shift_assignments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("membership_id", sa.Integer(), nullable=False),
        sa.Column("shift_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["membership_id"], ["student_membership_history.id"]),
        sa.ForeignKeyConstraint(["shift_id"], ["schedules.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("membership_id", "shift_id", name="uq_membership_shift"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("membership_shift_assignments", schema=None) as batch_op:
        batch_op.create_index("ix_membership_shift_assignments_membership_id", ["membership_id"], unique=False)
        batch_op.create_index("ix_membership_shift_assignments_shift_id", ["shift_id"], unique=False)

    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("remark", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("expenses", schema=None) as batch_op:
        batch_op.create_index("ix_expenses_branch_id", ["branch_id"], unique=False)
        batch_op.create_index("ix_expenses_date", ["date"], unique=False)
        batch_op.create_index("ix_expenses_branch_date", ["branch_id", "date"], unique=False)


def downgrade():
    op.drop_table("expenses")
    op.drop_table("membership_shift_assignments")
    op.drop_table("student_membership_history")
    op.drop_table("seat_assignments")
    op.drop_table("students")
    op.drop_table("seats")
    op.drop_table("schedules")
    op.drop_table("branches")
