from __future__ import annotations

from datetime import date

from sqlalchemy import case

from ..extensions import db
from studyhall.time_utils import to_iso_date, to_utc_z, today, utcnow


STATUS_ACTIVE = "active"
STATUS_EXPIRED = "expired"
STATUS_DEACTIVATED = "deactivated"
VALID_STATUSES = {STATUS_ACTIVE, STATUS_EXPIRED, STATUS_DEACTIVATED}

CHANGE_CREATE = "create"
CHANGE_UPDATE = "update"
CHANGE_RENEW = "renew"
CHANGE_DEACTIVATE = "deactivate"
CHANGE_ACTIVATE = "activate"

MONEY_FIELDS = ("total_fee", "amount_paid", "due_amount", "cash", "online", "security_money")


def derive_status(stored_status: str | None, membership_end: date | None, as_of: date | None = None) -> str:
    """
    Status as reported to clients.

    Priority: deactivated (stored) > expired (end date passed) > active.
    """
    if stored_status == STATUS_DEACTIVATED:
        return STATUS_DEACTIVATED
    as_of = as_of or today()
    if membership_end is not None and membership_end < as_of:
        return STATUS_EXPIRED
    return STATUS_ACTIVE


def _money(value) -> float:
    return float(value or 0)


class Student(db.Model):
    """
    Current membership state of one student.

    `status` is only authoritative for 'deactivated'; 'active' vs 'expired'
    is always recomputed from membership_end (see derive_status and
    derived_status_expr).
    """
    __tablename__ = "students"
    __table_args__ = (
        db.Index("ix_students_branch_end", "branch_id", "membership_end"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)
    profile_image_url = db.Column(db.String(512), nullable=True)

    membership_start = db.Column(db.Date, nullable=False)
    membership_end = db.Column(db.Date, nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=STATUS_ACTIVE, index=True)
    deactivated_at = db.Column(db.Date, nullable=True)

    total_fee = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    amount_paid = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    due_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    cash = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    online = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    security_money = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    remark = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    branch = db.relationship("Branch", backref=db.backref("students", lazy=True))

    def __repr__(self) -> str:
        return f"<Student id={self.id} name={self.name!r} status={self.status}>"

    def status_as_of(self, as_of: date | None = None) -> str:
        return derive_status(self.status, self.membership_end, as_of)

    def to_dict(self, as_of: date | None = None) -> dict:
        data = {
            "id": self.id,
            "branch_id": self.branch_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "profile_image_url": self.profile_image_url or "",
            "membership_start": to_iso_date(self.membership_start),
            "membership_end": to_iso_date(self.membership_end),
            "status": self.status_as_of(as_of),
            "deactivated_at": to_iso_date(self.deactivated_at),
            "remark": self.remark or "",
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        for field in MONEY_FIELDS:
            data[field] = _money(getattr(self, field))
        return data


def derived_status_expr(as_of: date):
    """SQL counterpart of derive_status, usable in SELECT and WHERE."""
    return case(
        (Student.status == STATUS_DEACTIVATED, STATUS_DEACTIVATED),
        (Student.membership_end < as_of, STATUS_EXPIRED),
        else_=STATUS_ACTIVE,
    )


class SeatAssignment(db.Model):
    """
    Live "who sits where, when" row.

    seat_id is NULL when a student books shifts without a desk. The unique
    constraint keeps one student per (seat, shift); NULL seats never collide.
    """
    __tablename__ = "seat_assignments"
    __table_args__ = (
        db.UniqueConstraint("seat_id", "shift_id", name="uq_seat_assignments_seat_shift"),
        db.Index("ix_seat_assignments_shift", "shift_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seat_id = db.Column(db.Integer, db.ForeignKey("seats.id"), nullable=True, index=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("schedules.id"), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey("students.id"), nullable=False, index=True)

    seat = db.relationship("Seat")
    shift = db.relationship("Shift")
    student = db.relationship("Student", backref=db.backref("seat_assignments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seat_id": self.seat_id,
            "shift_id": self.shift_id,
            "student_id": self.student_id,
            "seat_number": self.seat.seat_number if self.seat else None,
            "shift_title": self.shift.title if self.shift else None,
        }


class MembershipHistory(db.Model):
    """
    Append-only snapshot of a student at the moment of a transition.

    Rows are never updated by transitions; the newest row (changed_at, id)
    mirrors the current Student. Pay-due on a collection row is the only
    in-place edit.
    """
    __tablename__ = "student_membership_history"
    __table_args__ = (
        db.Index("ix_membership_history_student_changed", "student_id", "changed_at"),
        db.Index("ix_membership_history_changed", "changed_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("students.id"), nullable=False, index=True)
    change_type = db.Column(db.String(16), nullable=False)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)

    membership_start = db.Column(db.Date, nullable=False)
    membership_end = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), nullable=False)

    total_fee = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    amount_paid = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    due_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    cash = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    online = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    security_money = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    remark = db.Column(db.Text, nullable=True)

    seat_id = db.Column(db.Integer, db.ForeignKey("seats.id"), nullable=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True, index=True)

    changed_at = db.Column(db.DateTime, nullable=False, default=utcnow)  # naive UTC
    updated_at = db.Column(db.DateTime, nullable=True)

    student = db.relationship("Student", backref=db.backref("history", lazy=True))
    seat = db.relationship("Seat")
    branch = db.relationship("Branch")

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "student_id": self.student_id,
            "change_type": self.change_type,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "membership_start": to_iso_date(self.membership_start),
            "membership_end": to_iso_date(self.membership_end),
            "status": self.status,
            "remark": self.remark or "",
            "seat_id": self.seat_id,
            "seat_number": self.seat.seat_number if self.seat else None,
            "branch_id": self.branch_id,
            "changed_at": to_utc_z(self.changed_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        for field in MONEY_FIELDS:
            data[field] = _money(getattr(self, field))
        return data


class MembershipShiftAssignment(db.Model):
    """Shifts that were booked at the time of a history snapshot."""
    __tablename__ = "membership_shift_assignments"
    __table_args__ = (
        db.UniqueConstraint("membership_id", "shift_id", name="uq_membership_shift"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    membership_id = db.Column(
        db.Integer, db.ForeignKey("student_membership_history.id"), nullable=False, index=True
    )
    shift_id = db.Column(db.Integer, db.ForeignKey("schedules.id"), nullable=False, index=True)

    membership = db.relationship("MembershipHistory", backref=db.backref("shift_assignments", lazy=True))
    shift = db.relationship("Shift")
