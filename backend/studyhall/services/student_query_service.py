# Overview: Read-side queries for students; every list derives status in SQL.

from __future__ import annotations

from datetime import date, timedelta

from flask import current_app
from sqlalchemy import func, select

from studyhall.extensions import db
from studyhall.models import (
    Branch,
    MembershipHistory,
    MembershipShiftAssignment,
    Seat,
    SeatAssignment,
    Shift,
    Student,
    derived_status_expr,
)
from studyhall.models.students import (
    STATUS_ACTIVE,
    STATUS_DEACTIVATED,
    STATUS_EXPIRED,
)
from studyhall.services import finance_service
from studyhall.services.membership_service import get_student
from studyhall.time_utils import month_label, parse_month, today
from studyhall.validation import ValidationError


ROSTER_STATUSES = {"all", STATUS_ACTIVE, STATUS_EXPIRED, STATUS_DEACTIVATED}


def _expiring_soon_days() -> int:
    return int(current_app.config.get("EXPIRING_SOON_DAYS", 30))


def _first_seat_number():
    """Seat number of the student's oldest live assignment, or NULL."""
    return (
        select(Seat.seat_number)
        .select_from(SeatAssignment)
        .join(Seat, Seat.id == SeatAssignment.seat_id)
        .where(SeatAssignment.student_id == Student.id)
        .order_by(SeatAssignment.id)
        .limit(1)
        .correlate(Student)
        .scalar_subquery()
    )


def _student_rows(query) -> list[dict]:
    rows = []
    for student, status, seat_number in query.all():
        data = student.to_dict()
        data["status"] = status
        data["seat_number"] = seat_number
        rows.append(data)
    return rows


def _base_query(as_of: date, branch_id: int | None):
    query = db.session.query(
        Student,
        derived_status_expr(as_of).label("derived_status"),
        _first_seat_number().label("seat_number"),
    )
    if branch_id is not None:
        query = query.filter(Student.branch_id == branch_id)
    return query


def list_students(*, branch_id: int | None = None, as_of: date | None = None) -> list[dict]:
    as_of = as_of or today()
    query = _base_query(as_of, branch_id).order_by(Student.name.asc(), Student.id.asc())
    return _student_rows(query)


def list_active(*, branch_id: int | None = None, as_of: date | None = None) -> list[dict]:
    as_of = as_of or today()
    query = _base_query(as_of, branch_id).filter(
        Student.status != STATUS_DEACTIVATED,
        Student.membership_end >= as_of,
    ).order_by(Student.name.asc(), Student.id.asc())
    return _student_rows(query)


def list_expired(*, branch_id: int | None = None, as_of: date | None = None) -> list[dict]:
    as_of = as_of or today()
    query = _base_query(as_of, branch_id).filter(
        Student.status != STATUS_DEACTIVATED,
        Student.membership_end < as_of,
    ).order_by(Student.name.asc(), Student.id.asc())
    return _student_rows(query)


def list_expiring_soon(
    *,
    branch_id: int | None = None,
    as_of: date | None = None,
    days: int | None = None,
) -> list[dict]:
    """
    Students whose membership ends within the next `days` days.

    NOTE: filters on the stored status column ('active'), not the derived
    status. A student created with a past end date is stored as 'expired'
    and stays out of this list even after its dates change through paths
    that do not recompute status.
    """
    as_of = as_of or today()
    days = _expiring_soon_days() if days is None else days
    horizon = as_of + timedelta(days=days)
    query = _base_query(as_of, branch_id).filter(
        Student.status == STATUS_ACTIVE,
        Student.membership_end >= as_of,
        Student.membership_end <= horizon,
    ).order_by(Student.membership_end.asc(), Student.id.asc())
    return _student_rows(query)


def list_deactivated(*, branch_id: int | None = None, as_of: date | None = None) -> list[dict]:
    as_of = as_of or today()
    query = _base_query(as_of, branch_id).filter(
        Student.status == STATUS_DEACTIVATED,
    ).order_by(Student.name.asc(), Student.id.asc())
    return _student_rows(query)


def list_shift_roster(
    shift_id: int,
    *,
    search: str | None = None,
    status: str | None = None,
    as_of: date | None = None,
) -> list[dict]:
    """
    Students holding a live assignment for `shift_id`.

    search: case-insensitive substring of name or phone.
    status: all | active | expired | deactivated, applied to derived status.
    """
    as_of = as_of or today()
    status = (status or "all").strip().lower()
    if status not in ROSTER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(sorted(ROSTER_STATUSES))}")

    status_expr = derived_status_expr(as_of)
    query = db.session.query(
        Student.id,
        Student.name,
        Student.email,
        Student.phone,
        Student.membership_end,
        status_expr.label("derived_status"),
        Seat.seat_number,
    ).join(
        SeatAssignment, SeatAssignment.student_id == Student.id
    ).outerjoin(
        Seat, Seat.id == SeatAssignment.seat_id
    ).filter(SeatAssignment.shift_id == shift_id)

    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(Student.name.ilike(pattern) | Student.phone.ilike(pattern))
    if status != "all":
        query = query.filter(status_expr == status)

    rows = query.order_by(Student.name.asc(), Student.id.asc()).all()
    return [
        {
            "id": row.id,
            "name": row.name,
            "email": row.email,
            "phone": row.phone,
            "membership_end": row.membership_end.isoformat() if row.membership_end else None,
            "status": row.derived_status,
            "seat_number": row.seat_number,
        }
        for row in rows
    ]


def latest_history(student_id: int) -> MembershipHistory | None:
    return db.session.query(MembershipHistory).filter_by(student_id=student_id).order_by(
        MembershipHistory.changed_at.desc(),
        MembershipHistory.id.desc(),
    ).first()


def get_student_detail(student_id: int, *, as_of: date | None = None) -> dict:
    """
    Student with branch name, derived status and bookings.

    Bookings are the live seat assignments plus any shift recorded on the
    latest history snapshot that has no live row (seat fields NULL).
    """
    as_of = as_of or today()
    student = get_student(student_id)
    data = student.to_dict(as_of)
    branch = db.session.get(Branch, student.branch_id)
    data["branch_name"] = branch.name if branch else None

    assignments = []
    live = db.session.query(SeatAssignment).filter_by(student_id=student.id).order_by(
        SeatAssignment.id.asc()
    ).all()
    covered = set()
    for row in live:
        covered.add(row.shift_id)
        assignments.append({
            "seat_id": row.seat_id,
            "shift_id": row.shift_id,
            "seat_number": row.seat.seat_number if row.seat else None,
            "shift_title": row.shift.title if row.shift else None,
        })

    last = latest_history(student.id)
    if last is not None:
        recorded = db.session.query(MembershipShiftAssignment.shift_id, Shift.title).join(
            Shift, Shift.id == MembershipShiftAssignment.shift_id
        ).filter(MembershipShiftAssignment.membership_id == last.id).all()
        for shift_id, title in recorded:
            if shift_id in covered:
                continue
            covered.add(shift_id)
            assignments.append({
                "seat_id": None,
                "shift_id": shift_id,
                "seat_number": None,
                "shift_title": title,
            })

    assignments.sort(key=lambda a: a["shift_id"], reverse=True)
    data["assignments"] = assignments
    return data


def get_student_history(student_id: int) -> list[dict]:
    """All snapshots for a student, newest first, each with its shift ids."""
    get_student(student_id)
    entries = db.session.query(MembershipHistory).filter_by(student_id=student_id).order_by(
        MembershipHistory.changed_at.desc(),
        MembershipHistory.id.desc(),
    ).all()
    result = []
    for entry in entries:
        data = entry.to_dict()
        data["shift_ids"] = sorted(link.shift_id for link in entry.shift_assignments)
        result.append(data)
    return result


def _count(query) -> int:
    return int(query.scalar() or 0)


def dashboard_stats(*, branch_id: int | None = None, as_of: date | None = None) -> dict:
    """
    Current-month money figures plus membership counters.

    Collection and due come from the month's collection rows (one per
    membership period), expenses from the expenses table.
    """
    # collection rows are stamped in naive UTC, so the default month is the UTC one
    start, end = parse_month(as_of.strftime("%Y-%m") if as_of else None)
    as_of = as_of or today()

    totals = finance_service.collection_totals(start=start, end=end, branch_id=branch_id)
    total_expense = finance_service.expense_total(start=start, end=end, branch_id=branch_id)

    def counter(*criteria):
        query = db.session.query(func.count(Student.id)).filter(*criteria)
        if branch_id is not None:
            query = query.filter(Student.branch_id == branch_id)
        return _count(query)

    horizon = as_of + timedelta(days=_expiring_soon_days())
    return {
        "month": month_label(start),
        "total_collection": float(totals["amount_paid"]),
        "total_due": float(totals["due_amount"]),
        "total_expense": float(total_expense),
        "profit_loss": float(totals["amount_paid"] - total_expense),
        "active_count": counter(
            Student.status != STATUS_DEACTIVATED, Student.membership_end >= as_of
        ),
        "expired_count": counter(
            Student.status != STATUS_DEACTIVATED, Student.membership_end < as_of
        ),
        "expiring_soon_count": counter(
            Student.status == STATUS_ACTIVE,
            Student.membership_end >= as_of,
            Student.membership_end <= horizon,
        ),
        "deactivated_count": counter(Student.status == STATUS_DEACTIVATED),
    }


