# Overview: Service-layer operations for branches, shifts and seats.

"""
Catalog Service

Reference data the membership lifecycle books against. Deletes are refused
while anything still points at the row, so a seat or shift can never be
pulled out from under a live assignment.
"""

from __future__ import annotations

from sqlalchemy import func

from studyhall.extensions import db
from studyhall.models import (
    Branch,
    MembershipHistory,
    MembershipShiftAssignment,
    Seat,
    SeatAssignment,
    Shift,
    Student,
)
from studyhall.validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    clean_str,
    parse_id,
    require_fields,
)


# ================================================================================
# BRANCHES
# ================================================================================

def list_branches() -> list[Branch]:
    return db.session.query(Branch).order_by(Branch.name.asc()).all()


def get_branch(branch_id: int) -> Branch:
    branch = db.session.get(Branch, branch_id)
    if branch is None:
        raise NotFoundError("Branch not found")
    return branch


def create_branch(data: dict) -> Branch:
    require_fields(data, ("name",), message="name is required")
    name = clean_str(data.get("name"))
    existing = db.session.query(Branch).filter(func.lower(Branch.name) == name.lower()).first()
    if existing:
        raise ConflictError(f"Branch '{name}' already exists")

    branch = Branch(
        name=name,
        address=clean_str(data.get("address")),
        phone=clean_str(data.get("phone")),
    )
    db.session.add(branch)
    db.session.flush()
    return branch


def delete_branch(branch_id: int) -> None:
    branch = get_branch(branch_id)
    if db.session.query(Seat.id).filter_by(branch_id=branch.id).first():
        raise ConflictError("Branch still has seats")
    if db.session.query(Student.id).filter_by(branch_id=branch.id).first():
        raise ConflictError("Branch still has students")
    if db.session.query(MembershipHistory.id).filter_by(branch_id=branch.id).first():
        raise ConflictError("Branch is referenced by membership history")
    db.session.delete(branch)
    db.session.flush()


# ================================================================================
# SHIFTS
# ================================================================================

def list_shifts() -> list[Shift]:
    return db.session.query(Shift).order_by(Shift.time.asc(), Shift.title.asc(), Shift.id.asc()).all()


def get_shift(shift_id: int) -> Shift:
    shift = db.session.get(Shift, shift_id)
    if shift is None:
        raise NotFoundError("Shift not found")
    return shift


def create_shift(data: dict) -> Shift:
    require_fields(data, ("title",), message="title is required")
    shift = Shift(
        title=clean_str(data.get("title")),
        time=clean_str(data.get("time")),
        description=clean_str(data.get("description")),
    )
    db.session.add(shift)
    db.session.flush()
    return shift


def update_shift(shift_id: int, data: dict) -> Shift:
    shift = get_shift(shift_id)
    if "title" in data:
        title = clean_str(data.get("title"))
        if not title:
            raise ValidationError("title cannot be blank")
        shift.title = title
    if "time" in data:
        shift.time = clean_str(data.get("time"))
    if "description" in data:
        shift.description = clean_str(data.get("description"))
    db.session.flush()
    return shift


def delete_shift(shift_id: int) -> None:
    shift = get_shift(shift_id)
    if db.session.query(SeatAssignment.id).filter_by(shift_id=shift.id).first():
        raise ConflictError("Shift is assigned to students")
    # history keeps its snapshot rows, only the link to the shift goes
    db.session.query(MembershipShiftAssignment).filter_by(shift_id=shift.id).delete()
    db.session.delete(shift)
    db.session.flush()


# ================================================================================
# SEATS
# ================================================================================

def _seat_sort_key(seat: Seat):
    number = seat.seat_number
    return (seat.branch_id, 0, int(number), number) if number.isdecimal() else (seat.branch_id, 1, 0, number)


def list_seats(*, branch_id: int | None = None, shift_id: int | None = None) -> list[dict]:
    """
    Seats with who holds them per shift.

    With `shift_id`, each seat reports only that shift's occupant and an
    `is_available` flag for it; without, all live assignments are listed.
    """
    query = db.session.query(Seat)
    if branch_id is not None:
        query = query.filter(Seat.branch_id == branch_id)
    seats = sorted(query.all(), key=_seat_sort_key)
    if not seats:
        return []

    assignment_query = db.session.query(SeatAssignment, Student.name, Shift.title).join(
        Student, Student.id == SeatAssignment.student_id
    ).join(
        Shift, Shift.id == SeatAssignment.shift_id
    ).filter(SeatAssignment.seat_id.in_([seat.id for seat in seats]))
    if shift_id is not None:
        assignment_query = assignment_query.filter(SeatAssignment.shift_id == shift_id)

    by_seat: dict[int, list[dict]] = {}
    for assignment, student_name, shift_title in assignment_query.all():
        by_seat.setdefault(assignment.seat_id, []).append({
            "shift_id": assignment.shift_id,
            "shift_title": shift_title,
            "student_id": assignment.student_id,
            "student_name": student_name,
        })

    result = []
    for seat in seats:
        data = seat.to_dict()
        data["assignments"] = sorted(by_seat.get(seat.id, []), key=lambda a: a["shift_id"])
        if shift_id is not None:
            data["is_available"] = not data["assignments"]
        result.append(data)
    return result


def add_seats(data: dict) -> dict:
    """
    Bulk-create seats for one branch from "1, 2, 3" or ["1", "2", "3"].

    Numbers that already exist in the branch are skipped and reported.
    """
    require_fields(data, ("branch_id", "seat_numbers"), message="branch_id and seat_numbers are required")
    branch_id = parse_id(data.get("branch_id"), "branch_id", required=True)
    if db.session.get(Branch, branch_id) is None:
        raise ConflictError(f"Branch with ID {branch_id} does not exist")

    raw = data.get("seat_numbers")
    if isinstance(raw, (list, tuple)):
        candidates = [str(item) for item in raw]
    else:
        candidates = str(raw).split(",")
    numbers: list[str] = []
    for item in candidates:
        number = item.strip()
        if number and number not in numbers:
            numbers.append(number)
    if not numbers:
        raise ValidationError("Please enter at least one seat number")
    for number in numbers:
        if len(number) > 32:
            raise ValidationError(f"Seat number '{number}' exceeds max length 32")

    existing = {
        row.seat_number
        for row in db.session.query(Seat.seat_number).filter(
            Seat.branch_id == branch_id, Seat.seat_number.in_(numbers)
        )
    }
    created = []
    for number in numbers:
        if number in existing:
            continue
        seat = Seat(branch_id=branch_id, seat_number=number)
        db.session.add(seat)
        created.append(seat)
    db.session.flush()

    skipped = [number for number in numbers if number in existing]
    return {
        "created": created,
        "skipped": skipped,
        "message": f"{len(created)} seat(s) added" + (f", {len(skipped)} already existed" if skipped else ""),
    }


def delete_seat(seat_id: int) -> None:
    seat = db.session.get(Seat, seat_id)
    if seat is None:
        raise NotFoundError("Seat not found")
    if db.session.query(SeatAssignment.id).filter_by(seat_id=seat.id).first():
        raise ConflictError("Seat is currently assigned and cannot be deleted")
    db.session.query(MembershipHistory).filter_by(seat_id=seat.id).update({"seat_id": None})
    db.session.delete(seat)
    db.session.flush()


def available_shifts(seat_id: int) -> list[Shift]:
    """Shifts with no live assignment on this seat."""
    seat = db.session.get(Seat, seat_id)
    if seat is None:
        raise NotFoundError("Seat not found")
    taken = db.session.query(SeatAssignment.shift_id).filter(SeatAssignment.seat_id == seat.id)
    return db.session.query(Shift).filter(~Shift.id.in_(taken.scalar_subquery())).order_by(
        Shift.time.asc(), Shift.title.asc(), Shift.id.asc()
    ).all()
