# Overview: Service-layer operations for the membership lifecycle; encapsulates business logic and database work.

"""
StudyHall Membership Lifecycle Service

================================================================================
PURPOSE: Every change to a student's membership goes through this module
================================================================================

STATE MACHINE:
    active --(membership_end passes)--> expired      [derived, never stored]
    active/expired --(deactivate)--> deactivated
    deactivated --(activate)--> active
    active/expired/deactivated --(renew)--> active

    'deactivated' is the only stored override. 'expired' vs 'active' is
    recomputed from membership_end on every read (see models.derive_status).

RULES:
1. Each transition appends exactly one MembershipHistory row and links the
   shifts booked at that moment through MembershipShiftAssignment.
2. Seat assignments are replaced wholesale (delete, then insert). No diffing.
3. One (seat, shift) pair holds at most one student.
4. update never reactivates a deactivated student; renew and activate do.
5. Nothing here commits. Callers wrap a transition in
   concurrency.run_in_transaction so a failure leaves no partial rows.

================================================================================
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

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
    derive_status,
)
from studyhall.models.students import (
    CHANGE_ACTIVATE,
    CHANGE_CREATE,
    CHANGE_DEACTIVATE,
    CHANGE_RENEW,
    CHANGE_UPDATE,
    STATUS_ACTIVE,
    STATUS_DEACTIVATED,
)
from studyhall.services.concurrency import lock_for_update
from studyhall.time_utils import today, utcnow
from studyhall.validation import (
    ConflictError,
    NotFoundError,
    clean_str,
    is_blank,
    parse_amount,
    parse_date_range,
    parse_id,
    parse_shift_ids,
    require_fields,
)


CREATE_REQUIRED = ("name", "branch_id", "membership_start", "membership_end")
UPDATE_REQUIRED = ("name", "email", "phone", "address", "branch_id", "membership_start", "membership_end")


def deactivation_marker(on: date) -> str:
    return f" [Deactivated on {on.isoformat()}]"


# ================================================================================
# LOOKUPS & CHECKS
# ================================================================================

def get_student(student_id: int, *, for_update: bool = False) -> Student:
    query = db.session.query(Student).filter_by(id=student_id)
    if for_update:
        query = lock_for_update(query)
    student = query.first()
    if student is None:
        raise NotFoundError("Student not found")
    return student


def _require_branch(branch_id: int) -> Branch:
    branch = db.session.get(Branch, branch_id)
    if branch is None:
        raise ConflictError(f"Branch with ID {branch_id} does not exist")
    return branch


def check_seat_and_shifts(
    *,
    seat_id: int | None,
    shift_ids: list[int],
    branch_id: int,
    exclude_student_id: int | None = None,
) -> None:
    """
    Validate a requested seat/shift booking.

    - the seat (when given) must exist in `branch_id`
    - every shift must exist
    - no (seat, shift) pair may be held by another student

    `exclude_student_id` lets a student keep the seat it already holds
    (renew, update, activate). Raises ConflictError naming the first
    offending seat or shift.
    """
    if seat_id is not None:
        seat = lock_for_update(
            db.session.query(Seat).filter_by(id=seat_id, branch_id=branch_id)
        ).first()
        if seat is None:
            raise ConflictError(
                f"Seat with ID {seat_id} does not exist or does not belong to selected branch"
            )

    for shift_id in shift_ids:
        if db.session.get(Shift, shift_id) is None:
            raise ConflictError(f"Shift with ID {shift_id} does not exist")

    if seat_id is None:
        return

    for shift_id in shift_ids:
        query = db.session.query(SeatAssignment.id).filter(
            SeatAssignment.seat_id == seat_id,
            SeatAssignment.shift_id == shift_id,
        )
        if exclude_student_id is not None:
            query = query.filter(SeatAssignment.student_id != exclude_student_id)
        if query.first() is not None:
            raise ConflictError(f"Seat is already assigned for shift {shift_id}")


# ================================================================================
# ASSIGNMENT LEDGER
# ================================================================================

def _replace_seat_assignments(student_id: int, seat_id: int | None, shift_ids: list[int]) -> None:
    db.session.query(SeatAssignment).filter_by(student_id=student_id).delete()
    db.session.flush()
    for shift_id in shift_ids:
        db.session.add(SeatAssignment(seat_id=seat_id, shift_id=shift_id, student_id=student_id))


def _clear_shift_links(student_id: int) -> None:
    history_ids = select(MembershipHistory.id).where(MembershipHistory.student_id == student_id)
    db.session.query(MembershipShiftAssignment).filter(
        MembershipShiftAssignment.membership_id.in_(history_ids)
    ).delete(synchronize_session="fetch")


def _append_history(
    student: Student,
    *,
    change_type: str,
    seat_id: int | None,
    shift_ids: list[int],
) -> MembershipHistory:
    """
    Snapshot `student` as it stands now and link the booked shifts.

    changed_at never goes backwards for a student, so the newest row by
    changed_at is always the one just written.
    """
    last_changed = db.session.query(func.max(MembershipHistory.changed_at)).filter(
        MembershipHistory.student_id == student.id
    ).scalar()
    changed_at = utcnow()
    if last_changed is not None and changed_at < last_changed:
        changed_at = last_changed

    entry = MembershipHistory(
        student_id=student.id,
        change_type=change_type,
        name=student.name,
        email=student.email,
        phone=student.phone,
        address=student.address,
        membership_start=student.membership_start,
        membership_end=student.membership_end,
        status=student.status,
        total_fee=student.total_fee,
        amount_paid=student.amount_paid,
        due_amount=student.due_amount,
        cash=student.cash,
        online=student.online,
        security_money=student.security_money,
        remark=student.remark or "",
        seat_id=seat_id,
        branch_id=student.branch_id,
        changed_at=changed_at,
    )
    db.session.add(entry)
    db.session.flush()

    for shift_id in shift_ids:
        db.session.add(MembershipShiftAssignment(membership_id=entry.id, shift_id=shift_id))
    db.session.flush()
    return entry


def _set_financials(
    student: Student,
    *,
    total_fee: Decimal,
    amount_paid: Decimal,
    cash: Decimal,
    online: Decimal,
    security_money: Decimal,
) -> None:
    student.total_fee = total_fee
    student.amount_paid = amount_paid
    student.due_amount = total_fee - amount_paid
    student.cash = cash
    student.online = online
    student.security_money = security_money


def _strip_deactivation_marker(student: Student) -> None:
    """Drop the marker the last deactivation wrote; must run before deactivated_at is cleared."""
    if student.deactivated_at is not None and student.remark:
        student.remark = clean_str(
            student.remark.replace(deactivation_marker(student.deactivated_at), "")
        )


def _log(student: Student, change_type: str) -> None:
    current_app.logger.info(
        "membership %s: student_id=%s status=%s end=%s",
        change_type, student.id, student.status, student.membership_end,
    )


# ================================================================================
# TRANSITIONS
# ================================================================================

def create_student(data: dict) -> Student:
    """
    Register a new student with an optional seat/shift booking.

    Raises:
        ValidationError: missing required fields, bad dates, negative money
        ConflictError: unknown branch/shift, seat outside branch, seat taken
    """
    require_fields(
        data,
        CREATE_REQUIRED,
        message="Required fields missing (name, branch_id, membership_start, membership_end)",
    )
    branch_id = parse_id(data.get("branch_id"), "branch_id", required=True)
    start, end = parse_date_range(data.get("membership_start"), data.get("membership_end"))
    seat_id = parse_id(data.get("seat_id"), "seat_id")
    shift_ids = parse_shift_ids(data.get("shift_ids"))

    total_fee = parse_amount(data.get("total_fee"), "Total fee")
    cash = parse_amount(data.get("cash"), "Cash")
    online = parse_amount(data.get("online"), "Online payment")
    security_money = parse_amount(data.get("security_money"), "Security money")
    if is_blank(data.get("amount_paid")):
        amount_paid = cash + online
    else:
        amount_paid = parse_amount(data.get("amount_paid"), "Amount paid")

    _require_branch(branch_id)
    check_seat_and_shifts(seat_id=seat_id, shift_ids=shift_ids, branch_id=branch_id)

    student = Student(
        branch_id=branch_id,
        name=clean_str(data.get("name")),
        email=clean_str(data.get("email")),
        phone=clean_str(data.get("phone")),
        address=clean_str(data.get("address")),
        profile_image_url=clean_str(data.get("profile_image_url")),
        membership_start=start,
        membership_end=end,
        status=derive_status(None, end),
        remark=clean_str(data.get("remark")),
    )
    _set_financials(
        student,
        total_fee=total_fee,
        amount_paid=amount_paid,
        cash=cash,
        online=online,
        security_money=security_money,
    )
    db.session.add(student)
    db.session.flush()

    _replace_seat_assignments(student.id, seat_id, shift_ids)
    _append_history(student, change_type=CHANGE_CREATE, seat_id=seat_id, shift_ids=shift_ids)
    _log(student, CHANGE_CREATE)
    return student


def update_student(student_id: int, data: dict) -> Student:
    """
    Edit a student's details, dates, money and booking.

    Omitted money fields keep their stored values. amount_paid, when
    omitted, becomes cash + online if either was sent. A deactivated
    student stays deactivated.
    """
    require_fields(data, UPDATE_REQUIRED, message="Required fields missing")
    branch_id = parse_id(data.get("branch_id"), "branch_id", required=True)
    start, end = parse_date_range(data.get("membership_start"), data.get("membership_end"))
    seat_id = parse_id(data.get("seat_id"), "seat_id")
    shift_ids = parse_shift_ids(data.get("shift_ids"))

    student = get_student(student_id, for_update=True)

    total_fee = parse_amount(data.get("total_fee"), "Total fee", default=student.total_fee)
    cash = parse_amount(data.get("cash"), "Cash", default=student.cash)
    online = parse_amount(data.get("online"), "Online payment", default=student.online)
    security_money = parse_amount(
        data.get("security_money"), "Security money", default=student.security_money
    )
    if not is_blank(data.get("amount_paid")):
        amount_paid = parse_amount(data.get("amount_paid"), "Amount paid")
    elif not is_blank(data.get("cash")) or not is_blank(data.get("online")):
        amount_paid = cash + online
    else:
        amount_paid = student.amount_paid

    _require_branch(branch_id)
    check_seat_and_shifts(
        seat_id=seat_id, shift_ids=shift_ids, branch_id=branch_id, exclude_student_id=student.id
    )

    student.name = clean_str(data.get("name"))
    student.email = clean_str(data.get("email"))
    student.phone = clean_str(data.get("phone"))
    student.address = clean_str(data.get("address"))
    student.branch_id = branch_id
    student.membership_start = start
    student.membership_end = end
    if "remark" in data:
        student.remark = clean_str(data.get("remark"))
    if "profile_image_url" in data:
        student.profile_image_url = clean_str(data.get("profile_image_url"))
    if student.status != STATUS_DEACTIVATED:
        student.status = derive_status(None, end)
    _set_financials(
        student,
        total_fee=total_fee,
        amount_paid=amount_paid,
        cash=cash,
        online=online,
        security_money=security_money,
    )
    db.session.flush()

    _replace_seat_assignments(student.id, seat_id, shift_ids)
    _clear_shift_links(student.id)
    _append_history(student, change_type=CHANGE_UPDATE, seat_id=seat_id, shift_ids=shift_ids)
    _log(student, CHANGE_UPDATE)
    return student


def renew_membership(student_id: int, data: dict) -> Student:
    """
    Start a new membership period.

    amount_paid is recomputed as cash + online (both default to 0), the fee
    falls back to the stored fee. Status is forced to 'active' whatever it
    was, 'deactivated' included.
    """
    require_fields(
        data,
        ("membership_start", "membership_end"),
        message="membership_start and membership_end are required",
    )
    start, end = parse_date_range(data.get("membership_start"), data.get("membership_end"))
    branch_override = parse_id(data.get("branch_id"), "branch_id")
    seat_id = parse_id(data.get("seat_id"), "seat_id")
    shift_ids = parse_shift_ids(data.get("shift_ids"))

    student = get_student(student_id, for_update=True)

    total_fee = parse_amount(data.get("total_fee"), "Total fee", default=student.total_fee)
    cash = parse_amount(data.get("cash"), "Cash")
    online = parse_amount(data.get("online"), "Online payment")
    security_money = parse_amount(
        data.get("security_money"), "Security money", default=student.security_money
    )

    branch_id = branch_override if branch_override is not None else student.branch_id
    if branch_override is not None:
        _require_branch(branch_override)
    check_seat_and_shifts(
        seat_id=seat_id, shift_ids=shift_ids, branch_id=branch_id, exclude_student_id=student.id
    )

    if "remark" in data:
        student.remark = clean_str(data.get("remark"))
    else:
        _strip_deactivation_marker(student)
    student.membership_start = start
    student.membership_end = end
    student.status = STATUS_ACTIVE
    student.deactivated_at = None
    student.branch_id = branch_id
    if not is_blank(data.get("email")):
        student.email = clean_str(data.get("email"))
    if not is_blank(data.get("phone")):
        student.phone = clean_str(data.get("phone"))
    _set_financials(
        student,
        total_fee=total_fee,
        amount_paid=cash + online,
        cash=cash,
        online=online,
        security_money=security_money,
    )
    db.session.flush()

    _replace_seat_assignments(student.id, seat_id, shift_ids)
    _clear_shift_links(student.id)
    _append_history(student, change_type=CHANGE_RENEW, seat_id=seat_id, shift_ids=shift_ids)
    _log(student, CHANGE_RENEW)
    return student


def deactivate_student(student_id: int) -> Student:
    """
    Stop a membership today and free the seat immediately.

    Re-deactivating stamps another marker into the remark; that is accepted.
    """
    student = get_student(student_id, for_update=True)
    now = today()

    student.status = STATUS_DEACTIVATED
    student.membership_end = now
    student.deactivated_at = now
    student.remark = (student.remark or "") + deactivation_marker(now)
    db.session.flush()

    _replace_seat_assignments(student.id, None, [])
    _clear_shift_links(student.id)
    _append_history(student, change_type=CHANGE_DEACTIVATE, seat_id=None, shift_ids=[])
    _log(student, CHANGE_DEACTIVATE)
    return student


def activate_student(student_id: int, data: dict) -> Student:
    """
    Bring a student back with a new date range and optional booking.

    The marker written by the last deactivation is removed from the
    remark by exact match on its date. The seat must belong to the
    student's own branch.
    """
    require_fields(
        data,
        ("membership_start", "membership_end"),
        message="Membership start and end dates are required for activation.",
    )
    start, end = parse_date_range(data.get("membership_start"), data.get("membership_end"))
    seat_id = parse_id(data.get("seat_id"), "seat_id")
    shift_ids = parse_shift_ids(data.get("shift_ids"))

    student = get_student(student_id, for_update=True)
    check_seat_and_shifts(
        seat_id=seat_id,
        shift_ids=shift_ids,
        branch_id=student.branch_id,
        exclude_student_id=student.id,
    )

    _strip_deactivation_marker(student)
    student.status = STATUS_ACTIVE
    student.deactivated_at = None
    student.membership_start = start
    student.membership_end = end
    db.session.flush()

    _replace_seat_assignments(student.id, seat_id, shift_ids)
    _clear_shift_links(student.id)
    _append_history(student, change_type=CHANGE_ACTIVATE, seat_id=seat_id, shift_ids=shift_ids)
    _log(student, CHANGE_ACTIVATE)
    return student


def delete_student(student_id: int) -> dict:
    """
    Remove a student together with assignments and history.

    Returns the serialized student as it was before deletion.
    """
    student = get_student(student_id, for_update=True)
    snapshot = student.to_dict()

    db.session.query(SeatAssignment).filter_by(student_id=student.id).delete()
    _clear_shift_links(student.id)
    db.session.query(MembershipHistory).filter_by(student_id=student.id).delete()
    db.session.delete(student)
    db.session.flush()

    current_app.logger.info("student deleted: student_id=%s", student_id)
    return snapshot
