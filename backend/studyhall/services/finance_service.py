# Overview: Service-layer operations for expenses, monthly collections and profit/loss.

"""
Finance Service

COLLECTION ROWS:
    Every transition snapshots the student's money fields into
    student_membership_history, so one membership period can own several
    rows (create, then update, then deactivate...). Reports count each
    period once: the latest row per (student_id, membership_start) among
    the rows changed inside the requested month.

PAY DUE:
    Paying against a collection row edits that row in place. When the row
    is the student's newest snapshot, the Student is updated the same way
    so the two stay in step.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from studyhall.extensions import db
from studyhall.models import Branch, Expense, MembershipHistory, Student
from studyhall.time_utils import month_label, parse_month, to_utc_z, utcnow
from studyhall.validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    clean_str,
    parse_amount,
    parse_date_field,
    parse_id,
    require_fields,
)


PAYMENT_TYPES = {"cash", "online"}


def _decimal(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(Decimal("0.01"))


def month_window(month: str | None) -> tuple[datetime, datetime]:
    try:
        return parse_month(month)
    except (TypeError, ValueError):
        raise ValidationError("month must be in YYYY-MM format")


def _require_branch(branch_id: int | None) -> None:
    if branch_id is not None and db.session.get(Branch, branch_id) is None:
        raise ConflictError(f"Branch with ID {branch_id} does not exist")


# ================================================================================
# COLLECTIONS
# ================================================================================

def _collection_ids(*, start: datetime, end: datetime, branch_id: int | None):
    query = db.session.query(func.max(MembershipHistory.id)).filter(
        MembershipHistory.changed_at >= start,
        MembershipHistory.changed_at < end,
    )
    if branch_id is not None:
        query = query.filter(MembershipHistory.branch_id == branch_id)
    return query.group_by(MembershipHistory.student_id, MembershipHistory.membership_start)


def collection_totals(*, start: datetime, end: datetime, branch_id: int | None = None) -> dict:
    ids = _collection_ids(start=start, end=end, branch_id=branch_id)
    row = db.session.query(
        func.coalesce(func.sum(MembershipHistory.total_fee), 0),
        func.coalesce(func.sum(MembershipHistory.amount_paid), 0),
        func.coalesce(func.sum(MembershipHistory.due_amount), 0),
        func.coalesce(func.sum(MembershipHistory.cash), 0),
        func.coalesce(func.sum(MembershipHistory.online), 0),
        func.coalesce(func.sum(MembershipHistory.security_money), 0),
    ).filter(MembershipHistory.id.in_(ids.scalar_subquery())).one()
    keys = ("total_fee", "amount_paid", "due_amount", "cash", "online", "security_money")
    return {key: _decimal(value) for key, value in zip(keys, row)}


def list_collections(*, month: str | None = None, branch_id: int | None = None) -> dict:
    """
    Collection rows for a month with totals.

    Returns:
        {"month": "YYYY-MM", "collections": [...], "totals": {...}}
    """
    start, end = month_window(month)
    ids = _collection_ids(start=start, end=end, branch_id=branch_id)
    entries = db.session.query(MembershipHistory, Branch.name).outerjoin(
        Branch, Branch.id == MembershipHistory.branch_id
    ).filter(
        MembershipHistory.id.in_(ids.scalar_subquery())
    ).order_by(MembershipHistory.changed_at.desc(), MembershipHistory.id.desc()).all()

    collections = []
    for entry, branch_name in entries:
        collections.append({
            "history_id": entry.id,
            "student_id": entry.student_id,
            "student_name": entry.name,
            "student_phone": entry.phone,
            "branch_id": entry.branch_id,
            "branch_name": branch_name,
            "change_type": entry.change_type,
            "membership_start": entry.membership_start.isoformat(),
            "membership_end": entry.membership_end.isoformat(),
            "total_fee": float(entry.total_fee or 0),
            "cash": float(entry.cash or 0),
            "online": float(entry.online or 0),
            "amount_paid": float(entry.amount_paid or 0),
            "due_amount": float(entry.due_amount or 0),
            "security_money": float(entry.security_money or 0),
            "remark": entry.remark or "",
            "changed_at": to_utc_z(entry.changed_at),
            "updated_at": to_utc_z(entry.updated_at),
        })

    totals = collection_totals(start=start, end=end, branch_id=branch_id)
    return {
        "month": month_label(start),
        "collections": collections,
        "totals": {key: float(value) for key, value in totals.items()},
        "count": len(collections),
    }


def pay_due(history_id: int, data: dict) -> MembershipHistory:
    """
    Record a payment against a collection row.

    Raises:
        NotFoundError: unknown history row
        ValidationError: bad amount/payment_type, or amount above the due
    """
    require_fields(data, ("amount",), message="amount is required")
    amount = parse_amount(data.get("amount"), "Amount")
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    payment_type = (clean_str(data.get("payment_type")) or "cash").lower()
    if payment_type not in PAYMENT_TYPES:
        raise ValidationError("payment_type must be 'cash' or 'online'")

    entry = db.session.get(MembershipHistory, history_id)
    if entry is None:
        raise NotFoundError("Collection record not found")
    if amount > _decimal(entry.due_amount):
        raise ValidationError(
            f"Payment of {amount} exceeds the due amount of {_decimal(entry.due_amount)}"
        )

    latest_id = db.session.query(MembershipHistory.id).filter_by(
        student_id=entry.student_id
    ).order_by(MembershipHistory.changed_at.desc(), MembershipHistory.id.desc()).limit(1).scalar()

    targets = [entry]
    if latest_id == entry.id:
        student = db.session.get(Student, entry.student_id)
        if student is not None:
            targets.append(student)

    for target in targets:
        setattr(target, payment_type, _decimal(getattr(target, payment_type)) + amount)
        target.amount_paid = _decimal(target.amount_paid) + amount
        target.due_amount = _decimal(target.total_fee) - target.amount_paid
    entry.updated_at = utcnow()
    db.session.flush()

    current_app.logger.info(
        "due paid: history_id=%s student_id=%s amount=%s type=%s",
        entry.id, entry.student_id, amount, payment_type,
    )
    return entry


# ================================================================================
# EXPENSES
# ================================================================================

def expense_total(*, start: datetime, end: datetime, branch_id: int | None = None) -> Decimal:
    query = db.session.query(func.coalesce(func.sum(Expense.amount), 0)).filter(
        Expense.date >= start.date(),
        Expense.date < end.date(),
    )
    if branch_id is not None:
        query = query.filter(Expense.branch_id == branch_id)
    return _decimal(query.scalar())


def list_expenses(*, month: str | None = None, branch_id: int | None = None) -> list[Expense]:
    query = db.session.query(Expense)
    if month:
        start, end = month_window(month)
        query = query.filter(Expense.date >= start.date(), Expense.date < end.date())
    if branch_id is not None:
        query = query.filter(Expense.branch_id == branch_id)
    return query.order_by(Expense.date.desc(), Expense.id.desc()).all()


def create_expense(data: dict) -> Expense:
    require_fields(data, ("title", "amount", "date"), message="title, amount and date are required")
    amount = parse_amount(data.get("amount"), "Amount")
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    branch_id = parse_id(data.get("branch_id"), "branch_id")
    _require_branch(branch_id)

    expense = Expense(
        branch_id=branch_id,
        title=clean_str(data.get("title")),
        amount=amount,
        date=parse_date_field(data.get("date"), "date"),
        remark=clean_str(data.get("remark")),
    )
    db.session.add(expense)
    db.session.flush()
    return expense


def delete_expense(expense_id: int) -> None:
    expense = db.session.get(Expense, expense_id)
    if expense is None:
        raise NotFoundError("Expense not found")
    db.session.delete(expense)
    db.session.flush()


# ================================================================================
# REPORTS
# ================================================================================

def profit_loss(*, month: str | None = None, branch_id: int | None = None) -> dict:
    start, end = month_window(month)
    totals = collection_totals(start=start, end=end, branch_id=branch_id)
    expenses = expense_total(start=start, end=end, branch_id=branch_id)
    return {
        "month": month_label(start),
        "branch_id": branch_id,
        "total_collected": float(totals["amount_paid"]),
        "total_due": float(totals["due_amount"]),
        "total_expenses": float(expenses),
        "profit_loss": float(totals["amount_paid"] - expenses),
    }
