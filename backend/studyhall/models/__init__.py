from .catalog import Branch, Shift, Seat
from .students import (
    Student,
    SeatAssignment,
    MembershipHistory,
    MembershipShiftAssignment,
    derive_status,
    derived_status_expr,
)
from .finance import Expense

__all__ = [
    'Branch', 'Shift', 'Seat',
    'Student', 'SeatAssignment', 'MembershipHistory', 'MembershipShiftAssignment',
    'derive_status', 'derived_status_expr',
    'Expense',
]
