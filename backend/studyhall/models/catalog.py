from __future__ import annotations

from ..extensions import db
from studyhall.time_utils import to_utc_z


class Branch(db.Model):
    """
    A physical facility location. Owns seats; students belong to one branch.
    """
    __tablename__ = "branches"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    address = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Branch id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "created_at": to_utc_z(self.created_at),
        }


class Shift(db.Model):
    """
    A named recurring time slot (a "schedule" in the admin UI).

    Shifts are branch-independent: any seat in any branch can be booked
    for any shift.
    """
    __tablename__ = "schedules"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(120), nullable=False)
    time = db.Column(db.String(64), nullable=True)  # e.g. "08:00-12:00"
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Shift id={self.id} title={self.title!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "time": self.time,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class Seat(db.Model):
    """
    A desk belonging to exactly one branch.

    Seat numbers are unique within a branch, not globally.
    """
    __tablename__ = "seats"
    __table_args__ = (
        db.UniqueConstraint("branch_id", "seat_number", name="uq_seats_branch_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    seat_number = db.Column(db.String(32), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    branch = db.relationship("Branch", backref=db.backref("seats", lazy=True))

    def __repr__(self) -> str:
        return f"<Seat id={self.id} branch_id={self.branch_id} number={self.seat_number!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_id": self.branch_id,
            "seat_number": self.seat_number,
            "created_at": to_utc_z(self.created_at),
        }
