from __future__ import annotations

from ..extensions import db
from studyhall.time_utils import to_iso_date, to_utc_z


class Expense(db.Model):
    """
    Operating expense booked against a branch (or all branches when branch_id is NULL).

    Feeds the monthly dashboard and the profit/loss report.
    """
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_branch_date", "branch_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True, index=True)
    title = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)
    remark = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    branch = db.relationship("Branch", backref=db.backref("expenses", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "branch_id": self.branch_id,
            "title": self.title,
            "amount": float(self.amount or 0),
            "date": to_iso_date(self.date),
            "remark": self.remark or "",
            "created_at": to_utc_z(self.created_at),
        }
