from __future__ import annotations

from ..extensions import db
from gymdesk.time_utils import to_utc_z, to_iso_date


class Bill(db.Model):
    """
    A charge against a member.

    member_name is denormalized at creation time so bills stay readable after
    the member is deleted (bills are not cascaded).
    """
    __tablename__ = "bills"
    __table_args__ = (
        db.UniqueConstraint("bill_number", name="uq_bills_bill_number"),
        db.Index("ix_bills_member_status", "member_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, nullable=False, index=True)
    member_name = db.Column(db.String(161), nullable=False)

    bill_number = db.Column(db.String(32), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=False)
    due_date = db.Column(db.Date, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="Pending")  # Pending, Paid, Overdue
    payment_date = db.Column(db.Date, nullable=True)
    payment_method = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<Bill id={self.id} number={self.bill_number!r} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "member_id": self.member_id,
            "member_name": self.member_name,
            "bill_number": self.bill_number,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "due_date": to_iso_date(self.due_date),
            "status": self.status,
            "payment_date": to_iso_date(self.payment_date),
            "payment_method": self.payment_method,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
