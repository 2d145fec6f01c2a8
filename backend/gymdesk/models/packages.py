from __future__ import annotations

from ..extensions import db
from gymdesk.time_utils import to_utc_z, to_iso_date


class FeePackage(db.Model):
    """
    A priced membership plan assigned to a member for a fixed number of months.

    Every assignment is kept as a row; the member record carries the window of
    the most recent assignment.
    """
    __tablename__ = "fee_packages"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, nullable=False, index=True)
    member_name = db.Column(db.String(161), nullable=False)

    package_type = db.Column(db.String(32), nullable=False)  # basic, premium, gold, platinum
    package_name = db.Column(db.String(64), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    duration = db.Column(db.Integer, nullable=False)  # months

    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="Active")  # Active, Expired, Cancelled

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "member_id": self.member_id,
            "member_name": self.member_name,
            "package_type": self.package_type,
            "package_name": self.package_name,
            "amount_cents": self.amount_cents,
            "duration": self.duration,
            "start_date": to_iso_date(self.start_date),
            "end_date": to_iso_date(self.end_date),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
