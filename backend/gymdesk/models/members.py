from __future__ import annotations

from ..extensions import db
from gymdesk.time_utils import to_utc_z, to_iso_date


class Member(db.Model):
    """
    Gym member profile.

    status is derived from end_date (Active/Expired) unless set to Inactive by
    staff; it is persisted so list filters stay cheap, and recomputed on every
    end_date change (see member_service.update_member).

    dues_cents is the running unpaid balance: the sum of this member's
    Pending and Overdue bills.
    """
    __tablename__ = "members"
    __table_args__ = (
        db.Index("ix_members_status", "status"),
        db.Index("ix_members_end_date", "end_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Optional link to the login account of a member-role user
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=True, index=True)

    first_name = db.Column(db.String(80), nullable=False)
    last_name = db.Column(db.String(80), nullable=False)
    email = db.Column(db.String(255), nullable=True, index=True)
    phone = db.Column(db.String(32), nullable=True)
    date_of_birth = db.Column(db.Date, nullable=True)
    gender = db.Column(db.String(16), nullable=True)

    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(80), nullable=True)
    state = db.Column(db.String(80), nullable=True)
    zip_code = db.Column(db.String(16), nullable=True)

    membership_type = db.Column(db.String(32), nullable=False, default="basic")  # basic, premium, gold, platinum
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)

    emergency_contact_name = db.Column(db.String(120), nullable=True)
    emergency_contact_phone = db.Column(db.String(32), nullable=True)
    medical_conditions = db.Column(db.Text, nullable=True)

    photo_url = db.Column(db.String(512), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="Active")  # Active, Inactive, Expired
    dues_cents = db.Column(db.Integer, nullable=False, default=0)
    last_check_in = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    account = db.relationship("Account", backref=db.backref("member_profile", uselist=False, lazy=True))

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<Member id={self.id} name={self.full_name!r} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "date_of_birth": to_iso_date(self.date_of_birth),
            "gender": self.gender,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "membership_type": self.membership_type,
            "start_date": to_iso_date(self.start_date),
            "end_date": to_iso_date(self.end_date),
            "emergency_contact_name": self.emergency_contact_name,
            "emergency_contact_phone": self.emergency_contact_phone,
            "medical_conditions": self.medical_conditions,
            "photo_url": self.photo_url,
            "status": self.status,
            "dues_cents": self.dues_cents,
            "last_check_in": to_utc_z(self.last_check_in),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
