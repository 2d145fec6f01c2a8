from __future__ import annotations

from ..extensions import db
from gymdesk.time_utils import to_utc_z


class RegistrationRequest(db.Model):
    """
    Self-service signup awaiting admin review.

    Approval turns the request into an Account; the bcrypt hash collected at
    signup is carried over so the applicant keeps the password they chose.
    """
    __tablename__ = "registration_requests"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    first_name = db.Column(db.String(80), nullable=False)
    last_name = db.Column(db.String(80), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    normalized_email = db.Column(db.String(255), nullable=False, index=True)
    phone = db.Column(db.String(32), nullable=True)
    role = db.Column(db.String(16), nullable=False, default="member")
    password_hash = db.Column(db.String(255), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="Pending", index=True)  # Pending, Approved, Rejected
    requested_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "status": self.status,
            "requested_at": to_utc_z(self.requested_at),
            "reviewed_at": to_utc_z(self.reviewed_at),
            "rejection_reason": self.rejection_reason,
            "account_id": self.account_id,
        }
