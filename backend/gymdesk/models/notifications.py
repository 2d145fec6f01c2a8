from __future__ import annotations

from ..extensions import db
from gymdesk.time_utils import to_utc_z, to_iso_date


class Notification(db.Model):
    """
    Scheduled message to an audience of members.

    Records only: nothing dispatches these automatically. An operator marks a
    notification Sent once it has gone out.
    """
    __tablename__ = "notifications"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(32), nullable=False, default="General")  # Payment Reminder, Membership Expiry, General, Custom

    target_type = db.Column(db.String(32), nullable=False, default="All Members")  # All/Active/Expired Members, Specific Member
    member_id = db.Column(db.Integer, nullable=True, index=True)
    member_name = db.Column(db.String(161), nullable=True)

    scheduled_date = db.Column(db.Date, nullable=False)
    send_time = db.Column(db.String(5), nullable=False, default="09:00")  # HH:MM
    is_recurring = db.Column(db.Boolean, nullable=False, default=False)
    recurrence_type = db.Column(db.String(16), nullable=True)  # Monthly, Weekly, Daily

    status = db.Column(db.String(16), nullable=False, default="Scheduled", index=True)  # Scheduled, Sent, Cancelled
    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "target_type": self.target_type,
            "member_id": self.member_id,
            "member_name": self.member_name,
            "scheduled_date": to_iso_date(self.scheduled_date),
            "send_time": self.send_time,
            "is_recurring": self.is_recurring,
            "recurrence_type": self.recurrence_type,
            "status": self.status,
            "sent_at": to_utc_z(self.sent_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
