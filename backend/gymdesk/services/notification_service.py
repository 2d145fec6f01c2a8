from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Member, Notification
from ..validation import NotFoundError, ValidationError
from .status_service import MEMBER_ACTIVE, MEMBER_EXPIRED
from gymdesk.time_utils import parse_iso_date, utcnow


TARGET_ALL = "All Members"
TARGET_SPECIFIC = "Specific Member"
TARGET_ACTIVE = "Active Members"
TARGET_EXPIRED = "Expired Members"
VALID_TARGET_TYPES = (TARGET_ALL, TARGET_SPECIFIC, TARGET_ACTIVE, TARGET_EXPIRED)

VALID_NOTIFICATION_TYPES = ("Payment Reminder", "Membership Expiry", "General", "Custom")
VALID_RECURRENCE_TYPES = ("Monthly", "Weekly", "Daily")

STATUS_SCHEDULED = "Scheduled"
STATUS_SENT = "Sent"
STATUS_CANCELLED = "Cancelled"
VALID_STATUSES = (STATUS_SCHEDULED, STATUS_SENT, STATUS_CANCELLED)


class NotificationError(Exception):
    """Raised for notification operation errors."""
    pass


def _normalize_send_time(value) -> str:
    raw = (str(value).strip() if value is not None else "") or "09:00"
    hours, sep, minutes = raw.partition(":")
    if not sep or not hours.isdigit() or not minutes[:2].isdigit():
        raise ValidationError("send_time must be HH:MM")
    h, m = int(hours), int(minutes[:2])
    if not (0 <= h <= 23 and 0 <= m <= 59):
        raise ValidationError("send_time must be HH:MM")
    return f"{h:02d}:{m:02d}"


def _normalize_audience(data: dict, current: Notification | None = None) -> tuple[str, int | None, str | None]:
    """
    Resolve target_type/member_id into a consistent pair.

    Specific Member requires an existing member; every other audience clears
    the member fields.
    """
    target_type = data.get("target_type", current.target_type if current else TARGET_ALL) or TARGET_ALL
    if target_type not in VALID_TARGET_TYPES:
        raise ValidationError(f"target_type must be one of: {', '.join(VALID_TARGET_TYPES)}")

    if target_type != TARGET_SPECIFIC:
        return target_type, None, None

    member_id = data.get("member_id", current.member_id if current else None)
    if not member_id:
        raise ValidationError("member_id is required for Specific Member notifications")
    if isinstance(member_id, bool):
        raise ValidationError("member_id must be an integer")
    try:
        member_id = int(member_id)
    except (TypeError, ValueError):
        raise ValidationError("member_id must be an integer")
    member = db.session.get(Member, member_id)
    if not member:
        raise NotFoundError("Member not found")
    return target_type, member.id, member.full_name


def _apply_fields(n: Notification, data: dict) -> None:
    if "title" in data:
        title = (data.get("title") or "").strip()
        if not title:
            raise ValidationError("title cannot be blank")
        n.title = title
    if "message" in data:
        message = (data.get("message") or "").strip()
        if not message:
            raise ValidationError("message cannot be blank")
        n.message = message
    if "type" in data:
        if data["type"] not in VALID_NOTIFICATION_TYPES:
            raise ValidationError(f"type must be one of: {', '.join(VALID_NOTIFICATION_TYPES)}")
        n.type = data["type"]
    if "scheduled_date" in data:
        try:
            scheduled = parse_iso_date(data["scheduled_date"])
        except ValueError:
            raise ValidationError("scheduled_date must be a date (YYYY-MM-DD)")
        if scheduled is None:
            raise ValidationError("scheduled_date is required")
        n.scheduled_date = scheduled
    if "send_time" in data:
        n.send_time = _normalize_send_time(data["send_time"])
    if "is_recurring" in data:
        n.is_recurring = bool(data["is_recurring"])
    if "recurrence_type" in data:
        n.recurrence_type = data["recurrence_type"] or None

    if n.is_recurring:
        if n.recurrence_type not in VALID_RECURRENCE_TYPES:
            raise ValidationError(f"recurrence_type must be one of: {', '.join(VALID_RECURRENCE_TYPES)}")
    else:
        n.recurrence_type = None


def create_notification(data: dict) -> Notification:
    """New notifications always start Scheduled."""
    for key in ("title", "message", "scheduled_date"):
        if data.get(key) in (None, ""):
            raise ValidationError(f"{key} is required")

    target_type, member_id, member_name = _normalize_audience(data)

    n = Notification(
        target_type=target_type,
        member_id=member_id,
        member_name=member_name,
        type="General",
        send_time="09:00",
        is_recurring=False,
        status=STATUS_SCHEDULED,
    )
    _apply_fields(n, data)

    db.session.add(n)
    db.session.commit()
    return n


def get_notification(notification_id: int) -> Notification | None:
    return db.session.get(Notification, notification_id)


def list_notifications(status: str | None = None) -> list[Notification]:
    q = db.session.query(Notification)
    if status:
        if status not in VALID_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(VALID_STATUSES)}")
        q = q.filter_by(status=status)
    return q.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def update_notification(notification_id: int, data: dict) -> Notification | None:
    n = get_notification(notification_id)
    if not n:
        return None
    if n.status != STATUS_SCHEDULED:
        raise NotificationError(f"Only scheduled notifications can be edited (status is {n.status})")

    if "target_type" in data or "member_id" in data:
        n.target_type, n.member_id, n.member_name = _normalize_audience(data, current=n)
    _apply_fields(n, data)

    n.updated_at = utcnow()
    db.session.commit()
    return n


def mark_as_sent(notification_id: int) -> Notification | None:
    """Operator confirms the notification went out."""
    n = get_notification(notification_id)
    if not n:
        return None
    if n.status == STATUS_CANCELLED:
        raise NotificationError("Cancelled notifications cannot be sent")
    n.status = STATUS_SENT
    n.sent_at = utcnow()
    n.updated_at = utcnow()
    db.session.commit()
    return n


def cancel_notification(notification_id: int) -> Notification | None:
    n = get_notification(notification_id)
    if not n:
        return None
    if n.status == STATUS_SENT:
        raise NotificationError("Sent notifications cannot be cancelled")
    n.status = STATUS_CANCELLED
    n.updated_at = utcnow()
    db.session.commit()
    return n


def delete_notification(notification_id: int) -> bool:
    n = get_notification(notification_id)
    if not n:
        return False
    db.session.delete(n)
    db.session.commit()
    return True


def get_target_members(target_type: str, member_id: int | None = None) -> list[Member]:
    """Members an audience selector resolves to; unknown selectors resolve to nobody."""
    q = db.session.query(Member).order_by(Member.created_at.desc(), Member.id.desc())
    if target_type == TARGET_ALL:
        return q.all()
    if target_type == TARGET_ACTIVE:
        return q.filter(Member.status == MEMBER_ACTIVE).all()
    if target_type == TARGET_EXPIRED:
        return q.filter(Member.status == MEMBER_EXPIRED).all()
    if target_type == TARGET_SPECIFIC:
        if not member_id:
            return []
        member = db.session.get(Member, member_id)
        return [member] if member else []
    return []


def _addresses_member(n: Notification, member: Member) -> bool:
    if n.target_type == TARGET_ALL:
        return True
    if n.target_type == TARGET_SPECIFIC:
        return n.member_id == member.id
    if n.target_type == TARGET_ACTIVE:
        return member.status == MEMBER_ACTIVE
    if n.target_type == TARGET_EXPIRED:
        return member.status == MEMBER_EXPIRED
    return False


def notifications_for_member(member: Member, *, include_cancelled: bool = False) -> list[Notification]:
    """Notifications whose audience currently includes the member, newest first."""
    rows = list_notifications()
    return [
        n for n in rows
        if _addresses_member(n, member) and (include_cancelled or n.status != STATUS_CANCELLED)
    ]


def due_notifications(on: date) -> list[Notification]:
    """Scheduled notifications whose date has arrived (for operators to send by hand)."""
    return (
        db.session.query(Notification)
        .filter(Notification.status == STATUS_SCHEDULED, Notification.scheduled_date <= on)
        .order_by(Notification.scheduled_date.asc(), Notification.send_time.asc(), Notification.id.asc())
        .all()
    )
