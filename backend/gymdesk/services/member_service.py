# Overview: Service-layer operations for members; encapsulates business logic and database work.

"""
Member Registry

- status is derived from end_date whenever end_date changes or a status is
  given; only Inactive (a member parked by staff) is kept as sent.
- Deleting a member does not touch bills, packages, orders or diet plans that
  reference it; those keep their denormalized member_name.
"""

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Account, Member
from ..validation import NotFoundError, ValidationError
from .status_service import MEMBER_STATUSES, MEMBER_INACTIVE, calculate_status
from .account_service import normalize_email
from . import storage_service
from gymdesk.time_utils import utcnow


MEMBER_MUTABLE_FIELDS = {
    "account_id", "first_name", "last_name", "email", "phone", "date_of_birth", "gender",
    "address", "city", "state", "zip_code", "membership_type", "start_date", "end_date",
    "emergency_contact_name", "emergency_contact_phone", "medical_conditions",
    "photo_url", "status", "dues_cents",
}

MEMBERSHIP_TYPES = ("basic", "premium", "gold", "platinum")


def apply_member_patch(m: Member, patch: dict) -> None:
    for k, v in patch.items():
        if k not in MEMBER_MUTABLE_FIELDS:
            continue
        if k == "email" and v:
            v = normalize_email(v)
        setattr(m, k, v)


def _check_status_and_type(patch: dict) -> None:
    status = patch.get("status")
    if status is not None and status not in MEMBER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(sorted(MEMBER_STATUSES))}")
    membership_type = patch.get("membership_type")
    if membership_type is not None and membership_type not in MEMBERSHIP_TYPES:
        raise ValidationError(f"membership_type must be one of: {', '.join(MEMBERSHIP_TYPES)}")


def add_member(patch: dict) -> Member:
    """
    Persist a new member profile.

    status is derived from end_date unless the member is parked as Inactive
    (Active when no end date is known); dues_cents defaults to 0.
    """
    _check_status_and_type(patch)

    m = Member()
    apply_member_patch(m, patch)
    if m.status != MEMBER_INACTIVE:
        m.status = calculate_status(m.end_date) if m.end_date else (m.status or "Active")
    if m.dues_cents is None:
        m.dues_cents = 0
    if m.membership_type is None:
        m.membership_type = "basic"

    db.session.add(m)
    db.session.commit()
    return m


def get_member(member_id: int) -> Member | None:
    return db.session.get(Member, member_id)


def require_member(member_id: int) -> Member:
    member = get_member(member_id)
    if not member:
        raise NotFoundError("Member not found")
    return member


def list_members(status: str | None = None, search: str | None = None) -> list[Member]:
    """Newest first; optional status filter and case-insensitive text search."""
    q = db.session.query(Member)
    if status:
        if status not in MEMBER_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(sorted(MEMBER_STATUSES))}")
        q = q.filter(Member.status == status)
    if search and search.strip():
        like = f"%{search.strip()}%"
        q = q.filter(or_(
            Member.first_name.ilike(like),
            Member.last_name.ilike(like),
            (Member.first_name + " " + Member.last_name).ilike(like),
            Member.email.ilike(like),
            Member.phone.ilike(like),
        ))
    return q.order_by(Member.created_at.desc(), Member.id.desc()).all()


def search_members(query: str) -> list[Member]:
    if not query or not query.strip():
        return []
    return list_members(search=query)


def update_member(member_id: int, patch: dict) -> Member | None:
    """
    Merge a validated patch into a member.

    Returns None when the member does not exist.
    """
    m = get_member(member_id)
    if not m:
        return None

    _check_status_and_type(patch)

    end_date_changed = "end_date" in patch and patch["end_date"] != m.end_date
    apply_member_patch(m, patch)

    if (end_date_changed or "status" in patch) and m.status != MEMBER_INACTIVE and m.end_date:
        m.status = calculate_status(m.end_date)

    m.updated_at = utcnow()
    db.session.commit()
    return m


def delete_member(member_id: int) -> bool:
    m = get_member(member_id)
    if not m:
        return False
    db.session.delete(m)
    db.session.commit()
    return True


def check_in(member_id: int) -> Member:
    m = require_member(member_id)
    m.last_check_in = utcnow()
    db.session.commit()
    return m


def attach_photo(member_id: int, file) -> Member:
    """
    Store a photo under the member's folder, then record its URL.

    The file is written first; if the database write fails the stored file is
    left behind and simply overwritten by the next upload of the same name.
    """
    m = require_member(member_id)
    m.photo_url = storage_service.save_member_photo(file, member_id)
    m.updated_at = utcnow()
    db.session.commit()
    return m


def find_member_for_account(account: Account) -> Member | None:
    """Member profile of a member-role account: explicit link first, then email."""
    if account is None:
        return None
    linked = db.session.query(Member).filter_by(account_id=account.id).first()
    if linked:
        return linked
    return (
        db.session.query(Member)
        .filter(db.func.lower(Member.email) == account.normalized_email)
        .order_by(Member.created_at.desc(), Member.id.desc())
        .first()
    )
