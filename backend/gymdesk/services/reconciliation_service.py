# Overview: Batch passes that re-derive stored status and dues from their sources.

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Member
from .billing_service import refresh_overdue_bills, unpaid_total_cents
from .concurrency import run_in_transaction
from .package_service import expire_packages
from .status_service import MEMBER_INACTIVE, calculate_status
from gymdesk.time_utils import utcnow


def refresh_member_statuses(today: date | None = None) -> int:
    """
    Recompute Active/Expired for every member with an end date.

    Inactive members are left alone. Returns the number of members changed.
    """
    def _op() -> int:
        members = db.session.query(Member).filter(
            Member.status != MEMBER_INACTIVE,
            Member.end_date.isnot(None),
        ).all()
        changed = 0
        for m in members:
            status = calculate_status(m.end_date, today)
            if status != m.status:
                m.status = status
                m.updated_at = utcnow()
                changed += 1
        return changed

    return run_in_transaction(_op)


def reconcile_member_dues() -> list[dict]:
    """
    Set every member's dues to the sum of their unpaid bills.

    Returns one entry per corrected member: {member_id, before_cents, after_cents}.
    """
    def _op() -> list[dict]:
        corrections = []
        for m in db.session.query(Member).order_by(Member.id.asc()).all():
            expected = unpaid_total_cents(m.id)
            if (m.dues_cents or 0) != expected:
                corrections.append({
                    "member_id": m.id,
                    "before_cents": m.dues_cents or 0,
                    "after_cents": expected,
                })
                m.dues_cents = expected
                m.updated_at = utcnow()
        return corrections

    return run_in_transaction(_op)


def refresh_package_statuses(today: date | None = None) -> int:
    return expire_packages(today)


def run_all(today: date | None = None) -> dict:
    """Every pass in dependency order; bills first so dues see final statuses."""
    return {
        "overdue_bills": refresh_overdue_bills(today),
        "expired_packages": refresh_package_statuses(today),
        "member_statuses": refresh_member_statuses(today),
        "dues_corrections": len(reconcile_member_dues()),
    }
