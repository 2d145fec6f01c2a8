# Overview: Aggregates behind the admin, member and user dashboards.

from __future__ import annotations

from datetime import date, timedelta

from flask import current_app

from ..extensions import db
from ..models import Account, Bill, Member
from . import (
    billing_service,
    diet_service,
    member_service,
    notification_service,
    package_service,
    registration_service,
    supplement_service,
)
from .status_service import (
    BILL_PAID,
    MEMBER_ACTIVE,
    MEMBER_EXPIRED,
    MEMBER_INACTIVE,
    UNPAID_BILL_STATUSES,
    days_remaining,
)
from gymdesk.time_utils import today as _today


def _member_counts() -> dict:
    rows = db.session.query(Member.status, db.func.count(Member.id)).group_by(Member.status).all()
    counts = {status: int(n) for status, n in rows}
    return {
        "total": sum(counts.values()),
        "active": counts.get(MEMBER_ACTIVE, 0),
        "inactive": counts.get(MEMBER_INACTIVE, 0),
        "expired": counts.get(MEMBER_EXPIRED, 0),
    }


def expiring_members(today: date | None = None, within_days: int | None = None) -> list[Member]:
    """Active members whose window ends within the next N days (inclusive)."""
    current = today or _today()
    if within_days is None:
        within_days = current_app.config.get("EXPIRY_WARNING_DAYS", 7)
    horizon = current + timedelta(days=within_days)
    return (
        db.session.query(Member)
        .filter(
            Member.status == MEMBER_ACTIVE,
            Member.end_date.isnot(None),
            Member.end_date >= current,
            Member.end_date <= horizon,
        )
        .order_by(Member.end_date.asc(), Member.id.asc())
        .all()
    )


def _month_bounds(d: date) -> tuple[date, date]:
    start = d.replace(day=1)
    next_month = (start + timedelta(days=32)).replace(day=1)
    return start, next_month - timedelta(days=1)


def admin_dashboard(today: date | None = None) -> dict:
    current = today or _today()
    month_start, month_end = _month_bounds(current)

    outstanding = db.session.query(
        db.func.coalesce(db.func.sum(Bill.amount_cents), 0)
    ).filter(Bill.status.in_(UNPAID_BILL_STATUSES)).scalar()

    bills_collected = db.session.query(
        db.func.coalesce(db.func.sum(Bill.amount_cents), 0)
    ).filter(
        Bill.status == BILL_PAID,
        Bill.payment_date >= month_start,
        Bill.payment_date <= month_end,
    ).scalar()
    orders_collected = supplement_service.completed_order_revenue_cents(month_start, month_end)

    expiring = expiring_members(current)
    low_stock = supplement_service.low_stock_supplements()
    scheduled = notification_service.list_notifications(status=notification_service.STATUS_SCHEDULED)

    return {
        "as_of": current.isoformat(),
        "members": _member_counts(),
        "expiring_soon": [
            {**m.to_dict(), "days_remaining": days_remaining(m.end_date, current)}
            for m in expiring
        ],
        "outstanding_dues_cents": int(outstanding or 0),
        "revenue_this_month_cents": {
            "bills": int(bills_collected or 0),
            "supplements": orders_collected,
            "total": int(bills_collected or 0) + orders_collected,
        },
        "pending_registrations": registration_service.pending_count(),
        "low_stock_supplements": [s.to_dict() for s in low_stock],
        "scheduled_notifications": len(scheduled),
        "accounts": db.session.query(Account).count(),
    }


def member_dashboard(account: Account, today: date | None = None) -> dict:
    """Everything a member sees about themselves; member is None when no profile is linked."""
    current = today or _today()
    member = member_service.find_member_for_account(account)
    if member is None:
        return {"account": account.to_dict(), "member": None}

    bills = billing_service.list_bills(member_id=member.id)
    active_plan = diet_service.get_active_diet_plan(member.id)

    return {
        "account": account.to_dict(),
        "member": {
            **member.to_dict(),
            "days_remaining": days_remaining(member.end_date, current) if member.end_date else None,
        },
        "bills": [b.to_dict() for b in bills],
        "bill_summary": billing_service.bill_summary(bills),
        "packages": [p.to_dict() for p in package_service.list_packages(member_id=member.id)],
        "active_diet_plan": active_plan.to_dict() if active_plan else None,
        "notifications": [n.to_dict() for n in notification_service.notifications_for_member(member)],
        "orders": [o.to_dict() for o in supplement_service.list_orders(member_id=member.id)],
    }


def user_dashboard() -> dict:
    """Front-desk view: counts only; lookups go through member search."""
    return {"members": _member_counts()}
