# Overview: Service-layer operations for billing; encapsulates business logic and database work.

"""
Billing Ledger Invariants (authoritative)

- member.dues_cents == SUM(amount_cents) of that member's bills whose status
  is Pending or Overdue.
- Every mutation that changes a bill's paid/unpaid state adjusts dues in the
  SAME transaction, with the member row locked for update.
- Dues never go negative: decrements clamp at zero.
- Paying a bill twice is a no-op (no second decrement).
- Overdue is still unpaid; flipping Pending -> Overdue never touches dues.
"""

from __future__ import annotations

import secrets
from datetime import date

from ..extensions import db
from ..models import Bill, Member
from ..validation import NotFoundError, ValidationError, enforce_amount_cents
from .concurrency import lock_for_update, run_in_transaction
from .status_service import (
    BILL_OVERDUE,
    BILL_PAID,
    BILL_PENDING,
    BILL_STATUSES,
    UNPAID_BILL_STATUSES,
    bill_status_for_due_date,
)
from gymdesk.time_utils import parse_iso_date, today as _today, utcnow


PAYMENT_METHODS = ("Cash", "Card", "UPI", "Bank Transfer", "Online")
DEFAULT_PAYMENT_METHOD = "Cash"
BILL_NUMBER_ATTEMPTS = 10
BILL_NUMBER_MAX_LENGTH = 32


class BillingError(Exception):
    """Raised for bill operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _locked_member(member_id: int) -> Member | None:
    return lock_for_update(db.session.query(Member).filter_by(id=member_id)).first()


def _increase_dues(member: Member, amount_cents: int) -> None:
    member.dues_cents = (member.dues_cents or 0) + amount_cents
    member.updated_at = utcnow()


def _decrease_dues(member: Member, amount_cents: int) -> None:
    member.dues_cents = max(0, (member.dues_cents or 0) - amount_cents)
    member.updated_at = utcnow()


def generate_bill_number(on: date | None = None) -> str:
    """BILL-YYYYMMDD-NNNN with a random four-digit suffix."""
    d = on or _today()
    return f"BILL-{d:%Y%m%d}-{secrets.randbelow(10_000):04d}"


def _unique_bill_number(on: date | None = None) -> str:
    for _ in range(BILL_NUMBER_ATTEMPTS):
        candidate = generate_bill_number(on)
        if not db.session.query(Bill.id).filter_by(bill_number=candidate).first():
            return candidate
    raise BillingError("Could not allocate a unique bill number; try again")


def create_bill(
    *,
    member_id: int,
    amount_cents: int,
    description: str,
    due_date,
    bill_number: str | None = None,
    today: date | None = None,
) -> Bill:
    """
    Create a bill and add its amount to the member's dues.

    Status is Overdue when due_date is already in the past, Pending otherwise.

    Raises:
        NotFoundError: member does not exist
        ValidationError: bad amount / description / due date / bill number
    """
    enforce_amount_cents("amount_cents", amount_cents)
    description = (description or "").strip()
    if not description:
        raise ValidationError("description is required")
    try:
        due = parse_iso_date(due_date)
    except ValueError:
        raise ValidationError("due_date must be a date (YYYY-MM-DD)")
    if due is None:
        raise ValidationError("due_date is required")
    if bill_number is not None:
        if not isinstance(bill_number, str) or not bill_number.strip():
            raise ValidationError("bill_number must be a non-blank string")
        bill_number = bill_number.strip()
        if len(bill_number) > BILL_NUMBER_MAX_LENGTH:
            raise ValidationError(f"bill_number must be at most {BILL_NUMBER_MAX_LENGTH} characters")

    def _op() -> Bill:
        member = _locked_member(member_id)
        if not member:
            raise NotFoundError("Member not found")

        number = bill_number or _unique_bill_number(today)
        if bill_number and db.session.query(Bill.id).filter_by(bill_number=number).first():
            raise BillingError("Bill number already exists", {"bill_number": number})

        bill = Bill(
            member_id=member.id,
            member_name=member.full_name,
            bill_number=number,
            amount_cents=amount_cents,
            description=description,
            due_date=due,
            status=bill_status_for_due_date(due, today),
        )
        db.session.add(bill)
        _increase_dues(member, amount_cents)
        db.session.flush()
        return bill

    return run_in_transaction(_op)


def get_bill(bill_id: int) -> Bill | None:
    return db.session.get(Bill, bill_id)


def list_bills(member_id: int | None = None, status: str | None = None) -> list[Bill]:
    q = db.session.query(Bill)
    if member_id is not None:
        q = q.filter(Bill.member_id == member_id)
    if status:
        if status not in BILL_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(sorted(BILL_STATUSES))}")
        q = q.filter(Bill.status == status)
    return q.order_by(Bill.created_at.desc(), Bill.id.desc()).all()


def mark_bill_as_paid(
    bill_id: int,
    payment_method: str = DEFAULT_PAYMENT_METHOD,
    *,
    today: date | None = None,
) -> Bill:
    """
    Settle a bill and take its amount off the member's dues.

    Idempotent: a bill that is already Paid is returned unchanged.

    Raises:
        NotFoundError: bill does not exist
        ValidationError: unknown payment method
    """
    method = (payment_method or DEFAULT_PAYMENT_METHOD).strip()
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    def _op() -> Bill:
        bill = lock_for_update(db.session.query(Bill).filter_by(id=bill_id)).first()
        if not bill:
            raise NotFoundError("Bill not found")
        if bill.status == BILL_PAID:
            return bill

        bill.status = BILL_PAID
        bill.payment_date = today or _today()
        bill.payment_method = method
        bill.updated_at = utcnow()

        member = _locked_member(bill.member_id)
        if member:
            _decrease_dues(member, bill.amount_cents)
        return bill

    return run_in_transaction(_op)


def delete_bill(bill_id: int) -> bool:
    """
    Delete a bill; unpaid bills also come off the member's dues.

    Returns False when the bill does not exist.
    """
    def _op() -> bool:
        bill = lock_for_update(db.session.query(Bill).filter_by(id=bill_id)).first()
        if not bill:
            return False
        if bill.status in UNPAID_BILL_STATUSES:
            member = _locked_member(bill.member_id)
            if member:
                _decrease_dues(member, bill.amount_cents)
        db.session.delete(bill)
        return True

    return run_in_transaction(_op)


def refresh_overdue_bills(today: date | None = None) -> int:
    """Flip Pending bills whose due date has passed to Overdue; returns count."""
    current = today or _today()

    def _op() -> int:
        bills = db.session.query(Bill).filter(
            Bill.status == BILL_PENDING,
            Bill.due_date < current,
        ).all()
        for bill in bills:
            bill.status = BILL_OVERDUE
            bill.updated_at = utcnow()
        return len(bills)

    return run_in_transaction(_op)


def unpaid_total_cents(member_id: int) -> int:
    total = db.session.query(
        db.func.coalesce(db.func.sum(Bill.amount_cents), 0)
    ).filter(
        Bill.member_id == member_id,
        Bill.status.in_(UNPAID_BILL_STATUSES),
    ).scalar()
    return int(total or 0)


def bill_summary(bills: list[Bill]) -> dict:
    """Totals block shown next to a bill list."""
    paid = sum(b.amount_cents for b in bills if b.status == BILL_PAID)
    pending = sum(b.amount_cents for b in bills if b.status == BILL_PENDING)
    overdue = sum(b.amount_cents for b in bills if b.status == BILL_OVERDUE)
    return {
        "count": len(bills),
        "paid_cents": paid,
        "pending_cents": pending,
        "overdue_cents": overdue,
        "outstanding_cents": pending + overdue,
    }
