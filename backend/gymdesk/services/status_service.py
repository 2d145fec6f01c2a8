# Overview: Status derivation and membership window arithmetic.

"""
Status & date rules (authoritative)

- Every comparison is calendar-day granular: values are reduced to `date`
  before comparing, so a window ending today is still Active all day.
- Member/package: Expired iff end_date < today, otherwise Active.
- Bill: Overdue iff due_date < today, otherwise Pending (Paid is only ever
  set by an explicit payment).
- Month arithmetic clamps to the last valid day of the target month:
  2026-01-31 + 1 month -> 2026-02-28, 2024-01-31 + 1 month -> 2024-02-29.
"""

from __future__ import annotations

import calendar
from datetime import date

from gymdesk.time_utils import parse_iso_date, today as _today

MEMBER_ACTIVE = "Active"
MEMBER_INACTIVE = "Inactive"
MEMBER_EXPIRED = "Expired"
MEMBER_STATUSES = {MEMBER_ACTIVE, MEMBER_INACTIVE, MEMBER_EXPIRED}

BILL_PENDING = "Pending"
BILL_PAID = "Paid"
BILL_OVERDUE = "Overdue"
BILL_STATUSES = {BILL_PENDING, BILL_PAID, BILL_OVERDUE}
UNPAID_BILL_STATUSES = (BILL_PENDING, BILL_OVERDUE)

PACKAGE_ACTIVE = "Active"
PACKAGE_EXPIRED = "Expired"
PACKAGE_CANCELLED = "Cancelled"
PACKAGE_STATUSES = {PACKAGE_ACTIVE, PACKAGE_EXPIRED, PACKAGE_CANCELLED}


def _as_date(value, name: str) -> date:
    try:
        d = parse_iso_date(value)
    except ValueError:
        raise ValueError(f"{name} must be a date (YYYY-MM-DD)")
    if d is None:
        raise ValueError(f"{name} is required")
    return d


def calculate_status(end_date, today: date | None = None) -> str:
    """Active/Expired for a membership window ending on end_date."""
    end = _as_date(end_date, "end_date")
    current = today or _today()
    return MEMBER_EXPIRED if end < current else MEMBER_ACTIVE


def package_status(end_date, today: date | None = None) -> str:
    end = _as_date(end_date, "end_date")
    current = today or _today()
    return PACKAGE_EXPIRED if end < current else PACKAGE_ACTIVE


def bill_status_for_due_date(due_date, today: date | None = None) -> str:
    due = _as_date(due_date, "due_date")
    current = today or _today()
    return BILL_OVERDUE if due < current else BILL_PENDING


def add_months(start: date, months: int) -> date:
    """
    Add months while keeping day in valid range (e.g., Jan 31 + 1 month => Feb 28/29).
    """
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    last_day = calendar.monthrange(y, m)[1]
    return date(y, m, min(start.day, last_day))


def calculate_end_date(start_date, duration_months: int) -> date:
    start = _as_date(start_date, "start_date")
    if isinstance(duration_months, bool) or not isinstance(duration_months, int):
        raise ValueError("duration must be a whole number of months")
    if duration_months < 0:
        raise ValueError("duration must be >= 0")
    return add_months(start, duration_months)


def days_remaining(end_date, today: date | None = None) -> int:
    """Days until end_date (negative once expired)."""
    end = _as_date(end_date, "end_date")
    return (end - (today or _today())).days
