# Overview: Report export (CSV / JSON envelope) and printable bill receipts.

"""
Export formats

- CSV: header row, then one row per record in the report's column order.
  Every field is double-quoted; embedded quotes are doubled.
- JSON: {reportType, generatedAt, filters, stats, data}, indented by 2.
- Receipt: standalone HTML page for one bill, styles inline.
"""

from __future__ import annotations

import csv
import io
import json

from flask import current_app, render_template_string

from ..models import Bill
from ..validation import ValidationError
from ..formatting import format_cents, format_date
from . import billing_service, member_service, package_service, supplement_service
from .status_service import (
    BILL_OVERDUE,
    BILL_PAID,
    BILL_PENDING,
    MEMBER_ACTIVE,
    MEMBER_EXPIRED,
    MEMBER_INACTIVE,
    PACKAGE_ACTIVE,
    PACKAGE_CANCELLED,
    PACKAGE_EXPIRED,
)
from gymdesk.time_utils import to_iso_date, to_utc_z, utcnow


REPORT_MEMBERS = "members"
REPORT_BILLS = "bills"
REPORT_PACKAGES = "packages"
REPORT_ORDERS = "orders"
REPORT_TYPES = (REPORT_MEMBERS, REPORT_BILLS, REPORT_PACKAGES, REPORT_ORDERS)

EXPORT_FORMATS = ("csv", "json")

# (header, row -> value)
MEMBER_COLUMNS = [
    ("ID", lambda m: m.id),
    ("First Name", lambda m: m.first_name),
    ("Last Name", lambda m: m.last_name),
    ("Email", lambda m: m.email),
    ("Phone", lambda m: m.phone),
    ("Membership Type", lambda m: m.membership_type),
    ("Start Date", lambda m: to_iso_date(m.start_date)),
    ("End Date", lambda m: to_iso_date(m.end_date)),
    ("Status", lambda m: m.status),
    ("Dues", lambda m: format_cents(m.dues_cents)),
    ("Joined", lambda m: to_utc_z(m.created_at)),
]

BILL_COLUMNS = [
    ("Bill Number", lambda b: b.bill_number),
    ("Member", lambda b: b.member_name),
    ("Description", lambda b: b.description),
    ("Amount", lambda b: format_cents(b.amount_cents)),
    ("Due Date", lambda b: to_iso_date(b.due_date)),
    ("Status", lambda b: b.status),
    ("Payment Date", lambda b: to_iso_date(b.payment_date)),
    ("Payment Method", lambda b: b.payment_method),
]

PACKAGE_COLUMNS = [
    ("ID", lambda p: p.id),
    ("Member", lambda p: p.member_name),
    ("Package", lambda p: p.package_name),
    ("Type", lambda p: p.package_type),
    ("Amount", lambda p: format_cents(p.amount_cents)),
    ("Duration (months)", lambda p: p.duration),
    ("Start Date", lambda p: to_iso_date(p.start_date)),
    ("End Date", lambda p: to_iso_date(p.end_date)),
    ("Status", lambda p: p.status),
]

ORDER_COLUMNS = [
    ("Order ID", lambda o: o.id),
    ("Member", lambda o: o.member_name),
    ("Items", lambda o: "; ".join(f"{line.supplement_name} x{line.quantity}" for line in o.lines)),
    ("Total", lambda o: format_cents(o.total_amount_cents)),
    ("Order Date", lambda o: to_iso_date(o.order_date)),
    ("Payment Method", lambda o: o.payment_method),
    ("Status", lambda o: o.status),
]

REPORT_COLUMNS = {
    REPORT_MEMBERS: MEMBER_COLUMNS,
    REPORT_BILLS: BILL_COLUMNS,
    REPORT_PACKAGES: PACKAGE_COLUMNS,
    REPORT_ORDERS: ORDER_COLUMNS,
}


def to_csv(columns, rows) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow([header for header, _ in columns])
    for row in rows:
        values = [getter(row) for _, getter in columns]
        writer.writerow(["" if v is None else v for v in values])
    return buf.getvalue()


def to_json_envelope(report_type: str, *, data: list, filters: dict | None = None, stats: dict | None = None) -> str:
    envelope = {
        "reportType": report_type,
        "generatedAt": to_utc_z(utcnow()),
        "filters": filters or {},
        "stats": stats or {},
        "data": data,
    }
    return json.dumps(envelope, indent=2, ensure_ascii=False)


def _collect(report_type: str, filters: dict) -> tuple[list, dict]:
    """Rows and summary stats for one report type."""
    member_id = filters.get("member_id")
    status = filters.get("status")

    if report_type == REPORT_MEMBERS:
        rows = member_service.list_members(status=status, search=filters.get("search"))
        stats = {
            "total": len(rows),
            "active": sum(1 for m in rows if m.status == MEMBER_ACTIVE),
            "inactive": sum(1 for m in rows if m.status == MEMBER_INACTIVE),
            "expired": sum(1 for m in rows if m.status == MEMBER_EXPIRED),
            "total_dues_cents": sum(m.dues_cents or 0 for m in rows),
        }
        return rows, stats

    if report_type == REPORT_BILLS:
        rows = billing_service.list_bills(member_id=member_id, status=status)
        summary = billing_service.bill_summary(rows)
        stats = {
            "total": summary["count"],
            BILL_PAID.lower(): sum(1 for b in rows if b.status == BILL_PAID),
            BILL_PENDING.lower(): sum(1 for b in rows if b.status == BILL_PENDING),
            BILL_OVERDUE.lower(): sum(1 for b in rows if b.status == BILL_OVERDUE),
            "paid_cents": summary["paid_cents"],
            "outstanding_cents": summary["outstanding_cents"],
        }
        return rows, stats

    if report_type == REPORT_PACKAGES:
        rows = package_service.list_packages(member_id=member_id, status=status)
        stats = {
            "total": len(rows),
            "active": sum(1 for p in rows if p.status == PACKAGE_ACTIVE),
            "expired": sum(1 for p in rows if p.status == PACKAGE_EXPIRED),
            "cancelled": sum(1 for p in rows if p.status == PACKAGE_CANCELLED),
            "total_amount_cents": sum(p.amount_cents for p in rows),
        }
        return rows, stats

    if report_type == REPORT_ORDERS:
        rows = supplement_service.list_orders(member_id=member_id)
        stats = {
            "total": len(rows),
            "units_sold": sum(line.quantity for o in rows for line in o.lines),
            "total_amount_cents": sum(o.total_amount_cents for o in rows),
        }
        return rows, stats

    raise ValidationError(f"report type must be one of: {', '.join(REPORT_TYPES)}")


def export_report(report_type: str, fmt: str = "csv", filters: dict | None = None) -> tuple[str, str]:
    """
    Render a report.

    Returns (body, mimetype).

    Raises:
        ValidationError: unknown report type or format
    """
    fmt = (fmt or "csv").lower()
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"format must be one of: {', '.join(EXPORT_FORMATS)}")
    if report_type not in REPORT_TYPES:
        raise ValidationError(f"report type must be one of: {', '.join(REPORT_TYPES)}")

    filters = {k: v for k, v in (filters or {}).items() if v not in (None, "")}
    rows, stats = _collect(report_type, filters)

    if fmt == "csv":
        return to_csv(REPORT_COLUMNS[report_type], rows), "text/csv"
    body = to_json_envelope(
        report_type,
        data=[r.to_dict() for r in rows],
        filters=filters,
        stats=stats,
    )
    return body, "application/json"


RECEIPT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Receipt {{ bill.bill_number }}</title>
</head>
<body style="font-family: Arial, Helvetica, sans-serif; background: #f4f4f4; margin: 0; padding: 32px;">
  <div style="max-width: 640px; margin: 0 auto; background: #ffffff; border-radius: 8px; padding: 32px; box-shadow: 0 2px 8px rgba(0,0,0,0.08);">
    <div style="border-bottom: 2px solid #222; padding-bottom: 16px; margin-bottom: 24px;">
      <h1 style="margin: 0; font-size: 24px; color: #222;">{{ gym_name }}</h1>
      <p style="margin: 4px 0 0; color: #666;">Payment Receipt</p>
    </div>
    <table style="width: 100%; border-collapse: collapse; font-size: 14px;">
      <tr><td style="padding: 8px 0; color: #666;">Bill Number</td><td style="padding: 8px 0; text-align: right; font-weight: bold;">{{ bill.bill_number }}</td></tr>
      <tr><td style="padding: 8px 0; color: #666;">Member</td><td style="padding: 8px 0; text-align: right;">{{ bill.member_name }}</td></tr>
      <tr><td style="padding: 8px 0; color: #666;">Description</td><td style="padding: 8px 0; text-align: right;">{{ bill.description }}</td></tr>
      <tr><td style="padding: 8px 0; color: #666;">Due Date</td><td style="padding: 8px 0; text-align: right;">{{ due_date }}</td></tr>
      <tr><td style="padding: 8px 0; color: #666;">Status</td><td style="padding: 8px 0; text-align: right; color: {{ status_color }}; font-weight: bold;">{{ bill.status }}</td></tr>
      {% if bill.payment_date %}
      <tr><td style="padding: 8px 0; color: #666;">Payment Date</td><td style="padding: 8px 0; text-align: right;">{{ payment_date }}</td></tr>
      <tr><td style="padding: 8px 0; color: #666;">Payment Method</td><td style="padding: 8px 0; text-align: right;">{{ bill.payment_method }}</td></tr>
      {% endif %}
    </table>
    <div style="margin-top: 24px; padding: 16px; background: #f9f9f9; border-radius: 6px; display: flex; justify-content: space-between; font-size: 18px;">
      <span>Amount</span>
      <strong>{{ amount }}</strong>
    </div>
    <p style="margin-top: 32px; font-size: 12px; color: #999; text-align: center;">Generated {{ generated_at }}</p>
  </div>
</body>
</html>
"""

STATUS_COLORS = {BILL_PAID: "#2e7d32", BILL_PENDING: "#ef6c00", BILL_OVERDUE: "#c62828"}


def render_receipt(bill: Bill) -> str:
    return render_template_string(
        RECEIPT_TEMPLATE,
        bill=bill,
        gym_name=current_app.config.get("GYM_NAME", "GymDesk Fitness"),
        amount=format_cents(bill.amount_cents),
        due_date=format_date(bill.due_date),
        payment_date=format_date(bill.payment_date),
        status_color=STATUS_COLORS.get(bill.status, "#222"),
        generated_at=to_utc_z(utcnow()),
    )
