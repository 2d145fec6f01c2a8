# Overview: Shared currency and date formatting for receipts and exports.

from __future__ import annotations

from datetime import date

from flask import current_app, has_app_context


def currency_symbol() -> str:
    if has_app_context():
        return current_app.config.get("CURRENCY_SYMBOL", "₹")
    return "₹"


def format_cents(amount_cents: int | None, *, symbol: str | None = None) -> str:
    """
    Render minor units as a display amount: 50000 -> "₹500.00".

    Negative values keep their sign in front of the symbol.
    """
    if amount_cents is None:
        amount_cents = 0
    sym = currency_symbol() if symbol is None else symbol
    sign = "-" if amount_cents < 0 else ""
    whole, frac = divmod(abs(int(amount_cents)), 100)
    return f"{sign}{sym}{whole:,}.{frac:02d}"


def format_date(d: date | None) -> str:
    """Long display date used on receipts: 2026-10-19 -> "19 Oct 2026"."""
    if d is None:
        return "-"
    return d.strftime("%d %b %Y")
