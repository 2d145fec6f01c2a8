# Overview: Service-layer operations for supplements and orders; encapsulates business logic and database work.

"""
Supplement Inventory

Orders are atomic: every line's stock decrement and the order insert share one
transaction, with each supplement row locked for update.

Oversell policy (ALLOW_STOCK_OVERSELL):
- False (default): a line asking for more than is in stock rejects the whole
  order with InsufficientStockError; nothing is written.
- True: the order is accepted and stock clamps at zero.
"""

from __future__ import annotations

from datetime import date

from flask import current_app

from ..extensions import db
from ..models import Member, Supplement, SupplementOrder, SupplementOrderLine
from ..validation import ConflictError, NotFoundError, ValidationError
from .concurrency import lock_for_update, run_in_transaction
from gymdesk.time_utils import parse_iso_date, today as _today, utcnow


SUPPLEMENT_MUTABLE_FIELDS = {
    "name", "brand", "category", "description", "price_cents", "stock",
    "image_url", "barcode", "expiry_date",
}

SUPPLEMENT_CATEGORIES = (
    "Protein", "Pre-Workout", "Post-Workout", "Vitamins", "Fat Burner",
    "Mass Gainer", "Amino Acids", "Other",
)

ORDER_PAYMENT_METHODS = ("Cash", "Card", "UPI", "Online")
ORDER_COMPLETED = "Completed"


class InsufficientStockError(ConflictError):
    """Order quantity exceeds available stock and overselling is disabled."""

    def __init__(self, supplement: Supplement, requested: int):
        super().__init__(
            f"Insufficient stock for {supplement.name}: requested {requested}, available {supplement.stock}"
        )
        self.supplement_id = supplement.id
        self.requested = requested
        self.available = supplement.stock


def apply_supplement_patch(s: Supplement, patch: dict) -> None:
    for k, v in patch.items():
        if k not in SUPPLEMENT_MUTABLE_FIELDS:
            continue
        setattr(s, k, v)


def _check_category(patch: dict) -> None:
    category = patch.get("category")
    if category is not None and category not in SUPPLEMENT_CATEGORIES:
        raise ValidationError(f"category must be one of: {', '.join(SUPPLEMENT_CATEGORIES)}")


def add_supplement(patch: dict) -> Supplement:
    _check_category(patch)
    s = Supplement()
    apply_supplement_patch(s, patch)
    if s.stock is None:
        s.stock = 0
    if s.price_cents is None:
        s.price_cents = 0
    db.session.add(s)
    db.session.commit()
    return s


def get_supplement(supplement_id: int) -> Supplement | None:
    return db.session.get(Supplement, supplement_id)


def list_supplements(category: str | None = None) -> list[Supplement]:
    q = db.session.query(Supplement)
    if category:
        q = q.filter(Supplement.category == category)
    return q.order_by(Supplement.created_at.desc(), Supplement.id.desc()).all()


def low_stock_supplements(threshold: int | None = None) -> list[Supplement]:
    """Supplements at or below the threshold, emptiest first."""
    if threshold is None:
        threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 5)
    return (
        db.session.query(Supplement)
        .filter(Supplement.stock <= threshold)
        .order_by(Supplement.stock.asc(), Supplement.name.asc())
        .all()
    )


def update_supplement(supplement_id: int, patch: dict) -> Supplement | None:
    s = get_supplement(supplement_id)
    if not s:
        return None
    _check_category(patch)
    apply_supplement_patch(s, patch)
    s.updated_at = utcnow()
    db.session.commit()
    return s


def delete_supplement(supplement_id: int) -> bool:
    s = get_supplement(supplement_id)
    if not s:
        return False
    db.session.delete(s)
    db.session.commit()
    return True


def _normalize_items(items) -> list[tuple[int, int]]:
    """Validate order items and merge repeated supplements into one line each."""
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    merged: dict[int, int] = {}
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{idx}] must be an object")
        supplement_id = item.get("supplement_id")
        quantity = item.get("quantity")
        if isinstance(supplement_id, bool) or not isinstance(supplement_id, int):
            raise ValidationError(f"items[{idx}].supplement_id must be an integer")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(f"items[{idx}].quantity must be a positive integer")
        merged[supplement_id] = merged.get(supplement_id, 0) + quantity
    return list(merged.items())


def create_order(
    *,
    member_id: int,
    items: list[dict],
    payment_method: str = "Cash",
    order_date=None,
) -> SupplementOrder:
    """
    Sell supplements to a member.

    Unit price and name are copied from each supplement at order time.

    Raises:
        ValidationError: malformed items or payment method
        NotFoundError: unknown member or supplement
        InsufficientStockError: a line exceeds stock and overselling is off
    """
    lines_in = _normalize_items(items)

    method = (payment_method or "Cash").strip()
    if method not in ORDER_PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(ORDER_PAYMENT_METHODS)}")

    try:
        placed_on = parse_iso_date(order_date) if order_date is not None else None
    except ValueError:
        raise ValidationError("order_date must be a date (YYYY-MM-DD)")
    placed_on = placed_on or _today()

    allow_oversell = bool(current_app.config.get("ALLOW_STOCK_OVERSELL", False))

    def _op() -> SupplementOrder:
        member = db.session.get(Member, member_id)
        if not member:
            raise NotFoundError("Member not found")

        order = SupplementOrder(
            member_id=member.id,
            member_name=member.full_name,
            status=ORDER_COMPLETED,
            order_date=placed_on,
            payment_method=method,
            total_amount_cents=0,
        )

        total = 0
        for supplement_id, quantity in lines_in:
            supplement = lock_for_update(
                db.session.query(Supplement).filter_by(id=supplement_id)
            ).first()
            if not supplement:
                raise NotFoundError(f"Supplement {supplement_id} not found")

            if quantity > supplement.stock and not allow_oversell:
                raise InsufficientStockError(supplement, quantity)

            supplement.stock = max(0, supplement.stock - quantity)
            supplement.updated_at = utcnow()

            line = SupplementOrderLine(
                supplement_id=supplement.id,
                supplement_name=supplement.name,
                quantity=quantity,
                unit_price_cents=supplement.price_cents,
            )
            order.lines.append(line)
            total += line.line_total_cents

        order.total_amount_cents = total
        db.session.add(order)
        db.session.flush()
        return order

    return run_in_transaction(_op)


def get_order(order_id: int) -> SupplementOrder | None:
    return db.session.get(SupplementOrder, order_id)


def list_orders(member_id: int | None = None) -> list[SupplementOrder]:
    q = db.session.query(SupplementOrder)
    if member_id is not None:
        q = q.filter(SupplementOrder.member_id == member_id)
    return q.order_by(SupplementOrder.created_at.desc(), SupplementOrder.id.desc()).all()


def completed_order_revenue_cents(start: date, end: date) -> int:
    """Sum of completed orders placed in [start, end]."""
    total = db.session.query(
        db.func.coalesce(db.func.sum(SupplementOrder.total_amount_cents), 0)
    ).filter(
        SupplementOrder.status == ORDER_COMPLETED,
        SupplementOrder.order_date >= start,
        SupplementOrder.order_date <= end,
    ).scalar()
    return int(total or 0)
