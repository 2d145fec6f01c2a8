# Overview: Service-layer operations for fee packages; encapsulates business logic and database work.

"""
Fee Package Assigner

Assigning a package writes the package row and overwrites exactly four
member fields (membership_type, start_date, end_date, status) in one
transaction. The most recent assignment wins; earlier packages stay as
history rows with their own status.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from ..extensions import db
from ..models import FeePackage, Member
from ..validation import NotFoundError, ValidationError, enforce_amount_cents
from .concurrency import lock_for_update, run_in_transaction
from .status_service import (
    PACKAGE_ACTIVE,
    PACKAGE_CANCELLED,
    PACKAGE_EXPIRED,
    calculate_end_date,
    calculate_status,
    package_status,
)
from gymdesk.time_utils import parse_iso_date, utcnow


class PackageError(Exception):
    """Raised for fee package operation errors."""
    pass


@dataclass(frozen=True)
class PackageConfig:
    package_type: str
    name: str
    duration: int  # months
    default_amount_cents: int

    def to_dict(self) -> dict:
        return {
            "package_type": self.package_type,
            "name": self.name,
            "duration": self.duration,
            "default_amount_cents": self.default_amount_cents,
        }


PACKAGE_CONFIGS: dict[str, PackageConfig] = {
    "basic": PackageConfig("basic", "Basic (Monthly)", 1, 100_000),
    "premium": PackageConfig("premium", "Premium (3 Months)", 3, 270_000),
    "gold": PackageConfig("gold", "Gold (6 Months)", 6, 500_000),
    "platinum": PackageConfig("platinum", "Platinum (Yearly)", 12, 900_000),
}


def get_package_config(package_type: str) -> PackageConfig:
    config = PACKAGE_CONFIGS.get((package_type or "").strip().lower())
    if config is None:
        raise PackageError(
            f"Unknown package type '{package_type}'. Expected one of: {', '.join(PACKAGE_CONFIGS)}"
        )
    return config


def _parse_start(value) -> date:
    try:
        start = parse_iso_date(value)
    except ValueError:
        raise ValidationError("start_date must be a date (YYYY-MM-DD)")
    if start is None:
        raise ValidationError("start_date is required")
    return start


def _apply_window_to_member(member: Member, *, membership_type: str | None, start_date: date, end_date: date, today: date | None) -> None:
    if membership_type:
        member.membership_type = membership_type
    member.start_date = start_date
    member.end_date = end_date
    member.status = calculate_status(end_date, today)
    member.updated_at = utcnow()


def assign_package(
    *,
    member_id: int,
    package_type: str,
    start_date,
    amount_cents: int | None = None,
    today: date | None = None,
) -> FeePackage:
    """
    Assign a package to a member.

    amount_cents defaults to the package's configured price.

    Raises:
        PackageError: unknown package type
        NotFoundError: member does not exist
    """
    config = get_package_config(package_type)
    start = _parse_start(start_date)
    amount = config.default_amount_cents if amount_cents is None else amount_cents
    enforce_amount_cents("amount_cents", amount, allow_zero=True)

    end = calculate_end_date(start, config.duration)

    def _op() -> FeePackage:
        member = lock_for_update(db.session.query(Member).filter_by(id=member_id)).first()
        if not member:
            raise NotFoundError("Member not found")

        pkg = FeePackage(
            member_id=member.id,
            member_name=member.full_name,
            package_type=config.package_type,
            package_name=config.name,
            amount_cents=amount,
            duration=config.duration,
            start_date=start,
            end_date=end,
            status=package_status(end, today),
        )
        db.session.add(pkg)
        _apply_window_to_member(
            member,
            membership_type=config.package_type,
            start_date=start,
            end_date=end,
            today=today,
        )
        db.session.flush()
        return pkg

    return run_in_transaction(_op)


def get_package(package_id: int) -> FeePackage | None:
    return db.session.get(FeePackage, package_id)


def list_packages(member_id: int | None = None, status: str | None = None) -> list[FeePackage]:
    q = db.session.query(FeePackage)
    if member_id is not None:
        q = q.filter(FeePackage.member_id == member_id)
    if status:
        q = q.filter(FeePackage.status == status)
    return q.order_by(FeePackage.created_at.desc(), FeePackage.id.desc()).all()


def update_package(package_id: int, patch: dict, *, today: date | None = None) -> FeePackage:
    """
    Update a package; start_date/duration changes recompute end_date and status.

    When the recomputed package is Active, its window is re-applied to the member.
    Cancelled packages cannot be edited.
    """
    def _op() -> FeePackage:
        pkg = lock_for_update(db.session.query(FeePackage).filter_by(id=package_id)).first()
        if not pkg:
            raise NotFoundError("Fee package not found")
        if pkg.status == PACKAGE_CANCELLED:
            raise PackageError("Cancelled packages cannot be edited")

        if "package_type" in patch and patch["package_type"] is not None:
            config = get_package_config(patch["package_type"])
            pkg.package_type = config.package_type
            pkg.package_name = config.name
            if "duration" not in patch:
                pkg.duration = config.duration

        if "amount_cents" in patch and patch["amount_cents"] is not None:
            pkg.amount_cents = enforce_amount_cents("amount_cents", patch["amount_cents"], allow_zero=True)

        window_changed = False
        if patch.get("start_date") is not None:
            pkg.start_date = _parse_start(patch["start_date"])
            window_changed = True
        if patch.get("duration") is not None:
            duration = patch["duration"]
            if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
                raise ValidationError("duration must be a positive whole number of months")
            pkg.duration = duration
            window_changed = True
        if "package_type" in patch:
            window_changed = True

        if window_changed:
            pkg.end_date = calculate_end_date(pkg.start_date, pkg.duration)
            pkg.status = package_status(pkg.end_date, today)

        pkg.updated_at = utcnow()

        if window_changed and pkg.status == PACKAGE_ACTIVE:
            member = lock_for_update(db.session.query(Member).filter_by(id=pkg.member_id)).first()
            if member:
                _apply_window_to_member(
                    member,
                    membership_type=pkg.package_type,
                    start_date=pkg.start_date,
                    end_date=pkg.end_date,
                    today=today,
                )
        return pkg

    return run_in_transaction(_op)


def cancel_package(package_id: int) -> FeePackage:
    """Mark a package Cancelled. The member's window is left as is."""
    def _op() -> FeePackage:
        pkg = db.session.get(FeePackage, package_id)
        if not pkg:
            raise NotFoundError("Fee package not found")
        pkg.status = PACKAGE_CANCELLED
        pkg.updated_at = utcnow()
        return pkg

    return run_in_transaction(_op)


def delete_package(package_id: int) -> bool:
    pkg = get_package(package_id)
    if not pkg:
        return False
    db.session.delete(pkg)
    db.session.commit()
    return True


def expire_packages(today: date | None = None) -> int:
    """Active packages whose end date has passed become Expired; returns count."""
    def _op() -> int:
        rows = db.session.query(FeePackage).filter(FeePackage.status == PACKAGE_ACTIVE).all()
        changed = 0
        for pkg in rows:
            if package_status(pkg.end_date, today) == PACKAGE_EXPIRED:
                pkg.status = PACKAGE_EXPIRED
                pkg.updated_at = utcnow()
                changed += 1
        return changed

    return run_in_transaction(_op)
