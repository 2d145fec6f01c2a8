from __future__ import annotations

from ..extensions import db
from ..models import DietPlan, Member
from ..validation import NotFoundError, ValidationError
from gymdesk.time_utils import today as _today, utcnow


DIET_GOALS = ("Weight Loss", "Muscle Gain", "Maintenance", "Cutting", "Bulking")

PLAN_ACTIVE = "Active"
PLAN_COMPLETED = "Completed"
PLAN_INACTIVE = "Inactive"
PLAN_STATUSES = (PLAN_ACTIVE, PLAN_COMPLETED, PLAN_INACTIVE)

DIET_PLAN_MUTABLE_FIELDS = {
    "plan_name", "goal", "daily_calories", "protein_grams", "carbs_grams", "fats_grams",
    "breakfast", "lunch", "dinner", "snacks", "notes", "start_date", "end_date", "status",
}


class DietPlanError(Exception):
    """Raised for diet plan operation errors."""
    pass


def _flatten_meals(patch: dict) -> dict:
    # Clients may send meals nested the way to_dict() returns them
    meals = patch.pop("meals", None)
    if isinstance(meals, dict):
        for key in ("breakfast", "lunch", "dinner", "snacks"):
            if key in meals and key not in patch:
                patch[key] = meals[key]
    return patch


def _check(patch: dict) -> None:
    goal = patch.get("goal")
    if goal is not None and goal not in DIET_GOALS:
        raise ValidationError(f"goal must be one of: {', '.join(DIET_GOALS)}")
    status = patch.get("status")
    if status is not None and status not in PLAN_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(PLAN_STATUSES)}")


def apply_diet_plan_patch(plan: DietPlan, patch: dict) -> None:
    for k, v in patch.items():
        if k in DIET_PLAN_MUTABLE_FIELDS:
            setattr(plan, k, v)


def create_diet_plan(member_id: int, patch: dict) -> DietPlan:
    """New plans start Active; start_date defaults to today."""
    member = db.session.get(Member, member_id)
    if not member:
        raise NotFoundError("Member not found")

    patch = _flatten_meals(dict(patch))
    _check(patch)
    if not (patch.get("plan_name") or "").strip():
        raise ValidationError("plan_name is required")
    if not patch.get("goal"):
        raise ValidationError("goal is required")

    plan = DietPlan(member_id=member.id, member_name=member.full_name)
    apply_diet_plan_patch(plan, patch)
    plan.status = PLAN_ACTIVE
    if plan.start_date is None:
        plan.start_date = _today()
    for key in ("daily_calories", "protein_grams", "carbs_grams", "fats_grams"):
        if getattr(plan, key) is None:
            setattr(plan, key, 0)

    if plan.end_date and plan.end_date < plan.start_date:
        raise ValidationError("end_date must not be before start_date")

    db.session.add(plan)
    db.session.commit()
    return plan


def get_diet_plan(plan_id: int) -> DietPlan | None:
    return db.session.get(DietPlan, plan_id)


def list_diet_plans(member_id: int | None = None) -> list[DietPlan]:
    q = db.session.query(DietPlan)
    if member_id is not None:
        q = q.filter(DietPlan.member_id == member_id)
    return q.order_by(DietPlan.created_at.desc(), DietPlan.id.desc()).all()


def get_active_diet_plan(member_id: int) -> DietPlan | None:
    """Most recently created Active plan for the member."""
    return (
        db.session.query(DietPlan)
        .filter(DietPlan.member_id == member_id, DietPlan.status == PLAN_ACTIVE)
        .order_by(DietPlan.created_at.desc(), DietPlan.id.desc())
        .first()
    )


def update_diet_plan(plan_id: int, patch: dict) -> DietPlan | None:
    plan = get_diet_plan(plan_id)
    if not plan:
        return None

    patch = _flatten_meals(dict(patch))
    _check(patch)
    if plan.status == PLAN_COMPLETED and "status" not in patch:
        raise DietPlanError("Completed plans are read-only; set status to reopen")
    apply_diet_plan_patch(plan, patch)
    if plan.end_date and plan.start_date and plan.end_date < plan.start_date:
        db.session.rollback()
        raise ValidationError("end_date must not be before start_date")

    plan.updated_at = utcnow()
    db.session.commit()
    return plan


def delete_diet_plan(plan_id: int) -> bool:
    plan = get_diet_plan(plan_id)
    if not plan:
        return False
    db.session.delete(plan)
    db.session.commit()
    return True
