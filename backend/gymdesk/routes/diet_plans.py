# Overview: Flask API routes for diet plans; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..models import DietPlan
from ..services import diet_service, member_service
from ..services.account_service import ROLE_ADMIN, ROLE_MEMBER
from ..services.diet_service import DietPlanError
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_diet_plan,
    validate_payload,
)


DIET_PLAN_POLICY = ModelValidationPolicy(
    writable_fields={
        "plan_name", "goal", "daily_calories", "protein_grams", "carbs_grams", "fats_grams",
        "breakfast", "lunch", "dinner", "snacks", "notes", "start_date", "end_date", "status",
    },
    required_on_create={"plan_name", "goal"},
)

diet_plans_bp = Blueprint("diet_plans", __name__, url_prefix="/api/diet-plans")


def _split_payload(payload: dict) -> dict:
    """Pull nested meals out so column validation sees flat fields."""
    payload = dict(payload)
    meals = payload.pop("meals", None)
    if meals is not None and not isinstance(meals, dict):
        raise ValidationError("meals must be an object")
    if meals:
        for key in ("breakfast", "lunch", "dinner", "snacks"):
            if key in meals and key not in payload:
                payload[key] = meals[key]
    payload.pop("member_id", None)
    return payload


def _can_view_member_plans(member_id: int) -> bool:
    if g.session_context.role == ROLE_ADMIN:
        return True
    own = member_service.find_member_for_account(g.current_account)
    return own is not None and own.id == member_id


@diet_plans_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_diet_plans_route():
    member_id = request.args.get("member_id", type=int)
    plans = diet_service.list_diet_plans(member_id=member_id)
    return jsonify({"items": [p.to_dict() for p in plans], "count": len(plans)}), 200


@diet_plans_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_diet_plan_route():
    payload = request.get_json(silent=True) or {}
    member_id = payload.get("member_id")
    if isinstance(member_id, bool) or not isinstance(member_id, int):
        return jsonify({"error": "member_id must be an integer"}), 400

    try:
        flat = _split_payload(payload)
        patch = validate_payload(model=DietPlan, payload=flat, policy=DIET_PLAN_POLICY, partial=False)
        enforce_rules_diet_plan(patch)
        plan = diet_service.create_diet_plan(member_id, patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create diet plan")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"diet_plan": plan.to_dict()}), 201


@diet_plans_bp.get("/<int:plan_id>")
@require_auth
@require_role(ROLE_MEMBER)
def get_diet_plan_route(plan_id: int):
    plan = diet_service.get_diet_plan(plan_id)
    if not plan:
        return jsonify({"error": "Diet plan not found"}), 404
    if not _can_view_member_plans(plan.member_id):
        return jsonify({"error": "Permission denied"}), 403
    return jsonify({"diet_plan": plan.to_dict()}), 200


@diet_plans_bp.put("/<int:plan_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_diet_plan_route(plan_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        flat = _split_payload(payload)
        patch = validate_payload(model=DietPlan, payload=flat, policy=DIET_PLAN_POLICY, partial=True)
        enforce_rules_diet_plan(patch)
        plan = diet_service.update_diet_plan(plan_id, patch)
    except (ValidationError, DietPlanError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update diet plan")
        return jsonify({"error": "Internal server error"}), 500
    if not plan:
        return jsonify({"error": "Diet plan not found"}), 404
    return jsonify({"diet_plan": plan.to_dict()}), 200


@diet_plans_bp.delete("/<int:plan_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_diet_plan_route(plan_id: int):
    if not diet_service.delete_diet_plan(plan_id):
        return jsonify({"error": "Diet plan not found"}), 404
    return jsonify({"ok": True}), 200


@diet_plans_bp.get("/member/<int:member_id>/active")
@require_auth
@require_role(ROLE_MEMBER)
def active_plan_route(member_id: int):
    if not _can_view_member_plans(member_id):
        return jsonify({"error": "Permission denied"}), 403
    plan = diet_service.get_active_diet_plan(member_id)
    return jsonify({"diet_plan": plan.to_dict() if plan else None}), 200
