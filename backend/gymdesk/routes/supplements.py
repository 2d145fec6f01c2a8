# Overview: Flask API routes for supplements and orders; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..models import Supplement
from ..services import member_service, supplement_service
from ..services.account_service import ROLE_ADMIN, ROLE_MEMBER, ROLE_USER
from ..services.supplement_service import InsufficientStockError
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_supplement,
    validate_payload,
)


SUPPLEMENT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "brand", "category", "description", "price_cents", "stock",
        "image_url", "barcode", "expiry_date",
    },
    required_on_create={"name", "brand", "category", "price_cents"},
)

supplements_bp = Blueprint("supplements", __name__, url_prefix="/api/supplements")


@supplements_bp.get("")
@require_auth
def list_supplements_route():
    rows = supplement_service.list_supplements(category=request.args.get("category"))
    return jsonify({"items": [s.to_dict() for s in rows], "count": len(rows)}), 200


@supplements_bp.get("/low-stock")
@require_auth
@require_role(ROLE_USER)
def low_stock_route():
    threshold = request.args.get("threshold", type=int)
    rows = supplement_service.low_stock_supplements(threshold)
    return jsonify({"items": [s.to_dict() for s in rows], "count": len(rows)}), 200


@supplements_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_supplement_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplement, payload=payload, policy=SUPPLEMENT_POLICY, partial=False)
        enforce_rules_supplement(patch)
        s = supplement_service.add_supplement(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create supplement")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"supplement": s.to_dict()}), 201


@supplements_bp.get("/<int:supplement_id>")
@require_auth
def get_supplement_route(supplement_id: int):
    s = supplement_service.get_supplement(supplement_id)
    if not s:
        return jsonify({"error": "Supplement not found"}), 404
    return jsonify({"supplement": s.to_dict()}), 200


@supplements_bp.put("/<int:supplement_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_supplement_route(supplement_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplement, payload=payload, policy=SUPPLEMENT_POLICY, partial=True)
        enforce_rules_supplement(patch)
        s = supplement_service.update_supplement(supplement_id, patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update supplement")
        return jsonify({"error": "Internal server error"}), 500
    if not s:
        return jsonify({"error": "Supplement not found"}), 404
    return jsonify({"supplement": s.to_dict()}), 200


@supplements_bp.delete("/<int:supplement_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_supplement_route(supplement_id: int):
    if not supplement_service.delete_supplement(supplement_id):
        return jsonify({"error": "Supplement not found"}), 404
    return jsonify({"ok": True}), 200


@supplements_bp.get("/orders")
@require_auth
@require_role(ROLE_MEMBER)
def list_orders_route():
    """Admins see every order (optionally by member_id); members see their own."""
    if g.session_context.role == ROLE_ADMIN:
        member_id = request.args.get("member_id", type=int)
    else:
        own = member_service.find_member_for_account(g.current_account)
        if not own:
            return jsonify({"items": [], "count": 0}), 200
        member_id = own.id
    orders = supplement_service.list_orders(member_id=member_id)
    return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)}), 200


@supplements_bp.post("/orders")
@require_auth
@require_role(ROLE_ADMIN)
def create_order_route():
    """
    Request body:
    {
        "member_id": 1,
        "items": [{"supplement_id": 3, "quantity": 2}],
        "payment_method": "Cash",
        "order_date": "2026-10-19"        // optional, defaults to today
    }
    """
    data = request.get_json(silent=True) or {}
    member_id = data.get("member_id")
    if isinstance(member_id, bool) or not isinstance(member_id, int):
        return jsonify({"error": "member_id must be an integer"}), 400

    try:
        order = supplement_service.create_order(
            member_id=member_id,
            items=data.get("items"),
            payment_method=data.get("payment_method") or "Cash",
            order_date=data.get("order_date"),
        )
        return jsonify({"order": order.to_dict()}), 201
    except InsufficientStockError as e:
        return jsonify({
            "error": str(e),
            "supplement_id": e.supplement_id,
            "requested": e.requested,
            "available": e.available,
        }), 409
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create supplement order")
        return jsonify({"error": "Internal server error"}), 500


@supplements_bp.get("/orders/<int:order_id>")
@require_auth
@require_role(ROLE_MEMBER)
def get_order_route(order_id: int):
    order = supplement_service.get_order(order_id)
    if not order:
        return jsonify({"error": "Order not found"}), 404
    if g.session_context.role != ROLE_ADMIN:
        own = member_service.find_member_for_account(g.current_account)
        if own is None or own.id != order.member_id:
            return jsonify({"error": "Permission denied"}), 403
    return jsonify({"order": order.to_dict()}), 200
