# Overview: Flask API routes for billing operations; parses input and returns JSON responses.

# backend/gymdesk/routes/bills.py
"""
Billing routes.

Amounts are integers in minor units (paise). Every create/pay/delete adjusts
the member's dues in the same transaction (see billing_service).
"""

from flask import Blueprint, request, jsonify, current_app, g, Response

from ..decorators import require_auth, require_role
from ..services import billing_service, export_service, member_service
from ..services.account_service import ROLE_ADMIN, ROLE_MEMBER
from ..services.billing_service import BillingError
from ..validation import NotFoundError, ValidationError, require_fields


bills_bp = Blueprint("bills", __name__, url_prefix="/api/bills")


@bills_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_bills_route():
    """
    Query params:
    - member_id: int (optional)
    - status: Pending | Paid | Overdue (optional)
    """
    member_id = request.args.get("member_id", type=int)
    status = request.args.get("status")
    try:
        bills = billing_service.list_bills(member_id=member_id, status=status)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({
        "items": [b.to_dict() for b in bills],
        "count": len(bills),
        "summary": billing_service.bill_summary(bills),
    }), 200


@bills_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_bill_route():
    """
    Request body:
    {
        "member_id": 1,
        "amount_cents": 50000,
        "description": "Monthly fee",
        "due_date": "2026-11-01"
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        require_fields(data, "member_id", "amount_cents", "description", "due_date")
        member_id = data["member_id"]
        if isinstance(member_id, bool) or not isinstance(member_id, int):
            raise ValidationError("member_id must be an integer")

        bill = billing_service.create_bill(
            member_id=member_id,
            amount_cents=data["amount_cents"],
            description=data["description"],
            due_date=data["due_date"],
            bill_number=data.get("bill_number"),
        )
        return jsonify({"bill": bill.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except BillingError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to create bill")
        return jsonify({"error": "Internal server error"}), 500


@bills_bp.get("/<int:bill_id>")
@require_auth
@require_role(ROLE_ADMIN)
def get_bill_route(bill_id: int):
    bill = billing_service.get_bill(bill_id)
    if not bill:
        return jsonify({"error": "Bill not found"}), 404
    return jsonify({"bill": bill.to_dict()}), 200


@bills_bp.post("/<int:bill_id>/pay")
@require_auth
@require_role(ROLE_ADMIN)
def pay_bill_route(bill_id: int):
    """Paying an already-paid bill returns it unchanged."""
    data = request.get_json(silent=True) or {}
    try:
        bill = billing_service.mark_bill_as_paid(
            bill_id,
            payment_method=data.get("payment_method") or billing_service.DEFAULT_PAYMENT_METHOD,
        )
        return jsonify({"bill": bill.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to mark bill as paid")
        return jsonify({"error": "Internal server error"}), 500


@bills_bp.delete("/<int:bill_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_bill_route(bill_id: int):
    try:
        deleted = billing_service.delete_bill(bill_id)
    except Exception:
        current_app.logger.exception("Failed to delete bill")
        return jsonify({"error": "Internal server error"}), 500

    if not deleted:
        return jsonify({"error": "Bill not found"}), 404
    return jsonify({"ok": True}), 200


@bills_bp.get("/<int:bill_id>/receipt")
@require_auth
@require_role(ROLE_MEMBER)
def receipt_route(bill_id: int):
    """Printable HTML receipt. Members may only fetch receipts for their own bills."""
    bill = billing_service.get_bill(bill_id)
    if not bill:
        return jsonify({"error": "Bill not found"}), 404

    if g.session_context.role != ROLE_ADMIN:
        own = member_service.find_member_for_account(g.current_account)
        if own is None or own.id != bill.member_id:
            return jsonify({"error": "Permission denied"}), 403

    html = export_service.render_receipt(bill)
    return Response(html, mimetype="text/html")
