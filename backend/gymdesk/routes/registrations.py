# Overview: Flask API routes for reviewing registration requests.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_role
from ..services import registration_service
from ..services.account_service import ROLE_ADMIN, DuplicateEmailError
from ..services.registration_service import RegistrationError
from ..validation import NotFoundError, ValidationError


registrations_bp = Blueprint("registrations", __name__, url_prefix="/api/registrations")


@registrations_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_requests_route():
    try:
        rows = registration_service.list_requests(status=request.args.get("status"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": [r.to_dict() for r in rows], "count": len(rows)}), 200


@registrations_bp.post("/<int:request_id>/approve")
@require_auth
@require_role(ROLE_ADMIN)
def approve_route(request_id: int):
    try:
        req = registration_service.approve_request(request_id)
        return jsonify({"request": req.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except RegistrationError as e:
        return jsonify({"error": str(e)}), 400
    except DuplicateEmailError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to approve registration request")
        return jsonify({"error": "Internal server error"}), 500


@registrations_bp.post("/<int:request_id>/reject")
@require_auth
@require_role(ROLE_ADMIN)
def reject_route(request_id: int):
    data = request.get_json(silent=True) or {}
    try:
        req = registration_service.reject_request(request_id, data.get("reason"))
        return jsonify({"request": req.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except RegistrationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to reject registration request")
        return jsonify({"error": "Internal server error"}), 500
