# Overview: Flask API routes for account administration; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_role
from ..services import account_service
from ..services.account_service import ROLE_ADMIN, DuplicateEmailError, PasswordValidationError
from ..validation import NotFoundError, ValidationError


accounts_bp = Blueprint("accounts", __name__, url_prefix="/api/accounts")


@accounts_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_accounts_route():
    role = request.args.get("role")
    try:
        accounts = account_service.list_accounts(role=role)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": [a.to_dict() for a in accounts], "count": len(accounts)}), 200


@accounts_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_account_route():
    data = request.get_json(silent=True) or {}
    try:
        account = account_service.create_account(
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            email=data.get("email"),
            role=data.get("role"),
            password=data.get("password"),
        )
        return jsonify({"account": account.to_dict()}), 201
    except DuplicateEmailError as e:
        return jsonify({"error": str(e)}), 409
    except (PasswordValidationError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create account")
        return jsonify({"error": "Internal server error"}), 500


@accounts_bp.get("/<int:account_id>")
@require_auth
@require_role(ROLE_ADMIN)
def get_account_route(account_id: int):
    account = account_service.get_account(account_id)
    if not account:
        return jsonify({"error": "Account not found"}), 404
    return jsonify({"account": account.to_dict()}), 200


@accounts_bp.put("/<int:account_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_account_route(account_id: int):
    data = request.get_json(silent=True) or {}
    allowed = {"first_name", "last_name", "email", "role", "password"}
    unknown = sorted(set(data) - allowed)
    if unknown:
        return jsonify({"error": f"Field not allowed: {unknown[0]}"}), 400

    try:
        account = account_service.update_account(account_id, data)
        return jsonify({"account": account.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DuplicateEmailError as e:
        return jsonify({"error": str(e)}), 409
    except (PasswordValidationError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update account")
        return jsonify({"error": "Internal server error"}), 500
