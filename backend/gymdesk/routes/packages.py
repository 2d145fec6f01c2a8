# Overview: Flask API routes for fee packages; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_role
from ..services import package_service
from ..services.account_service import ROLE_ADMIN, ROLE_USER
from ..services.package_service import PACKAGE_CONFIGS, PackageError
from ..validation import NotFoundError, ValidationError, require_fields


packages_bp = Blueprint("packages", __name__, url_prefix="/api/packages")


@packages_bp.get("/configs")
@require_auth
def package_configs_route():
    return jsonify({"items": [c.to_dict() for c in PACKAGE_CONFIGS.values()]}), 200


@packages_bp.get("")
@require_auth
@require_role(ROLE_USER)
def list_packages_route():
    member_id = request.args.get("member_id", type=int)
    status = request.args.get("status")
    packages = package_service.list_packages(member_id=member_id, status=status)
    return jsonify({"items": [p.to_dict() for p in packages], "count": len(packages)}), 200


@packages_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def assign_package_route():
    """
    Assign a package; the member's membership_type, start_date, end_date and
    status are overwritten from the package.

    Request body: {"member_id", "package_type", "start_date", "amount_cents"?}
    """
    data = request.get_json(silent=True) or {}
    try:
        require_fields(data, "member_id", "package_type", "start_date")
        member_id = data["member_id"]
        if isinstance(member_id, bool) or not isinstance(member_id, int):
            raise ValidationError("member_id must be an integer")

        pkg = package_service.assign_package(
            member_id=member_id,
            package_type=data["package_type"],
            start_date=data["start_date"],
            amount_cents=data.get("amount_cents"),
        )
        return jsonify({"package": pkg.to_dict()}), 201
    except (ValidationError, PackageError) as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to assign package")
        return jsonify({"error": "Internal server error"}), 500


@packages_bp.get("/<int:package_id>")
@require_auth
@require_role(ROLE_USER)
def get_package_route(package_id: int):
    pkg = package_service.get_package(package_id)
    if not pkg:
        return jsonify({"error": "Fee package not found"}), 404
    return jsonify({"package": pkg.to_dict()}), 200


@packages_bp.put("/<int:package_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_package_route(package_id: int):
    data = request.get_json(silent=True) or {}
    allowed = {"package_type", "amount_cents", "start_date", "duration"}
    unknown = sorted(set(data) - allowed)
    if unknown:
        return jsonify({"error": f"Field not allowed: {unknown[0]}"}), 400

    try:
        pkg = package_service.update_package(package_id, data)
        return jsonify({"package": pkg.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (ValidationError, PackageError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update package")
        return jsonify({"error": "Internal server error"}), 500


@packages_bp.post("/<int:package_id>/cancel")
@require_auth
@require_role(ROLE_ADMIN)
def cancel_package_route(package_id: int):
    try:
        pkg = package_service.cancel_package(package_id)
        return jsonify({"package": pkg.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to cancel package")
        return jsonify({"error": "Internal server error"}), 500


@packages_bp.delete("/<int:package_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_package_route(package_id: int):
    if not package_service.delete_package(package_id):
        return jsonify({"error": "Fee package not found"}), 404
    return jsonify({"ok": True}), 200
