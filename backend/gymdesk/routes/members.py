# Overview: Flask API routes for members operations; parses input and returns JSON responses.

# backend/gymdesk/routes/members.py
"""
Member registry routes.

- Admin: full CRUD, photo upload
- User (front desk): search, view, check-in
- Member: view their own profile only
"""

from flask import Blueprint, request, jsonify, current_app, g, send_file

from ..decorators import require_auth, require_role
from ..models import Member
from ..services import member_service, storage_service
from ..services.account_service import ROLE_ADMIN, ROLE_MEMBER, ROLE_USER
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_member,
    validate_payload,
)


MEMBER_POLICY = ModelValidationPolicy(
    writable_fields={
        "account_id", "first_name", "last_name", "email", "phone", "date_of_birth", "gender",
        "address", "city", "state", "zip_code", "membership_type", "start_date", "end_date",
        "emergency_contact_name", "emergency_contact_phone", "medical_conditions", "status",
    },
    required_on_create={"first_name", "last_name"},
)

members_bp = Blueprint("members", __name__, url_prefix="/api/members")


def _can_view(member: Member) -> bool:
    role = g.session_context.role
    if role in (ROLE_ADMIN, ROLE_USER):
        return True
    own = member_service.find_member_for_account(g.current_account)
    return own is not None and own.id == member.id


@members_bp.get("")
@require_auth
@require_role(ROLE_USER)
def list_members_route():
    """
    Query params:
    - status: Active | Inactive | Expired
    - search: matches name, email or phone (case-insensitive)
    """
    try:
        members = member_service.list_members(
            status=request.args.get("status"),
            search=request.args.get("search"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": [m.to_dict() for m in members], "count": len(members)}), 200


@members_bp.get("/search")
@require_auth
@require_role(ROLE_USER)
def search_members_route():
    query = request.args.get("q", "")
    members = member_service.search_members(query)
    return jsonify({"items": [m.to_dict() for m in members], "count": len(members), "query": query}), 200


@members_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_member_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Member, payload=payload, policy=MEMBER_POLICY, partial=False)
        enforce_rules_member(patch)
        member = member_service.add_member(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create member")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"member": member.to_dict()}), 201


@members_bp.get("/<int:member_id>")
@require_auth
def get_member_route(member_id: int):
    member = member_service.get_member(member_id)
    if not member:
        return jsonify({"error": "Member not found"}), 404
    if not _can_view(member):
        return jsonify({"error": "Permission denied"}), 403
    return jsonify({"member": member.to_dict()}), 200


@members_bp.put("/<int:member_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_member_route(member_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Member, payload=payload, policy=MEMBER_POLICY, partial=True)
        enforce_rules_member(patch)
        member = member_service.update_member(member_id, patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update member")
        return jsonify({"error": "Internal server error"}), 500

    if not member:
        return jsonify({"error": "Member not found"}), 404
    return jsonify({"member": member.to_dict()}), 200


@members_bp.delete("/<int:member_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_member_route(member_id: int):
    """Bills, packages and orders that reference the member are kept."""
    if not member_service.delete_member(member_id):
        return jsonify({"error": "Member not found"}), 404
    return jsonify({"ok": True}), 200


@members_bp.post("/<int:member_id>/check-in")
@require_auth
@require_role(ROLE_USER)
def check_in_route(member_id: int):
    try:
        member = member_service.check_in(member_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"member": member.to_dict()}), 200


@members_bp.post("/<int:member_id>/photo")
@require_auth
@require_role(ROLE_ADMIN)
def upload_photo_route(member_id: int):
    """multipart/form-data with a single 'photo' file field."""
    file = request.files.get("photo")
    try:
        member = member_service.attach_photo(member_id, file)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to store member photo")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"member": member.to_dict(), "photo_url": member.photo_url}), 200


@members_bp.get("/photos/<int:member_id>/<path:filename>")
def member_photo_route(member_id: int, filename: str):
    """Serve a stored photo. Photo URLs are embedded in <img> tags, so no token is required."""
    try:
        path = storage_service.resolve_member_photo(member_id, filename)
    except ValidationError:
        return jsonify({"error": "Photo not found"}), 404
    if path is None:
        return jsonify({"error": "Photo not found"}), 404
    return send_file(path)


@members_bp.get("/me")
@require_auth
@require_role(ROLE_MEMBER)
def my_profile_route():
    member = member_service.find_member_for_account(g.current_account)
    if not member:
        return jsonify({"error": "No member profile linked to this account"}), 404
    return jsonify({"member": member.to_dict()}), 200
