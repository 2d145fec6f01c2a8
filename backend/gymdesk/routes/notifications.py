# Overview: Flask API routes for notifications; parses input and returns JSON responses.

# backend/gymdesk/routes/notifications.py
"""
Notification routes.

Notifications are records only: /send marks one Sent after an operator has
delivered it by other means.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..services import member_service, notification_service
from ..services.account_service import ROLE_ADMIN, ROLE_MEMBER
from ..services.notification_service import NotificationError
from ..validation import NotFoundError, ValidationError


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_notifications_route():
    try:
        rows = notification_service.list_notifications(status=request.args.get("status"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": [n.to_dict() for n in rows], "count": len(rows)}), 200


@notifications_bp.get("/mine")
@require_auth
@require_role(ROLE_MEMBER)
def my_notifications_route():
    member = member_service.find_member_for_account(g.current_account)
    if not member:
        return jsonify({"items": [], "count": 0}), 200
    rows = notification_service.notifications_for_member(member)
    return jsonify({"items": [n.to_dict() for n in rows], "count": len(rows)}), 200


@notifications_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_notification_route():
    data = request.get_json(silent=True) or {}
    try:
        n = notification_service.create_notification(data)
        return jsonify({"notification": n.to_dict()}), 201
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create notification")
        return jsonify({"error": "Internal server error"}), 500


@notifications_bp.get("/<int:notification_id>")
@require_auth
@require_role(ROLE_ADMIN)
def get_notification_route(notification_id: int):
    n = notification_service.get_notification(notification_id)
    if not n:
        return jsonify({"error": "Notification not found"}), 404
    return jsonify({"notification": n.to_dict()}), 200


@notifications_bp.put("/<int:notification_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_notification_route(notification_id: int):
    data = request.get_json(silent=True) or {}
    try:
        n = notification_service.update_notification(notification_id, data)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (ValidationError, NotificationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update notification")
        return jsonify({"error": "Internal server error"}), 500

    if not n:
        return jsonify({"error": "Notification not found"}), 404
    return jsonify({"notification": n.to_dict()}), 200


@notifications_bp.delete("/<int:notification_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_notification_route(notification_id: int):
    if not notification_service.delete_notification(notification_id):
        return jsonify({"error": "Notification not found"}), 404
    return jsonify({"ok": True}), 200


@notifications_bp.post("/<int:notification_id>/send")
@require_auth
@require_role(ROLE_ADMIN)
def mark_sent_route(notification_id: int):
    try:
        n = notification_service.mark_as_sent(notification_id)
    except NotificationError as e:
        return jsonify({"error": str(e)}), 400
    if not n:
        return jsonify({"error": "Notification not found"}), 404
    return jsonify({"notification": n.to_dict()}), 200


@notifications_bp.post("/<int:notification_id>/cancel")
@require_auth
@require_role(ROLE_ADMIN)
def cancel_route(notification_id: int):
    try:
        n = notification_service.cancel_notification(notification_id)
    except NotificationError as e:
        return jsonify({"error": str(e)}), 400
    if not n:
        return jsonify({"error": "Notification not found"}), 404
    return jsonify({"notification": n.to_dict()}), 200


@notifications_bp.get("/<int:notification_id>/targets")
@require_auth
@require_role(ROLE_ADMIN)
def targets_route(notification_id: int):
    """Members the notification's audience currently resolves to."""
    n = notification_service.get_notification(notification_id)
    if not n:
        return jsonify({"error": "Notification not found"}), 404
    members = notification_service.get_target_members(n.target_type, n.member_id)
    return jsonify({
        "target_type": n.target_type,
        "items": [m.to_dict() for m in members],
        "count": len(members),
    }), 200
