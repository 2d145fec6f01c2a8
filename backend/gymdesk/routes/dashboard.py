# Overview: Flask API routes for the role dashboards.

from flask import Blueprint, jsonify, current_app, g

from ..decorators import require_auth, require_role
from ..services import dashboard_service
from ..services.account_service import ROLE_ADMIN, ROLE_MEMBER, ROLE_USER


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/admin")
@require_auth
@require_role(ROLE_ADMIN)
def admin_dashboard_route():
    try:
        return jsonify(dashboard_service.admin_dashboard()), 200
    except Exception:
        current_app.logger.exception("Failed to build admin dashboard")
        return jsonify({"error": "Internal server error"}), 500


@dashboard_bp.get("/member")
@require_auth
@require_role(ROLE_MEMBER)
def member_dashboard_route():
    try:
        return jsonify(dashboard_service.member_dashboard(g.current_account)), 200
    except Exception:
        current_app.logger.exception("Failed to build member dashboard")
        return jsonify({"error": "Internal server error"}), 500


@dashboard_bp.get("/user")
@require_auth
@require_role(ROLE_USER)
def user_dashboard_route():
    return jsonify(dashboard_service.user_dashboard()), 200
