# Overview: Flask API routes for report exports.

# backend/gymdesk/routes/reports.py
"""
Report export.

GET /api/reports/<report_type>?format=csv|json

Report types: members, bills, packages, orders.
Optional filters: status, member_id, search (members only).
"""

from flask import Blueprint, request, jsonify, current_app, Response

from ..decorators import require_auth, require_role
from ..services import export_service
from ..services.account_service import ROLE_ADMIN
from ..validation import ValidationError
from gymdesk.time_utils import today


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/<report_type>")
@require_auth
@require_role(ROLE_ADMIN)
def export_report_route(report_type: str):
    fmt = request.args.get("format", "csv")
    filters = {
        "status": request.args.get("status"),
        "member_id": request.args.get("member_id", type=int),
        "search": request.args.get("search"),
    }

    try:
        body, mimetype = export_service.export_report(report_type, fmt, filters)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to export report")
        return jsonify({"error": "Internal server error"}), 500

    extension = "csv" if mimetype == "text/csv" else "json"
    filename = f"{report_type}_report_{today():%Y%m%d}.{extension}"
    return Response(
        body,
        mimetype=mimetype,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
