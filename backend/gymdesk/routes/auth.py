# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/gymdesk/routes/auth.py
"""
Authentication API routes

- Login checks the password with bcrypt and the role picked on the login form
- Sessions are bearer tokens; only their SHA-256 is stored
- Signup does not create an account, it files a registration request for an
  admin to approve
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import account_service
from ..services import registration_service
from ..services import session_service
from ..services.account_service import DuplicateEmailError, PasswordValidationError, RoleMismatchError
from ..validation import ValidationError
from ..decorators import bearer_token, require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create a session token.

    Request body: {"email", "password", "role"}; role is optional but, when
    given, must match the account's role.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")
        role = data.get("role")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        try:
            account = account_service.authenticate(email, password, role=role)
        except RoleMismatchError as e:
            return jsonify({
                "error": str(e),
                "expected_role": e.expected_role,
            }), 403
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400

        if not account:
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            account_pk=account.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "account": account.to_session_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login account")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke the bearer token sent in the Authorization header."""
    try:
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required"}), 401

        revoked = session_service.revoke_session(token, reason="User logout")
        if not revoked:
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout account")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({
        "account": g.session_context.to_dict(),
        "session": g.session_context.session.to_dict(),
    }), 200


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    data = request.get_json(silent=True) or {}
    current_password = data.get("current_password")
    new_password = data.get("new_password")
    if not all([current_password, new_password]):
        return jsonify({"error": "current_password and new_password required"}), 400

    try:
        account_service.change_password(g.current_account.id, current_password, new_password)
        session_service.revoke_all_account_sessions(g.current_account.id, reason="Password changed")
        return jsonify({"message": "Password changed; please log in again"}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to change password")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/signup")
def signup_route():
    """
    Public signup. Files a registration request; an admin approves it before
    the applicant can log in.
    """
    data = request.get_json(silent=True) or {}
    try:
        req = registration_service.submit_request(
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role") or "member",
            phone=data.get("phone"),
        )
        return jsonify({
            "request": req.to_dict(),
            "message": "Registration submitted for approval",
        }), 201
    except DuplicateEmailError as e:
        return jsonify({"error": str(e)}), 409
    except (PasswordValidationError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to submit registration")
        return jsonify({"error": "Internal server error"}), 500
