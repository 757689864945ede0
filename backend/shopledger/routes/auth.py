# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

Login exchanges email + password for a bearer token. The token only
identifies the caller's profile; what the caller may do is decided per
request by the access policy matrix.
"""

from flask import Blueprint, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..decorators import json_body, require_auth
from ..values import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate a profile and create a session token.

    Request body: {"email": "...", "password": "..."}
    """
    data = json_body()
    email = data.get("email")
    password = data.get("password")

    if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
        return jsonify({"error": "email and password required"}), 400

    profile = auth_service.authenticate(email, password)
    if not profile:
        permission_service.log_security_event(
            event_type="LOGIN_FAILED",
            reason=f"Invalid credentials for {str(email).strip().lower()}",
        )
        current_app.logger.info("Failed login for %s", email)
        return jsonify({"error": "Invalid credentials"}), 401

    session, token = session_service.create_session(profile.id)
    return jsonify({
        "token": token,
        "expires_at": to_utc_z(session.expires_at),
        "profile": profile.to_dict(),
    })


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.session_token)
    return jsonify({"message": "Logged out"})


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"profile": g.current_profile.to_dict()})
