# Overview: Request and access-policy decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import AuthorizationError, ValidationError
from .services import session_service, permission_service


def _is_authenticated() -> bool:
    return hasattr(g, "current_profile")


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def json_body() -> dict:
    """The request JSON object; empty when there is no body. Arrays and scalars are rejected."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be an object")
    return data


def require_auth(f):
    """
    Require a valid session token.

    Sets g.current_profile to the authenticated Profile.

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - Profile deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        profile = session_service.validate_session(token)
        if profile is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_profile = profile
        g.session_token = token
        return f(*args, **kwargs)

    return decorated_function


def require_table_access(table: str, operation: str):
    """
    Require the caller's role to permit operation on table.

    Services re-check the same matrix; this decorator rejects early so a
    denied request does no work at all.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            try:
                permission_service.require(g.current_profile, table, operation)
            except AuthorizationError as e:
                return jsonify(e.to_dict()), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
