# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import PermissionDeniedError
from .services import session_service, permission_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes for this request only:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object

    Returns 401 if:
    - No Authorization header
    - Invalid or expired token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require the admin role. Denials are logged to security_events."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401

        try:
            permission_service.require_admin(
                g.current_user,
                resource=request.path,
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
        except PermissionDeniedError as e:
            return jsonify(e.to_dict()), e.status_code

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """
    Require a capability from the user's effective PermissionSet.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            try:
                permission_service.require_permission(
                    g.current_user,
                    permission_code,
                    resource=request.path,
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                )
            except PermissionDeniedError as e:
                return jsonify(e.to_dict()), e.status_code

            return f(*args, **kwargs)

        return decorated_function
    return decorator
