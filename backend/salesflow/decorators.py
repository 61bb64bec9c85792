# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service
from .services.auth_service import principal_for


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def _bind_context(context) -> None:
    g.current_user = context.user
    g.session_context = context
    g.principal = principal_for(context.user)


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'principal')


def require_auth(f):
    """
    Require authentication and establish the request principal.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.principal: The Principal the portal services act for
    - g.session_context: The full SessionContext object

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
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

        _bind_context(context)
        return f(*args, **kwargs)

    return decorated_function


def optional_auth(f):
    """
    Establish the principal when a valid token is present.

    Never rejects: without a usable token g.principal is None and the route
    runs anonymously.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.principal = None
        token = _bearer_token()
        if token:
            context = session_service.validate_session(token)
            if context:
                _bind_context(context)
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require the authenticated user to hold one of the given roles.

    Must be stacked below @require_auth.
    """
    allowed = set(roles)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.current_user.role not in allowed:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": sorted(allowed),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
