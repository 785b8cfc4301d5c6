# Overview: Request authentication decorators for API routes.

from functools import wraps

from flask import request, g

from .errors import UnauthenticatedError
from .responses import fail, from_error
from .services import session_service


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def load_current_user():
    """
    Resolve the bearer token (if any) to g.current_user.

    Sets g.current_user to None for anonymous requests.
    """
    token = bearer_token()
    g.current_user = session_service.validate_session(token) if token else None
    return g.current_user


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.current_user to the authenticated User. Routes pass
    g.current_user.id to services explicitly.

    Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not bearer_token():
            return from_error(UnauthenticatedError("Authentication required"))

        if load_current_user() is None:
            return from_error(UnauthenticatedError("Invalid or expired token"))

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require the authenticated user to be staff (is_admin). Use after @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = g.get("current_user")
        if user is None:
            return from_error(UnauthenticatedError("Authentication required"))
        if not user.is_admin:
            return fail("Admin access required", 403, code="FORBIDDEN")
        return f(*args, **kwargs)
    return decorated_function
