# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/shopcart/routes/auth.py
"""
Authentication API routes

- Self-registration with duplicate username/email checks
- Login returns a bearer token for the Authorization header
- Logout revokes the token
"""

from flask import Blueprint, request, current_app, g

from ..errors import ShopError
from ..models import User
from ..services import auth_service, order_service, session_service
from ..decorators import require_auth, bearer_token
from ..responses import ok, fail, from_error, request_payload
from ..validation import ModelValidationPolicy, validate_payload


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

PROFILE_POLICY = ModelValidationPolicy(
    writable_fields={"first_name", "last_name", "phone", "address"},
)


@auth_bp.post("/register")
def register_route():
    """
    Register a new customer account.

    Body: username, email, password, optional first_name, last_name, phone, address.
    """
    try:
        data = request_payload()
        username = data.get("username")
        email = data.get("email")
        password = data.get("password")

        if not all([username, email, password]):
            return fail("username, email and password required", 400, code="VALIDATION_ERROR")

        profile = validate_payload(
            model=User,
            payload={k: data[k] for k in PROFILE_POLICY.writable_fields if k in data},
            policy=PROFILE_POLICY,
            partial=True,
        )

        user = auth_service.register_user(username, email, password, **profile)
        return ok(user.to_dict(), "Registration successful", 201)

    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to register user")
        return fail("Internal server error", 500)


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included as "Authorization: Bearer <token>" on protected routes.
    """
    try:
        data = request_payload()
        username = data.get("username") or data.get("email")
        password = data.get("password")

        if not all([username, password]):
            return fail("username/email and password required", 400, code="VALIDATION_ERROR")

        user = auth_service.authenticate(username, password)
        if not user:
            return fail("Invalid username or password", 401, code="UNAUTHENTICATED")

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return ok({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
        }, "Login successful")

    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to login user")
        return fail("Internal server error", 500)


@auth_bp.post("/logout")
def logout_route():
    """Revoke session token (logout)."""
    try:
        token = bearer_token()
        if not token:
            return fail("Authorization header required", 401, code="UNAUTHENTICATED")

        if not session_service.revoke_session(token, reason="User logout"):
            return fail("Invalid or expired token", 401, code="UNAUTHENTICATED")

        return ok(None, "Logout successful")

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return fail("Internal server error", 500)


@auth_bp.get("/me")
@require_auth
def me_route():
    data = g.current_user.to_dict()
    data["order_count"] = order_service.count_user_orders(g.current_user.id)
    return ok(data)


@auth_bp.put("/me")
@require_auth
def update_me_route():
    try:
        patch = validate_payload(
            model=User,
            payload=request.get_json(silent=True) or {},
            policy=PROFILE_POLICY,
            partial=True,
        )
        user = auth_service.update_profile(g.current_user.id, patch)
        return ok(user.to_dict(), "Profile updated")

    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to update profile")
        return fail("Internal server error", 500)


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    try:
        data = request_payload()
        current_password = data.get("current_password")
        new_password = data.get("new_password")
        if not all([current_password, new_password]):
            return fail("current_password and new_password required", 400, code="VALIDATION_ERROR")

        auth_service.change_password(g.current_user.id, current_password, new_password)
        return ok(None, "Password changed")

    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to change password")
        return fail("Internal server error", 500)


@auth_bp.get("/check-username")
def check_username_route():
    username = (request.args.get("username") or "").strip()
    if not username:
        return fail("username required", 400, code="VALIDATION_ERROR")
    return ok({"username": username, "available": auth_service.is_username_available(username)})


@auth_bp.get("/check-email")
def check_email_route():
    email = (request.args.get("email") or "").strip()
    if not email:
        return fail("email required", 400, code="VALIDATION_ERROR")
    return ok({"email": email, "available": auth_service.is_email_available(email)})
