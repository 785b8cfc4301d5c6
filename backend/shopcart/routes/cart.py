# Overview: Flask API routes for cart operations; parses input and returns JSON responses.

# backend/shopcart/routes/cart.py
"""
Shopping cart routes.

All routes except /count require a bearer token. The cart is always the
caller's own; item ids from another user's cart answer 404.
"""
from flask import Blueprint, current_app, g

from ..errors import ShopError, ValidationError
from ..services import cart_service
from ..decorators import require_auth, load_current_user
from ..responses import ok, fail, from_error, request_payload
from ..validation import coerce_int, parse_quantity

cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


@cart_bp.get("")
@require_auth
def get_cart_route():
    try:
        return ok(cart_service.get_cart(g.current_user.id))
    except Exception:
        current_app.logger.exception("Failed to load cart for user %s", g.current_user.id)
        return fail("Internal server error", 500)


@cart_bp.get("/count")
def cart_count_route():
    """Total quantity in the cart; 0 for anonymous callers."""
    user = load_current_user()
    count = cart_service.get_cart_count(user.id) if user else 0
    return ok({"count": count})


@cart_bp.post("/add")
@require_auth
def add_to_cart_route():
    """Body: product_id, quantity (default 1)."""
    try:
        data = request_payload()
        if data.get("product_id") in (None, ""):
            raise ValidationError("product_id required")
        product_id = coerce_int(data.get("product_id"), "product_id")
        quantity = parse_quantity(data.get("quantity"), default=1)

        item = cart_service.add_to_cart(g.current_user.id, product_id, quantity)
        return ok({
            "item": item.to_dict(),
            "cart_count": cart_service.get_cart_count(g.current_user.id),
        }, "Added to cart")

    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to add to cart")
        return fail("Internal server error", 500)


@cart_bp.put("/update")
@require_auth
def update_cart_route():
    """Body: cart_item_id, quantity. Quantity 0 removes the line."""
    try:
        data = request_payload()
        if data.get("cart_item_id") in (None, ""):
            raise ValidationError("cart_item_id required")
        cart_item_id = coerce_int(data.get("cart_item_id"), "cart_item_id")
        quantity = parse_quantity(data.get("quantity"), allow_zero=True)

        item = cart_service.update_cart_item(g.current_user.id, cart_item_id, quantity)
        message = "Cart updated" if item else "Item removed"
        return ok({
            "item": item.to_dict() if item else None,
            "cart": cart_service.get_cart(g.current_user.id),
        }, message)

    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to update cart")
        return fail("Internal server error", 500)


@cart_bp.delete("/remove/<int:cart_item_id>")
@require_auth
def remove_from_cart_route(cart_item_id: int):
    try:
        cart_service.remove_from_cart(g.current_user.id, cart_item_id)
        return ok({"cart_count": cart_service.get_cart_count(g.current_user.id)}, "Item removed")
    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to remove cart item %s", cart_item_id)
        return fail("Internal server error", 500)


@cart_bp.delete("/clear")
@require_auth
def clear_cart_route():
    try:
        removed = cart_service.clear_cart(g.current_user.id)
        return ok({"removed": removed}, "Cart cleared")
    except Exception:
        current_app.logger.exception("Failed to clear cart")
        return fail("Internal server error", 500)
