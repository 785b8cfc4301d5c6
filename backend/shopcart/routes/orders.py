# Overview: Flask API routes for checkout and order lifecycle; parses input and returns JSON responses.

# backend/shopcart/routes/orders.py
"""
Order routes.

Checkout converts the caller's cart into an order. Orders are addressed
by order_number and are only visible to their owner.

Business failures (empty cart, insufficient stock, illegal status change)
answer 200 with success=false and a machine-readable code.
"""
from flask import Blueprint, request, current_app, g

from ..errors import ShopError, ValidationError
from ..services import order_service
from ..decorators import require_auth
from ..responses import ok, fail, from_error, request_payload
from ..validation import coerce_int, parse_quantity

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _shipping_from(data: dict) -> dict:
    shipping = {}
    for field in order_service.SHIPPING_FIELDS:
        value = data.get(field)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ValidationError(f"{field} must be a string")
        value = value.strip()
        if value:
            shipping[field] = value
    return shipping


@orders_bp.get("/checkout")
@require_auth
def checkout_preview_route():
    """Cart contents, totals and stock shortages before placing the order."""
    try:
        preview = order_service.checkout_preview(g.current_user.id)
        preview["user"] = g.current_user.to_dict()
        return ok(preview)
    except Exception:
        current_app.logger.exception("Failed to build checkout preview")
        return fail("Internal server error", 500)


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Place an order from the cart.

    Body (all optional): shipping_address, recipient_name, recipient_phone,
    payment_method, notes.
    """
    try:
        shipping = _shipping_from(request_payload())
        order = order_service.create_order(g.current_user.id, shipping)
        return ok(order_service.order_to_dict(order), "Order placed", 201)

    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to create order for user %s", g.current_user.id)
        return fail("Internal server error", 500)


@orders_bp.post("/quick")
@require_auth
def quick_order_route():
    """Buy now: body product_id, quantity (default 1), optional shipping fields."""
    try:
        data = request_payload()
        if data.get("product_id") in (None, ""):
            raise ValidationError("product_id required")
        product_id = coerce_int(data.get("product_id"), "product_id")
        quantity = parse_quantity(data.get("quantity"), default=1)

        order = order_service.quick_order(g.current_user.id, product_id, quantity, _shipping_from(data))
        return ok(order_service.order_to_dict(order), "Order placed", 201)

    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to place quick order")
        return fail("Internal server error", 500)


@orders_bp.get("")
@require_auth
def list_orders_route():
    """?status=PENDING|PAID|SHIPPED|DELIVERED|CANCELLED, page, per_page."""
    try:
        result = order_service.list_user_orders(
            g.current_user.id,
            status=request.args.get("status"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return ok(result["items"], count=result["count"], pagination=result["pagination"])

    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return fail("Internal server error", 500)


@orders_bp.get("/<order_number>")
@require_auth
def get_order_route(order_number: str):
    try:
        order = order_service.get_order(g.current_user.id, order_number)
        return ok(order_service.order_to_dict(order))
    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to load order %s", order_number)
        return fail("Internal server error", 500)


@orders_bp.post("/<order_number>/pay")
@require_auth
def pay_order_route(order_number: str):
    """Simulated payment: PENDING -> PAID. Optional body payment_method."""
    try:
        payment_method = request_payload().get("payment_method")
        if payment_method is not None and not isinstance(payment_method, str):
            raise ValidationError("payment_method must be a string")
        order = order_service.pay_order(g.current_user.id, order_number, payment_method)
        return ok(order_service.order_to_dict(order), "Payment successful")
    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to pay order %s", order_number)
        return fail("Internal server error", 500)


@orders_bp.post("/<order_number>/cancel")
@require_auth
def cancel_order_route(order_number: str):
    try:
        order = order_service.cancel_order(g.current_user.id, order_number)
        return ok(order_service.order_to_dict(order), "Order cancelled")
    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to cancel order %s", order_number)
        return fail("Internal server error", 500)


@orders_bp.post("/<order_number>/confirm")
@require_auth
def confirm_delivery_route(order_number: str):
    try:
        order = order_service.confirm_delivery(g.current_user.id, order_number)
        return ok(order_service.order_to_dict(order), "Delivery confirmed")
    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to confirm order %s", order_number)
        return fail("Internal server error", 500)
