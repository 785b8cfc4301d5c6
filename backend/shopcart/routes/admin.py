# Overview: Flask API routes for staff operations; parses input and returns JSON responses.

# backend/shopcart/routes/admin.py
"""
Staff routes.

SECURITY: every route requires a bearer token for a user with is_admin.
"""
from flask import Blueprint, request, current_app

from ..errors import ShopError
from ..models import Product
from ..services import catalog_service, order_service
from ..decorators import require_auth, require_admin
from ..responses import ok, fail, from_error, request_payload
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    parse_price_cents,
    parse_quantity,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "price_cents", "stock", "category", "brand",
        "image_url", "rating", "review_count", "is_active",
    },
    required_on_create={"name", "price_cents"},
)

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/orders")
@require_auth
@require_admin
def list_orders_route():
    try:
        result = order_service.list_all_orders(
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


@admin_bp.post("/orders/<order_number>/ship")
@require_auth
@require_admin
def ship_order_route(order_number: str):
    try:
        order = order_service.ship_order(order_number)
        return ok(order_service.order_to_dict(order), "Order shipped")
    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to ship order %s", order_number)
        return fail("Internal server error", 500)


@admin_bp.post("/orders/<order_number>/cancel")
@require_auth
@require_admin
def cancel_order_route(order_number: str):
    try:
        order = order_service.cancel_order(None, order_number)
        return ok(order_service.order_to_dict(order), "Order cancelled")
    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to cancel order %s", order_number)
        return fail("Internal server error", 500)


@admin_bp.get("/products/low-stock")
@require_auth
@require_admin
def low_stock_route():
    try:
        threshold = request.args.get("threshold", 10, type=int)
        products = catalog_service.low_stock_products(threshold)
        return ok([p.to_dict() for p in products], count=len(products))
    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to list low-stock products")
        return fail("Internal server error", 500)


@admin_bp.post("/products")
@require_auth
@require_admin
def create_product_route():
    """
    Create a product.

    Body: name, price (decimal) or price_cents, plus optional description,
    stock, category, brand, image_url, rating, review_count.
    """
    payload = request.get_json(silent=True) or {}

    try:
        if isinstance(payload, dict) and "price" in payload:
            payload = dict(payload)
            payload["price_cents"] = parse_price_cents(payload.pop("price"))
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)

        product = catalog_service.create_product(patch=patch)
        current_app.logger.info("Product %s created: %s", product.id, product.name)
        return ok(product.to_dict(), "Product created", 201)

    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return fail("Internal server error", 500)


@admin_bp.delete("/products/<int:product_id>")
@require_auth
@require_admin
def deactivate_product_route(product_id: int):
    """Soft delete; the product disappears from the catalog but order history keeps it."""
    try:
        product = catalog_service.deactivate_product(product_id)
        return ok(product.to_dict(), "Product deactivated")
    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to deactivate product %s", product_id)
        return fail("Internal server error", 500)


@admin_bp.post("/products/<int:product_id>/stock")
@require_auth
@require_admin
def add_stock_route(product_id: int):
    """Receive inventory. Body: quantity (>= 1)."""
    try:
        quantity = parse_quantity(request_payload().get("quantity"))
        stock = catalog_service.add_stock(product_id, quantity)
        current_app.logger.info("Received %s units of product %s, stock now %s", quantity, product_id, stock)
        return ok({"product_id": product_id, "added": quantity, "stock": stock}, "Stock updated")
    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to add stock for product %s", product_id)
        return fail("Internal server error", 500)
