# Overview: Flask API routes for catalog browsing; parses input and returns JSON responses.

# backend/shopcart/routes/products.py
"""
Public catalog routes.

No authentication required. Only active products are visible here;
staff product management lives in routes/admin.py.
"""
from flask import Blueprint, request, current_app

from ..errors import ShopError
from ..services import catalog_service
from ..responses import ok, fail, from_error
from ..validation import parse_price_cents

products_bp = Blueprint("products", __name__, url_prefix="/api/products")

RELATED_LIMIT = 4
SUGGESTION_LIMIT = 5


@products_bp.get("")
def list_products_route():
    """
    List/search active products.

    Query params:
    - q: keyword (name, description, category)
    - category, brand: exact filters
    - min_price, max_price: decimal amounts ("10", "19.99"), inclusive
    - page, per_page: pagination (per_page capped at MAX_PAGE_SIZE)
    - sort_by: name | price | rating | review_count | stock | created_at
    - sort_dir: asc | desc
    """
    try:
        result = catalog_service.search_products(
            request.args.get("q") or request.args.get("keyword"),
            category=request.args.get("category"),
            brand=request.args.get("brand"),
            min_price_cents=parse_price_cents(request.args.get("min_price"), "min_price"),
            max_price_cents=parse_price_cents(request.args.get("max_price"), "max_price"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
            sort_by=request.args.get("sort_by"),
            sort_dir=request.args.get("sort_dir"),
        )
        return ok(result["items"], count=result["count"], pagination=result["pagination"])

    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to list products")
        return fail("Internal server error", 500)


@products_bp.get("/popular")
def popular_products_route():
    try:
        result = catalog_service.popular_products(
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return ok(result["items"], count=result["count"], pagination=result["pagination"])
    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to list popular products")
        return fail("Internal server error", 500)


@products_bp.get("/categories")
def categories_route():
    return ok(catalog_service.list_categories())


@products_bp.get("/brands")
def brands_route():
    return ok(catalog_service.list_brands())


@products_bp.get("/suggestions")
def suggestions_route():
    """Typeahead; fewer than two characters returns an empty list."""
    limit = request.args.get("limit", SUGGESTION_LIMIT, type=int)
    products = catalog_service.search_suggestions(request.args.get("q"), limit=max(1, min(limit, 20)))
    return ok([{"id": p.id, "name": p.name, "category": p.category} for p in products])


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    """Product detail plus up to four related products."""
    try:
        product = catalog_service.get_product(product_id, active_only=True)
        related = catalog_service.related_products(product_id, limit=RELATED_LIMIT)
        return ok({
            "product": product.to_dict(),
            "related": [p.to_dict() for p in related],
        })

    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to load product %s", product_id)
        return fail("Internal server error", 500)


@products_bp.get("/<int:product_id>/stock")
def check_stock_route(product_id: int):
    """?quantity=N; reports whether N units can currently be bought."""
    try:
        product = catalog_service.get_product(product_id, active_only=True)
        quantity = request.args.get("quantity", 1, type=int)
        return ok({
            "product_id": product.id,
            "quantity": quantity,
            "available": catalog_service.check_stock(product_id, quantity),
            "stock": product.stock,
        })
    except ShopError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to check stock for product %s", product_id)
        return fail("Internal server error", 500)
