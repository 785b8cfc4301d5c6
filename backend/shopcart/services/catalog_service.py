# backend/shopcart/services/catalog_service.py
"""
Catalog Service

Read-side queries over active products (search, filters, popularity,
related products) plus the two stock mutations. Stock is only ever changed
with a single conditional UPDATE so concurrent callers cannot oversell.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import Product
from ..errors import InsufficientStockError, NotFoundError, ValidationError
from .concurrency import commit_with_retry
from .pagination import paginate

SORTABLE_FIELDS = {
    "name": Product.name,
    "price": Product.price_cents,
    "price_cents": Product.price_cents,
    "rating": Product.rating,
    "review_count": Product.review_count,
    "stock": Product.stock,
    "created_at": Product.created_at,
}

PRODUCT_MUTABLE_FIELDS = {
    "name", "description", "price_cents", "stock", "category", "brand",
    "image_url", "rating", "review_count", "is_active",
}

SUGGESTION_MIN_LENGTH = 2


def _active_products():
    return db.session.query(Product).filter(Product.is_active.is_(True))


def _ordering(sort_by: str | None, sort_dir: str | None):
    sort_by = (sort_by or "name").strip()
    sort_dir = (sort_dir or "asc").strip().lower()

    column = SORTABLE_FIELDS.get(sort_by)
    if column is None:
        raise ValidationError(
            f"Cannot sort by {sort_by}",
            details={"allowed": sorted(SORTABLE_FIELDS)},
        )
    if sort_dir not in ("asc", "desc"):
        raise ValidationError("sort_dir must be 'asc' or 'desc'")

    primary = column.desc() if sort_dir == "desc" else column.asc()
    # Product.id keeps page boundaries stable between equal keys
    return [primary, Product.id.asc()]


LIKE_ESCAPE = "\\"


def _escape_like(value: str) -> str:
    """Make %, _ and the escape character match literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def _keyword_filter(keyword: str):
    pattern = f"%{_escape_like(keyword.lower())}%"
    return or_(
        func.lower(Product.name).like(pattern, escape=LIKE_ESCAPE),
        func.lower(func.coalesce(Product.description, "")).like(pattern, escape=LIKE_ESCAPE),
        func.lower(func.coalesce(Product.category, "")).like(pattern, escape=LIKE_ESCAPE),
    )


def get_product(product_id: int, *, active_only: bool = False) -> Product:
    product = db.session.get(Product, product_id)
    if not product or (active_only and not product.is_active):
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def list_products(
    page: int | None = None,
    per_page: int | None = None,
    sort_by: str | None = None,
    sort_dir: str | None = None,
) -> dict:
    """Paginated listing of active products, sorted by any SORTABLE_FIELDS key."""
    query = _active_products().order_by(*_ordering(sort_by, sort_dir))
    return paginate(query, page, per_page)


def search_products(
    keyword: str | None = None,
    *,
    category: str | None = None,
    brand: str | None = None,
    min_price_cents: int | None = None,
    max_price_cents: int | None = None,
    page: int | None = None,
    per_page: int | None = None,
    sort_by: str | None = None,
    sort_dir: str | None = None,
) -> dict:
    """
    Combined catalog search.

    keyword matches name, description or category (case-insensitive
    substring). category/brand are exact matches; the price range is
    inclusive on both ends. Blank arguments are ignored, so an empty call
    is the full listing.
    """
    query = _active_products()

    keyword = (keyword or "").strip()
    if keyword:
        query = query.filter(_keyword_filter(keyword))

    category = (category or "").strip()
    if category:
        query = query.filter(Product.category == category)

    brand = (brand or "").strip()
    if brand:
        query = query.filter(Product.brand == brand)

    if min_price_cents is not None and max_price_cents is not None and min_price_cents > max_price_cents:
        raise ValidationError("min_price cannot be greater than max_price")
    if min_price_cents is not None:
        if min_price_cents < 0:
            raise ValidationError("min_price must be >= 0")
        query = query.filter(Product.price_cents >= min_price_cents)
    if max_price_cents is not None:
        if max_price_cents < 0:
            raise ValidationError("max_price must be >= 0")
        query = query.filter(Product.price_cents <= max_price_cents)

    query = query.order_by(*_ordering(sort_by, sort_dir))
    return paginate(query, page, per_page)


def products_by_category(category: str, page: int | None = None, per_page: int | None = None) -> dict:
    query = _active_products().filter(Product.category == category).order_by(Product.name.asc(), Product.id.asc())
    return paginate(query, page, per_page)


def products_by_brand(brand: str, page: int | None = None, per_page: int | None = None) -> dict:
    query = _active_products().filter(Product.brand == brand).order_by(Product.name.asc(), Product.id.asc())
    return paginate(query, page, per_page)


def products_by_price_range(
    min_price_cents: int,
    max_price_cents: int,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    return search_products(
        min_price_cents=min_price_cents,
        max_price_cents=max_price_cents,
        page=page,
        per_page=per_page,
        sort_by="price",
        sort_dir="asc",
    )


def popular_products(page: int | None = None, per_page: int | None = None) -> dict:
    """Active products by rating, then review count (both descending)."""
    query = _active_products().order_by(
        Product.rating.desc(),
        Product.review_count.desc(),
        Product.id.asc(),
    )
    return paginate(query, page, per_page)


def related_products(product_id: int, limit: int = 4) -> list[Product]:
    """
    Recommend up to `limit` products related to product_id.

    Fill order: same category, then same brand, then the most reviewed
    products overall. The source product is never included and no product
    appears twice.
    """
    product = get_product(product_id)
    if limit <= 0:
        return []

    picked: list[Product] = []
    seen = {product.id}

    def _take(query):
        remaining = limit - len(picked)
        if remaining <= 0:
            return
        rows = query.filter(Product.id.notin_(list(seen))).limit(remaining).all()
        for row in rows:
            picked.append(row)
            seen.add(row.id)

    if product.category:
        _take(
            _active_products()
            .filter(Product.category == product.category)
            .order_by(Product.review_count.desc(), Product.id.asc())
        )
    if product.brand:
        _take(
            _active_products()
            .filter(Product.brand == product.brand)
            .order_by(Product.review_count.desc(), Product.id.asc())
        )
    _take(_active_products().order_by(Product.review_count.desc(), Product.id.asc()))

    return picked[:limit]


def search_suggestions(query: str | None, limit: int = 5) -> list[Product]:
    """Typeahead: most-reviewed keyword matches, nothing for very short input."""
    keyword = (query or "").strip()
    if len(keyword) < SUGGESTION_MIN_LENGTH:
        return []
    return (
        _active_products()
        .filter(_keyword_filter(keyword))
        .order_by(Product.review_count.desc(), Product.id.asc())
        .limit(limit)
        .all()
    )


def list_categories() -> list[str]:
    rows = (
        db.session.query(Product.category)
        .filter(Product.is_active.is_(True), Product.category.isnot(None))
        .distinct()
        .order_by(Product.category.asc())
        .all()
    )
    return [row[0] for row in rows]


def list_brands() -> list[str]:
    rows = (
        db.session.query(Product.brand)
        .filter(Product.is_active.is_(True), Product.brand.isnot(None))
        .distinct()
        .order_by(Product.brand.asc())
        .all()
    )
    return [row[0] for row in rows]


def low_stock_products(threshold: int = 10) -> list[Product]:
    return (
        _active_products()
        .filter(Product.stock <= threshold)
        .order_by(Product.stock.asc(), Product.id.asc())
        .all()
    )


def check_stock(product_id: int, quantity: int) -> bool:
    product = db.session.get(Product, product_id)
    return product is not None and product.has_stock(quantity)


def reduce_stock(product_id: int, quantity: int, *, commit: bool = True) -> int:
    """
    Atomically take `quantity` units of stock.

    Issues UPDATE ... SET stock = stock - q WHERE stock >= q, so two
    concurrent callers can never drive stock below zero. Returns the new
    stock level.

    Raises:
        ValidationError: quantity < 1
        NotFoundError: product missing or inactive
        InsufficientStockError: not enough stock (stock left unchanged)
    """
    if quantity is None or quantity < 1:
        raise ValidationError("quantity must be >= 1")

    updated = (
        db.session.query(Product)
        .filter(
            Product.id == product_id,
            Product.is_active.is_(True),
            Product.stock >= quantity,
        )
        .update({Product.stock: Product.stock - quantity}, synchronize_session="fetch")
    )

    if updated == 0:
        product = db.session.get(Product, product_id)
        if not product or not product.is_active:
            raise NotFoundError("Product not found", details={"product_id": product_id})
        db.session.refresh(product)
        current_app.logger.warning(
            "Stock reservation failed: product %s requested %s available %s",
            product_id, quantity, product.stock,
        )
        raise InsufficientStockError(
            f"Insufficient stock for {product.name}",
            details={
                "product_id": product_id,
                "product_name": product.name,
                "requested_quantity": quantity,
                "available": product.stock,
            },
        )

    stock = db.session.query(Product.stock).filter(Product.id == product_id).scalar()
    if commit:
        db.session.commit()
    return stock


def add_stock(product_id: int, quantity: int, *, commit: bool = True) -> int:
    """Return `quantity` units to stock. Returns the new stock level."""
    if quantity is None or quantity < 1:
        raise ValidationError("quantity must be >= 1")

    updated = (
        db.session.query(Product)
        .filter(Product.id == product_id)
        .update({Product.stock: Product.stock + quantity}, synchronize_session="fetch")
    )
    if updated == 0:
        raise NotFoundError("Product not found", details={"product_id": product_id})

    stock = db.session.query(Product.stock).filter(Product.id == product_id).scalar()
    if commit:
        db.session.commit()
    return stock


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def create_product(*, patch: dict, commit: bool = True) -> Product:
    """Create product from a validated patch dict (name and price_cents required)."""
    if not patch.get("name"):
        raise ValidationError("name is required")
    if patch.get("price_cents") is None:
        raise ValidationError("price_cents is required")

    p = Product(stock=0, rating=0, review_count=0, is_active=True)
    apply_product_patch(p, patch)

    db.session.add(p)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return p


def deactivate_product(product_id: int) -> Product:
    """Soft-delete: preserve IDs and historical references."""
    p = get_product(product_id)
    if p.is_active:
        p.is_active = False
        commit_with_retry()
        current_app.logger.info("Product %s deactivated", product_id)
    return p
