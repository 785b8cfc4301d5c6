# Overview: Service-layer operations for carts; encapsulates business logic and database work.

"""
Cart Service

Every operation is scoped by an explicit user_id. Cart items belonging to
another user's cart are reported as not found so callers cannot probe
other carts.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Cart, CartItem, Product
from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..time_utils import format_cents
from .concurrency import run_with_retry


def _require_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer")
    if quantity < 1:
        raise ValidationError("quantity must be greater than 0")
    return quantity


def _active_cart_query(user_id: int):
    return db.session.query(Cart).filter(Cart.user_id == user_id, Cart.is_active.is_(True))


def find_active_cart(user_id: int) -> Cart | None:
    return _active_cart_query(user_id).first()


def get_or_create_cart(user_id: int) -> Cart:
    """Return the user's active cart, creating it on first use."""
    cart = find_active_cart(user_id)
    if cart:
        return cart

    cart = Cart(user_id=user_id, is_active=True)
    db.session.add(cart)
    try:
        db.session.commit()
    except IntegrityError:
        # Another request created the active cart first
        db.session.rollback()
        cart = find_active_cart(user_id)
        if cart is None:
            raise
    return cart


def get_cart_lines(user_id: int) -> list[tuple[CartItem, Product]]:
    """Cart items joined to their live product rows, oldest line first."""
    return (
        db.session.query(CartItem, Product)
        .join(Cart, Cart.id == CartItem.cart_id)
        .join(Product, Product.id == CartItem.product_id)
        .filter(Cart.user_id == user_id, Cart.is_active.is_(True))
        .order_by(CartItem.id.asc())
        .all()
    )


def _get_owned_item(user_id: int, cart_item_id: int) -> CartItem:
    item = (
        db.session.query(CartItem)
        .join(Cart, Cart.id == CartItem.cart_id)
        .filter(CartItem.id == cart_item_id, Cart.user_id == user_id)
        .first()
    )
    if not item:
        exists = db.session.get(CartItem, cart_item_id) is not None
        if exists:
            current_app.logger.warning(
                "Cart item %s does not belong to user %s", cart_item_id, user_id
            )
        raise NotFoundError("Cart item not found", details={"cart_item_id": cart_item_id})
    return item


def _insufficient(product: Product, requested: int, in_cart: int = 0) -> InsufficientStockError:
    return InsufficientStockError(
        f"Insufficient stock for {product.name}",
        details={
            "product_id": product.id,
            "product_name": product.name,
            "requested_quantity": requested,
            "in_cart": in_cart,
            "available": product.stock,
        },
    )


def add_to_cart(user_id: int, product_id: int, quantity: int = 1) -> CartItem:
    """
    Add quantity of product to the user's cart.

    If the product is already in the cart the quantities are merged and the
    combined quantity is re-validated against stock.

    Raises:
        ValidationError: quantity < 1
        NotFoundError: product missing or inactive
        InsufficientStockError: stock cannot cover the (combined) quantity
    """
    quantity = _require_quantity(quantity)

    def _op():
        product = db.session.get(Product, product_id)
        if not product or not product.is_active:
            raise NotFoundError("Product not found or unavailable", details={"product_id": product_id})

        if not product.has_stock(quantity):
            raise _insufficient(product, quantity)

        cart = get_or_create_cart(user_id)
        item = db.session.query(CartItem).filter_by(cart_id=cart.id, product_id=product_id).first()

        if item:
            new_quantity = item.quantity + quantity
            if not product.has_stock(new_quantity):
                raise _insufficient(product, quantity, in_cart=item.quantity)
            item.quantity = new_quantity
            item.unit_price_cents = product.price_cents
        else:
            item = CartItem(
                cart_id=cart.id,
                product_id=product_id,
                quantity=quantity,
                unit_price_cents=product.price_cents,
            )
            db.session.add(item)

        db.session.commit()
        current_app.logger.info(
            "Cart updated: user %s product %s quantity now %s", user_id, product_id, item.quantity
        )
        return item

    return run_with_retry(_op)


def update_cart_item(user_id: int, cart_item_id: int, quantity: int) -> CartItem | None:
    """
    Set an explicit quantity on a cart line.

    A quantity of zero or less removes the line and returns None.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer")

    if quantity <= 0:
        remove_from_cart(user_id, cart_item_id)
        return None

    def _op():
        item = _get_owned_item(user_id, cart_item_id)
        product = db.session.get(Product, item.product_id)
        if not product or not product.is_active:
            raise NotFoundError("Product not found or unavailable", details={"product_id": item.product_id})
        if not product.has_stock(quantity):
            raise _insufficient(product, quantity)

        item.quantity = quantity
        db.session.commit()
        return item

    return run_with_retry(_op)


def remove_from_cart(user_id: int, cart_item_id: int) -> None:
    def _op():
        item = _get_owned_item(user_id, cart_item_id)
        db.session.delete(item)
        db.session.commit()
        current_app.logger.info("Removed cart item %s for user %s", cart_item_id, user_id)

    run_with_retry(_op)


def clear_cart(user_id: int, *, commit: bool = True) -> int:
    """Delete every line in the user's active cart. Returns lines removed."""
    cart = find_active_cart(user_id)
    if not cart:
        return 0
    removed = (
        db.session.query(CartItem)
        .filter(CartItem.cart_id == cart.id)
        .delete(synchronize_session="fetch")
    )
    if commit:
        db.session.commit()
    return removed


def cart_total_cents(lines: list[tuple[CartItem, Product]]) -> int:
    """Cart total at live prices."""
    return sum(product.price_cents * item.quantity for item, product in lines)


def get_cart(user_id: int) -> dict:
    """Cart summary for display: lines with live product data and totals."""
    lines = get_cart_lines(user_id)
    total = cart_total_cents(lines)
    return {
        "items": [item.to_dict(product=product) for item, product in lines],
        "total_cents": total,
        "total_amount": format_cents(total),
        "total_quantity": sum(item.quantity for item, _ in lines),
        "is_empty": not lines,
    }


def get_cart_count(user_id: int) -> int:
    total = (
        db.session.query(db.func.coalesce(db.func.sum(CartItem.quantity), 0))
        .join(Cart, Cart.id == CartItem.cart_id)
        .filter(Cart.user_id == user_id, Cart.is_active.is_(True))
        .scalar()
    )
    return int(total or 0)


def validate_cart_stock(user_id: int) -> list[dict]:
    """
    Check every cart line against current stock.

    Returns one entry per short line; an empty list means the whole cart can
    be fulfilled.
    """
    short = []
    for item, product in get_cart_lines(user_id):
        if not product.is_active or not product.has_stock(item.quantity):
            short.append({
                "cart_item_id": item.id,
                "product_id": product.id,
                "product_name": product.name,
                "requested_quantity": item.quantity,
                "available": product.stock if product.is_active else 0,
            })
    return short
