"""
Order Service - checkout and order lifecycle

Checkout turns the user's cart into an Order in one transaction:
validate stock, reserve stock with conditional UPDATEs, snapshot each line
into an OrderItem, clear the cart, commit. Any failure rolls everything
back, so stock, order rows and cart are never left half-changed.

Status moves only forward:
    PENDING -> PAID -> SHIPPED -> DELIVERED
    PENDING | PAID -> CANCELLED (stock restored)
"""

from __future__ import annotations

import secrets

from flask import current_app

from ..extensions import db
from ..models import Order, OrderItem, OrderStatus, order_total_cents
from ..errors import (
    EmptyCartError,
    InsufficientStockError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from ..time_utils import utcnow, order_number_stamp, format_cents
from . import cart_service, catalog_service
from .concurrency import lock_for_update, run_with_retry
from .pagination import paginate

ORDER_NUMBER_PREFIX = "ORD"
ORDER_NUMBER_ATTEMPTS = 5

SHIPPING_FIELDS = ("shipping_address", "recipient_name", "recipient_phone", "payment_method", "notes")


def generate_order_number() -> str:
    """ORD + YYYYMMDDHHMMSS + 8 uppercase hex characters."""
    return f"{ORDER_NUMBER_PREFIX}{order_number_stamp()}{secrets.token_hex(4).upper()}"


def _unique_order_number() -> str:
    for _ in range(ORDER_NUMBER_ATTEMPTS):
        number = generate_order_number()
        taken = db.session.query(
            db.session.query(Order).filter(Order.order_number == number).exists()
        ).scalar()
        if not taken:
            return number
    raise RuntimeError("Could not allocate a unique order number")


def get_order_items(order_id: int) -> list[OrderItem]:
    return (
        db.session.query(OrderItem)
        .filter(OrderItem.order_id == order_id)
        .order_by(OrderItem.id.asc())
        .all()
    )


def order_to_dict(order: Order) -> dict:
    return order.to_dict(items=get_order_items(order.id))


def checkout_preview(user_id: int) -> dict:
    """What the checkout page shows before the order is placed."""
    cart = cart_service.get_cart(user_id)
    shortages = cart_service.validate_cart_stock(user_id)
    return {
        **cart,
        "shortages": shortages,
        "can_checkout": not cart["is_empty"] and not shortages,
    }


def create_order(user_id: int, shipping: dict | None = None) -> Order:
    """
    Place an order from the user's cart.

    Raises:
        EmptyCartError: nothing in the cart
        InsufficientStockError: some line cannot be fulfilled (nothing changed)
    """
    shipping = {k: v for k, v in (shipping or {}).items() if k in SHIPPING_FIELDS}

    def _op():
        lines = cart_service.get_cart_lines(user_id)
        if not lines:
            current_app.logger.warning("Checkout rejected: cart empty for user %s", user_id)
            raise EmptyCartError("Cart is empty")

        shortages = cart_service.validate_cart_stock(user_id)
        if shortages:
            current_app.logger.warning(
                "Checkout rejected: insufficient stock for user %s: %s", user_id, shortages
            )
            raise InsufficientStockError(
                "Some items in your cart are out of stock",
                details={"items": shortages},
            )

        order = Order(
            order_number=_unique_order_number(),
            user_id=user_id,
            status=OrderStatus.PENDING,
            **shipping,
        )
        db.session.add(order)
        db.session.flush()

        for item, product in lines:
            # Conditional decrement: fails if a concurrent checkout took the stock
            catalog_service.reduce_stock(product.id, item.quantity, commit=False)

            db.session.add(OrderItem(
                order_id=order.id,
                product_id=product.id,
                product_name=product.name,
                unit_price_cents=product.price_cents,
                quantity=item.quantity,
                subtotal_cents=product.price_cents * item.quantity,
            ))

        cart_service.clear_cart(user_id, commit=False)

        db.session.commit()
        return order

    order = run_with_retry(_op)
    items = get_order_items(order.id)
    current_app.logger.info(
        "Order %s created for user %s, total %s",
        order.order_number, user_id, format_cents(order_total_cents(items)),
    )
    return order


def quick_order(user_id: int, product_id: int, quantity: int = 1, shipping: dict | None = None) -> Order:
    """Buy now: put the product in the cart, then check out the whole cart."""
    cart_service.add_to_cart(user_id, product_id, quantity)
    return create_order(user_id, shipping)


def _find_order(order_number: str, *, lock: bool = False) -> Order | None:
    query = db.session.query(Order).filter(Order.order_number == order_number)
    if lock:
        query = lock_for_update(query)
    return query.first()


def get_order(user_id: int, order_number: str) -> Order:
    """The user's own order; other users' orders are reported as not found."""
    order = _find_order(order_number)
    if not order or order.user_id != user_id:
        raise NotFoundError("Order not found", details={"order_number": order_number})
    return order


def _transition(order: Order, target: str) -> None:
    if not OrderStatus.can_transition(order.status, target):
        raise InvalidStateTransitionError(
            f"Order {order.order_number} is {order.status} and cannot move to {target}",
            details={
                "order_number": order.order_number,
                "current_status": order.status,
                "target_status": target,
            },
        )
    order.status = target


def _owned_for_update(user_id: int | None, order_number: str) -> Order:
    order = _find_order(order_number, lock=True)
    if not order or (user_id is not None and order.user_id != user_id):
        raise NotFoundError("Order not found", details={"order_number": order_number})
    return order


def pay_order(user_id: int, order_number: str, payment_method: str | None = None) -> Order:
    def _op():
        order = _owned_for_update(user_id, order_number)
        _transition(order, OrderStatus.PAID)
        order.paid_at = utcnow()
        if payment_method:
            order.payment_method = payment_method
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Order %s paid", order_number)
    return order


def ship_order(order_number: str) -> Order:
    """Staff action: PAID -> SHIPPED."""
    def _op():
        order = _owned_for_update(None, order_number)
        _transition(order, OrderStatus.SHIPPED)
        order.shipped_at = utcnow()
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Order %s shipped", order_number)
    return order


def confirm_delivery(user_id: int, order_number: str) -> Order:
    def _op():
        order = _owned_for_update(user_id, order_number)
        _transition(order, OrderStatus.DELIVERED)
        order.delivered_at = utcnow()
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Order %s delivered", order_number)
    return order


def cancel_order(user_id: int | None, order_number: str) -> Order:
    """
    Cancel a PENDING or PAID order and put every line back into stock.

    user_id None skips the ownership check (staff cancellation).
    """
    def _op():
        order = _owned_for_update(user_id, order_number)
        _transition(order, OrderStatus.CANCELLED)

        for item in get_order_items(order.id):
            catalog_service.add_stock(item.product_id, item.quantity, commit=False)

        order.cancelled_at = utcnow()
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Order %s cancelled, stock restored", order_number)
    return order


def _validate_status(status: str | None) -> str | None:
    if not status:
        return None
    status = status.strip().upper()
    if status not in OrderStatus.ALL:
        raise ValidationError(
            f"Unknown order status {status}",
            details={"allowed": list(OrderStatus.ALL)},
        )
    return status


def list_user_orders(
    user_id: int,
    status: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """The user's orders, newest first, optionally filtered by status."""
    status = _validate_status(status)
    query = db.session.query(Order).filter(Order.user_id == user_id)
    if status:
        query = query.filter(Order.status == status)
    query = query.order_by(Order.created_at.desc(), Order.id.desc())
    return paginate(query, page, per_page, serialize=order_to_dict)


def count_user_orders(user_id: int) -> int:
    return db.session.query(Order).filter(Order.user_id == user_id).count()


def list_all_orders(
    status: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Staff view across every user."""
    status = _validate_status(status)
    query = db.session.query(Order)
    if status:
        query = query.filter(Order.status == status)
    query = query.order_by(Order.created_at.desc(), Order.id.desc())
    return paginate(query, page, per_page, serialize=order_to_dict)
