from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, format_cents


class OrderStatus:
    PENDING = "PENDING"
    PAID = "PAID"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    ALL = (PENDING, PAID, SHIPPED, DELIVERED, CANCELLED)

    DESCRIPTIONS = {
        PENDING: "Awaiting payment",
        PAID: "Paid",
        SHIPPED: "Shipped",
        DELIVERED: "Delivered",
        CANCELLED: "Cancelled",
    }

    # Allowed forward moves; DELIVERED and CANCELLED are terminal
    TRANSITIONS = {
        PENDING: {PAID, CANCELLED},
        PAID: {SHIPPED, CANCELLED},
        SHIPPED: {DELIVERED},
        DELIVERED: set(),
        CANCELLED: set(),
    }

    @classmethod
    def can_transition(cls, current: str, target: str) -> bool:
        return target in cls.TRANSITIONS.get(current, set())


def order_total_cents(items) -> int:
    """Order total as a pure function of its line items."""
    return sum(item.subtotal_cents for item in items)


class Order(db.Model):
    """
    Order header created by checkout.

    The total is never stored; it is derived from the OrderItem snapshot rows
    on every read. version_id guards concurrent status transitions.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_user_status_created", "user_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable order number (e.g., "ORD20250101120000A1B2C3D4")
    order_number = db.Column(db.String(50), nullable=False, unique=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default=OrderStatus.PENDING, index=True)

    shipping_address = db.Column(db.Text, nullable=True)
    recipient_name = db.Column(db.String(100), nullable=True)
    recipient_phone = db.Column(db.String(20), nullable=True)
    payment_method = db.Column(db.String(50), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Timestamps per transition
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    shipped_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "OrderItem",
        backref=db.backref("order", lazy=True),
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy=True,
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} status={self.status}>"

    @property
    def can_be_cancelled(self) -> bool:
        return OrderStatus.can_transition(self.status, OrderStatus.CANCELLED)

    def to_dict(self, items=None) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "user_id": self.user_id,
            "status": self.status,
            "status_description": OrderStatus.DESCRIPTIONS.get(self.status),
            "shipping_address": self.shipping_address,
            "recipient_name": self.recipient_name,
            "recipient_phone": self.recipient_phone,
            "payment_method": self.payment_method,
            "notes": self.notes,
            "can_be_cancelled": self.can_be_cancelled,
            "created_at": to_utc_z(self.created_at),
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
            "shipped_at": to_utc_z(self.shipped_at) if self.shipped_at else None,
            "delivered_at": to_utc_z(self.delivered_at) if self.delivered_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "version_id": self.version_id,
        }
        if items is not None:
            total = order_total_cents(items)
            data.update({
                "items": [item.to_dict() for item in items],
                "total_quantity": sum(item.quantity for item in items),
                "total_cents": total,
                "total": format_cents(total),
            })
        return data


class OrderItem(db.Model):
    """
    Immutable snapshot of a purchased line.

    product_id is kept for restocking on cancellation; name and price are
    copied so later catalog edits never change historical orders.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
        db.CheckConstraint(
            "subtotal_cents = unit_price_cents * quantity",
            name="ck_order_items_subtotal",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(100), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit_price_cents": self.unit_price_cents,
            "unit_price": format_cents(self.unit_price_cents),
            "quantity": self.quantity,
            "subtotal_cents": self.subtotal_cents,
            "subtotal": format_cents(self.subtotal_cents),
            "created_at": to_utc_z(self.created_at),
        }
