from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, format_cents


class Cart(db.Model):
    """
    Shopping cart header.

    At most one active cart per user (partial unique index). The cart owns
    its items: deleting a cart deletes its CartItem rows.
    """
    __tablename__ = "carts"
    __table_args__ = (
        db.Index(
            "uq_carts_user_active",
            "user_id",
            unique=True,
            sqlite_where=db.text("is_active = 1"),
            postgresql_where=db.text("is_active"),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    items = db.relationship(
        "CartItem",
        backref=db.backref("cart", lazy=True),
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class CartItem(db.Model):
    """
    One (product, quantity) line in a cart.

    unit_price_cents is the price seen when the line was added; totals shown
    to the user are recomputed from the live product price.
    """
    __tablename__ = "cart_items"
    __table_args__ = (
        db.UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
        db.CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self, product=None) -> dict:
        data = {
            "id": self.id,
            "cart_id": self.cart_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "created_at": to_utc_z(self.created_at),
        }
        if product is not None:
            subtotal = product.price_cents * self.quantity
            data.update({
                "product": product.to_dict(),
                "current_price_cents": product.price_cents,
                "subtotal_cents": subtotal,
                "subtotal": format_cents(subtotal),
                "has_enough_stock": product.is_active and product.has_stock(self.quantity),
            })
        return data
