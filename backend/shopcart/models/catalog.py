from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, format_cents


class Product(db.Model):
    """
    Catalog product.

    Prices are stored as integer cents. Stock is only changed through
    catalog_service.reduce_stock / add_stock, which issue conditional
    UPDATE statements; the CHECK constraint is a backstop against
    negative stock.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_nonnegative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_nonnegative"),
        db.Index("ix_products_category_active", "category", "is_active"),
        db.Index("ix_products_brand_active", "brand", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)

    category = db.Column(db.String(50), nullable=True)
    brand = db.Column(db.String(50), nullable=True)
    image_url = db.Column(db.String(500), nullable=True)

    rating = db.Column(db.Numeric(3, 2), nullable=False, default=0)
    review_count = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def has_stock(self, quantity: int) -> bool:
        return self.stock is not None and self.stock >= quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "price": format_cents(self.price_cents),
            "stock": self.stock,
            "in_stock": (self.stock or 0) > 0,
            "category": self.category,
            "brand": self.brand,
            "image_url": self.image_url,
            "rating": float(self.rating) if self.rating is not None else None,
            "review_count": self.review_count,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
