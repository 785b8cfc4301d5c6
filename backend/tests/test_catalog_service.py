"""
Catalog service tests.

Verifies:
- Search combines keyword, category, brand and price range filters
- Sorting and pagination metadata
- Popular, related and suggestion queries
- Conditional stock reduction never goes negative
"""

import pytest

from shopcart.errors import InsufficientStockError, NotFoundError, ValidationError
from shopcart.services import catalog_service


def _names(result):
    return [item["name"] for item in result["items"]]


class TestSearch:

    def test_empty_search_lists_all_active(self, catalog):
        catalog_service.deactivate_product(catalog["desk"].id)
        result = catalog_service.search_products()
        assert result["pagination"]["total"] == 5
        assert "IKEA Desk" not in _names(result)

    def test_keyword_matches_name_description_and_category(self, catalog):
        assert _names(catalog_service.search_products("galaxy")) == ["Samsung Galaxy S24"]
        assert _names(catalog_service.search_products("laptop")) == ["MacBook Air M3"]
        assert len(catalog_service.search_products("electronics")["items"]) == 3

    def test_keyword_is_case_insensitive(self, catalog):
        assert _names(catalog_service.search_products("IPHONE")) == ["iPhone 15 Pro"]

    def test_wildcard_characters_match_literally(self, make_product):
        make_product("Plain Shirt", description="Basic tee")
        make_product("100% Cotton Tee", description="Soft")
        make_product("Cable_Tie Pack", description="Organizer")

        assert _names(catalog_service.search_products("%")) == ["100% Cotton Tee"]
        assert _names(catalog_service.search_products("_")) == ["Cable_Tie Pack"]
        assert [p.name for p in catalog_service.search_suggestions("0%")] == ["100% Cotton Tee"]

    def test_category_and_brand_filters_combine(self, catalog):
        result = catalog_service.search_products(category="Electronics", brand="Apple")
        assert _names(result) == ["MacBook Air M3", "iPhone 15 Pro"]

    def test_price_range_is_inclusive(self, catalog):
        result = catalog_service.search_products(min_price_cents=15900, max_price_cents=19900)
        assert sorted(_names(result)) == ["IKEA Desk", "Nike Air Max 270"]

    def test_inverted_price_range_rejected(self, catalog):
        with pytest.raises(ValidationError):
            catalog_service.search_products(min_price_cents=5000, max_price_cents=100)

    def test_sort_by_price_desc(self, catalog):
        result = catalog_service.search_products(sort_by="price", sort_dir="desc")
        assert _names(result)[0] == "MacBook Air M3"
        assert _names(result)[-1] == "Core Java"

    def test_unknown_sort_field_rejected(self, catalog):
        with pytest.raises(ValidationError):
            catalog_service.search_products(sort_by="password_hash")

    def test_pagination_metadata(self, catalog):
        result = catalog_service.list_products(page=2, per_page=4)
        assert result["count"] == 2
        assert result["pagination"] == {
            "page": 2,
            "per_page": 4,
            "total": 6,
            "total_pages": 2,
            "has_next": False,
            "has_prev": True,
        }

    def test_per_page_is_capped(self, app, catalog):
        result = catalog_service.list_products(per_page=10_000)
        assert result["pagination"]["per_page"] == app.config["MAX_PAGE_SIZE"]

    def test_by_category_brand_and_price_range(self, catalog):
        assert len(catalog_service.products_by_category("Electronics")["items"]) == 3
        assert _names(catalog_service.products_by_brand("Nike")) == ["Nike Air Max 270"]
        result = catalog_service.products_by_price_range(0, 20000)
        assert _names(result) == ["Core Java", "Nike Air Max 270", "IKEA Desk"]


class TestDiscovery:

    def test_popular_orders_by_rating_then_reviews(self, catalog):
        names = _names(catalog_service.popular_products())
        # MacBook and Core Java share 4.9; MacBook has more reviews
        assert names[:3] == ["MacBook Air M3", "Core Java", "iPhone 15 Pro"]

    def test_related_prefers_category_then_brand(self, catalog):
        related = catalog_service.related_products(catalog["iphone"].id)
        ids = [p.id for p in related]
        assert catalog["iphone"].id not in ids
        assert len(ids) == 4
        assert set(ids[:2]) == {catalog["macbook"].id, catalog["galaxy"].id}
        assert len(set(ids)) == len(ids)

    def test_related_respects_limit(self, catalog):
        assert len(catalog_service.related_products(catalog["nike"].id, limit=2)) == 2
        assert catalog_service.related_products(catalog["nike"].id, limit=0) == []

    def test_related_for_missing_product(self, db_session):
        with pytest.raises(NotFoundError):
            catalog_service.related_products(9999)

    def test_suggestions_need_two_characters(self, catalog):
        assert catalog_service.search_suggestions("a") == []
        assert catalog_service.search_suggestions("  ") == []
        names = [p.name for p in catalog_service.search_suggestions("ap")]
        assert "iPhone 15 Pro" in names

    def test_categories_and_brands_are_distinct_and_sorted(self, catalog):
        assert catalog_service.list_categories() == ["Books", "Clothing", "Electronics", "Home"]
        assert catalog_service.list_brands()[0] == "Apple"
        assert catalog_service.list_brands().count("Apple") == 1

    def test_low_stock(self, catalog):
        low = catalog_service.low_stock_products(threshold=10)
        assert [p.name for p in low] == ["IKEA Desk"]


class TestStock:

    def test_check_stock(self, catalog):
        assert catalog_service.check_stock(catalog["desk"].id, 3) is True
        assert catalog_service.check_stock(catalog["desk"].id, 4) is False
        assert catalog_service.check_stock(9999, 1) is False

    def test_reduce_stock_returns_new_level(self, db_session, catalog):
        assert catalog_service.reduce_stock(catalog["desk"].id, 2) == 1
        db_session.refresh(catalog["desk"])
        assert catalog["desk"].stock == 1

    def test_reduce_stock_rejects_overdraw_without_change(self, db_session, catalog):
        with pytest.raises(InsufficientStockError) as exc:
            catalog_service.reduce_stock(catalog["desk"].id, 4)
        assert exc.value.details["available"] == 3
        db_session.refresh(catalog["desk"])
        assert catalog["desk"].stock == 3

    def test_reduce_stock_to_exactly_zero(self, db_session, catalog):
        assert catalog_service.reduce_stock(catalog["desk"].id, 3) == 0
        with pytest.raises(InsufficientStockError):
            catalog_service.reduce_stock(catalog["desk"].id, 1)

    def test_reduce_stock_inactive_product(self, catalog):
        catalog_service.deactivate_product(catalog["book"].id)
        with pytest.raises(NotFoundError):
            catalog_service.reduce_stock(catalog["book"].id, 1)

    def test_reduce_stock_requires_positive_quantity(self, catalog):
        with pytest.raises(ValidationError):
            catalog_service.reduce_stock(catalog["desk"].id, 0)

    def test_add_stock(self, catalog):
        assert catalog_service.add_stock(catalog["desk"].id, 7) == 10
        with pytest.raises(NotFoundError):
            catalog_service.add_stock(9999, 1)


class TestProductAdmin:

    def test_create_product_defaults(self, db_session):
        product = catalog_service.create_product(patch={"name": "Widget", "price_cents": 250})
        assert product.id is not None
        assert product.stock == 0
        assert product.is_active is True
        assert product.to_dict()["price"] == "2.50"

    def test_create_product_requires_name_and_price(self, db_session):
        with pytest.raises(ValidationError):
            catalog_service.create_product(patch={"price_cents": 100})
        with pytest.raises(ValidationError):
            catalog_service.create_product(patch={"name": "No price"})

    def test_deactivate_hides_from_get(self, catalog):
        catalog_service.deactivate_product(catalog["nike"].id)
        with pytest.raises(NotFoundError):
            catalog_service.get_product(catalog["nike"].id, active_only=True)
        assert catalog_service.get_product(catalog["nike"].id).is_active is False
