"""
Cart service tests.

Verifies:
- One active cart per user, created lazily
- Adding the same product merges quantities and re-checks stock
- Items in another user's cart are reported as not found
- Totals use live product prices
"""

import pytest

from shopcart.errors import InsufficientStockError, NotFoundError, ValidationError
from shopcart.models import Cart, CartItem
from shopcart.services import cart_service


class TestCartLifecycle:

    def test_cart_created_once(self, db_session, customer):
        first = cart_service.get_or_create_cart(customer.id)
        second = cart_service.get_or_create_cart(customer.id)
        assert first.id == second.id
        assert db_session.query(Cart).filter_by(user_id=customer.id).count() == 1

    def test_new_user_has_empty_cart(self, customer):
        cart = cart_service.get_cart(customer.id)
        assert cart["is_empty"] is True
        assert cart["total_cents"] == 0
        assert cart["total_amount"] == "0.00"
        assert cart_service.get_cart_count(customer.id) == 0


class TestAddToCart:

    def test_add_creates_line(self, customer, catalog):
        item = cart_service.add_to_cart(customer.id, catalog["nike"].id, 2)
        assert item.quantity == 2
        assert item.unit_price_cents == 15900
        assert cart_service.get_cart_count(customer.id) == 2

    def test_add_same_product_merges(self, db_session, customer, catalog):
        cart_service.add_to_cart(customer.id, catalog["nike"].id, 2)
        item = cart_service.add_to_cart(customer.id, catalog["nike"].id, 3)
        assert item.quantity == 5
        assert db_session.query(CartItem).count() == 1

    def test_merge_rechecks_combined_quantity(self, customer, catalog):
        cart_service.add_to_cart(customer.id, catalog["desk"].id, 2)
        with pytest.raises(InsufficientStockError) as exc:
            cart_service.add_to_cart(customer.id, catalog["desk"].id, 2)
        assert exc.value.details["in_cart"] == 2
        assert exc.value.details["available"] == 3
        assert cart_service.get_cart_count(customer.id) == 2

    def test_add_more_than_stock(self, customer, catalog):
        with pytest.raises(InsufficientStockError):
            cart_service.add_to_cart(customer.id, catalog["desk"].id, 4)
        assert cart_service.get_cart(customer.id)["is_empty"] is True

    @pytest.mark.parametrize("quantity", [0, -1, True, "2"])
    def test_add_rejects_bad_quantity(self, customer, catalog, quantity):
        with pytest.raises(ValidationError):
            cart_service.add_to_cart(customer.id, catalog["nike"].id, quantity)

    def test_add_missing_product(self, customer):
        with pytest.raises(NotFoundError):
            cart_service.add_to_cart(customer.id, 9999, 1)

    def test_add_inactive_product(self, db_session, customer, catalog):
        catalog["book"].is_active = False
        db_session.commit()
        with pytest.raises(NotFoundError):
            cart_service.add_to_cart(customer.id, catalog["book"].id, 1)


class TestUpdateAndRemove:

    def test_update_sets_quantity(self, customer, catalog):
        item = cart_service.add_to_cart(customer.id, catalog["nike"].id, 1)
        updated = cart_service.update_cart_item(customer.id, item.id, 4)
        assert updated.quantity == 4

    def test_update_to_zero_removes(self, db_session, customer, catalog):
        item = cart_service.add_to_cart(customer.id, catalog["nike"].id, 1)
        assert cart_service.update_cart_item(customer.id, item.id, 0) is None
        assert db_session.query(CartItem).count() == 0

    def test_update_beyond_stock(self, customer, catalog):
        item = cart_service.add_to_cart(customer.id, catalog["desk"].id, 1)
        with pytest.raises(InsufficientStockError):
            cart_service.update_cart_item(customer.id, item.id, 10)

    def test_other_users_item_not_found(self, customer, other_customer, catalog):
        item = cart_service.add_to_cart(customer.id, catalog["nike"].id, 1)
        with pytest.raises(NotFoundError):
            cart_service.update_cart_item(other_customer.id, item.id, 2)
        with pytest.raises(NotFoundError):
            cart_service.remove_from_cart(other_customer.id, item.id)
        assert cart_service.get_cart_count(customer.id) == 1

    def test_remove_and_clear(self, customer, catalog):
        first = cart_service.add_to_cart(customer.id, catalog["nike"].id, 1)
        cart_service.add_to_cart(customer.id, catalog["book"].id, 2)

        cart_service.remove_from_cart(customer.id, first.id)
        assert cart_service.get_cart_count(customer.id) == 2

        assert cart_service.clear_cart(customer.id) == 1
        assert cart_service.get_cart(customer.id)["is_empty"] is True

    def test_clear_without_cart(self, customer):
        assert cart_service.clear_cart(customer.id) == 0


class TestTotalsAndStock:

    def test_total_uses_live_price(self, db_session, customer, catalog):
        cart_service.add_to_cart(customer.id, catalog["book"].id, 2)
        catalog["book"].price_cents = 10000
        db_session.commit()

        cart = cart_service.get_cart(customer.id)
        assert cart["total_cents"] == 20000
        assert cart["total_amount"] == "200.00"
        assert cart["items"][0]["unit_price_cents"] == 8900

    def test_total_quantity(self, customer, catalog):
        cart_service.add_to_cart(customer.id, catalog["book"].id, 2)
        cart_service.add_to_cart(customer.id, catalog["nike"].id, 1)
        cart = cart_service.get_cart(customer.id)
        assert cart["total_quantity"] == 3
        assert cart["total_cents"] == 2 * 8900 + 15900

    def test_validate_cart_stock_reports_shortages(self, db_session, customer, catalog):
        cart_service.add_to_cart(customer.id, catalog["desk"].id, 3)
        cart_service.add_to_cart(customer.id, catalog["nike"].id, 1)
        assert cart_service.validate_cart_stock(customer.id) == []

        catalog["desk"].stock = 1
        db_session.commit()

        shortages = cart_service.validate_cart_stock(customer.id)
        assert len(shortages) == 1
        assert shortages[0]["product_id"] == catalog["desk"].id
        assert shortages[0]["requested_quantity"] == 3
        assert shortages[0]["available"] == 1
