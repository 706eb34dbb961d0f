from decimal import Decimal

import pytest
from sqlalchemy import text

from storefront.domain.errors import (
    ConflictError,
    EmptyCartError,
    InsufficientStockError,
    InvalidPromoError,
    NotFoundError,
    QuantityCapExceededError,
)
from storefront.repos.cart_repo import CartRepo
from storefront.services.cart_service import CartService

SESSION = "guest-session-1"


@pytest.fixture()
def svc(db):
    return CartService(db)


class TestGetOrCreate:
    def test_guest_cart_is_created_lazily(self, svc, db):
        cart = svc.get_cart(None, SESSION)
        assert cart["items"] == []
        assert cart["user_id"] is None
        assert CartRepo(db).get_by_session(SESSION).id == cart["cart_id"]

    def test_one_cart_per_owner(self, svc, make_user):
        user = make_user()
        first = svc.get_cart(user.id, None)
        second = svc.get_cart(user.id, "ignored-session")
        assert first["cart_id"] == second["cart_id"]
        assert first["user_id"] == user.id

    def test_user_cart_lives_longer_than_guest_cart(self, svc, make_user):
        guest = svc.find_or_create(None, SESSION)
        user = svc.find_or_create(make_user().id, None)
        assert (user.expires_at - guest.expires_at).days >= 22


class TestAddItem:
    def test_add_new_line_uses_product_price(self, svc, make_product):
        product = make_product(price="250.00", variants=(("v1", 5),))
        cart = svc.add_item(None, SESSION, product.id, "v1", 2)

        assert len(cart["items"]) == 1
        line = cart["items"][0]
        assert line["price"] == Decimal("250.00")
        assert line["total"] == Decimal("500.00")
        assert line["in_stock"] is True
        assert line["max_quantity"] == 5
        assert cart["totals"]["subtotal"] == Decimal("500.00")
        assert cart["totals"]["items_count"] == 2

    def test_variant_price_overrides_product_price(self, svc, make_product):
        product = make_product(price="250.00", variants=(("big", 5, "300.00"),))
        cart = svc.add_item(None, SESSION, product.id, "big", 1)
        assert cart["items"][0]["price"] == Decimal("300.00")

    def test_same_variant_sums_quantities(self, svc, make_product):
        product = make_product(variants=(("v1", 8),))
        svc.add_item(None, SESSION, product.id, "v1", 3)
        cart = svc.add_item(None, SESSION, product.id, "v1", 4)
        assert len(cart["items"]) == 1
        assert cart["items"][0]["quantity"] == 7

    def test_unknown_product_or_variant(self, svc, make_product):
        product = make_product()
        with pytest.raises(NotFoundError):
            svc.add_item(None, SESSION, 9999, "v1", 1)
        with pytest.raises(NotFoundError):
            svc.add_item(None, SESSION, product.id, "nope", 1)

    def test_quantity_over_stock_fails_and_leaves_cart_unmodified(self, svc, make_product):
        product = make_product(variants=(("v1", 3),))
        svc.add_item(None, SESSION, product.id, "v1", 2)
        before = svc.get_cart(None, SESSION)

        with pytest.raises(InsufficientStockError):
            svc.add_item(None, SESSION, product.id, "v1", 4)
        with pytest.raises(InsufficientStockError):
            svc.add_item(None, SESSION, product.id, "v1", 2)

        after = svc.get_cart(None, SESSION)
        assert after["items"][0]["quantity"] == 2
        assert after["totals"] == before["totals"]

    def test_per_line_cap_of_ten(self, svc, make_product):
        product = make_product(variants=(("v1", 50),))
        svc.add_item(None, SESSION, product.id, "v1", 8)
        with pytest.raises(QuantityCapExceededError):
            svc.add_item(None, SESSION, product.id, "v1", 3)
        with pytest.raises(QuantityCapExceededError):
            svc.add_item(None, SESSION, product.id, "v1", 11)

    def test_each_mutation_bumps_version(self, svc, make_product):
        product = make_product()
        cart = svc.find_or_create(None, SESSION)
        assert cart.version == 1
        svc.add_item(None, SESSION, product.id, "v1", 1)
        svc.update_item(None, SESSION, "v1", 2)
        assert cart.version == 3


class TestUpdateAndRemove:
    def test_update_quantity(self, svc, make_product):
        product = make_product(variants=(("v1", 5),))
        svc.add_item(None, SESSION, product.id, "v1", 1)
        cart = svc.update_item(None, SESSION, "v1", 4)
        assert cart["items"][0]["quantity"] == 4

    def test_update_rechecks_stock(self, svc, make_product):
        product = make_product(variants=(("v1", 5),))
        svc.add_item(None, SESSION, product.id, "v1", 1)
        with pytest.raises(InsufficientStockError):
            svc.update_item(None, SESSION, "v1", 6)

    def test_update_of_vanished_variant_fails(self, svc, db, make_product):
        product = make_product(variants=(("v1", 5), ("v2", 5)))
        svc.add_item(None, SESSION, product.id, "v1", 1)
        product.variants.remove(product.find_variant("v1"))
        db.commit()

        with pytest.raises(NotFoundError):
            svc.update_item(None, SESSION, "v1", 9)

        cart = svc.find_or_create(None, SESSION)
        assert CartRepo(db).get_cart_item_by_variant(cart.id, "v1").quantity == 1

    def test_update_to_zero_removes_line(self, svc, make_product):
        product = make_product()
        svc.add_item(None, SESSION, product.id, "v1", 1)
        cart = svc.update_item(None, SESSION, "v1", 0)
        assert cart["items"] == []

    def test_remove_missing_line(self, svc):
        with pytest.raises(NotFoundError):
            svc.remove_item(None, SESSION, "v1")

    def test_clear_drops_lines_and_promo(self, svc, make_product, make_promotion):
        product = make_product()
        make_promotion("SAVE10")
        svc.add_item(None, SESSION, product.id, "v1", 1)
        svc.apply_promo(None, SESSION, "SAVE10")

        svc.clear(None, SESSION)

        cart = svc.get_cart(None, SESSION)
        assert cart["items"] == []
        assert cart["promo_code"] is None


class TestTotals:
    def test_deleted_product_lines_are_skipped(self, svc, db, make_product):
        kept = make_product(price="100.00")
        gone = make_product(price="900.00")
        svc.add_item(None, SESSION, kept.id, "v1", 1)
        svc.add_item(None, SESSION, gone.id, "v1", 1)

        db.delete(gone)
        db.commit()

        cart = svc.get_cart(None, SESSION)
        assert [line["product_id"] for line in cart["items"]] == [kept.id]
        assert cart["totals"]["subtotal"] == Decimal("100.00")

    def test_stale_line_reports_out_of_stock(self, svc, db, make_product):
        product = make_product(variants=(("v1", 5),))
        svc.add_item(None, SESSION, product.id, "v1", 4)
        product.variants[0].stock = 2
        db.commit()

        line = svc.get_cart(None, SESSION)["items"][0]
        assert line["in_stock"] is False
        assert line["max_quantity"] == 2

    def test_totals_identity_with_promo(self, svc, make_product, make_promotion):
        make_promotion("SAVE15", "percentage", "15")
        product = make_product(price="33.33", variants=(("v1", 10),))
        svc.add_item(None, SESSION, product.id, "v1", 3)
        totals = svc.apply_promo(None, SESSION, "SAVE15")["totals"]
        assert totals["total"] == totals["subtotal"] - totals["discount"]
        assert totals["discount"] >= 0
        assert totals["total"] >= 0


class TestPromo:
    def test_apply_stores_percentage_and_code(self, svc, make_product, make_promotion):
        make_promotion("SAVE10")
        product = make_product(price="500.00", variants=(("v1", 5),))
        svc.add_item(None, SESSION, product.id, "v1", 2)

        cart = svc.apply_promo(None, SESSION, "save10")

        assert cart["promo_code"] == "SAVE10"
        assert cart["promo_discount"] == Decimal("10")
        assert cart["totals"]["discount"] == Decimal("100.00")
        assert cart["totals"]["total"] == Decimal("900.00")

    def test_fixed_promo_is_stored_as_share_of_subtotal(self, svc, make_product, make_promotion):
        make_promotion("MINUS50", "fixed", "50")
        product = make_product(price="200.00")
        svc.add_item(None, SESSION, product.id, "v1", 1)
        cart = svc.apply_promo(None, SESSION, "MINUS50")
        assert cart["promo_discount"] == Decimal("25")
        assert cart["totals"]["discount"] == Decimal("50.00")

    def test_empty_cart_rejected(self, svc, make_promotion):
        make_promotion("SAVE10")
        with pytest.raises(EmptyCartError):
            svc.apply_promo(None, SESSION, "SAVE10")

    def test_invalid_code_carries_evaluator_message(self, svc, make_product):
        product = make_product()
        svc.add_item(None, SESSION, product.id, "v1", 1)
        with pytest.raises(InvalidPromoError, match="Promo code not found"):
            svc.apply_promo(None, SESSION, "NOPE")

    def test_remove_promo(self, svc, make_product, make_promotion):
        make_promotion("SAVE10")
        product = make_product()
        svc.add_item(None, SESSION, product.id, "v1", 1)
        svc.apply_promo(None, SESSION, "SAVE10")
        cart = svc.remove_promo(None, SESSION)
        assert cart["promo_code"] is None
        assert cart["totals"]["discount"] == Decimal("0.00")


class TestMerge:
    def test_max_quantity_wins_and_guest_cart_is_deleted(self, svc, db, make_user, make_product):
        user = make_user()
        product = make_product(variants=(("v1", 20),))
        svc.add_item(user.id, None, product.id, "v1", 2)
        svc.add_item(None, SESSION, product.id, "v1", 3)

        cart = svc.merge(user.id, SESSION)

        assert len(cart["items"]) == 1
        assert cart["items"][0]["quantity"] == 3
        assert CartRepo(db).get_by_session(SESSION) is None

    def test_missing_lines_are_appended(self, svc, make_user, make_product):
        user = make_user()
        mine = make_product()
        theirs = make_product()
        svc.add_item(user.id, None, mine.id, "v1", 1)
        svc.add_item(None, SESSION, theirs.id, "v1", 2)

        cart = svc.merge(user.id, SESSION)

        assert {(l["product_id"], l["quantity"]) for l in cart["items"]} == {(mine.id, 1), (theirs.id, 2)}

    def test_merged_quantity_is_capped(self, svc, db, make_user, make_product):
        user = make_user()
        product = make_product(variants=(("v1", 50),))
        svc.add_item(user.id, None, product.id, "v1", 4)
        svc.add_item(None, SESSION, product.id, "v1", 9)
        guest_line = CartRepo(db).get_cart_item(svc.find_or_create(None, SESSION).id, product.id, "v1")
        guest_line.quantity = 12
        db.commit()

        cart = svc.merge(user.id, SESSION)
        assert cart["items"][0]["quantity"] == 10

    def test_guest_cart_is_taken_over_when_user_has_none(self, svc, db, make_user, make_product):
        user = make_user()
        product = make_product()
        guest = svc.add_item(None, SESSION, product.id, "v1", 1)

        cart = svc.merge(user.id, SESSION)

        assert cart["cart_id"] == guest["cart_id"]
        assert cart["user_id"] == user.id
        assert CartRepo(db).get_by_session(SESSION) is None

    def test_without_guest_cart_returns_user_cart(self, svc, make_user):
        user = make_user()
        cart = svc.merge(user.id, "unknown-session")
        assert cart["user_id"] == user.id
        assert cart["items"] == []


class TestOptimisticLock:
    def test_stale_version_raises_conflict(self, svc, db, make_product):
        product = make_product()
        cart = svc.find_or_create(None, SESSION)
        # another request bumps the version behind this session's back
        db.execute(text("UPDATE carts SET version = version + 1 WHERE id = :id"), {"id": cart.id})
        db.commit()
        assert cart.version == 1

        with pytest.raises(ConflictError):
            svc.add_item(None, SESSION, product.id, "v1", 1)
