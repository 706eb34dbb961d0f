from decimal import Decimal

import pytest

from storefront.domain.enums import OrderStatus
from storefront.domain.errors import (
    BadRequestError,
    EmptyCartError,
    ForbiddenError,
    InsufficientStockError,
    InvalidTransitionError,
)
from storefront.domain.schemas import OrderAdminUpdate, OrderCreate
from storefront.repos.cart_repo import CartRepo
from storefront.services.cart_service import CartService
from storefront.services.order_service import OrderService


@pytest.fixture()
def svc(db, cache, notifier):
    return OrderService(db, cache, notifier)


@pytest.fixture()
def carts(db):
    return CartService(db)


def stock_of(db, product, variant_id="v1"):
    db.expire_all()
    return product.find_variant(variant_id).stock


def checkout(address, **overrides):
    data = {"shipping_address": address, "shipping_method": "courier", "payment_method": "card"}
    data.update(overrides)
    return OrderCreate(**data)


class TestCreate:
    def test_decrements_stock_and_empties_cart(self, svc, db, carts, make_user, make_product, address):
        user = make_user()
        first = make_product(price="100.00", variants=(("v1", 5),))
        second = make_product(price="50.00", variants=(("v1", 5),))
        carts.add_item(user.id, None, first.id, "v1", 2)
        carts.add_item(user.id, None, second.id, "v1", 1)

        order = svc.create(user.id, checkout(address))

        assert stock_of(db, first) == 3
        assert stock_of(db, second) == 4
        assert carts.get_cart(user.id, None)["items"] == []
        assert order.subtotal == Decimal("250.00")
        assert order.shipping == Decimal("500.00")
        assert order.total == Decimal("750.00")
        assert order.status == "pending"

    def test_snapshot_lines_and_history(self, svc, carts, make_user, make_product, address):
        user = make_user()
        product = make_product(price="100.00", name="Linen Shirt")
        carts.add_item(user.id, None, product.id, "v1", 2)

        order = svc.create(user.id, checkout(address))

        assert order.order_number.startswith("SP-")
        assert order.order_number.endswith("-000001")
        assert order.items == [
            {
                "product_id": product.id,
                "variant_id": "v1",
                "name": "Linen Shirt",
                "sku": product.variants[0].sku,
                "image": "",
                "size": "M",
                "color": "Black",
                "price": "100.00",
                "quantity": 2,
                "total": "200.00",
            }
        ]
        assert len(order.history) == 1
        assert order.history[0]["status"] == "pending"
        assert order.history[0]["comment"] == "Order created"
        assert order.shipping_address["is_default"] is False
        assert order.shipping_address["id"].startswith("addr-")

    def test_order_numbers_are_sequential(self, svc, carts, make_user, make_product, address):
        user = make_user()
        product = make_product(variants=(("v1", 10),))
        numbers = []
        for _ in range(2):
            carts.add_item(user.id, None, product.id, "v1", 1)
            numbers.append(svc.create(user.id, checkout(address)).order_number)
        assert numbers[1][-6:] == "000002"

    def test_confirmation_and_stats_are_enqueued(self, svc, notifier, carts, make_user, make_product, address):
        user = make_user()
        product = make_product()
        carts.add_item(user.id, None, product.id, "v1", 1)

        order = svc.create(user.id, checkout(address))

        assert notifier.confirmations == [order.id]
        assert len(notifier.stats_days) == 1

    def test_empty_cart(self, svc, make_user, address):
        with pytest.raises(EmptyCartError):
            svc.create(make_user().id, checkout(address))

    def test_stale_cart_is_caught_at_checkout(self, svc, db, carts, make_user, make_product, address):
        user = make_user()
        product = make_product(variants=(("v1", 5),))
        carts.add_item(user.id, None, product.id, "v1", 4)
        product.variants[0].stock = 1
        db.commit()

        with pytest.raises(InsufficientStockError):
            svc.create(user.id, checkout(address))
        assert len(carts.get_cart(user.id, None)["items"]) == 1

    def test_vanished_variant_fails(self, svc, db, carts, make_user, make_product, address):
        user = make_user()
        product = make_product(variants=(("v1", 5), ("v2", 5)))
        carts.add_item(user.id, None, product.id, "v1", 1)
        product.variants.remove(product.find_variant("v1"))
        db.commit()

        with pytest.raises(BadRequestError):
            svc.create(user.id, checkout(address))

    def test_saved_address_is_copied(self, svc, carts, make_user, make_product, address):
        saved = {"id": "addr-home", "title": "Home", "is_default": True, **address}
        user = make_user(addresses=[saved])
        product = make_product()
        carts.add_item(user.id, None, product.id, "v1", 1)

        order = svc.create(
            user.id,
            OrderCreate(shipping_address_id="addr-home", shipping_method="pickup", payment_method="cash"),
        )

        assert order.shipping_address == saved
        assert order.shipping == Decimal("0.00")

    def test_address_rules(self, svc, carts, make_user, make_product, address):
        user = make_user()
        product = make_product()
        carts.add_item(user.id, None, product.id, "v1", 1)

        with pytest.raises(BadRequestError):
            svc.create(user.id, OrderCreate(shipping_method="post", payment_method="card"))
        with pytest.raises(BadRequestError):
            svc.create(user.id, checkout(address, shipping_address_id="addr-x"))
        with pytest.raises(BadRequestError):
            svc.create(
                user.id,
                OrderCreate(shipping_address_id="addr-missing", shipping_method="post", payment_method="card"),
            )


class TestCreateWithPromo:
    def test_valid_promo_is_applied_and_counted(self, svc, carts, make_user, make_product, make_promotion, address):
        user = make_user()
        promotion = make_promotion("SAVE10", usage_limit_per_user=1)
        product = make_product(price="1000.00")
        carts.add_item(user.id, None, product.id, "v1", 1)

        order = svc.create(user.id, checkout(address, shipping_method="post", promo_code="save10"))

        assert order.promo_code == "SAVE10"
        assert order.discount == Decimal("100.00")
        assert order.total == Decimal("1200.00")
        assert promotion.used_count == 1
        assert promotion.user_usage == {str(user.id): 1}

    def test_invalid_promo_is_ignored(self, svc, carts, make_user, make_product, address):
        user = make_user()
        product = make_product(price="1000.00")
        carts.add_item(user.id, None, product.id, "v1", 1)

        order = svc.create(user.id, checkout(address, promo_code="NOPE"))

        assert order.promo_code is None
        assert order.discount == Decimal("0.00")
        assert order.total == Decimal("1500.00")

    def test_free_shipping_zeroes_shipping(self, svc, carts, make_user, make_product, make_promotion, address):
        user = make_user()
        make_promotion("FREESHIP", "free_shipping", "0")
        product = make_product(price="1000.00")
        carts.add_item(user.id, None, product.id, "v1", 1)

        order = svc.create(user.id, checkout(address, promo_code="FREESHIP"))

        assert order.shipping == Decimal("0.00")
        assert order.discount == Decimal("0.00")
        assert order.total == Decimal("1000.00")


@pytest.fixture()
def placed_order(svc, carts, make_user, make_product, address):
    def _place(quantity=2, stock=5):
        user = make_user()
        product = make_product(variants=(("v1", stock),))
        carts.add_item(user.id, None, product.id, "v1", quantity)
        return svc.create(user.id, checkout(address)), user, product

    return _place


class TestStatusMachine:
    def test_pending_cannot_jump_to_processing(self, svc, make_user, placed_order):
        order, _, _ = placed_order()
        admin = make_user(role="admin")
        with pytest.raises(InvalidTransitionError):
            svc.update_status(order.id, OrderStatus.PROCESSING, admin)

    def test_confirmed_to_processing_appends_history(self, svc, notifier, make_user, placed_order):
        order, _, _ = placed_order()
        admin = make_user(role="admin")
        svc.update_status(order.id, OrderStatus.CONFIRMED, admin)

        order = svc.update_status(order.id, OrderStatus.PROCESSING, admin, "packing")

        assert order.status == "processing"
        assert [h["status"] for h in order.history] == ["pending", "confirmed", "processing"]
        assert order.history[-1]["comment"] == "packing"
        assert order.history[-1]["created_by"] == admin.id
        assert notifier.status_updates[-1] == (order.id, "packing")

    def test_status_cancelled_goes_through_cancellation(self, svc, db, make_user, placed_order):
        order, _, product = placed_order(quantity=2, stock=5)
        manager = make_user(role="manager")

        order = svc.update_status(order.id, OrderStatus.CANCELLED, manager, "out of stock")

        assert order.status == "cancelled"
        assert stock_of(db, product) == 5

    def test_admin_note_and_payment_status(self, svc, make_user, placed_order):
        order, _, _ = placed_order()
        admin = make_user(role="admin")
        order = svc.update_admin(order.id, OrderAdminUpdate(admin_note="call first", payment_status="paid"), admin)
        assert order.admin_note == "call first"
        assert order.payment_status == "paid"


class TestCancel:
    def test_owner_cancels_pending_order_and_stock_is_restored(self, svc, db, placed_order):
        order, owner, product = placed_order(quantity=2, stock=5)
        assert stock_of(db, product) == 3

        order = svc.cancel(order.id, owner, "changed my mind")

        assert stock_of(db, product) == 5
        assert order.status == "cancelled"
        assert order.history[-1]["status"] == "cancelled"
        assert order.history[-1]["comment"] == "changed my mind"
        assert order.history[-1]["created_by"] == owner.id

    def test_owner_cannot_cancel_delivered_order(self, svc, make_user, placed_order):
        order, owner, _ = placed_order()
        admin = make_user(role="admin")
        for status in (OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED):
            svc.update_status(order.id, status, admin)

        with pytest.raises(BadRequestError):
            svc.cancel(order.id, owner)

    def test_owner_cannot_cancel_processing_order(self, svc, make_user, placed_order):
        order, owner, _ = placed_order()
        admin = make_user(role="admin")
        svc.update_status(order.id, OrderStatus.CONFIRMED, admin)
        svc.update_status(order.id, OrderStatus.PROCESSING, admin)
        with pytest.raises(BadRequestError):
            svc.cancel(order.id, owner)

    def test_admin_cancels_shipped_order(self, svc, db, make_user, placed_order):
        order, _, product = placed_order(quantity=1, stock=5)
        admin = make_user(role="admin")
        for status in (OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED):
            svc.update_status(order.id, status, admin)

        order = svc.cancel(order.id, admin)

        assert order.status == "cancelled"
        assert stock_of(db, product) == 5

    def test_cancelling_twice_fails(self, svc, make_user, placed_order):
        order, owner, _ = placed_order()
        svc.cancel(order.id, owner)
        with pytest.raises(BadRequestError):
            svc.cancel(order.id, owner)
        with pytest.raises(BadRequestError):
            svc.cancel(order.id, make_user(role="admin"))

    def test_stranger_cannot_cancel(self, svc, make_user, placed_order):
        order, _, _ = placed_order()
        with pytest.raises(ForbiddenError):
            svc.cancel(order.id, make_user())

    def test_vanished_product_is_skipped_on_restore(self, svc, db, placed_order):
        order, owner, product = placed_order()
        db.delete(product)
        db.commit()

        order = svc.cancel(order.id, owner)
        assert order.status == "cancelled"

    def test_round_trip_restores_exact_stock(self, svc, db, carts, make_user, make_product, address):
        user = make_user()
        product = make_product(variants=(("v1", 7), ("v2", 3)))
        carts.add_item(user.id, None, product.id, "v1", 4)
        carts.add_item(user.id, None, product.id, "v2", 3)

        order = svc.create(user.id, checkout(address))
        assert (stock_of(db, product, "v1"), stock_of(db, product, "v2")) == (3, 0)

        svc.cancel(order.id, user)
        assert (stock_of(db, product, "v1"), stock_of(db, product, "v2")) == (7, 3)


class TestQueries:
    def test_customer_sees_only_own_orders(self, svc, make_user, placed_order):
        mine, me, _ = placed_order()
        placed_order()

        rows, total = svc.list_orders(me, page=1, limit=20)
        assert total == 1
        assert rows[0].id == mine.id

        rows, total = svc.list_orders(make_user(role="admin"), page=1, limit=20)
        assert total == 2

    def test_foreign_order_is_forbidden(self, svc, make_user, placed_order):
        order, _, _ = placed_order()
        with pytest.raises(ForbiddenError):
            svc.get_order(order.id, make_user())
        assert svc.get_by_number(order.order_number, make_user(role="manager")).id == order.id

    def test_cart_row_survives_checkout(self, svc, db, placed_order):
        _, owner, _ = placed_order()
        assert CartRepo(db).get_by_user(owner.id) is not None
