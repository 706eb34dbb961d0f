from datetime import timedelta
from decimal import Decimal

import pytest

from storefront.domain.enums import PromotionType
from storefront.domain.errors import BadRequestError, ConflictError
from storefront.domain.pricing import LineSnapshot
from storefront.domain.schemas import PromotionCreate, PromotionUpdate
from storefront.services.promotion_service import PromotionService
from storefront.utils.timeutils import utcnow


def cart(*lines):
    return [
        LineSnapshot(product_id=pid, quantity=qty, price=Decimal(price), category_id=cat)
        for pid, qty, price, cat in lines
    ]


@pytest.fixture()
def svc(db):
    return PromotionService(db)


class TestValidate:
    def test_percentage_on_subtotal_1000(self, svc, make_promotion):
        make_promotion("SAVE10", "percentage", "10")
        result = svc.validate("SAVE10", None, Decimal("1000"), cart((1, 1, "1000", None)))
        assert result.valid
        assert result.discount == Decimal("100.00")

    def test_percentage_capped_by_max_discount(self, svc, make_promotion):
        make_promotion("SAVE10", "percentage", "10", max_discount=Decimal("50"))
        result = svc.validate("SAVE10", None, Decimal("1000"), cart((1, 1, "1000", None)))
        assert result.valid
        assert result.discount == Decimal("50.00")

    def test_code_lookup_is_case_insensitive(self, svc, make_promotion):
        make_promotion("SAVE10")
        assert svc.validate(" save10 ", None, Decimal("100"), cart((1, 1, "100", None))).valid

    def test_unknown_code(self, svc):
        result = svc.validate("NOPE", None, Decimal("100"), cart((1, 1, "100", None)))
        assert not result.valid
        assert result.discount == Decimal("0")
        assert result.message == "Promo code not found"

    def test_inactive(self, svc, make_promotion):
        make_promotion("OFF", is_active=False)
        assert svc.validate("OFF", None, Decimal("100"), cart((1, 1, "100", None))).message == "Promo code is not active"

    def test_not_started_and_expired(self, svc, make_promotion):
        now = utcnow()
        make_promotion("LATER", start_date=now + timedelta(days=1), end_date=now + timedelta(days=2))
        make_promotion("OLD", start_date=now - timedelta(days=5), end_date=now - timedelta(days=1))
        items = cart((1, 1, "100", None))
        assert svc.validate("LATER", None, Decimal("100"), items).message == "Promo code is not active yet"
        assert svc.validate("OLD", None, Decimal("100"), items).message == "Promo code has expired"

    def test_global_usage_limit(self, svc, make_promotion):
        make_promotion("ONCE", usage_limit=1, used_count=1)
        result = svc.validate("ONCE", None, Decimal("100"), cart((1, 1, "100", None)))
        assert result.message == "Promo code usage limit reached"

    def test_min_order_amount(self, svc, make_promotion):
        make_promotion("BIG", min_order_amount=Decimal("3000"))
        result = svc.validate("BIG", None, Decimal("2999.99"), cart((1, 1, "2999.99", None)))
        assert not result.valid
        assert "3000" in result.message

    def test_checks_short_circuit_in_order(self, svc, make_promotion):
        # inactive wins over expired and min amount
        now = utcnow()
        make_promotion(
            "MANY",
            is_active=False,
            start_date=now - timedelta(days=5),
            end_date=now - timedelta(days=1),
            min_order_amount=Decimal("5000"),
        )
        result = svc.validate("MANY", None, Decimal("10"), cart((1, 1, "10", None)))
        assert result.message == "Promo code is not active"

    def test_no_applicable_line(self, svc, make_promotion):
        make_promotion("SHOES", category_ids=[99])
        result = svc.validate("SHOES", None, Decimal("100"), cart((1, 1, "100", 7)))
        assert not result.valid
        assert result.message == "Promo code does not apply to any item in the cart"

    def test_discount_only_on_applicable_lines(self, svc, make_promotion):
        make_promotion("HALF", "percentage", "50", exclude_product_ids=[2])
        items = cart((1, 1, "100", None), (2, 1, "900", None))
        assert svc.validate("HALF", None, Decimal("1000"), items).discount == Decimal("50.00")

    def test_free_shipping_is_valid_without_money_discount(self, svc, make_promotion):
        make_promotion("FREESHIP", "free_shipping", "0")
        result = svc.validate("FREESHIP", None, Decimal("100"), cart((1, 1, "100", None)))
        assert result.valid
        assert result.discount == Decimal("0.00")
        assert result.type == PromotionType.FREE_SHIPPING


class TestUsage:
    def test_per_user_limit_after_apply_usage(self, svc, make_promotion, make_user):
        user = make_user()
        promotion = make_promotion("ONEPERUSER", usage_limit_per_user=1)
        items = cart((1, 1, "100", None))

        assert svc.validate("ONEPERUSER", user.id, Decimal("100"), items).valid

        svc.apply_usage("ONEPERUSER", user.id)

        result = svc.validate("ONEPERUSER", user.id, Decimal("100"), items)
        assert not result.valid
        assert promotion.used_count == 1
        assert promotion.user_usage == {str(user.id): 1}

    def test_per_user_limit_ignored_for_anonymous(self, svc, make_promotion):
        make_promotion("ONEPERUSER", usage_limit_per_user=1, user_usage={"1": 1})
        assert svc.validate("ONEPERUSER", None, Decimal("100"), cart((1, 1, "100", None))).valid

    def test_counters_only_increase(self, svc, make_promotion, make_user):
        user = make_user()
        promotion = make_promotion("MULTI")
        svc.apply_usage("multi", user.id)
        svc.apply_usage("MULTI", None)
        assert promotion.used_count == 2
        assert promotion.user_usage == {str(user.id): 1}


class TestCrud:
    def payload(self, **overrides):
        now = utcnow()
        data = {
            "code": "new10",
            "name": "New",
            "type": "percentage",
            "value": "10",
            "start_date": now,
            "end_date": now + timedelta(days=10),
        }
        data.update(overrides)
        return PromotionCreate(**data)

    def test_create_stores_upper_case_code(self, svc):
        promotion = svc.create(self.payload())
        assert promotion.code == "NEW10"
        assert promotion.used_count == 0

    def test_duplicate_code_conflicts(self, svc):
        svc.create(self.payload())
        with pytest.raises(ConflictError):
            svc.create(self.payload(code="NEW10"))

    def test_percentage_over_100_rejected(self, svc):
        with pytest.raises(BadRequestError):
            svc.create(self.payload(value="150"))

    def test_end_before_start_rejected(self, svc):
        now = utcnow()
        with pytest.raises(BadRequestError):
            svc.create(self.payload(start_date=now, end_date=now - timedelta(days=1)))

    def test_update(self, svc):
        promotion = svc.create(self.payload())
        updated = svc.update(promotion.id, PromotionUpdate(value=Decimal("20"), is_active=False))
        assert updated.value == Decimal("20")
        assert updated.is_active is False
