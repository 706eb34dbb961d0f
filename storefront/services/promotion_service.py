# storefront/services/promotion_service.py
from decimal import Decimal

from sqlalchemy.orm import Session

from storefront.data.models.promotion import PromotionModel
from storefront.domain.enums import PromotionType
from storefront.domain.errors import BadRequestError, ConflictError, NotFoundError
from storefront.domain.pricing import ZERO, LineSnapshot, applicable_lines, promotion_discount
from storefront.domain.schemas import PromotionCreate, PromotionUpdate, PromotionValidation
from storefront.repos.promotion_repo import PromotionRepo
from storefront.utils.timeutils import as_utc, utcnow
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _invalid(message: str) -> PromotionValidation:
    return PromotionValidation(valid=False, discount=ZERO, message=message)


class PromotionService:
    """
    Promotion evaluator.
    validate() is always evaluated against the current usage counters,
    apply_usage() is called only once an order has been stored.
    """

    def __init__(self, db: Session):
        self.repo = PromotionRepo(db)

    #query

    def list_promotions(self) -> list[PromotionModel]:
        return self.repo.list_all()

    def get_by_id(self, promotion_id: int) -> PromotionModel:
        promotion = self.repo.get(promotion_id)
        if not promotion:
            raise NotFoundError("Promotion not found")
        return promotion

    def validate(
        self,
        code: str,
        user_id: int | None,
        cart_total: Decimal,
        items: list[LineSnapshot],
    ) -> PromotionValidation:
        promotion = self.repo.get_by_code(code)
        if not promotion:
            return _invalid("Promo code not found")

        if not promotion.is_active:
            return _invalid("Promo code is not active")

        now = utcnow()
        if now < as_utc(promotion.start_date):
            return _invalid("Promo code is not active yet")
        if now > as_utc(promotion.end_date):
            return _invalid("Promo code has expired")

        if promotion.usage_limit and promotion.used_count >= promotion.usage_limit:
            return _invalid("Promo code usage limit reached")

        if user_id is not None and promotion.usage_limit_per_user:
            used = (promotion.user_usage or {}).get(str(user_id), 0)
            if used >= promotion.usage_limit_per_user:
                return _invalid("You have already used this promo code the maximum number of times")

        if promotion.min_order_amount and cart_total < promotion.min_order_amount:
            return _invalid(f"Minimum order amount for this promo code is {promotion.min_order_amount}")

        applicable = applicable_lines(
            items,
            product_ids=promotion.product_ids or [],
            category_ids=promotion.category_ids or [],
            exclude_product_ids=promotion.exclude_product_ids or [],
        )
        if not applicable:
            return _invalid("Promo code does not apply to any item in the cart")

        discount = promotion_discount(
            promotion.type,
            Decimal(promotion.value),
            Decimal(promotion.max_discount) if promotion.max_discount is not None else None,
            applicable,
        )
        return PromotionValidation(valid=True, discount=discount, type=PromotionType(promotion.type))

    #commands

    def apply_usage(self, code: str, user_id: int | None = None) -> None:
        promotion = self.repo.get_by_code(code)
        if not promotion:
            raise NotFoundError("Promotion not found")

        self.repo.increment_usage(promotion, user_id)
        logger.info(f"Promo {promotion.code} used ({promotion.used_count} total)")

    def create(self, payload: PromotionCreate) -> PromotionModel:
        code = payload.code.strip().upper()
        if self.repo.get_by_code(code):
            raise ConflictError(f'Promo code "{code}" already exists')
        self._check_value(payload.type, payload.value)
        self._check_window(payload.start_date, payload.end_date)

        promotion = PromotionModel(
            **payload.model_dump(exclude={"code", "type"}),
            code=code,
            type=payload.type.value,
            used_count=0,
            user_usage={},
        )
        promotion = self.repo.save(promotion)
        logger.info(f"Created promotion {promotion.code}")
        return promotion

    def update(self, promotion_id: int, payload: PromotionUpdate) -> PromotionModel:
        promotion = self.get_by_id(promotion_id)
        data = payload.model_dump(exclude_unset=True)

        if data.get("code"):
            data["code"] = data["code"].strip().upper()
            existing = self.repo.get_by_code(data["code"])
            if existing and existing.id != promotion.id:
                raise ConflictError(f'Promo code "{data["code"]}" already exists')
        if data.get("type") is not None:
            data["type"] = data["type"].value

        self._check_value(data.get("type") or promotion.type, data.get("value", promotion.value))
        self._check_window(data.get("start_date", promotion.start_date), data.get("end_date", promotion.end_date))

        for field, value in data.items():
            setattr(promotion, field, value)
        return self.repo.save(promotion)

    def delete(self, promotion_id: int) -> None:
        promotion = self.get_by_id(promotion_id)
        self.repo.delete(promotion)

    @staticmethod
    def _check_value(promo_type: str, value) -> None:
        if promo_type == PromotionType.PERCENTAGE and Decimal(value) > 100:
            raise BadRequestError("Percentage discount cannot exceed 100")

    @staticmethod
    def _check_window(start, end) -> None:
        if start and end and as_utc(end) <= as_utc(start):
            raise BadRequestError("end_date must be after start_date")
