# storefront/services/review_service.py
import json

from sqlalchemy.orm import Session

from storefront.data.models.review import ReviewModel
from storefront.data.models.user import UserModel
from storefront.domain.enums import OrderStatus
from storefront.domain.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from storefront.domain.schemas import ReviewCreate, ReviewOut, ReviewUpdate
from storefront.repos.order_repo import OrderRepo
from storefront.repos.review_repo import ReviewRepo
from storefront.services.cache_service import CacheService
from storefront.services.user_service import is_staff
from storefront.services.product_service import ProductService
from storefront.utils.pagination import pagination_meta
from storefront.utils.settings import REVIEWS_CACHE_TTL
from storefront.utils.timeutils import utcnow
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CACHE_PREFIX = "reviews"


class ReviewService:
    """
    Product reviews and the product rating derived from them.
    Only approved reviews count towards rating and reviews_count; every
    change that can affect approval recomputes both.
    """

    def __init__(self, db: Session, cache: CacheService):
        self.repo = ReviewRepo(db)
        self.orders = OrderRepo(db)
        self.products = ProductService(db, cache)
        self.cache = cache

    #query

    def list_for_product(self, product_id: int, page: int, limit: int) -> dict:
        key = f"{CACHE_PREFIX}:product:{product_id}:{json.dumps({'page': page, 'limit': limit})}"
        cached = self.cache.get_json(key)
        if cached is not None:
            return cached

        rows, total = self.repo.find(page=page, limit=limit, product_id=product_id, is_approved=True)
        result = {
            "data": [ReviewOut.model_validate(r).model_dump(mode="json") for r in rows],
            "meta": pagination_meta(page, limit, total),
        }
        self.cache.set_json(key, result, REVIEWS_CACHE_TTL)
        return result

    def list_all(self, page: int, limit: int, **filters):
        return self.repo.find(page=page, limit=limit, **filters)

    def get_by_id(self, review_id: int) -> ReviewModel:
        review = self.repo.get(review_id)
        if not review:
            raise NotFoundError("Review not found")
        return review

    #commands

    def create(self, product_id: int, user_id: int, payload: ReviewCreate) -> ReviewModel:
        self.products.get_by_id(product_id)

        order = self.orders.get_order(payload.order_id)
        if not order:
            raise NotFoundError("Order not found")
        if order.user_id != user_id:
            raise ForbiddenError("Order does not belong to the current user")
        if order.status != OrderStatus.DELIVERED:
            raise BadRequestError("Reviews can only be left for delivered orders")
        if not any(line["product_id"] == product_id for line in order.items):
            raise BadRequestError("Product not found in the given order")

        if self.repo.get_by_product_and_user(product_id, user_id):
            raise ConflictError("You have already reviewed this product")

        review = self.repo.save(
            ReviewModel(
                product_id=product_id,
                user_id=user_id,
                order_id=order.id,
                rating=payload.rating,
                title=payload.title,
                text=payload.text,
                is_approved=False,
            )
        )
        logger.info(f"Review {review.id} for product {product_id} awaits moderation")
        self._recalculate(product_id)
        return review

    def update(self, review_id: int, user_id: int, payload: ReviewUpdate) -> ReviewModel:
        review = self.get_by_id(review_id)
        if review.user_id != user_id:
            raise ForbiddenError("You cannot edit this review")

        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(review, field, value)
        # edited text has to be moderated again
        review.is_approved = False

        review = self.repo.save(review)
        self._recalculate(review.product_id)
        return review

    def delete(self, review_id: int, actor: UserModel) -> None:
        review = self.get_by_id(review_id)
        if review.user_id != actor.id and not is_staff(actor):
            raise ForbiddenError("You cannot delete this review")

        product_id = review.product_id
        self.repo.delete(review)
        logger.info(f"Review {review_id} deleted by user {actor.id}")
        self._recalculate(product_id)

    def approve(self, review_id: int) -> ReviewModel:
        return self._set_approval(review_id, True)

    def reject(self, review_id: int) -> ReviewModel:
        return self._set_approval(review_id, False)

    def reply(self, review_id: int, text: str) -> ReviewModel:
        review = self.get_by_id(review_id)
        review.admin_reply = text
        review.admin_reply_at = utcnow()
        review = self.repo.save(review)
        self.cache.invalidate(CACHE_PREFIX)
        return review

    def _set_approval(self, review_id: int, approved: bool) -> ReviewModel:
        review = self.get_by_id(review_id)
        review.is_approved = approved
        review = self.repo.save(review)
        logger.info(f"Review {review_id} {'approved' if approved else 'rejected'}")
        self._recalculate(review.product_id)
        return review

    def _recalculate(self, product_id: int) -> None:
        rating, count = self.repo.product_rating(product_id)
        self.products.update_rating(product_id, rating, count)
        self.cache.invalidate(CACHE_PREFIX)
        logger.info(f"Product {product_id} rating is now {rating} ({count} reviews)")
