# storefront/repos/review_repo.py
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.data.models.review import ReviewModel
from storefront.utils.pagination import paginate


class ReviewRepo:
    def __init__(self, db: Session):
        self.db = db

    def get(self, review_id: int) -> ReviewModel | None:
        return self.db.get(ReviewModel, review_id)

    def get_by_product_and_user(self, product_id: int, user_id: int) -> ReviewModel | None:
        return (
            self.db.query(ReviewModel)
            .filter(ReviewModel.product_id == product_id, ReviewModel.user_id == user_id)
            .one_or_none()
        )

    def find(
        self,
        page: int,
        limit: int,
        product_id: int | None = None,
        user_id: int | None = None,
        is_approved: bool | None = None,
        rating: int | None = None,
    ) -> tuple[list[ReviewModel], int]:
        query = self.db.query(ReviewModel)
        if product_id is not None:
            query = query.filter(ReviewModel.product_id == product_id)
        if user_id is not None:
            query = query.filter(ReviewModel.user_id == user_id)
        if is_approved is not None:
            query = query.filter(ReviewModel.is_approved == is_approved)
        if rating is not None:
            query = query.filter(ReviewModel.rating == rating)
        query = query.order_by(ReviewModel.created_at.desc(), ReviewModel.id.desc())
        return paginate(query, page, limit)

    def save(self, review: ReviewModel) -> ReviewModel:
        self.db.add(review)
        self.db.commit()
        self.db.refresh(review)
        return review

    def delete(self, review: ReviewModel) -> None:
        self.db.delete(review)
        self.db.commit()

    def product_rating(self, product_id: int) -> tuple[Decimal, int]:
        """Mean of approved ratings rounded to one decimal, and their count."""
        total, count = (
            self.db.query(func.coalesce(func.sum(ReviewModel.rating), 0), func.count(ReviewModel.id))
            .filter(ReviewModel.product_id == product_id, ReviewModel.is_approved.is_(True))
            .one()
        )
        if not count:
            return Decimal("0.0"), 0
        rating = (Decimal(total) / Decimal(count)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        return rating, count
