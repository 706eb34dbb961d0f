# storefront/api/routers/reviews.py
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from storefront.api.deps import Pagination, get_cache, require_staff, require_user
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.schemas import Page, ReviewOut, ReviewReplyIn, ReviewUpdate
from storefront.services.cache_service import CacheService
from storefront.services.review_service import ReviewService
from storefront.utils.pagination import pagination_meta

router = APIRouter(prefix="/reviews", tags=["reviews"])


def get_service(db: Session = Depends(get_db), cache: CacheService = Depends(get_cache)):
    return ReviewService(db, cache)


@router.get("", response_model=Page[ReviewOut], dependencies=[Depends(require_staff)])
def list_reviews(
    pagination: Pagination = Depends(),
    product_id: int | None = None,
    user_id: int | None = None,
    is_approved: bool | None = None,
    svc: ReviewService = Depends(get_service),
):
    rows, total = svc.list_all(
        pagination.page,
        pagination.limit,
        product_id=product_id,
        user_id=user_id,
        is_approved=is_approved,
    )
    return {"data": rows, "meta": pagination_meta(pagination.page, pagination.limit, total)}


@router.patch("/{review_id}", response_model=ReviewOut)
def update_review(
    review_id: int,
    payload: ReviewUpdate,
    user: UserModel = Depends(require_user),
    svc: ReviewService = Depends(get_service),
):
    return svc.update(review_id, user.id, payload)


@router.delete("/{review_id}", status_code=204)
def delete_review(
    review_id: int,
    user: UserModel = Depends(require_user),
    svc: ReviewService = Depends(get_service),
):
    svc.delete(review_id, user)
    return Response(status_code=204)


@router.post("/{review_id}/approve", response_model=ReviewOut, dependencies=[Depends(require_staff)])
def approve_review(review_id: int, svc: ReviewService = Depends(get_service)):
    return svc.approve(review_id)


@router.post("/{review_id}/reject", response_model=ReviewOut, dependencies=[Depends(require_staff)])
def reject_review(review_id: int, svc: ReviewService = Depends(get_service)):
    return svc.reject(review_id)


@router.post("/{review_id}/reply", response_model=ReviewOut, dependencies=[Depends(require_staff)])
def reply_to_review(
    review_id: int,
    payload: ReviewReplyIn,
    svc: ReviewService = Depends(get_service),
):
    return svc.reply(review_id, payload.text)
