# storefront/api/routers/promotions.py
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, require_staff
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.pricing import LineSnapshot
from storefront.domain.schemas import (
    PromotionCreate,
    PromotionOut,
    PromotionUpdate,
    PromotionValidation,
    ValidatePromoIn,
)
from storefront.services.promotion_service import PromotionService

router = APIRouter(prefix="/promotions", tags=["promotions"])


def get_service(db: Session = Depends(get_db)):
    return PromotionService(db)


@router.post("/validate", response_model=PromotionValidation)
def validate_promo(
    payload: ValidatePromoIn,
    user: UserModel | None = Depends(get_current_user),
    svc: PromotionService = Depends(get_service),
):
    items = [
        LineSnapshot(
            product_id=i.product_id,
            quantity=i.quantity,
            price=i.price,
            category_id=i.category_id,
        )
        for i in payload.items
    ]
    return svc.validate(payload.code, user.id if user else None, payload.cart_total, items)


@router.get("", response_model=List[PromotionOut], dependencies=[Depends(require_staff)])
def list_promotions(svc: PromotionService = Depends(get_service)):
    return svc.list_promotions()


@router.get("/{promotion_id}", response_model=PromotionOut, dependencies=[Depends(require_staff)])
def get_promotion(promotion_id: int, svc: PromotionService = Depends(get_service)):
    return svc.get_by_id(promotion_id)


@router.post("", response_model=PromotionOut, status_code=201, dependencies=[Depends(require_staff)])
def create_promotion(payload: PromotionCreate, svc: PromotionService = Depends(get_service)):
    return svc.create(payload)


@router.patch("/{promotion_id}", response_model=PromotionOut, dependencies=[Depends(require_staff)])
def update_promotion(
    promotion_id: int,
    payload: PromotionUpdate,
    svc: PromotionService = Depends(get_service),
):
    return svc.update(promotion_id, payload)


@router.delete("/{promotion_id}", status_code=204, dependencies=[Depends(require_staff)])
def delete_promotion(promotion_id: int, svc: PromotionService = Depends(get_service)):
    svc.delete(promotion_id)
    return Response(status_code=204)
