# storefront/api/routers/wishlist.py
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from storefront.api.deps import require_user
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.schemas import MoveToCartIn, WishlistOut
from storefront.services.wishlist_service import WishlistService

router = APIRouter(prefix="/wishlist", tags=["wishlist"])


def get_service(db: Session = Depends(get_db)):
    return WishlistService(db)


@router.get("", response_model=WishlistOut)
def get_wishlist(user: UserModel = Depends(require_user), svc: WishlistService = Depends(get_service)):
    return svc.get_wishlist(user.id)


@router.post("/move-to-cart", status_code=204)
def move_to_cart(
    payload: MoveToCartIn,
    user: UserModel = Depends(require_user),
    svc: WishlistService = Depends(get_service),
):
    svc.move_to_cart(user.id, payload.product_id, payload.variant_id)
    return Response(status_code=204)


@router.post("/{product_id}", status_code=204)
def add_to_wishlist(
    product_id: int,
    user: UserModel = Depends(require_user),
    svc: WishlistService = Depends(get_service),
):
    svc.add_product(user.id, product_id)
    return Response(status_code=204)


@router.delete("/{product_id}", status_code=204)
def remove_from_wishlist(
    product_id: int,
    user: UserModel = Depends(require_user),
    svc: WishlistService = Depends(get_service),
):
    svc.remove_product(user.id, product_id)
    return Response(status_code=204)


@router.delete("", status_code=204)
def clear_wishlist(user: UserModel = Depends(require_user), svc: WishlistService = Depends(get_service)):
    svc.clear(user.id)
    return Response(status_code=204)
