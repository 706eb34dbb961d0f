# storefront/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, get_session_id, require_user
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.schemas import AddToCartIn, ApplyPromoIn, CartOut, UpdateCartItemIn
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session = Depends(get_db)):
    return CartService(db)


class CartOwner:
    """The caller's user id when authenticated, else the session cookie."""

    def __init__(
        self,
        user: UserModel | None = Depends(get_current_user),
        session_id: str = Depends(get_session_id),
    ):
        self.user_id = user.id if user else None
        self.session_id = session_id


@router.get("", response_model=CartOut)
def get_cart(owner: CartOwner = Depends(), svc: CartService = Depends(get_service)):
    return svc.get_cart(owner.user_id, owner.session_id)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: AddToCartIn,
    owner: CartOwner = Depends(),
    svc: CartService = Depends(get_service),
):
    return svc.add_item(
        owner.user_id,
        owner.session_id,
        product_id=payload.product_id,
        variant_id=payload.variant_id,
        quantity=payload.quantity,
    )


@router.patch("/items/{variant_id}", response_model=CartOut)
def update_item(
    variant_id: str,
    payload: UpdateCartItemIn,
    owner: CartOwner = Depends(),
    svc: CartService = Depends(get_service),
):
    return svc.update_item(owner.user_id, owner.session_id, variant_id, payload.quantity)


@router.delete("/items/{variant_id}", response_model=CartOut)
def remove_item(
    variant_id: str,
    owner: CartOwner = Depends(),
    svc: CartService = Depends(get_service),
):
    return svc.remove_item(owner.user_id, owner.session_id, variant_id)


@router.delete("", status_code=204)
def clear_cart(owner: CartOwner = Depends(), svc: CartService = Depends(get_service)):
    # returns None so the Set-Cookie from get_session_id is kept
    svc.clear(owner.user_id, owner.session_id)


@router.post("/promo", response_model=CartOut)
def apply_promo(
    payload: ApplyPromoIn,
    owner: CartOwner = Depends(),
    svc: CartService = Depends(get_service),
):
    return svc.apply_promo(owner.user_id, owner.session_id, payload.code)


@router.delete("/promo", response_model=CartOut)
def remove_promo(owner: CartOwner = Depends(), svc: CartService = Depends(get_service)):
    return svc.remove_promo(owner.user_id, owner.session_id)


@router.post("/merge", response_model=CartOut)
def merge_cart(
    user: UserModel = Depends(require_user),
    session_id: str = Depends(get_session_id),
    svc: CartService = Depends(get_service),
):
    """Fold the guest cart of this browser session into the user's cart after login."""
    return svc.merge(user.id, session_id)
