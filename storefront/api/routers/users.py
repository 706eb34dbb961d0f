# storefront/api/routers/users.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import require_user
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.errors import ForbiddenError
from storefront.domain.schemas import AddressIn, AddressUpdate, UserCreate, UserRead
from storefront.services.user_service import UserService, is_staff

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserRead, status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    return UserService(db).create_user(payload)


@router.get("/me", response_model=UserRead)
def get_me(user: UserModel = Depends(require_user)):
    return user


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: int,
    user: UserModel = Depends(require_user),
    db: Session = Depends(get_db),
):
    if user.id != user_id and not is_staff(user):
        raise ForbiddenError("You can only view your own profile")
    return UserService(db).get_user(user_id)


@router.post("/me/addresses", response_model=UserRead, status_code=201)
def add_address(
    payload: AddressIn,
    user: UserModel = Depends(require_user),
    db: Session = Depends(get_db),
):
    return UserService(db).add_address(user.id, payload)


@router.patch("/me/addresses/{address_id}", response_model=UserRead)
def update_address(
    address_id: str,
    payload: AddressUpdate,
    user: UserModel = Depends(require_user),
    db: Session = Depends(get_db),
):
    return UserService(db).update_address(user.id, address_id, payload)


@router.delete("/me/addresses/{address_id}", response_model=UserRead)
def remove_address(
    address_id: str,
    user: UserModel = Depends(require_user),
    db: Session = Depends(get_db),
):
    return UserService(db).remove_address(user.id, address_id)
