import uuid

from sqlalchemy.orm import Session

from storefront.data.models.user import UserModel
from storefront.domain.enums import STAFF_ROLES
from storefront.domain.errors import ConflictError, NotFoundError
from storefront.domain.schemas import AddressIn, AddressUpdate, UserCreate, UserRead
from storefront.repos.user_repo import UserRepo


def is_staff(user: UserModel) -> bool:
    return user.role in {role.value for role in STAFF_ROLES}


def _with_one_default(addresses: list[dict]) -> list[dict]:
    """The first address takes over when no address is marked default."""
    if addresses and not any(a.get("is_default") for a in addresses):
        addresses[0]["is_default"] = True
    return addresses


class UserService:
    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        email = payload.email.lower()
        if self.repo.get_by_email(email):
            raise ConflictError(f'User with email "{email}" already exists')

        user = UserModel(
            email=email,
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone,
            role=payload.role.value,
            addresses=[],
            wishlist=[],
        )
        created = self.repo.create_user(user)
        return UserRead.model_validate(created)

    def get_user(self, user_id: int) -> UserModel:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def add_address(self, user_id: int, payload: AddressIn) -> UserRead:
        user = self.get_user(user_id)
        address = {"id": f"addr-{uuid.uuid4().hex[:12]}", **payload.model_dump()}

        addresses = [dict(a) for a in user.addresses or []]
        if address["is_default"] or not addresses:
            for existing in addresses:
                existing["is_default"] = False
            address["is_default"] = True
        addresses.append(address)

        user.addresses = addresses
        return UserRead.model_validate(self.repo.save(user))

    def update_address(self, user_id: int, address_id: str, payload: AddressUpdate) -> UserRead:
        user = self.get_user(user_id)
        addresses = [dict(a) for a in user.addresses or []]
        address = next((a for a in addresses if a["id"] == address_id), None)
        if not address:
            raise NotFoundError("Address not found")

        address.update(payload.model_dump(exclude_unset=True, exclude_none=True))
        others = [a for a in addresses if a is not address]
        if address["is_default"]:
            for other in others:
                other["is_default"] = False
        elif others and not any(a.get("is_default") for a in others):
            others[0]["is_default"] = True

        user.addresses = _with_one_default(addresses)
        return UserRead.model_validate(self.repo.save(user))

    def remove_address(self, user_id: int, address_id: str) -> UserRead:
        user = self.get_user(user_id)
        addresses = [a for a in user.addresses or [] if a["id"] != address_id]
        if len(addresses) == len(user.addresses or []):
            raise NotFoundError("Address not found")
        user.addresses = _with_one_default([dict(a) for a in addresses])
        return UserRead.model_validate(self.repo.save(user))
