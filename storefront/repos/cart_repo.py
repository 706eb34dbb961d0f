# storefront/repos/cart_repo.py
from datetime import datetime

from sqlalchemy import update, delete
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_user(self, user_id: int) -> CartModel | None:
        return self.db.query(CartModel).filter(CartModel.user_id == user_id).one_or_none()

    def get_by_session(self, session_id: str) -> CartModel | None:
        return self.db.query(CartModel).filter(CartModel.session_id == session_id).one_or_none()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.commit()
        self.db.refresh(cart)
        return cart

    def delete_cart(self, cart: CartModel) -> None:
        self.db.delete(cart)

    def get_cart_items(self, cart_id: int) -> list[CartItemModel]:
        return (
            self.db.query(CartItemModel)
            .filter(CartItemModel.cart_id == cart_id)
            .order_by(CartItemModel.id.asc())
            .all()
        )

    def get_cart_item(self, cart_id: int, product_id: int, variant_id: str) -> CartItemModel | None:
        return (
            self.db.query(CartItemModel)
            .filter(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id == product_id,
                CartItemModel.variant_id == variant_id,
            )
            .one_or_none()
        )

    def get_cart_item_by_variant(self, cart_id: int, variant_id: str) -> CartItemModel | None:
        return (
            self.db.query(CartItemModel)
            .filter(CartItemModel.cart_id == cart_id, CartItemModel.variant_id == variant_id)
            .order_by(CartItemModel.id.asc())
            .first()
        )

    def add_cart_item(self, item: CartItemModel) -> None:
        self.db.add(item)
        self.db.flush()

    def delete_cart_item(self, item: CartItemModel) -> None:
        self.db.delete(item)
        self.db.flush()

    def clear_items(self, cart_id: int) -> None:
        self.db.execute(delete(CartItemModel).where(CartItemModel.cart_id == cart_id))

    def update_cart_version(self, cart_id: int, old_version: int, new_data: dict) -> int:
        """
        Optimistic lock: UPDATE carts SET ... WHERE id = :id AND version = :old.
        Returns the number of affected rows, 0 means someone else won the race.
        """
        result = self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id, CartModel.version == old_version)
            .values(**new_data)
        )
        return result.rowcount

    def delete_expired(self, now: datetime) -> int:
        expired_ids = [
            cart_id
            for (cart_id,) in self.db.query(CartModel.id).filter(CartModel.expires_at < now).all()
        ]
        if not expired_ids:
            return 0
        self.db.execute(delete(CartItemModel).where(CartItemModel.cart_id.in_(expired_ids)))
        self.db.execute(delete(CartModel).where(CartModel.id.in_(expired_ids)))
        return len(expired_ids)

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
