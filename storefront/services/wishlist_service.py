# storefront/services/wishlist_service.py
from sqlalchemy.orm import Session

from storefront.domain.errors import ConflictError, NotFoundError
from storefront.repos.product_repo import ProductRepo
from storefront.services.cart_service import CartService
from storefront.services.user_service import UserService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class WishlistService:
    """Product ids a user keeps for later, stored on the user record."""

    def __init__(self, db: Session, cart_service: CartService | None = None):
        self.users = UserService(db)
        self.products = ProductRepo(db)
        self.carts = cart_service or CartService(db)

    def get_wishlist(self, user_id: int) -> dict:
        user = self.users.get_user(user_id)
        ids = list(user.wishlist or [])
        products = self.products.get_many(ids)

        items = []
        for product_id in ids:
            product = products.get(product_id)
            if not product:
                continue
            items.append(
                {
                    "product_id": product.id,
                    "name": product.name,
                    "slug": product.slug,
                    "price": product.price,
                    "image": product.image_url,
                    "in_stock": sum(v.stock for v in product.variants) > 0,
                }
            )
        return {"items": items, "total": len(items)}

    def add_product(self, user_id: int, product_id: int) -> None:
        user = self.users.get_user(user_id)
        if not self.products.get(product_id):
            raise NotFoundError("Product not found")

        wishlist = list(user.wishlist or [])
        if product_id in wishlist:
            raise ConflictError("Product is already in the wishlist")

        user.wishlist = [*wishlist, product_id]
        self.users.repo.save(user)

    def remove_product(self, user_id: int, product_id: int) -> None:
        user = self.users.get_user(user_id)
        wishlist = list(user.wishlist or [])
        if product_id not in wishlist:
            raise NotFoundError("Product not found in the wishlist")

        wishlist.remove(product_id)
        user.wishlist = wishlist
        self.users.repo.save(user)

    def contains(self, user_id: int, product_id: int) -> bool:
        return product_id in (self.users.get_user(user_id).wishlist or [])

    def move_to_cart(self, user_id: int, product_id: int, variant_id: str) -> None:
        if not self.contains(user_id, product_id):
            raise NotFoundError("Product not found in the wishlist")

        self.carts.add_item(user_id, None, product_id, variant_id, 1)
        self.remove_product(user_id, product_id)
        logger.info(f"Product {product_id} moved from wishlist to cart of user {user_id}")

    def clear(self, user_id: int) -> None:
        user = self.users.get_user(user_id)
        user.wishlist = []
        self.users.repo.save(user)
