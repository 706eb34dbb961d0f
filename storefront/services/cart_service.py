# storefront/services/cart_service.py
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.errors import (
    BadRequestError,
    ConflictError,
    EmptyCartError,
    InsufficientStockError,
    InvalidPromoError,
    NotFoundError,
    QuantityCapExceededError,
)
from storefront.domain.pricing import (
    MAX_LINE_QUANTITY,
    LineSnapshot,
    cart_totals,
    max_line_quantity,
)
from storefront.repos.cart_repo import CartRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.promotion_service import PromotionService
from storefront.utils.settings import GUEST_CART_TTL_DAYS, USER_CART_TTL_DAYS
from storefront.utils.timeutils import utcnow
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

PERCENT = Decimal("0.0001")


class CartService:
    """
    Use cases of the cart aggregate.
    commands (add, update, remove, clear, promo, merge) mutate the cart and
    bump its version with an optimistic lock,
    query (get) builds the cart view with totals derived on every read.

    A cart belongs to a user when user_id is given, otherwise to the
    anonymous session_id.
    """

    def __init__(self, db: Session, promotion_service: PromotionService | None = None):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)
        self.promotions = promotion_service or PromotionService(db)

    #query

    def get_cart(self, user_id: int | None, session_id: str | None) -> Dict[str, Any]:
        cart = self.find_or_create(user_id, session_id)
        return self.build_cart(cart)

    def find_or_create(self, user_id: int | None, session_id: str | None) -> CartModel:
        cart = None
        if user_id is not None:
            cart = self.repo.get_by_user(user_id)
        elif session_id:
            cart = self.repo.get_by_session(session_id)
        else:
            raise BadRequestError("Cart owner (user or session) is required")

        if cart:
            return cart

        cart = self.repo.create_cart(
            CartModel(
                user_id=user_id,
                session_id=None if user_id is not None else session_id,
                version=1,
                expires_at=self._expires_at(user_id is not None),
            )
        )
        logger.info(f"Created cart {cart.id} for {self._owner(user_id, session_id)}")
        return cart

    #commands

    def add_item(
        self,
        user_id: int | None,
        session_id: str | None,
        product_id: int,
        variant_id: str,
        quantity: int,
    ) -> Dict[str, Any]:
        if quantity <= 0:
            raise BadRequestError("Quantity must be greater than 0")
        if quantity > MAX_LINE_QUANTITY:
            raise QuantityCapExceededError(f"Maximum quantity of one item is {MAX_LINE_QUANTITY}")

        product = self.products.get(product_id)
        if not product:
            raise NotFoundError("Product not found")
        variant = product.find_variant(variant_id)
        if not variant:
            raise NotFoundError(f'Variant "{variant_id}" not found')
        if quantity > variant.stock:
            raise InsufficientStockError(f"Not enough stock. Available: {variant.stock}")

        unit_price = variant.price if variant.price is not None else product.price
        cart = self.find_or_create(user_id, session_id)

        existing_item = self.repo.get_cart_item(cart.id, product_id, variant_id)
        if existing_item:
            new_quantity = existing_item.quantity + quantity
            if new_quantity > MAX_LINE_QUANTITY:
                raise QuantityCapExceededError(f"Maximum quantity of one item is {MAX_LINE_QUANTITY}")
            if new_quantity > variant.stock:
                raise InsufficientStockError(f"Not enough stock. Available: {variant.stock}")

            logger.info(
                f"Variant {variant_id} already in cart {cart.id}, quantity "
                f"{existing_item.quantity} -> {new_quantity}"
            )
            existing_item.quantity = new_quantity
            existing_item.price = unit_price
            self.repo.add_cart_item(existing_item)
        else:
            logger.info(f"Adding product {product_id} variant {variant_id} x{quantity} to cart {cart.id}")
            self.repo.add_cart_item(
                CartItemModel(
                    cart_id=cart.id,
                    product_id=product_id,
                    variant_id=variant_id,
                    quantity=quantity,
                    price=unit_price,
                    added_at=utcnow(),
                )
            )

        self._touch(cart)
        return self.build_cart(cart)

    def update_item(
        self,
        user_id: int | None,
        session_id: str | None,
        variant_id: str,
        quantity: int,
    ) -> Dict[str, Any]:
        if quantity == 0:
            return self.remove_item(user_id, session_id, variant_id)
        if quantity < 0:
            raise BadRequestError("Quantity cannot be negative")
        if quantity > MAX_LINE_QUANTITY:
            raise QuantityCapExceededError(f"Maximum quantity of one item is {MAX_LINE_QUANTITY}")

        cart = self.find_or_create(user_id, session_id)
        item = self.repo.get_cart_item_by_variant(cart.id, variant_id)
        if not item:
            raise NotFoundError("Item not found in cart")

        product = self.products.get(item.product_id)
        if not product:
            raise NotFoundError("Product not found")
        variant = product.find_variant(variant_id)
        if not variant:
            raise NotFoundError(f'Variant "{variant_id}" not found')
        if quantity > variant.stock:
            raise InsufficientStockError(f"Not enough stock. Available: {variant.stock}")

        item.quantity = quantity
        item.price = variant.price if variant.price is not None else product.price
        self.repo.add_cart_item(item)

        self._touch(cart)
        return self.build_cart(cart)

    def remove_item(self, user_id: int | None, session_id: str | None, variant_id: str) -> Dict[str, Any]:
        cart = self.find_or_create(user_id, session_id)
        item = self.repo.get_cart_item_by_variant(cart.id, variant_id)
        if not item:
            raise NotFoundError("Item not found in cart")

        logger.info(f"Removing variant {variant_id} from cart {cart.id}")
        self.repo.delete_cart_item(item)

        self._touch(cart)
        return self.build_cart(cart)

    def clear(self, user_id: int | None, session_id: str | None) -> None:
        cart = self.find_or_create(user_id, session_id)
        self.repo.clear_items(cart.id)
        self._touch(cart, promo_code=None, promo_discount=None)
        logger.info(f"Cart {cart.id} cleared")

    def apply_promo(self, user_id: int | None, session_id: str | None, code: str) -> Dict[str, Any]:
        cart = self.find_or_create(user_id, session_id)
        lines = self.snapshot_lines(cart)
        if not lines:
            raise EmptyCartError("Cart is empty")

        subtotal = cart_totals(((l.price, l.quantity) for l in lines), None).subtotal
        result = self.promotions.validate(code, user_id, subtotal, lines)
        if not result.valid:
            raise InvalidPromoError(result.message or "Invalid promo code")

        # the discount is frozen as a share of the subtotal at apply time
        percent = (result.discount * 100 / subtotal).quantize(PERCENT) if subtotal else Decimal("0")
        self._touch(cart, promo_code=code.strip().upper(), promo_discount=percent)
        logger.info(f"Promo {code.upper()} applied to cart {cart.id}: {percent}%")
        return self.build_cart(cart)

    def remove_promo(self, user_id: int | None, session_id: str | None) -> Dict[str, Any]:
        cart = self.find_or_create(user_id, session_id)
        self._touch(cart, promo_code=None, promo_discount=None)
        return self.build_cart(cart)

    def merge(self, user_id: int, session_id: str | None) -> Dict[str, Any]:
        """
        Fold the guest cart of session_id into the user's cart after login.
        Same (product, variant): larger quantity wins, capped at 10.
        Other guest lines are appended. The guest cart is deleted.
        """
        guest = self.repo.get_by_session(session_id) if session_id else None
        user_cart = self.repo.get_by_user(user_id)
        guest_items = self.repo.get_cart_items(guest.id) if guest else []

        if not guest_items:
            if guest:
                self.repo.delete_cart(guest)
                self.repo.commit()
            return self.build_cart(user_cart or self.find_or_create(user_id, None))

        if not user_cart:
            logger.info(f"Guest cart {guest.id} taken over by user {user_id}")
            self._touch(guest, user_id=user_id, session_id=None, expires_at=self._expires_at(True))
            return self.build_cart(guest)

        for guest_item in guest_items:
            match = self.repo.get_cart_item(user_cart.id, guest_item.product_id, guest_item.variant_id)
            if match:
                match.quantity = min(max(match.quantity, guest_item.quantity), MAX_LINE_QUANTITY)
                self.repo.add_cart_item(match)
            else:
                self.repo.add_cart_item(
                    CartItemModel(
                        cart_id=user_cart.id,
                        product_id=guest_item.product_id,
                        variant_id=guest_item.variant_id,
                        quantity=guest_item.quantity,
                        price=guest_item.price,
                        added_at=guest_item.added_at,
                    )
                )

        self.repo.delete_cart(guest)
        self._touch(user_cart)
        logger.info(f"Merged guest cart {guest.id} ({len(guest_items)} lines) into cart {user_cart.id}")
        return self.build_cart(user_cart)

    #helpers

    def snapshot_lines(self, cart: CartModel) -> list[LineSnapshot]:
        """Lines that still resolve to a live product and variant."""
        return [
            LineSnapshot(
                product_id=item.product_id,
                quantity=item.quantity,
                price=Decimal(item.price),
                category_id=product.category_id,
            )
            for item, product, _ in self._resolve(cart)
        ]

    def build_cart(self, cart: CartModel) -> Dict[str, Any]:
        lines = []
        for item, product, variant in self._resolve(cart):
            price = Decimal(item.price)
            lines.append(
                {
                    "product_id": product.id,
                    "product_name": product.name,
                    "product_slug": product.slug,
                    "image": product.image_url,
                    "variant_id": variant.variant_id,
                    "size": variant.size,
                    "color": variant.color,
                    "quantity": item.quantity,
                    "price": price,
                    "total": price * item.quantity,
                    "in_stock": variant.stock >= item.quantity,
                    "max_quantity": max_line_quantity(variant.stock),
                    "added_at": item.added_at,
                }
            )

        totals = cart_totals(((l["price"], l["quantity"]) for l in lines), cart.promo_discount)
        return {
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "items": lines,
            "promo_code": cart.promo_code,
            "promo_discount": cart.promo_discount,
            "totals": {
                "subtotal": totals.subtotal,
                "discount": totals.discount,
                "total": totals.total,
                "items_count": totals.items_count,
            },
            "expires_at": cart.expires_at,
        }

    def _resolve(self, cart: CartModel):
        items = self.repo.get_cart_items(cart.id)
        products = self.products.get_many(list({i.product_id for i in items}))
        for item in items:
            product = products.get(item.product_id)
            # deleted products and variants are skipped silently
            variant = product.find_variant(item.variant_id) if product else None
            if variant:
                yield item, product, variant

    def _touch(self, cart: CartModel, **changes) -> None:
        new_data = {
            "version": cart.version + 1,
            "expires_at": changes.pop("expires_at", None) or self._expires_at(cart.user_id is not None),
            **changes,
        }
        rowcount = self.repo.update_cart_version(
            cart_id=cart.id,
            old_version=cart.version,
            new_data=new_data,
        )
        if rowcount == 0:
            self.repo.rollback()
            raise ConflictError("Cart was modified by another request, please retry")

        self.repo.commit()

    @staticmethod
    def _expires_at(authenticated: bool):
        days = USER_CART_TTL_DAYS if authenticated else GUEST_CART_TTL_DAYS
        return utcnow() + timedelta(days=days)

    @staticmethod
    def _owner(user_id: int | None, session_id: str | None) -> str:
        return f"user {user_id}" if user_id is not None else f"session {session_id}"
