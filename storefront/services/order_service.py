# storefront/services/order_service.py
import uuid
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.user import UserModel
from storefront.domain.enums import (
    CUSTOMER_CANCELLABLE,
    OrderStatus,
    PromotionType,
)
from storefront.domain.errors import (
    BadRequestError,
    ConflictError,
    EmptyCartError,
    ForbiddenError,
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
)
from storefront.domain.pricing import (
    ZERO,
    LineSnapshot,
    check_transition,
    money,
    next_order_number,
    order_total,
    shipping_cost,
)
from storefront.domain.schemas import OrderAdminUpdate, OrderCreate
from storefront.repos.order_repo import OrderRepo
from storefront.services.cache_service import CacheService
from storefront.services.cart_service import CartService
from storefront.services.notification_service import NotificationService
from storefront.services.product_service import ProductService
from storefront.services.promotion_service import PromotionService
from storefront.services.user_service import UserService, is_staff
from storefront.utils.settings import ORDER_NUMBER_PREFIX
from storefront.utils.timeutils import utcnow
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class OrderService:
    """
    Order workflow.
    - create() turns the buyer's cart into an immutable order snapshot
    - update_status() walks the status machine and appends to history
    - cancel() is the distinguished transition that puts stock back

    Side effects (emails, daily stats) are enqueued after the order is
    stored and never roll it back.
    """

    def __init__(
        self,
        db: Session,
        cache: CacheService,
        notification_service: NotificationService | None = None,
    ):
        self.repo = OrderRepo(db)
        self.users = UserService(db)
        self.products = ProductService(db, cache)
        self.promotions = PromotionService(db)
        self.carts = CartService(db, self.promotions)
        self.notification_service = notification_service or NotificationService()

    #query

    def get_order(self, order_id: int, actor: UserModel) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found")
        if order.user_id != actor.id and not is_staff(actor):
            raise ForbiddenError("You do not have access to this order")
        return order

    def get_by_number(self, order_number: str, actor: UserModel) -> OrderModel:
        order = self.repo.get_by_number(order_number)
        if not order:
            raise NotFoundError(f'Order with number "{order_number}" not found')
        if order.user_id != actor.id and not is_staff(actor):
            raise ForbiddenError("You do not have access to this order")
        return order

    def list_orders(self, actor: UserModel, page: int, limit: int, **filters):
        """Customers only ever see their own orders."""
        if not is_staff(actor):
            filters["user_id"] = actor.id
        return self.repo.find(page=page, limit=limit, **filters)

    #commands

    def create(self, user_id: int, payload: OrderCreate) -> OrderModel:
        user = self.users.get_user(user_id)

        cart = self.carts.repo.get_by_user(user_id)
        items = self.carts.repo.get_cart_items(cart.id) if cart else []
        if not items:
            raise EmptyCartError("Cart is empty")

        address = self._resolve_address(user, payload)

        # every line is re-checked against live stock, the cart may be stale
        products = self.products.repo.get_many(list({i.product_id for i in items}))
        lines, snapshots, stock_lines = [], [], []
        for item in items:
            product = products.get(item.product_id)
            variant = product.find_variant(item.variant_id) if product else None
            if not variant:
                raise BadRequestError(
                    f'Product {item.product_id} variant "{item.variant_id}" is no longer available'
                )
            if variant.stock < item.quantity:
                raise InsufficientStockError(
                    f'Not enough stock for "{product.name}" ({variant.size} {variant.color}). '
                    f"Available: {variant.stock}"
                )

            price = money(item.price)
            line_total = money(price * item.quantity)
            lines.append(
                {
                    "product_id": product.id,
                    "variant_id": variant.variant_id,
                    "name": product.name,
                    "sku": variant.sku,
                    "image": product.image_url or "",
                    "size": variant.size,
                    "color": variant.color,
                    "price": str(price),
                    "quantity": item.quantity,
                    "total": str(line_total),
                }
            )
            snapshots.append(
                LineSnapshot(
                    product_id=product.id,
                    quantity=item.quantity,
                    price=price,
                    category_id=product.category_id,
                )
            )
            stock_lines.append((product.id, variant.variant_id, item.quantity))

        subtotal = money(sum((s.total for s in snapshots), ZERO))
        shipping = shipping_cost(payload.shipping_method)
        discount = ZERO
        promo_code = None

        if payload.promo_code:
            result = self.promotions.validate(payload.promo_code, user_id, subtotal, snapshots)
            if result.valid:
                promo_code = payload.promo_code.strip().upper()
                discount = result.discount
                if result.type == PromotionType.FREE_SHIPPING:
                    shipping = ZERO
            else:
                logger.info(f"Promo {payload.promo_code} ignored for user {user_id}: {result.message}")

        now = utcnow()
        order = OrderModel(
            order_number=next_order_number(ORDER_NUMBER_PREFIX, now.year, self.repo.get_last_order_number()),
            user_id=user_id,
            items=lines,
            subtotal=subtotal,
            discount=discount,
            shipping=shipping,
            total=order_total(subtotal, discount, shipping),
            status=OrderStatus.PENDING.value,
            payment_status="pending",
            shipping_address=address,
            shipping_method=payload.shipping_method,
            payment_method=payload.payment_method,
            promo_code=promo_code,
            promo_discount=discount if promo_code else None,
            customer_note=payload.customer_note,
            history=[self._history_entry(OrderStatus.PENDING, "Order created", user_id, now)],
            created_at=now,
            updated_at=now,
        )

        try:
            order = self.repo.create_order(order)
        except IntegrityError:
            self.repo.db.rollback()
            raise ConflictError("Order number already taken, please retry")

        logger.info(f"Order {order.order_number} created for user {user_id}, total {order.total}")

        self.carts.clear(user_id, None)
        self.products.decrement_stock(stock_lines)
        if promo_code:
            self.promotions.apply_usage(promo_code, user_id)

        self.notification_service.send_order_confirmation(order.id)
        self.notification_service.refresh_daily_stats(now.date())
        return order

    def update_status(
        self,
        order_id: int,
        status: OrderStatus,
        actor: UserModel,
        comment: str | None = None,
    ) -> OrderModel:
        if status == OrderStatus.CANCELLED:
            return self.cancel(order_id, actor, comment)

        order = self.get_order(order_id, actor)
        check_transition(order.status, status)

        previous = order.status
        order.status = status.value
        order.history = [*order.history, self._history_entry(status, comment, actor.id)]
        order = self.repo.save(order)

        logger.info(f"Order {order.order_number}: {previous} -> {status.value} by user {actor.id}")
        self.notification_service.send_order_status_update(order.id, comment)
        self.notification_service.refresh_daily_stats(order.created_at.date())
        return order

    def cancel(self, order_id: int, actor: UserModel, reason: str | None = None) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found")

        admin = is_staff(actor)
        if not admin and order.user_id != actor.id:
            raise ForbiddenError("You cannot cancel this order")
        if order.status == OrderStatus.CANCELLED:
            raise BadRequestError("Order is already cancelled")
        if not admin and OrderStatus(order.status) not in CUSTOMER_CANCELLABLE:
            raise BadRequestError(f'Order with status "{order.status}" can no longer be cancelled')
        if order.status == OrderStatus.REFUNDED:
            raise InvalidTransitionError('Cannot change order status from "refunded" to "cancelled"')

        restored = self.products.restore_stock(
            [(line["product_id"], line["variant_id"], line["quantity"]) for line in order.items]
        )

        previous = order.status
        order.status = OrderStatus.CANCELLED.value
        order.history = [
            *order.history,
            self._history_entry(OrderStatus.CANCELLED, reason or "Order cancelled", actor.id),
        ]
        order = self.repo.save(order)

        logger.info(
            f"Order {order.order_number} cancelled from {previous} by user {actor.id}, "
            f"{restored}/{len(order.items)} lines restocked"
        )
        self.notification_service.send_order_status_update(order.id, reason)
        self.notification_service.refresh_daily_stats(order.created_at.date())
        return order

    def update_admin(self, order_id: int, payload: OrderAdminUpdate, actor: UserModel) -> OrderModel:
        order = self.get_order(order_id, actor)
        data = payload.model_dump(exclude_unset=True)
        if "admin_note" in data:
            order.admin_note = data["admin_note"]
        if data.get("payment_status") is not None:
            order.payment_status = data["payment_status"].value
        return self.repo.save(order)

    #helpers

    def _resolve_address(self, user: UserModel, payload: OrderCreate) -> dict:
        if payload.shipping_address_id and payload.shipping_address:
            raise BadRequestError("Give either shipping_address_id or shipping_address, not both")

        if payload.shipping_address_id:
            address = next(
                (a for a in user.addresses or [] if a["id"] == payload.shipping_address_id), None
            )
            if not address:
                raise BadRequestError("Shipping address not found")
            return dict(address)

        if payload.shipping_address:
            return {
                "id": f"addr-{uuid.uuid4().hex[:12]}",
                "title": "Shipping address",
                **payload.shipping_address.model_dump(),
                "is_default": False,
            }

        raise BadRequestError("A shipping address is required (shipping_address_id or shipping_address)")

    @staticmethod
    def _history_entry(
        status: OrderStatus,
        comment: str | None,
        actor_id: int | None,
        at: datetime | None = None,
    ) -> dict:
        return {
            "status": status.value,
            "comment": comment,
            "created_at": (at or utcnow()).isoformat(),
            "created_by": actor_id,
        }
