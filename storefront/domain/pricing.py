# storefront/domain/pricing.py
"""
Pure pricing rules shared by the cart, the promotion evaluator and order
creation. Nothing here touches the database.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from storefront.domain.enums import OrderStatus, PromotionType, ALLOWED_TRANSITIONS
from storefront.domain.errors import InvalidTransitionError

ZERO = Decimal("0.00")
CENT = Decimal("0.01")

MAX_LINE_QUANTITY = 10

SHIPPING_COSTS: dict[str, Decimal] = {
    "courier": Decimal("500.00"),
    "pickup": Decimal("0.00"),
    "post": Decimal("300.00"),
}


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def shipping_cost(method: str) -> Decimal:
    return SHIPPING_COSTS.get(method, ZERO)


def order_total(subtotal: Decimal, discount: Decimal, shipping: Decimal) -> Decimal:
    return max(money(subtotal - discount + shipping), ZERO)


def max_line_quantity(stock: int) -> int:
    return min(stock, MAX_LINE_QUANTITY)


@dataclass(frozen=True)
class LineSnapshot:
    """What the promotion evaluator needs to know about one cart line."""

    product_id: int
    quantity: int
    price: Decimal
    category_id: int | None = None

    @property
    def total(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    items_count: int


def cart_totals(lines: Iterable[tuple[Decimal, int]], promo_percent: Decimal | None) -> CartTotals:
    """lines are (unit price, quantity) pairs of lines that still resolve."""
    lines = list(lines)
    subtotal = money(sum((price * qty for price, qty in lines), ZERO))
    discount = ZERO
    if promo_percent:
        discount = money(subtotal * Decimal(promo_percent) / 100)
    return CartTotals(
        subtotal=subtotal,
        discount=discount,
        total=subtotal - discount,
        items_count=sum(qty for _, qty in lines),
    )


def applicable_lines(
    lines: Iterable[LineSnapshot],
    product_ids: list[int],
    category_ids: list[int],
    exclude_product_ids: list[int],
) -> list[LineSnapshot]:
    applicable = list(lines)

    if exclude_product_ids:
        excluded = set(exclude_product_ids)
        applicable = [line for line in applicable if line.product_id not in excluded]

    # a product allow-list wins over a category allow-list
    if product_ids:
        allowed = set(product_ids)
        applicable = [line for line in applicable if line.product_id in allowed]
    elif category_ids:
        allowed = set(category_ids)
        applicable = [line for line in applicable if line.category_id in allowed]

    return applicable


def promotion_discount(
    promo_type: str,
    value: Decimal,
    max_discount: Decimal | None,
    lines: Iterable[LineSnapshot],
) -> Decimal:
    if promo_type == PromotionType.FREE_SHIPPING:
        return ZERO

    items_total = sum((line.total for line in lines), ZERO)

    if promo_type == PromotionType.PERCENTAGE:
        discount = items_total * Decimal(value) / 100
        if max_discount and discount > max_discount:
            discount = Decimal(max_discount)
    else:
        discount = min(Decimal(value), items_total)

    return money(discount)


def check_transition(current: str, new: str) -> None:
    current_status = OrderStatus(current)
    new_status = OrderStatus(new)
    if new_status not in ALLOWED_TRANSITIONS[current_status]:
        raise InvalidTransitionError(
            f'Cannot change order status from "{current_status.value}" to "{new_status.value}"'
        )


def next_order_number(prefix: str, year: int, last_number: str | None) -> str:
    """PREFIX-YEAR-NNNNNN, sequence continues from the last existing number."""
    sequence = 1
    if last_number:
        parts = last_number.split("-")
        if len(parts) == 3 and parts[2].isdigit():
            sequence = int(parts[2]) + 1
    return f"{prefix}-{year}-{sequence:06d}"
