# storefront/domain/schemas.py
from datetime import date as Date, datetime
from decimal import Decimal
from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from storefront.domain.enums import (
    OrderStatus,
    PaymentStatus,
    ProductStatus,
    PromotionType,
    UserRole,
)

T = TypeVar("T")


class PageMeta(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class Page(BaseModel, Generic[T]):
    """Paginated list response."""

    data: List[T]
    meta: PageMeta


# users


class AddressIn(BaseModel):
    title: str = Field("Shipping address", max_length=100)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=3, max_length=32)
    city: str = Field(..., min_length=1)
    street: str = Field(..., min_length=1)
    building: str = Field(..., min_length=1)
    apartment: str | None = None
    postal_code: str = Field(..., min_length=1, max_length=16)
    is_default: bool = False


class Address(AddressIn):
    id: str


class AddressUpdate(BaseModel):
    title: str | None = Field(None, max_length=100)
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    phone: str | None = Field(None, min_length=3, max_length=32)
    city: str | None = Field(None, min_length=1)
    street: str | None = Field(None, min_length=1)
    building: str | None = Field(None, min_length=1)
    apartment: str | None = None
    postal_code: str | None = Field(None, min_length=1, max_length=16)
    is_default: bool | None = None


class UserCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str | None = None
    role: UserRole = UserRole.CUSTOMER


class UserRead(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    role: UserRole
    addresses: List[Address] = []

    model_config = ConfigDict(from_attributes=True)


# catalog


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    slug: str | None = Field(None, max_length=200)
    description: str | None = None
    parent_id: int | None = None
    sort_order: int = 0
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    slug: str | None = Field(None, max_length=200)
    description: str | None = None
    parent_id: int | None = None
    sort_order: int | None = None
    is_active: bool | None = None


class CategoryOut(BaseModel):
    id: int
    name: str
    slug: str
    description: str | None = None
    parent_id: int | None = None
    sort_order: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class VariantIn(BaseModel):
    variant_id: str = Field(..., min_length=1, max_length=64)
    size: str = ""
    color: str = ""
    sku: str = Field(..., min_length=1, max_length=64)
    stock: int = Field(0, ge=0)
    price: Decimal | None = Field(None, ge=0)


class VariantOut(VariantIn):
    model_config = ConfigDict(from_attributes=True)


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: str | None = Field(None, max_length=255)
    description: str = ""
    sku: str | None = Field(None, max_length=64)
    price: Decimal = Field(..., ge=0)
    compare_at_price: Decimal | None = Field(None, ge=0)
    category_id: int | None = None
    image_url: str | None = None
    status: ProductStatus = ProductStatus.DRAFT
    is_visible: bool = True
    variants: List[VariantIn] = []


class ProductUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    slug: str | None = Field(None, max_length=255)
    description: str | None = None
    sku: str | None = Field(None, max_length=64)
    price: Decimal | None = Field(None, ge=0)
    compare_at_price: Decimal | None = Field(None, ge=0)
    category_id: int | None = None
    image_url: str | None = None
    status: ProductStatus | None = None
    is_visible: bool | None = None
    variants: List[VariantIn] | None = None


class ProductOut(BaseModel):
    id: int
    name: str
    slug: str
    description: str
    sku: str
    price: Decimal
    compare_at_price: Decimal | None = None
    category_id: int | None = None
    image_url: str | None = None
    status: ProductStatus
    is_visible: bool
    rating: Decimal
    reviews_count: int
    sold_count: int
    variants: List[VariantOut]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StockUpdate(BaseModel):
    stock: int = Field(..., ge=0)


# cart


class AddToCartIn(BaseModel):
    product_id: int = Field(..., gt=0)
    variant_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1, le=10)


class UpdateCartItemIn(BaseModel):
    """quantity 0 removes the line"""

    quantity: int = Field(..., ge=0, le=10)


class ApplyPromoIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)


class CartLineOut(BaseModel):
    product_id: int
    product_name: str
    product_slug: str
    image: str | None = None
    variant_id: str
    size: str
    color: str
    quantity: int
    price: Decimal
    total: Decimal
    in_stock: bool
    max_quantity: int
    added_at: datetime


class CartTotalsOut(BaseModel):
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    items_count: int


class CartOut(BaseModel):
    cart_id: int
    user_id: int | None = None
    items: List[CartLineOut]
    promo_code: str | None = None
    promo_discount: Decimal | None = None
    totals: CartTotalsOut
    expires_at: datetime


# orders


class ShippingAddressIn(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=3)
    city: str = Field(..., min_length=1)
    street: str = Field(..., min_length=1)
    building: str = Field(..., min_length=1)
    apartment: str | None = None
    postal_code: str = Field(..., min_length=1)


class OrderCreate(BaseModel):
    """Exactly one of shipping_address_id / shipping_address must be given."""

    shipping_address_id: str | None = None
    shipping_address: ShippingAddressIn | None = None
    shipping_method: str = Field(..., min_length=1)
    payment_method: str = Field(..., min_length=1)
    customer_note: str | None = Field(None, max_length=1000)
    promo_code: str | None = None


class OrderLineOut(BaseModel):
    product_id: int
    variant_id: str
    name: str
    sku: str
    image: str
    size: str
    color: str
    price: Decimal
    quantity: int
    total: Decimal


class OrderHistoryOut(BaseModel):
    status: OrderStatus
    comment: str | None = None
    created_at: datetime
    created_by: int | None = None


class OrderOut(BaseModel):
    id: int
    order_number: str
    user_id: int
    items: List[OrderLineOut]
    subtotal: Decimal
    discount: Decimal
    shipping: Decimal
    total: Decimal
    status: OrderStatus
    payment_status: PaymentStatus
    shipping_address: Address
    shipping_method: str
    payment_method: str
    promo_code: str | None = None
    promo_discount: Decimal | None = None
    customer_note: str | None = None
    admin_note: str | None = None
    history: List[OrderHistoryOut]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    comment: str | None = Field(None, max_length=500)


class OrderAdminUpdate(BaseModel):
    admin_note: str | None = Field(None, max_length=1000)
    payment_status: PaymentStatus | None = None


class OrderStatsOut(BaseModel):
    total_orders: int
    total_revenue: Decimal
    average_order_value: Decimal
    orders_by_status: dict[str, int]
    orders_by_payment_status: dict[str, int]


# promotions


class PromotionCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    type: PromotionType
    value: Decimal = Field(..., ge=0)
    min_order_amount: Decimal | None = Field(None, ge=0)
    max_discount: Decimal | None = Field(None, ge=0)
    usage_limit: int | None = Field(None, ge=1)
    usage_limit_per_user: int | None = Field(None, ge=1)
    category_ids: List[int] = []
    product_ids: List[int] = []
    exclude_product_ids: List[int] = []
    start_date: datetime
    end_date: datetime
    is_active: bool = True


class PromotionUpdate(BaseModel):
    code: str | None = Field(None, min_length=1, max_length=64)
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    type: PromotionType | None = None
    value: Decimal | None = Field(None, ge=0)
    min_order_amount: Decimal | None = Field(None, ge=0)
    max_discount: Decimal | None = Field(None, ge=0)
    usage_limit: int | None = Field(None, ge=1)
    usage_limit_per_user: int | None = Field(None, ge=1)
    category_ids: List[int] | None = None
    product_ids: List[int] | None = None
    exclude_product_ids: List[int] | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_active: bool | None = None


class PromotionOut(BaseModel):
    id: int
    code: str
    name: str
    description: str | None = None
    type: PromotionType
    value: Decimal
    min_order_amount: Decimal | None = None
    max_discount: Decimal | None = None
    usage_limit: int | None = None
    usage_limit_per_user: int | None = None
    used_count: int
    category_ids: List[int]
    product_ids: List[int]
    exclude_product_ids: List[int]
    start_date: datetime
    end_date: datetime
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class PromoItemIn(BaseModel):
    product_id: int
    category_id: int | None = None
    quantity: int = Field(..., ge=1)
    price: Decimal = Field(..., ge=0)


class ValidatePromoIn(BaseModel):
    code: str = Field(..., min_length=1)
    cart_total: Decimal = Field(..., ge=0)
    items: List[PromoItemIn]


class PromotionValidation(BaseModel):
    valid: bool
    discount: Decimal
    message: str | None = None
    type: PromotionType | None = None


# reviews


class ReviewCreate(BaseModel):
    order_id: int = Field(..., gt=0)
    rating: int = Field(..., ge=1, le=5)
    title: str | None = Field(None, max_length=100)
    text: str = Field(..., min_length=1, max_length=1000)


class ReviewUpdate(BaseModel):
    rating: int | None = Field(None, ge=1, le=5)
    title: str | None = Field(None, max_length=100)
    text: str | None = Field(None, min_length=1, max_length=1000)


class ReviewReplyIn(BaseModel):
    text: str = Field(..., min_length=1, max_length=1000)


class ReviewOut(BaseModel):
    id: int
    product_id: int
    user_id: int
    order_id: int
    rating: int
    title: str | None = None
    text: str
    is_approved: bool
    admin_reply: str | None = None
    admin_reply_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# wishlist


class WishlistItemOut(BaseModel):
    product_id: int
    name: str
    slug: str
    price: Decimal
    image: str | None = None
    in_stock: bool


class WishlistOut(BaseModel):
    items: List[WishlistItemOut]
    total: int


class MoveToCartIn(BaseModel):
    product_id: int = Field(..., gt=0)
    variant_id: str = Field(..., min_length=1)


# analytics


class DailyStatsOut(BaseModel):
    date: Date
    orders_count: int
    cancelled_count: int
    items_sold: int
    revenue: Decimal
    average_order_value: Decimal

    model_config = ConfigDict(from_attributes=True)
