# storefront/api/routers/orders.py
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from storefront.api.deps import (
    Pagination,
    get_cache,
    get_notification_service,
    require_staff,
    require_user,
)
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.enums import OrderStatus, PaymentStatus
from storefront.domain.schemas import (
    OrderAdminUpdate,
    OrderCreate,
    OrderOut,
    OrderStatsOut,
    OrderStatusUpdate,
    Page,
)
from storefront.services.analytics_service import AnalyticsService
from storefront.services.cache_service import CacheService
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService
from storefront.utils.pagination import pagination_meta

router = APIRouter(prefix="/orders", tags=["orders"])


class CancelOrderIn(BaseModel):
    reason: str | None = Field(None, max_length=500)


def get_service(
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    notifications: NotificationService = Depends(get_notification_service),
):
    return OrderService(db, cache, notifications)


@router.post("", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderCreate,
    user: UserModel = Depends(require_user),
    svc: OrderService = Depends(get_service),
):
    """
    Turns the caller's cart into an order.
    Stock is re-checked, the cart is cleared and a confirmation email is queued.
    """
    return svc.create(user.id, payload)


@router.get("", response_model=Page[OrderOut])
def list_orders(
    pagination: Pagination = Depends(),
    status: OrderStatus | None = None,
    payment_status: PaymentStatus | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    min_total: Decimal | None = Query(None, ge=0),
    max_total: Decimal | None = Query(None, ge=0),
    search: str | None = None,
    user: UserModel = Depends(require_user),
    svc: OrderService = Depends(get_service),
):
    rows, total = svc.list_orders(
        user,
        pagination.page,
        pagination.limit,
        status=status.value if status else None,
        payment_status=payment_status.value if payment_status else None,
        date_from=date_from,
        date_to=date_to,
        min_total=min_total,
        max_total=max_total,
        search=search,
    )
    return {"data": rows, "meta": pagination_meta(pagination.page, pagination.limit, total)}


@router.get("/stats", response_model=OrderStatsOut, dependencies=[Depends(require_staff)])
def order_stats(
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    db: Session = Depends(get_db),
):
    return AnalyticsService(db).order_stats(date_from, date_to)


@router.get("/number/{order_number}", response_model=OrderOut)
def get_order_by_number(
    order_number: str,
    user: UserModel = Depends(require_user),
    svc: OrderService = Depends(get_service),
):
    return svc.get_by_number(order_number, user)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user: UserModel = Depends(require_user),
    svc: OrderService = Depends(get_service),
):
    return svc.get_order(order_id, user)


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_status(
    order_id: int,
    payload: OrderStatusUpdate,
    staff: UserModel = Depends(require_staff),
    svc: OrderService = Depends(get_service),
):
    return svc.update_status(order_id, payload.status, staff, payload.comment)


@router.patch("/{order_id}", response_model=OrderOut)
def update_order(
    order_id: int,
    payload: OrderAdminUpdate,
    staff: UserModel = Depends(require_staff),
    svc: OrderService = Depends(get_service),
):
    return svc.update_admin(order_id, payload, staff)


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: int,
    payload: CancelOrderIn | None = None,
    user: UserModel = Depends(require_user),
    svc: OrderService = Depends(get_service),
):
    return svc.cancel(order_id, user, payload.reason if payload else None)
