# storefront/services/analytics_service.py
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from storefront.data.models.daily_stats import DailyStatsModel
from storefront.data.models.order import OrderModel
from storefront.domain.enums import OrderStatus
from storefront.domain.pricing import ZERO, money
from storefront.domain.schemas import DailyStatsOut
from storefront.repos.analytics_repo import AnalyticsRepo
from storefront.repos.order_repo import OrderRepo
from storefront.services.cache_service import CacheService
from storefront.utils.settings import ANALYTICS_CACHE_TTL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CACHE_PREFIX = "analytics"
NON_REVENUE = (OrderStatus.CANCELLED.value, OrderStatus.REFUNDED.value)


class AnalyticsService:
    """Daily order rollups and order statistics for the admin dashboard."""

    def __init__(self, db: Session, cache: CacheService | None = None):
        self.repo = AnalyticsRepo(db)
        self.orders = OrderRepo(db)
        self.cache = cache

    def rollup_day(self, day: date) -> DailyStatsModel:
        start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        end = start + timedelta(days=1)
        orders = self.orders.in_range(start, end)

        counted = [o for o in orders if o.status not in NON_REVENUE]
        revenue = money(sum((Decimal(o.total) for o in counted), ZERO))
        items_sold = sum(item["quantity"] for o in counted for item in o.items)

        stats = self.repo.get_day(day) or DailyStatsModel(date=day)
        stats.orders_count = len(orders)
        stats.cancelled_count = sum(1 for o in orders if o.status == OrderStatus.CANCELLED.value)
        stats.items_sold = items_sold
        stats.revenue = revenue
        stats.average_order_value = money(revenue / len(counted)) if counted else ZERO
        stats = self.repo.save(stats)

        logger.info(
            f"Daily stats {day.isoformat()}: {stats.orders_count} orders, revenue {stats.revenue}"
        )
        if self.cache:
            self.cache.invalidate(CACHE_PREFIX)
        return stats

    def daily(self, date_from: date, date_to: date) -> list[dict]:
        key = f"{CACHE_PREFIX}:daily:{date_from.isoformat()}:{date_to.isoformat()}"
        if self.cache:
            cached = self.cache.get_json(key)
            if cached is not None:
                return cached

        result = [
            DailyStatsOut.model_validate(row).model_dump(mode="json")
            for row in self.repo.in_range(date_from, date_to)
        ]
        if self.cache:
            self.cache.set_json(key, result, ANALYTICS_CACHE_TTL)
        return result

    def order_stats(self, date_from: datetime | None = None, date_to: datetime | None = None) -> dict:
        revenue, count = self.orders.revenue(list(NON_REVENUE), date_from, date_to)
        return {
            "total_orders": self.orders.count(),
            "total_revenue": money(revenue),
            "average_order_value": money(revenue / count) if count else ZERO,
            "orders_by_status": self.orders.count_by(OrderModel.status),
            "orders_by_payment_status": self.orders.count_by(OrderModel.payment_status),
        }
