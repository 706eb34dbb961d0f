# storefront/tasks/analytics.py
from datetime import date, timedelta

from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.services.analytics_service import AnalyticsService
from storefront.services.cache_service import CacheService
from storefront.utils.timeutils import utcnow
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(
    name="storefront.tasks.analytics.rollup_daily_stats_task",
    autoretry_for=(Exception,),
    retry_backoff=5,
    retry_jitter=False,
    max_retries=3,
)
def rollup_daily_stats_task(day: str | None = None):
    """Recompute one day of stats; without an argument, yesterday (UTC)."""
    target = date.fromisoformat(day) if day else utcnow().date() - timedelta(days=1)
    logger.info(f"Daily stats rollup started for {target.isoformat()}")

    db = SessionLocal()
    try:
        stats = AnalyticsService(db, CacheService()).rollup_day(target)
        return {"date": target.isoformat(), "orders_count": stats.orders_count}
    finally:
        db.close()
