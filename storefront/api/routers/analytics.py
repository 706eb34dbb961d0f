# storefront/api/routers/analytics.py
from datetime import date, timedelta
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_cache, require_staff
from storefront.data.database import get_db
from storefront.domain.errors import BadRequestError
from storefront.domain.schemas import DailyStatsOut
from storefront.services.analytics_service import AnalyticsService
from storefront.services.cache_service import CacheService
from storefront.utils.timeutils import utcnow

router = APIRouter(prefix="/analytics", tags=["analytics"], dependencies=[Depends(require_staff)])


def get_service(db: Session = Depends(get_db), cache: CacheService = Depends(get_cache)):
    return AnalyticsService(db, cache)


@router.get("/daily", response_model=List[DailyStatsOut])
def daily_stats(
    date_from: date | None = None,
    date_to: date | None = None,
    svc: AnalyticsService = Depends(get_service),
):
    date_to = date_to or utcnow().date()
    date_from = date_from or date_to - timedelta(days=29)
    if date_from > date_to:
        raise BadRequestError("date_from must not be after date_to")
    return svc.daily(date_from, date_to)


@router.post("/daily/{day}/rollup", response_model=DailyStatsOut)
def rollup_day(day: date, svc: AnalyticsService = Depends(get_service)):
    return svc.rollup_day(day)
