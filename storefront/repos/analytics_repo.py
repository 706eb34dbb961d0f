from datetime import date

from sqlalchemy.orm import Session

from storefront.data.models.daily_stats import DailyStatsModel


class AnalyticsRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_day(self, day: date) -> DailyStatsModel | None:
        return self.db.query(DailyStatsModel).filter(DailyStatsModel.date == day).one_or_none()

    def in_range(self, date_from: date, date_to: date) -> list[DailyStatsModel]:
        return (
            self.db.query(DailyStatsModel)
            .filter(DailyStatsModel.date >= date_from, DailyStatsModel.date <= date_to)
            .order_by(DailyStatsModel.date.asc())
            .all()
        )

    def save(self, stats: DailyStatsModel) -> DailyStatsModel:
        self.db.add(stats)
        self.db.commit()
        self.db.refresh(stats)
        return stats
