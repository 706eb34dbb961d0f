from sqlalchemy import Column, Integer, Date, DateTime, Numeric

from storefront.data.database import Base
from storefront.utils.timeutils import utcnow


class DailyStatsModel(Base):
    __tablename__ = "daily_stats"

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False, unique=True)

    orders_count = Column(Integer, nullable=False, default=0)
    cancelled_count = Column(Integer, nullable=False, default=0)
    items_sold = Column(Integer, nullable=False, default=0)
    revenue = Column(Numeric(12, 2), nullable=False, default=0)
    average_order_value = Column(Numeric(12, 2), nullable=False, default=0)

    computed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
