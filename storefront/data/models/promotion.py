from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, JSON, Text

from storefront.data.database import Base
from storefront.utils.timeutils import utcnow


class PromotionModel(Base):
    __tablename__ = "promotions"

    id = Column(Integer, primary_key=True)
    code = Column(String(64), nullable=False, unique=True)  # always upper-case
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    type = Column(String(20), nullable=False)  # percentage, fixed, free_shipping
    value = Column(Numeric(10, 2), nullable=False)
    min_order_amount = Column(Numeric(10, 2), nullable=True)
    max_discount = Column(Numeric(10, 2), nullable=True)

    usage_limit = Column(Integer, nullable=True)
    usage_limit_per_user = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0)
    user_usage = Column(JSON, nullable=False, default=dict)

    category_ids = Column(JSON, nullable=False, default=list)
    product_ids = Column(JSON, nullable=False, default=list)
    exclude_product_ids = Column(JSON, nullable=False, default=list)

    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
