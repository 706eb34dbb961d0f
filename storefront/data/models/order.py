from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, JSON, Text

from storefront.data.database import Base
from storefront.utils.timeutils import utcnow


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String(32), nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # line snapshots, never re-joined to live products
    items = Column(JSON, nullable=False, default=list)

    subtotal = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    shipping = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)

    status = Column(String(20), nullable=False, default="pending", index=True)
    payment_status = Column(String(20), nullable=False, default="pending")

    shipping_address = Column(JSON, nullable=False)
    shipping_method = Column(String(32), nullable=False)
    payment_method = Column(String(32), nullable=False)

    promo_code = Column(String(64), nullable=True)
    promo_discount = Column(Numeric(10, 2), nullable=True)
    customer_note = Column(Text, nullable=True)
    admin_note = Column(Text, nullable=True)

    # append-only
    history = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
