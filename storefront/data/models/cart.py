# storefront/data/models/cart.py
from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric
from sqlalchemy.orm import relationship

from storefront.data.database import Base
from storefront.utils.timeutils import utcnow


class CartModel(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    # exactly one of user_id / session_id is set
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, unique=True)
    session_id = Column(String(64), nullable=True, unique=True)

    promo_code = Column(String(64), nullable=True)
    promo_discount = Column(Numeric(7, 4), nullable=True)  # percent resolved at apply time

    version = Column(Integer, nullable=False, default=1)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItemModel.id",
    )
