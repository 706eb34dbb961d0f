from sqlalchemy import Column, Integer, String, DateTime, JSON

from storefront.data.database import Base
from storefront.utils.timeutils import utcnow


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), nullable=False, unique=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(32), nullable=True)
    role = Column(String(20), nullable=False, default="customer")  # customer, manager, admin

    # saved address book and wishlisted product ids
    addresses = Column(JSON, nullable=False, default=list)
    wishlist = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
