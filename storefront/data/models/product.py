from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text, Numeric, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from storefront.data.database import Base
from storefront.utils.timeutils import utcnow


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=False, default="")
    sku = Column(String(64), nullable=False, unique=True)

    price = Column(Numeric(10, 2), nullable=False)
    compare_at_price = Column(Numeric(10, 2), nullable=True)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    image_url = Column(String(500), nullable=True)

    status = Column(String(20), nullable=False, default="draft")  # draft, active, archived
    is_visible = Column(Boolean, nullable=False, default=True)

    rating = Column(Numeric(3, 1), nullable=False, default=0)
    reviews_count = Column(Integer, nullable=False, default=0)
    sold_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    variants = relationship(
        "ProductVariantModel",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariantModel.id",
        lazy="selectin",
    )

    def find_variant(self, variant_id: str):
        return next((v for v in self.variants if v.variant_id == variant_id), None)


class ProductVariantModel(Base):
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    variant_id = Column(String(64), nullable=False)

    size = Column(String(32), nullable=False, default="")
    color = Column(String(64), nullable=False, default="")
    sku = Column(String(64), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(10, 2), nullable=True)  # overrides product price when set

    product = relationship("ProductModel", back_populates="variants")

    __table_args__ = (UniqueConstraint("product_id", "variant_id", name="u_product_variant"),)
