# storefront/data/seed.py
from datetime import timedelta
from decimal import Decimal

from storefront.data.database import Base, SessionLocal, engine
from storefront.data.models import (
    CategoryModel,
    ProductModel,
    ProductVariantModel,
    PromotionModel,
    UserModel,
)
from storefront.utils.timeutils import utcnow
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _variants(sku: str, colors: list[str], sizes: list[str], stock: int) -> list[ProductVariantModel]:
    return [
        ProductVariantModel(
            variant_id=f"{color[:3]}-{size}".lower(),
            size=size,
            color=color,
            sku=f"{sku}-{color[:3]}-{size}".upper(),
            stock=stock,
        )
        for color in colors
        for size in sizes
    ]


def seed():
    """Demo catalog, staff accounts and promo codes; only seeds an empty database."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        if db.query(UserModel).first():
            return

        db.add_all(
            [
                UserModel(email="admin@storefront.local", first_name="Ada", last_name="Admin", role="admin"),
                UserModel(email="manager@storefront.local", first_name="Max", last_name="Manager", role="manager"),
                UserModel(email="jane@example.com", first_name="Jane", last_name="Doe", role="customer"),
            ]
        )

        tops = CategoryModel(name="Tops", slug="tops", sort_order=1)
        shoes = CategoryModel(name="Shoes", slug="shoes", sort_order=2)
        db.add_all([tops, shoes])
        db.flush()

        db.add_all(
            [
                ProductModel(
                    name="Linen Shirt",
                    slug="linen-shirt",
                    description="Loose fit linen shirt.",
                    sku="TOP-LINEN",
                    price=Decimal("2490.00"),
                    compare_at_price=Decimal("2990.00"),
                    category_id=tops.id,
                    status="active",
                    variants=_variants("TOP-LINEN", ["White", "Blue"], ["S", "M", "L"], 10),
                ),
                ProductModel(
                    name="Cotton Tee",
                    slug="cotton-tee",
                    description="Everyday cotton t-shirt.",
                    sku="TOP-TEE",
                    price=Decimal("990.00"),
                    category_id=tops.id,
                    status="active",
                    variants=_variants("TOP-TEE", ["Black"], ["S", "M", "L", "XL"], 25),
                ),
                ProductModel(
                    name="Canvas Sneakers",
                    slug="canvas-sneakers",
                    description="Low top canvas sneakers.",
                    sku="SHO-CANVAS",
                    price=Decimal("3990.00"),
                    category_id=shoes.id,
                    status="active",
                    variants=_variants("SHO-CANVAS", ["White"], ["40", "41", "42", "43"], 5),
                ),
            ]
        )

        now = utcnow()
        db.add_all(
            [
                PromotionModel(
                    code="SAVE10",
                    name="10% off everything",
                    type="percentage",
                    value=Decimal("10"),
                    start_date=now,
                    end_date=now + timedelta(days=365),
                ),
                PromotionModel(
                    code="FREESHIP",
                    name="Free shipping",
                    type="free_shipping",
                    value=Decimal("0"),
                    min_order_amount=Decimal("3000.00"),
                    start_date=now,
                    end_date=now + timedelta(days=365),
                ),
                PromotionModel(
                    code="SHOES500",
                    name="500 off shoes",
                    type="fixed",
                    value=Decimal("500.00"),
                    category_ids=[shoes.id],
                    usage_limit_per_user=1,
                    start_date=now,
                    end_date=now + timedelta(days=90),
                ),
            ]
        )
        db.commit()
        logger.info("Seeded demo catalog, users and promotions")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
