# storefront/repos/product_repo.py
from decimal import Decimal

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel, ProductVariantModel
from storefront.utils.pagination import paginate

SORTS = {
    "price_asc": ProductModel.price.asc(),
    "price_desc": ProductModel.price.desc(),
    "newest": ProductModel.created_at.desc(),
    "popular": ProductModel.sold_count.desc(),
    "rating": ProductModel.rating.desc(),
}


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_by_slug(self, slug: str) -> ProductModel | None:
        return self.db.query(ProductModel).filter(ProductModel.slug == slug).one_or_none()

    def get_by_sku(self, sku: str) -> ProductModel | None:
        return self.db.query(ProductModel).filter(ProductModel.sku == sku).one_or_none()

    def get_many(self, product_ids: list[int]) -> dict[int, ProductModel]:
        if not product_ids:
            return {}
        rows = self.db.query(ProductModel).filter(ProductModel.id.in_(product_ids)).all()
        return {p.id: p for p in rows}

    def find(
        self,
        page: int,
        limit: int,
        category_id: int | None = None,
        status: str | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        in_stock: bool | None = None,
        search: str | None = None,
        sort: str | None = None,
    ) -> tuple[list[ProductModel], int]:
        query = self.db.query(ProductModel)

        if category_id is not None:
            query = query.filter(ProductModel.category_id == category_id)
        if status:
            query = query.filter(ProductModel.status == status)
        if min_price is not None:
            query = query.filter(ProductModel.price >= min_price)
        if max_price is not None:
            query = query.filter(ProductModel.price <= max_price)
        if in_stock:
            query = query.filter(
                ProductModel.variants.any(ProductVariantModel.stock > 0)
            )
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(ProductModel.name.ilike(pattern), ProductModel.description.ilike(pattern))
            )

        query = query.order_by(SORTS.get(sort, ProductModel.created_at.desc()), ProductModel.id.desc())
        return paginate(query, page, limit)

    def save(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)
        return product

    def delete(self, product: ProductModel) -> None:
        self.db.delete(product)
        self.db.commit()

    # stock

    def set_stock(self, product_id: int, variant_id: str, stock: int) -> int:
        result = self.db.execute(
            update(ProductVariantModel)
            .where(
                ProductVariantModel.product_id == product_id,
                ProductVariantModel.variant_id == variant_id,
            )
            .values(stock=stock)
        )
        return result.rowcount

    def decrement_stock(self, product_id: int, variant_id: str, quantity: int) -> int:
        # conditional decrement, stock that is already short is floored at zero
        variant = (
            ProductVariantModel.product_id == product_id,
            ProductVariantModel.variant_id == variant_id,
        )
        result = self.db.execute(
            update(ProductVariantModel)
            .where(*variant, ProductVariantModel.stock >= quantity)
            .values(stock=ProductVariantModel.stock - quantity)
        )
        if result.rowcount:
            return result.rowcount

        result = self.db.execute(
            update(ProductVariantModel).where(*variant).values(stock=0)
        )
        return result.rowcount

    def increment_stock(self, product_id: int, variant_id: str, quantity: int) -> int:
        result = self.db.execute(
            update(ProductVariantModel)
            .where(
                ProductVariantModel.product_id == product_id,
                ProductVariantModel.variant_id == variant_id,
            )
            .values(stock=ProductVariantModel.stock + quantity)
        )
        return result.rowcount

    def increment_sold_count(self, product_id: int, quantity: int) -> int:
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(sold_count=ProductModel.sold_count + quantity)
        )
        return result.rowcount

    def update_rating(self, product_id: int, rating: Decimal, count: int) -> int:
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(rating=rating, reviews_count=count)
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
