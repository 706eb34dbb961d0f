# storefront/services/product_service.py
import json
from decimal import Decimal

from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel, ProductVariantModel
from storefront.domain.errors import BadRequestError, ConflictError, NotFoundError
from storefront.domain.schemas import ProductCreate, ProductOut, ProductUpdate, VariantIn
from storefront.repos.category_repo import CategoryRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.cache_service import CacheService
from storefront.utils.pagination import pagination_meta
from storefront.utils.settings import PRODUCTS_CACHE_TTL
from storefront.utils.text import slugify, unique_suffix
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CACHE_PREFIX = "products"


class ProductService:
    """
    Catalog store: product records and their variant stock counters.
    Reads for the storefront go through the cache, every write drops the
    whole products:* prefix.
    """

    def __init__(self, db: Session, cache: CacheService):
        self.repo = ProductRepo(db)
        self.categories = CategoryRepo(db)
        self.cache = cache

    #query

    def list_products(self, page: int, limit: int, **filters) -> dict:
        key = f"{CACHE_PREFIX}:list:{json.dumps({'page': page, 'limit': limit, **filters}, sort_keys=True, default=str)}"
        cached = self.cache.get_json(key)
        if cached is not None:
            return cached

        rows, total = self.repo.find(page=page, limit=limit, **filters)
        result = {
            "data": [ProductOut.model_validate(p).model_dump(mode="json") for p in rows],
            "meta": pagination_meta(page, limit, total),
        }
        self.cache.set_json(key, result, PRODUCTS_CACHE_TTL)
        return result

    def get_by_slug(self, slug: str) -> dict:
        key = f"{CACHE_PREFIX}:slug:{slug}"
        cached = self.cache.get_json(key)
        if cached is not None:
            return cached

        product = self.repo.get_by_slug(slug)
        if not product:
            raise NotFoundError(f'Product with slug "{slug}" not found')

        result = ProductOut.model_validate(product).model_dump(mode="json")
        self.cache.set_json(key, result, PRODUCTS_CACHE_TTL)
        return result

    def get_by_id(self, product_id: int) -> ProductModel:
        product = self.repo.get(product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    #commands

    def create(self, payload: ProductCreate) -> ProductModel:
        if payload.category_id is not None and not self.categories.get(payload.category_id):
            raise NotFoundError("Category not found")
        self._check_variant_ids(payload.variants)

        slug = payload.slug or f"{slugify(payload.name)}-{unique_suffix()}"
        if self.repo.get_by_slug(slug):
            raise ConflictError(f'Product with slug "{slug}" already exists')

        sku = payload.sku or f"PRD-{unique_suffix(8).upper()}"
        if self.repo.get_by_sku(sku):
            raise ConflictError(f'Product with SKU "{sku}" already exists')

        product = ProductModel(
            **payload.model_dump(exclude={"slug", "sku", "variants", "status"}),
            slug=slug,
            sku=sku,
            status=payload.status.value,
            rating=Decimal("0.0"),
            reviews_count=0,
            sold_count=0,
            variants=[ProductVariantModel(**v.model_dump()) for v in payload.variants],
        )
        product = self.repo.save(product)
        logger.info(f"Created product {product.id} ({product.slug}) with {len(product.variants)} variants")
        self.cache.invalidate(CACHE_PREFIX)
        return product

    def update(self, product_id: int, payload: ProductUpdate) -> ProductModel:
        product = self.get_by_id(product_id)
        data = payload.model_dump(exclude_unset=True, exclude={"variants"})

        if data.get("category_id") is not None and not self.categories.get(data["category_id"]):
            raise NotFoundError("Category not found")
        if data.get("slug") and data["slug"] != product.slug:
            existing = self.repo.get_by_slug(data["slug"])
            if existing and existing.id != product.id:
                raise ConflictError(f'Product with slug "{data["slug"]}" already exists')
        if data.get("sku") and data["sku"] != product.sku:
            existing = self.repo.get_by_sku(data["sku"])
            if existing and existing.id != product.id:
                raise ConflictError(f'Product with SKU "{data["sku"]}" already exists')

        if "status" in data and data["status"] is not None:
            data["status"] = data["status"].value
        for field, value in data.items():
            setattr(product, field, value)

        if payload.variants is not None:
            self._check_variant_ids(payload.variants)
            self._sync_variants(product, payload.variants)

        product = self.repo.save(product)
        self.cache.invalidate(CACHE_PREFIX)
        return product

    def delete(self, product_id: int) -> None:
        product = self.get_by_id(product_id)
        self.repo.delete(product)
        logger.info(f"Deleted product {product_id}")
        self.cache.invalidate(CACHE_PREFIX)

    def update_stock(self, product_id: int, variant_id: str, stock: int) -> ProductModel:
        product = self.get_by_id(product_id)
        if not product.find_variant(variant_id):
            raise BadRequestError(f'Variant "{variant_id}" not found')

        self.repo.set_stock(product_id, variant_id, stock)
        self.repo.commit()
        self.cache.invalidate(CACHE_PREFIX)
        return product

    def decrement_stock(self, lines: list[tuple[int, str, int]]) -> None:
        """lines are (product_id, variant_id, quantity); stock never drops below zero."""
        for product_id, variant_id, quantity in lines:
            if self.repo.decrement_stock(product_id, variant_id, quantity):
                self.repo.increment_sold_count(product_id, quantity)
        self.repo.commit()
        self.cache.invalidate(CACHE_PREFIX)

    def restore_stock(self, lines: list[tuple[int, str, int]]) -> int:
        """Put quantities back; lines whose product or variant vanished are skipped."""
        restored = 0
        for product_id, variant_id, quantity in lines:
            if self.repo.increment_stock(product_id, variant_id, quantity):
                restored += 1
            else:
                logger.warning(
                    f"Stock restore skipped: product {product_id} variant {variant_id} no longer exists"
                )
        self.repo.commit()
        self.cache.invalidate(CACHE_PREFIX)
        return restored

    def update_rating(self, product_id: int, rating: Decimal, count: int) -> None:
        self.repo.update_rating(product_id, rating, count)
        self.repo.commit()
        self.cache.invalidate(CACHE_PREFIX)

    @staticmethod
    def _check_variant_ids(variants: list[VariantIn]) -> None:
        ids = [v.variant_id for v in variants]
        if len(ids) != len(set(ids)):
            raise BadRequestError("Variant ids must be unique within a product")

    @staticmethod
    def _sync_variants(product: ProductModel, variants: list[VariantIn]) -> None:
        # update in place so (product_id, variant_id) rows keep their identity
        incoming = {v.variant_id: v for v in variants}
        for existing in list(product.variants):
            if existing.variant_id not in incoming:
                product.variants.remove(existing)
        for variant_id, data in incoming.items():
            current = product.find_variant(variant_id)
            if current:
                for field, value in data.model_dump().items():
                    setattr(current, field, value)
            else:
                product.variants.append(ProductVariantModel(**data.model_dump()))
