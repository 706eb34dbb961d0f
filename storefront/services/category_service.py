# storefront/services/category_service.py
from sqlalchemy.orm import Session

from storefront.data.models.category import CategoryModel
from storefront.domain.errors import BadRequestError, ConflictError, NotFoundError
from storefront.domain.schemas import CategoryCreate, CategoryOut, CategoryUpdate
from storefront.repos.category_repo import CategoryRepo
from storefront.services.cache_service import CacheService
from storefront.utils.settings import CATEGORIES_CACHE_TTL
from storefront.utils.text import slugify
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CACHE_PREFIX = "categories"


class CategoryService:
    def __init__(self, db: Session, cache: CacheService):
        self.repo = CategoryRepo(db)
        self.cache = cache

    def list_categories(self) -> list[dict]:
        key = f"{CACHE_PREFIX}:list"
        cached = self.cache.get_json(key)
        if cached is not None:
            return cached

        result = [CategoryOut.model_validate(c).model_dump(mode="json") for c in self.repo.list_all()]
        self.cache.set_json(key, result, CATEGORIES_CACHE_TTL)
        return result

    def get_by_id(self, category_id: int) -> CategoryModel:
        category = self.repo.get(category_id)
        if not category:
            raise NotFoundError("Category not found")
        return category

    def get_by_slug(self, slug: str) -> CategoryModel:
        category = self.repo.get_by_slug(slug)
        if not category:
            raise NotFoundError(f'Category with slug "{slug}" not found')
        return category

    def create(self, payload: CategoryCreate) -> CategoryModel:
        slug = payload.slug or slugify(payload.name)
        if self.repo.get_by_slug(slug):
            raise ConflictError(f'Category with slug "{slug}" already exists')
        if payload.parent_id is not None:
            self.get_by_id(payload.parent_id)

        category = self.repo.save(
            CategoryModel(**payload.model_dump(exclude={"slug"}), slug=slug)
        )
        logger.info(f"Created category {category.id} ({category.slug})")
        self.cache.invalidate(CACHE_PREFIX)
        return category

    def update(self, category_id: int, payload: CategoryUpdate) -> CategoryModel:
        category = self.get_by_id(category_id)
        data = payload.model_dump(exclude_unset=True)

        if data.get("slug") and data["slug"] != category.slug:
            existing = self.repo.get_by_slug(data["slug"])
            if existing and existing.id != category.id:
                raise ConflictError(f'Category with slug "{data["slug"]}" already exists')
        if data.get("parent_id") is not None:
            if data["parent_id"] == category.id:
                raise BadRequestError("Category cannot be its own parent")
            self.get_by_id(data["parent_id"])

        for field, value in data.items():
            setattr(category, field, value)

        category = self.repo.save(category)
        self.cache.invalidate(CACHE_PREFIX)
        return category

    def delete(self, category_id: int) -> None:
        category = self.get_by_id(category_id)
        self.repo.delete(category)
        logger.info(f"Deleted category {category_id}")
        self.cache.invalidate(CACHE_PREFIX)
