# storefront/api/routers/products.py
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from storefront.api.deps import Pagination, get_cache, require_staff, require_user
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.enums import ProductStatus
from storefront.domain.schemas import (
    Page,
    ProductCreate,
    ProductOut,
    ProductUpdate,
    ReviewCreate,
    ReviewOut,
    StockUpdate,
)
from storefront.services.cache_service import CacheService
from storefront.services.product_service import ProductService
from storefront.services.review_service import ReviewService

router = APIRouter(prefix="/products", tags=["products"])


def get_service(db: Session = Depends(get_db), cache: CacheService = Depends(get_cache)):
    return ProductService(db, cache)


def get_review_service(db: Session = Depends(get_db), cache: CacheService = Depends(get_cache)):
    return ReviewService(db, cache)


@router.get("", response_model=Page[ProductOut])
def list_products(
    pagination: Pagination = Depends(),
    category_id: int | None = None,
    status: ProductStatus | None = None,
    min_price: Decimal | None = Query(None, ge=0),
    max_price: Decimal | None = Query(None, ge=0),
    in_stock: bool | None = None,
    search: str | None = None,
    sort: str | None = Query(None, pattern="^(price_asc|price_desc|newest|popular|rating)$"),
    svc: ProductService = Depends(get_service),
):
    return svc.list_products(
        pagination.page,
        pagination.limit,
        category_id=category_id,
        status=status.value if status else None,
        min_price=min_price,
        max_price=max_price,
        in_stock=in_stock,
        search=search,
        sort=sort,
    )


@router.get("/slug/{slug}", response_model=ProductOut)
def get_product_by_slug(slug: str, svc: ProductService = Depends(get_service)):
    return svc.get_by_slug(slug)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, svc: ProductService = Depends(get_service)):
    return svc.get_by_id(product_id)


@router.post("", response_model=ProductOut, status_code=201, dependencies=[Depends(require_staff)])
def create_product(payload: ProductCreate, svc: ProductService = Depends(get_service)):
    return svc.create(payload)


@router.patch("/{product_id}", response_model=ProductOut, dependencies=[Depends(require_staff)])
def update_product(
    product_id: int,
    payload: ProductUpdate,
    svc: ProductService = Depends(get_service),
):
    return svc.update(product_id, payload)


@router.delete("/{product_id}", status_code=204, dependencies=[Depends(require_staff)])
def delete_product(product_id: int, svc: ProductService = Depends(get_service)):
    svc.delete(product_id)
    return Response(status_code=204)


@router.patch(
    "/{product_id}/variants/{variant_id}/stock",
    response_model=ProductOut,
    dependencies=[Depends(require_staff)],
)
def update_stock(
    product_id: int,
    variant_id: str,
    payload: StockUpdate,
    svc: ProductService = Depends(get_service),
):
    return svc.update_stock(product_id, variant_id, payload.stock)


@router.get("/{product_id}/reviews", response_model=Page[ReviewOut])
def list_product_reviews(
    product_id: int,
    pagination: Pagination = Depends(),
    svc: ReviewService = Depends(get_review_service),
):
    return svc.list_for_product(product_id, pagination.page, pagination.limit)


@router.post("/{product_id}/reviews", response_model=ReviewOut, status_code=201)
def create_review(
    product_id: int,
    payload: ReviewCreate,
    user: UserModel = Depends(require_user),
    svc: ReviewService = Depends(get_review_service),
):
    return svc.create(product_id, user.id, payload)
