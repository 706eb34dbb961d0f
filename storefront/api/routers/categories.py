# storefront/api/routers/categories.py
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from storefront.api.deps import get_cache, require_staff
from storefront.data.database import get_db
from storefront.domain.schemas import CategoryCreate, CategoryOut, CategoryUpdate
from storefront.services.cache_service import CacheService
from storefront.services.category_service import CategoryService

router = APIRouter(prefix="/categories", tags=["categories"])


def get_service(db: Session = Depends(get_db), cache: CacheService = Depends(get_cache)):
    return CategoryService(db, cache)


@router.get("", response_model=List[CategoryOut])
def list_categories(svc: CategoryService = Depends(get_service)):
    return svc.list_categories()


@router.get("/slug/{slug}", response_model=CategoryOut)
def get_category_by_slug(slug: str, svc: CategoryService = Depends(get_service)):
    return svc.get_by_slug(slug)


@router.get("/{category_id}", response_model=CategoryOut)
def get_category(category_id: int, svc: CategoryService = Depends(get_service)):
    return svc.get_by_id(category_id)


@router.post("", response_model=CategoryOut, status_code=201, dependencies=[Depends(require_staff)])
def create_category(payload: CategoryCreate, svc: CategoryService = Depends(get_service)):
    return svc.create(payload)


@router.patch("/{category_id}", response_model=CategoryOut, dependencies=[Depends(require_staff)])
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    svc: CategoryService = Depends(get_service),
):
    return svc.update(category_id, payload)


@router.delete("/{category_id}", status_code=204, dependencies=[Depends(require_staff)])
def delete_category(category_id: int, svc: CategoryService = Depends(get_service)):
    svc.delete(category_id)
    return Response(status_code=204)
