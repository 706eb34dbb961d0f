# storefront/api/deps.py
import uuid
from functools import lru_cache

from fastapi import Depends, Header, Query, Request, Response
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.errors import ForbiddenError, UnauthorizedError
from storefront.repos.user_repo import UserRepo
from storefront.services.cache_service import CacheService
from storefront.services.notification_service import NotificationService
from storefront.services.user_service import is_staff
from storefront.utils.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_LIMIT
from storefront.utils.settings import SESSION_COOKIE_MAX_AGE, SESSION_COOKIE_NAME


@lru_cache
def get_cache() -> CacheService:
    return CacheService()


@lru_cache
def get_notification_service() -> NotificationService:
    return NotificationService()


def get_current_user(
    x_user_id: int | None = Header(None),
    db: Session = Depends(get_db),
) -> UserModel | None:
    """Identity comes from the gateway in X-User-Id; no header means anonymous."""
    if x_user_id is None:
        return None
    user = UserRepo(db).get_user(x_user_id)
    if not user:
        raise UnauthorizedError("Unknown user")
    return user


def require_user(user: UserModel | None = Depends(get_current_user)) -> UserModel:
    if user is None:
        raise UnauthorizedError("Authentication required")
    return user


def require_staff(user: UserModel = Depends(require_user)) -> UserModel:
    if not is_staff(user):
        raise ForbiddenError("Insufficient permissions")
    return user


def get_session_id(request: Request, response: Response) -> str:
    """Anonymous cart token, issued as an HTTP-only cookie on first use."""
    session_id = request.cookies.get(SESSION_COOKIE_NAME)
    if not session_id:
        session_id = uuid.uuid4().hex
        response.set_cookie(
            key=SESSION_COOKIE_NAME,
            value=session_id,
            max_age=SESSION_COOKIE_MAX_AGE,
            httponly=True,
            samesite="lax",
        )
    return session_id


class Pagination:
    def __init__(
        self,
        page: int = Query(DEFAULT_PAGE, ge=1),
        limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    ):
        self.page = page
        self.limit = limit
