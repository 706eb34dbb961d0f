# storefront/domain/errors.py


class DomainError(Exception):
    """Base for errors surfaced to API callers as a structured response."""

    status_code = 400
    code = "BAD_REQUEST"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class NotFoundError(DomainError, LookupError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(DomainError):
    status_code = 409
    code = "CONFLICT"


class BadRequestError(DomainError, ValueError):
    status_code = 400
    code = "BAD_REQUEST"


class InsufficientStockError(BadRequestError):
    code = "INSUFFICIENT_STOCK"


class QuantityCapExceededError(BadRequestError):
    code = "QUANTITY_CAP_EXCEEDED"


class InvalidTransitionError(BadRequestError):
    code = "INVALID_TRANSITION"


class EmptyCartError(BadRequestError):
    code = "CART_EMPTY"


class InvalidPromoError(BadRequestError):
    code = "INVALID_PROMO_CODE"


class ForbiddenError(DomainError, PermissionError):
    status_code = 403
    code = "FORBIDDEN"


class UnauthorizedError(DomainError):
    status_code = 401
    code = "UNAUTHORIZED"
