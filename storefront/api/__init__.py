# storefront/api/__init__.py
from fastapi import FastAPI

from storefront.api.errors import register_error_handlers
from storefront.api.routers import (
    analytics,
    carts,
    categories,
    health,
    orders,
    products,
    promotions,
    reviews,
    users,
    wishlist,
)


def create_app(lifespan=None) -> FastAPI:
    app = FastAPI(
        title="Storefront",
        version="1.0.0",
        lifespan=lifespan,
    )
    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(categories.router)
    app.include_router(products.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(promotions.router)
    app.include_router(reviews.router)
    app.include_router(wishlist.router)
    app.include_router(analytics.router)

    return app
