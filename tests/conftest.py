import json
import os
from datetime import timedelta
from decimal import Decimal

# must be set before storefront.utils.settings is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"

import pytest
from fastapi.testclient import TestClient

import storefront.data.models  # noqa: F401
from storefront.api import create_app
from storefront.api.deps import get_cache, get_notification_service
from storefront.data.database import Base, SessionLocal, engine, get_db
from storefront.data.models import (
    CategoryModel,
    ProductModel,
    ProductVariantModel,
    PromotionModel,
    UserModel,
)
from storefront.utils.timeutils import utcnow


class FakeCache:
    """In-memory stand-in for CacheService with the same JSON round trip."""

    def __init__(self):
        self.store = {}

    def get_json(self, key):
        raw = self.store.get(key)
        return None if raw is None else json.loads(raw)

    def set_json(self, key, value, ttl):
        self.store[key] = json.dumps(value)

    def invalidate(self, prefix):
        keys = [k for k in self.store if k.startswith(f"{prefix}:")]
        for key in keys:
            del self.store[key]
        return len(keys)


class FakeNotifier:
    """Records what the order workflow would have enqueued."""

    def __init__(self):
        self.confirmations = []
        self.status_updates = []
        self.stats_days = []

    def send_order_confirmation(self, order_id):
        self.confirmations.append(order_id)

    def send_order_status_update(self, order_id, comment=None):
        self.status_updates.append((order_id, comment))

    def refresh_daily_stats(self, day):
        self.stats_days.append(day)


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def cache():
    return FakeCache()


@pytest.fixture()
def notifier():
    return FakeNotifier()


@pytest.fixture()
def client(db, cache, notifier):
    app = create_app()
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_notification_service] = lambda: notifier
    return TestClient(app)


# factories


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(role="customer", addresses=None):
        counter["n"] += 1
        user = UserModel(
            email=f"user{counter['n']}@example.com",
            first_name="Test",
            last_name=f"User{counter['n']}",
            role=role,
            addresses=addresses or [],
            wishlist=[],
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def make_category(db):
    def _make(name="Tops", slug=None):
        category = CategoryModel(name=name, slug=slug or name.lower())
        db.add(category)
        db.commit()
        db.refresh(category)
        return category

    return _make


@pytest.fixture()
def make_product(db):
    counter = {"n": 0}

    def _make(price="1000.00", variants=(("v1", 5),), category_id=None, name=None):
        """variants are (variant_id, stock) or (variant_id, stock, price override)."""
        counter["n"] += 1
        n = counter["n"]
        product = ProductModel(
            name=name or f"Product {n}",
            slug=f"product-{n}",
            description="",
            sku=f"PRD-{n}",
            price=Decimal(price),
            category_id=category_id,
            status="active",
            variants=[
                ProductVariantModel(
                    variant_id=v[0],
                    size="M",
                    color="Black",
                    sku=f"PRD-{n}-{v[0]}",
                    stock=v[1],
                    price=Decimal(v[2]) if len(v) > 2 else None,
                )
                for v in variants
            ],
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture()
def make_promotion(db):
    def _make(code="SAVE10", type="percentage", value="10", **fields):
        now = utcnow()
        promotion = PromotionModel(
            code=code,
            name=code,
            type=type,
            value=Decimal(value),
            start_date=fields.pop("start_date", now - timedelta(days=1)),
            end_date=fields.pop("end_date", now + timedelta(days=30)),
            used_count=fields.pop("used_count", 0),
            user_usage=fields.pop("user_usage", {}),
            **fields,
        )
        db.add(promotion)
        db.commit()
        db.refresh(promotion)
        return promotion

    return _make


@pytest.fixture()
def address():
    return {
        "first_name": "Jane",
        "last_name": "Doe",
        "phone": "+100000000",
        "city": "Springfield",
        "street": "Main St",
        "building": "12",
        "postal_code": "12345",
    }
