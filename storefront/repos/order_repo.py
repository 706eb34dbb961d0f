# storefront/repos/order_repo.py
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.utils.pagination import paginate


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_by_number(self, order_number: str) -> OrderModel | None:
        return (
            self.db.query(OrderModel)
            .filter(OrderModel.order_number == order_number)
            .one_or_none()
        )

    def get_last_order_number(self) -> str | None:
        return self.db.query(func.max(OrderModel.order_number)).scalar()

    def save(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        return order

    def find(
        self,
        page: int,
        limit: int,
        user_id: int | None = None,
        status: str | None = None,
        payment_status: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        min_total: Decimal | None = None,
        max_total: Decimal | None = None,
        search: str | None = None,
    ) -> tuple[list[OrderModel], int]:
        query = self.db.query(OrderModel)

        if user_id is not None:
            query = query.filter(OrderModel.user_id == user_id)
        if status:
            query = query.filter(OrderModel.status == status)
        if payment_status:
            query = query.filter(OrderModel.payment_status == payment_status)
        if date_from:
            query = query.filter(OrderModel.created_at >= date_from)
        if date_to:
            query = query.filter(OrderModel.created_at <= date_to)
        if min_total is not None:
            query = query.filter(OrderModel.total >= min_total)
        if max_total is not None:
            query = query.filter(OrderModel.total <= max_total)
        if search:
            query = query.filter(OrderModel.order_number.ilike(f"%{search}%"))

        query = query.order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        return paginate(query, page, limit)

    def in_range(self, start: datetime, end: datetime) -> list[OrderModel]:
        return (
            self.db.query(OrderModel)
            .filter(OrderModel.created_at >= start, OrderModel.created_at < end)
            .all()
        )

    def count(self) -> int:
        return self.db.query(func.count(OrderModel.id)).scalar()

    def count_by(self, column) -> dict[str, int]:
        rows = self.db.query(column, func.count(OrderModel.id)).group_by(column).all()
        return {key: count for key, count in rows}

    def revenue(
        self,
        excluded_statuses: list[str],
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> tuple[Decimal, int]:
        query = self.db.query(
            func.coalesce(func.sum(OrderModel.total), 0), func.count(OrderModel.id)
        ).filter(OrderModel.status.notin_(excluded_statuses))
        if date_from:
            query = query.filter(OrderModel.created_at >= date_from)
        if date_to:
            query = query.filter(OrderModel.created_at <= date_to)
        total, count = query.one()
        return Decimal(str(total)), count
