from sqlalchemy import update
from sqlalchemy.orm import Session

from storefront.data.models.promotion import PromotionModel


class PromotionRepo:
    def __init__(self, db: Session):
        self.db = db

    def list_all(self) -> list[PromotionModel]:
        return self.db.query(PromotionModel).order_by(PromotionModel.created_at.desc()).all()

    def get(self, promotion_id: int) -> PromotionModel | None:
        return self.db.get(PromotionModel, promotion_id)

    def get_by_code(self, code: str) -> PromotionModel | None:
        return (
            self.db.query(PromotionModel)
            .filter(PromotionModel.code == code.strip().upper())
            .one_or_none()
        )

    def save(self, promotion: PromotionModel) -> PromotionModel:
        self.db.add(promotion)
        self.db.commit()
        self.db.refresh(promotion)
        return promotion

    def delete(self, promotion: PromotionModel) -> None:
        self.db.delete(promotion)
        self.db.commit()

    def increment_usage(self, promotion: PromotionModel, user_id: int | None) -> None:
        # used_count is bumped in SQL; the per-user map is read-modify-write
        self.db.execute(
            update(PromotionModel)
            .where(PromotionModel.id == promotion.id)
            .values(used_count=PromotionModel.used_count + 1)
        )
        if user_id is not None:
            usage = dict(promotion.user_usage or {})
            key = str(user_id)
            usage[key] = usage.get(key, 0) + 1
            promotion.user_usage = usage
        self.db.commit()
        self.db.refresh(promotion)
