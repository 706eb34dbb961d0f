from sqlalchemy.orm import Session
from storefront.data.models.category import CategoryModel


class CategoryRepo:
    def __init__(self, db: Session):
        self.db = db

    def list_all(self) -> list[CategoryModel]:
        return (
            self.db.query(CategoryModel)
            .order_by(CategoryModel.sort_order.asc(), CategoryModel.id.asc())
            .all()
        )

    def get(self, category_id: int) -> CategoryModel | None:
        return self.db.get(CategoryModel, category_id)

    def get_by_slug(self, slug: str) -> CategoryModel | None:
        return self.db.query(CategoryModel).filter(CategoryModel.slug == slug).one_or_none()

    def save(self, category: CategoryModel) -> CategoryModel:
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    def delete(self, category: CategoryModel) -> None:
        self.db.delete(category)
        self.db.commit()
