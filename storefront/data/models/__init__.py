#import all models so SQLAlchemy registers them in Base.metadata

from storefront.data.models.user import UserModel
from storefront.data.models.category import CategoryModel
from storefront.data.models.product import ProductModel, ProductVariantModel
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.order import OrderModel
from storefront.data.models.promotion import PromotionModel
from storefront.data.models.review import ReviewModel
from storefront.data.models.daily_stats import DailyStatsModel

__all__ = [
    "UserModel",
    "CategoryModel",
    "ProductModel",
    "ProductVariantModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "PromotionModel",
    "ReviewModel",
    "DailyStatsModel",
]
