#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from app.data.models.user import UserModel
from app.data.models.product import ProductModel, ProductVariantModel
from app.data.models.cart_item import CartItemModel
from app.data.models.wishlist_item import WishlistItemModel
from app.data.models.order import OrderModel
from app.data.models.order_item import OrderItemModel

__all__ = [
    "UserModel",
    "ProductModel",
    "ProductVariantModel",
    "CartItemModel",
    "WishlistItemModel",
    "OrderModel",
    "OrderItemModel",
]
