#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from checkout_engine.data.models.product import ProductModel
from checkout_engine.data.models.cart import CartModel
from checkout_engine.data.models.cart_item import CartItemModel
from checkout_engine.data.models.coupon import CouponModel, DiscountType, coupon_products
from checkout_engine.data.models.coupon_usage import CouponUsageModel
from checkout_engine.data.models.order import OrderModel, OrderItemModel

__all__ = [
    "ProductModel",
    "CartModel",
    "CartItemModel",
    "CouponModel",
    "DiscountType",
    "coupon_products",
    "CouponUsageModel",
    "OrderModel",
    "OrderItemModel",
]
