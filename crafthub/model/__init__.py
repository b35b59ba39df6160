# ------ crafthub/model/__init__.py ------

from .user import User, CartItem, Purchase
from .coupon import Coupon
from .review import Review
from .checkout import CheckoutOrder
from .template import Template

__all__ = [
    "User",
    "CartItem",
    "Purchase",
    "Coupon",
    "Review",
    "CheckoutOrder",
    "Template",
]
