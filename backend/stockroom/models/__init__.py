from .auth import User, SessionToken
from .catalog import Category, Product, BundleComponent
from .orders import (
    Order,
    OrderLine,
    ORDER_STATUSES,
    ORDER_STATUS_PENDING,
    ORDER_STATUS_PROCESSING,
    ORDER_STATUS_SHIPPED,
    ORDER_STATUS_DELIVERED,
    ORDER_STATUS_CANCELLED,
    FULFILLED_STATUSES,
)
from .suppliers import Supplier

__all__ = [
    'User', 'SessionToken',
    'Category', 'Product', 'BundleComponent',
    'Order', 'OrderLine',
    'ORDER_STATUSES', 'ORDER_STATUS_PENDING', 'ORDER_STATUS_PROCESSING',
    'ORDER_STATUS_SHIPPED', 'ORDER_STATUS_DELIVERED', 'ORDER_STATUS_CANCELLED',
    'FULFILLED_STATUSES',
    'Supplier',
]
