"""SQLAlchemy Models for SecureShop"""

from .base import Base
from .user import User
from .user_session import UserSession
from .product import Product
from .order import Order, OrderItem
from .audit_log import AuditLog

__all__ = [
    "Base",
    "User",
    "UserSession",
    "Product",
    "Order",
    "OrderItem",
    "AuditLog",
]
