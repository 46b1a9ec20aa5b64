"""Database models"""
from storefront.models.user import Address, Role, User
from storefront.models.product import Category, Product
from storefront.models.cart import CartItem
from storefront.models.order import (
    ExternalPaymentStatus,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentStatus,
)

__all__ = [
    "Address",
    "CartItem",
    "ExternalPaymentStatus",
    "Category",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Payment",
    "PaymentStatus",
    "Product",
    "Role",
    "User",
]
