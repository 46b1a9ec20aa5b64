"""
Order, order item and payment database models
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Enum as SQLEnum, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from storefront.db.database import Base
import enum


class OrderStatus(str, enum.Enum):
    """Order status enum"""
    PENDING = "PENDING"
    PAID_SUCCESS = "PAID_SUCCESS"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, enum.Enum):
    """Payment status enum"""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


TERMINAL_PAYMENT_STATUSES = (PaymentStatus.COMPLETED, PaymentStatus.FAILED, PaymentStatus.REFUNDED)


class ExternalPaymentStatus(str, enum.Enum):
    """Payment result as reported by the payment provider"""
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    PENDING = "PENDING"

    def to_payment_status(self) -> PaymentStatus:
        if self is ExternalPaymentStatus.SUCCESS:
            return PaymentStatus.COMPLETED
        if self is ExternalPaymentStatus.PENDING:
            return PaymentStatus.PENDING
        return PaymentStatus.FAILED


class Order(Base):
    """
    Order model.
    
    The primary key is the transaction id generated by the client before
    the payment widget opens, so re-submitting an order collides instead
    of duplicating it.
    """
    __tablename__ = "orders"
    
    id = Column(String(64), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    status = Column(SQLEnum(OrderStatus), default=OrderStatus.PENDING, nullable=False)
    payment_status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(10), default="XOF", nullable=False)
    
    # Shipping snapshot
    shipping_address_id = Column(Integer, ForeignKey("addresses.id", ondelete="SET NULL"))
    shipping_address_line1 = Column(String(255), nullable=False)
    shipping_address_line2 = Column(String(255))
    shipping_city = Column(String(120), nullable=False)
    shipping_state = Column(String(120), nullable=False)
    shipping_zip_code = Column(String(20))
    shipping_country = Column(String(120), nullable=False)
    
    # Contact snapshot
    user_email = Column(String(255), nullable=False)
    user_phone_number = Column(String(30))
    
    order_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    user = relationship("User")
    items = relationship("OrderItem", back_populates="order")
    payment = relationship("Payment", back_populates="order", uselist=False)
    
    def __repr__(self):
        return f"<Order(id={self.id}, status={self.status}, total={self.total_amount})>"


class OrderItem(Base):
    """Order item; price_at_order is frozen when the order is placed"""
    __tablename__ = "order_items"
    
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(64), ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    price_at_order = Column(Numeric(12, 2), nullable=False)
    
    order = relationship("Order", back_populates="items")
    product = relationship("Product")

    @property
    def product_name(self):
        return self.product.name if self.product else None

    @property
    def product_image(self):
        return self.product.main_image if self.product else None

    def __repr__(self):
        return f"<OrderItem(id={self.id}, product_id={self.product_id}, qty={self.quantity})>"


class Payment(Base):
    """Payment attached one-to-one to an order"""
    __tablename__ = "payments"
    
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(64), ForeignKey("orders.id"), unique=True, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(10), default="XOF", nullable=False)
    payment_method = Column(String(60), nullable=False)
    transaction_id = Column(String(128))
    status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)
    payment_date = Column(DateTime(timezone=True), server_default=func.now())
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    order = relationship("Order", back_populates="payment")
    
    def __repr__(self):
        return f"<Payment(order_id={self.order_id}, status={self.status}, amount={self.amount})>"
