"""
Pydantic schemas for the storefront API
"""
from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, model_validator
from typing import List, Optional
from datetime import datetime
from storefront.models.user import Role
from storefront.models.order import OrderStatus, PaymentStatus, ExternalPaymentStatus


# ---------------------------------------------------------------------------
# Users and sessions
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    """Schema for creating an account"""
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    first_name: Optional[str] = Field(None, max_length=120)
    last_name: Optional[str] = Field(None, max_length=120)


class UserResponse(BaseModel):
    """Schema for user response; never carries the password hash"""
    id: str
    email: str
    role: Role
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: str
    phone_number: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserListResponse(BaseModel):
    """Schema for list of users"""
    total: int
    users: List[UserResponse]


class LoginRequest(BaseModel):
    """Schema for login request"""
    email: str
    password: str


class LoginResponse(BaseModel):
    """Schema for login response"""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str


class ProfileUpdate(BaseModel):
    """Schema for updating the current user's profile"""
    first_name: Optional[str] = Field(None, min_length=1, max_length=120)
    last_name: Optional[str] = Field(None, min_length=1, max_length=120)
    phone_number: Optional[str] = Field(None, min_length=1, max_length=30)


class AdminUserRoleUpdate(BaseModel):
    id: str
    role: Role


class AdminUserDelete(BaseModel):
    id: str


class MessageResponse(BaseModel):
    message: str


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class CategoryCreate(BaseModel):
    """Schema for creating a category"""
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=500)


class CategoryUpdate(BaseModel):
    """Schema for updating a category"""
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=500)


class CategoryResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProductCreate(BaseModel):
    """
    Schema for creating a product.

    The category is referenced by name and created when it does not exist.
    """
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: float = Field(..., ge=0, description="Unit price")
    offer_price: Optional[float] = Field(None, ge=0)
    stock: int = Field(0, ge=0)
    image_urls: List[str] = Field(default_factory=list)
    category: str = Field(..., min_length=1, max_length=120, description="Category name")


class ProductUpdate(BaseModel):
    """Schema for updating a product"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    offer_price: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    image_urls: Optional[List[str]] = None
    category: Optional[str] = Field(None, min_length=1, max_length=120)


class ProductResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price: float
    offer_price: Optional[float] = None
    stock: int
    image_urls: List[str]
    category_id: str
    category_name: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------

class CartItemAdd(BaseModel):
    product_id: str
    quantity: int = Field(1, gt=0)


class CartItemRemoveOne(BaseModel):
    product_id: str


class CartItemSet(BaseModel):
    """Set an absolute quantity; zero removes the line"""
    product_id: str
    quantity: int


class CartLineResponse(BaseModel):
    product_id: str
    quantity: int
    name: str
    image_url: str
    price: float
    offer_price: Optional[float] = None


class CartResponse(BaseModel):
    user_id: str
    items: List[CartLineResponse]
    total_quantity: int


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------

class AddressCreate(BaseModel):
    """Schema for creating an address"""
    full_name: str = Field(..., min_length=1, max_length=255)
    phone_number: str = Field(..., min_length=1, max_length=30)
    area: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=120)
    state: str = Field(..., min_length=1, max_length=120)
    street: Optional[str] = Field(None, max_length=255)
    pincode: Optional[str] = Field(None, max_length=20)
    country: str = Field("Unknown", min_length=1, max_length=120)
    is_default: bool = False


class AddressUpdate(BaseModel):
    """Schema for updating an address"""
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone_number: Optional[str] = Field(None, min_length=1, max_length=30)
    area: Optional[str] = Field(None, min_length=1, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=120)
    state: Optional[str] = Field(None, min_length=1, max_length=120)
    street: Optional[str] = Field(None, max_length=255)
    pincode: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, min_length=1, max_length=120)
    is_default: Optional[bool] = None


class AddressResponse(BaseModel):
    id: int
    user_id: str
    full_name: str
    phone_number: str
    area: str
    street: Optional[str] = None
    city: str
    state: str
    pincode: Optional[str] = None
    country: str
    is_default: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Orders and payments
# ---------------------------------------------------------------------------

class OrderItemCreate(BaseModel):
    """Schema for one ordered line; price is the unit price shown at checkout"""
    product_id: str
    quantity: int = Field(..., gt=0)
    price: float = Field(..., ge=0)


class ShippingAddress(BaseModel):
    """Shipping address copied onto the order"""
    id: Optional[int] = Field(None, description="Saved address to link, if any")
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    area: str = Field(..., min_length=1, max_length=255)
    street: Optional[str] = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=120)
    state: str = Field(..., min_length=1, max_length=120)
    pincode: Optional[str] = Field(None, max_length=20)
    country: str = Field("Unknown", min_length=1, max_length=120)


class OrderCreate(BaseModel):
    """Schema for creating an order"""
    id: str = Field(..., min_length=1, max_length=64, description="Transaction id from prepare-payment")
    items: List[OrderItemCreate] = Field(..., min_length=1, description="At least one item required")
    total_amount: float = Field(..., ge=0)
    shipping_address: ShippingAddress
    payment_method: str = Field(..., min_length=1, max_length=60)
    user_email: EmailStr
    user_phone_number: Optional[str] = Field(None, max_length=30)
    currency: str = Field("XOF", min_length=1, max_length=10)
    clear_cart: bool = False


class OrderCreateAfterPayment(OrderCreate):
    """Order submitted once the payment widget reported a result"""
    payment_status: Optional[ExternalPaymentStatus] = None
    transaction_id: Optional[str] = Field(None, max_length=128)


class OrderItemResponse(BaseModel):
    id: int
    product_id: str
    product_name: Optional[str] = None
    product_image: Optional[str] = None
    quantity: int
    price_at_order: float

    model_config = ConfigDict(from_attributes=True)


class PaymentResponse(BaseModel):
    id: int
    amount: float
    currency: str
    payment_method: str
    transaction_id: Optional[str] = None
    status: PaymentStatus
    payment_date: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    """Schema for order response"""
    id: str
    user_id: str
    status: OrderStatus
    payment_status: PaymentStatus
    total_amount: float
    currency: str
    shipping_address_id: Optional[int] = None
    shipping_address_line1: str
    shipping_address_line2: Optional[str] = None
    shipping_city: str
    shipping_state: str
    shipping_zip_code: Optional[str] = None
    shipping_country: str
    user_email: str
    user_phone_number: Optional[str] = None
    order_date: datetime
    items: List[OrderItemResponse]
    payment: Optional[PaymentResponse] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrderListResponse(BaseModel):
    """Schema for list of orders"""
    total: int
    orders: List[OrderResponse]


class OrderStatusChange(BaseModel):
    """Admin status overwrite addressed by order id"""
    order_id: str
    status: OrderStatus


class OrderUpdate(BaseModel):
    """Schema for updating order status"""
    status: OrderStatus


class PreparePaymentResponse(BaseModel):
    transaction_id: str
    currency: str


class PaymentConfirmRequest(BaseModel):
    """Payment result reported by the browser after the widget closes"""
    transaction_id: str = Field(..., alias="transactionId", min_length=1)
    status: ExternalPaymentStatus
    amount: Optional[float] = Field(None, ge=0)
    payment_method: Optional[str] = Field(None, alias="paymentMethod", max_length=60)

    model_config = ConfigDict(populate_by_name=True)


class PaymentWebhookPayload(BaseModel):
    """
    Body of the provider webhook

    The provider sends ``{event_type, data: {id, reference, status, amount,
    currency, paymentMethod}}``; ``data.id`` is its transaction id and
    ``reference`` the order id. A flat ``{transactionId, status, amount,
    paymentMethod}`` body is accepted as well, ``transactionId`` then being
    the order id.
    """
    event_type: Optional[str] = None
    transaction_id: str = Field(
        ..., validation_alias=AliasChoices("transactionId", "transaction_id", "id"), min_length=1
    )
    reference: Optional[str] = Field(None, max_length=64)
    status: ExternalPaymentStatus
    amount: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, max_length=8)
    payment_method: Optional[str] = Field(
        None, validation_alias=AliasChoices("paymentMethod", "payment_method", "method"), max_length=60
    )

    @model_validator(mode="before")
    @classmethod
    def unwrap_event(cls, data):
        if isinstance(data, dict) and isinstance(data.get("data"), dict):
            return {**data["data"], "event_type": data.get("event_type")}
        return data

    @property
    def order_reference(self) -> str:
        return self.reference or self.transaction_id


# ---------------------------------------------------------------------------
# Back-office, contact and uploads
# ---------------------------------------------------------------------------

class OrderSummary(BaseModel):
    id: str
    user_email: str
    total_amount: float
    status: OrderStatus
    payment_status: PaymentStatus
    order_date: datetime

    model_config = ConfigDict(from_attributes=True)


class MonthlyStat(BaseModel):
    month: str = Field(..., description="YYYY-MM")
    orders: int
    revenue: float


class DashboardStats(BaseModel):
    total_products: int
    total_orders: int
    total_users: int
    pending_orders: int
    total_revenue: float
    recent_orders: List[OrderSummary]
    monthly: List[MonthlyStat]


class ContactRequest(BaseModel):
    """Contact form; every field must be non-blank"""
    name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=5000)

    model_config = ConfigDict(str_strip_whitespace=True)


class ImageUploadResponse(BaseModel):
    image_url: str


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    version: str
    timestamp: datetime
