"""
Database Schemas

MongoDB collection schemas for the eyewear store, defined as Pydantic models.
Each Pydantic model represents a collection in your database.
Model name lowercased is the collection name.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

Gender = Literal["men", "women", "kids", "unisex"]
BadgeType = Literal["new", "bestseller", "limited"]
DiscountType = Literal["percent", "fixed"]
OrderStatus = Literal["pending", "confirmed", "processing", "dispatched", "delivered", "cancelled"]
PaymentStatus = Literal["pending", "paid", "failed"]
AppointmentStatus = Literal["pending", "confirmed", "completed", "cancelled"]


class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password_hash: str = Field(..., description="BCrypt hashed password")
    role: str = Field("customer", description="Role: customer | admin")
    phone: Optional[str] = None
    address: Optional[str] = None
    avatar_url: Optional[str] = None


class Category(BaseModel):
    name: str
    slug: str
    description: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True


class Product(BaseModel):
    id: str
    name: str
    price: float = Field(..., ge=0)
    mrp: Optional[float] = Field(default=None, ge=0, description="List price before discount")
    discount: int = Field(default=0, ge=0, le=100, description="Discount percent off mrp")
    category: str = Field(..., description="Category slug: frames | lenses | sunglasses")
    gender: Gender = "unisex"
    shape: Optional[str] = None
    material: Optional[str] = None
    colors: List[str] = Field(default_factory=list, description="Hex codes")
    rating: float = Field(default=0, ge=0, le=5)
    reviews: int = Field(default=0, ge=0)
    images: List[str] = Field(default_factory=list)
    badge: Optional[BadgeType] = None
    stock_qty: int = 0
    is_active: bool = True


class Addon(BaseModel):
    id: str
    label: str
    price: float = Field(default=0, ge=0)


class LensConfig(BaseModel):
    """How a frame is configured when it goes into the cart."""

    lens_type_id: str = "zeroPower"
    lens_type_surcharge: float = Field(default=0, ge=0)
    addons: List[Addon] = Field(default_factory=list)
    addons_surcharge: float = Field(default=0, ge=0)
    quantity: int = Field(default=1, ge=1)


class CartLineItem(BaseModel):
    key: str = Field(..., description="product_id-lens_type_id")
    product_id: str
    name: str
    unit_price: float = Field(..., ge=0)
    lens_type_id: str = "zeroPower"
    lens_type_surcharge: float = 0
    addons: List[Addon] = Field(default_factory=list)
    addons_surcharge: float = 0
    image: Optional[str] = None
    quantity: int = Field(default=1, ge=1)


class PromoCode(BaseModel):
    code: str
    discount_type: DiscountType = "percent"
    discount_value: float = Field(..., ge=0)
    min_order_value: float = Field(default=0, ge=0)
    max_uses: Optional[int] = None
    used_count: int = 0
    expires_at: Optional[datetime] = None
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.strip().upper()


class PromoResult(BaseModel):
    valid: bool
    message: Optional[str] = None
    discount_amount: Optional[float] = None
    promo: Optional[PromoCode] = None


class ShippingDetails(BaseModel):
    shipping_name: str
    shipping_phone: str
    shipping_address: str
    shipping_city: Optional[str] = None
    shipping_pincode: Optional[str] = None


class OrderItem(BaseModel):
    product_id: str
    name: str
    unit_price: float
    lens_type_id: str
    lens_type_surcharge: float = 0
    addons: List[Addon] = Field(default_factory=list)
    addons_surcharge: float = 0
    image: Optional[str] = None
    quantity: int = Field(..., ge=1)
    line_total: float


class Order(ShippingDetails):
    user_id: Optional[str] = None
    items: List[OrderItem]
    subtotal: float
    discount: float = 0
    promo_code: Optional[str] = None
    delivery_charge: float = 0
    total: float
    status: OrderStatus = "pending"
    payment_method: Literal["razorpay", "cod"] = "cod"
    payment_status: PaymentStatus = "pending"
    razorpay_order_id: Optional[str] = None
    payment_id: Optional[str] = None


class Appointment(BaseModel):
    user_id: Optional[str] = None
    name: str
    phone: str
    email: Optional[EmailStr] = None
    preferred_date: date
    preferred_time: str
    service: str = Field("eye-test", description="eye-test | frame-fitting | consultation")
    notes: Optional[str] = None
    status: AppointmentStatus = "pending"


class StoreSetting(BaseModel):
    key: str
    value: Dict[str, Any] = Field(default_factory=dict)
