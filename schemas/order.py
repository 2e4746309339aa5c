from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, EmailStr, Field
from typing import List, Literal, Optional


class CheckoutRequest(BaseModel):
    shipping_name: Optional[str] = Field(default=None, max_length=100)
    shipping_phone: Optional[str] = Field(default=None, max_length=20)
    shipping_email: Optional[EmailStr] = None
    shipping_address: Optional[str] = None
    note: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: Literal["pending", "confirmed", "processing", "shipping", "delivered", "cancelled"]
    reason: Optional[str] = None


class OrderItemOut(BaseModel):
    id: int
    product_id: Optional[int] = None
    product_name: str
    product_thumbnail: Optional[str] = None
    quantity: int
    price: Decimal

    class Config:
        from_attributes = True


class OrderOut(BaseModel):
    id: int
    order_number: str
    user_id: Optional[int] = None
    status: str
    payment_status: str
    payment_method: str
    currency: str
    subtotal: Decimal
    shipping_fee: Decimal
    discount: Decimal
    total: Decimal
    shipping_name: str
    shipping_phone: str
    shipping_email: Optional[str] = None
    shipping_address: str
    note: Optional[str] = None
    paid_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    created_at: datetime
    items: List[OrderItemOut]

    class Config:
        from_attributes = True


class CheckoutOut(BaseModel):
    order: OrderOut
    client_secret: Optional[str] = None
