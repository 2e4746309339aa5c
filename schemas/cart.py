from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional

from models.cart_item import MAX_CART_QUANTITY


class CartItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1, le=MAX_CART_QUANTITY)


class CartItemUpdate(BaseModel):
    quantity: int = Field(ge=1, le=MAX_CART_QUANTITY)


class CartItemOut(BaseModel):
    id: int
    product_id: int
    quantity: int
    price: Decimal

    class Config:
        from_attributes = True


class CartLineOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    thumbnail: Optional[str] = None
    stock: int
    quantity: int
    stored_price: Decimal
    price: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True


class CartOut(BaseModel):
    items: List[CartLineOut]
    total: Decimal
