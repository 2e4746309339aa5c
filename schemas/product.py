from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=280)
    price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    original_price: Optional[Decimal] = Field(default=None, ge=0)
    stock: int = Field(default=0, ge=0)
    sku: Optional[str] = None
    category_id: Optional[int] = None
    brand_id: Optional[int] = None
    description: Optional[str] = None
    short_description: Optional[str] = None
    author: Optional[str] = None
    publisher: Optional[str] = None
    publish_year: Optional[int] = None
    pages: Optional[int] = None
    isbn: Optional[str] = None
    thumbnail: Optional[str] = None
    is_featured: bool = False


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    original_price: Optional[Decimal] = Field(default=None, ge=0)
    stock: Optional[int] = Field(default=None, ge=0)
    category_id: Optional[int] = None
    brand_id: Optional[int] = None
    description: Optional[str] = None
    short_description: Optional[str] = None
    author: Optional[str] = None
    thumbnail: Optional[str] = None
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None


class ProductOut(BaseModel):
    id: int
    name: str
    slug: str
    sku: Optional[str] = None
    price: Decimal
    original_price: Optional[Decimal] = None
    stock: int
    category_id: Optional[int] = None
    brand_id: Optional[int] = None
    description: Optional[str] = None
    short_description: Optional[str] = None
    author: Optional[str] = None
    publisher: Optional[str] = None
    publish_year: Optional[int] = None
    isbn: Optional[str] = None
    thumbnail: Optional[str] = None
    is_active: bool
    is_featured: bool
    rating: Decimal
    rating_count: int
    sold_count: int = 0

    class Config:
        from_attributes = True


class ProductSuggestion(BaseModel):
    id: int
    name: str
    thumbnail: Optional[str] = None
    price: Decimal

    class Config:
        from_attributes = True
