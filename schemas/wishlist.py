from datetime import datetime
from pydantic import BaseModel

from schemas.product import ProductOut


class WishlistCreate(BaseModel):
    product_id: int


class WishlistItemOut(BaseModel):
    id: int
    product_id: int
    created_at: datetime
    product: ProductOut

    class Config:
        from_attributes = True
