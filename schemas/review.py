from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional


class ReviewCreate(BaseModel):
    product_id: int
    rating: int
    title: Optional[str] = Field(default=None, max_length=200)
    content: Optional[str] = None


class ReviewOut(BaseModel):
    id: int
    user_id: int
    product_id: int
    rating: int
    title: Optional[str] = None
    content: Optional[str] = None
    is_approved: bool
    created_at: datetime

    class Config:
        from_attributes = True
