from pydantic import BaseModel, EmailStr
from typing import Optional


class UserOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: EmailStr
    role: str
    is_verified: bool = False
    phone: Optional[str] = None
    address: Optional[str] = None

    class Config:
        from_attributes = True
