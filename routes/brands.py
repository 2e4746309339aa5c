from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.db import get_db
from core.errors import ConflictError, NotFoundError
from models.brand import Brand
from models.user import User
from routes.auth import require_admin
from schemas.brand import BrandCreate, BrandUpdate, BrandOut

router = APIRouter(prefix="/brands", tags=["brands"])


@router.get("/", response_model=List[BrandOut])
def list_brands(db: Session = Depends(get_db)):
    return db.query(Brand).filter(Brand.is_active.is_(True)).order_by(Brand.name).all()


@router.post("/", response_model=BrandOut, status_code=201)
def create_brand(data: BrandCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    if db.query(Brand).filter(Brand.slug == data.slug).one_or_none():
        raise ConflictError("Slug already exists")
    brand = Brand(**data.model_dump(), is_active=True)
    db.add(brand)
    db.commit()
    db.refresh(brand)
    return brand


@router.patch("/{brand_id}", response_model=BrandOut)
def update_brand(brand_id: int, data: BrandUpdate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    brand = db.get(Brand, brand_id)
    if not brand:
        raise NotFoundError("Brand not found")
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(brand, field, value)
    db.commit()
    db.refresh(brand)
    return brand


@router.delete("/{brand_id}", status_code=204)
def delete_brand(brand_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    brand = db.get(Brand, brand_id)
    if not brand:
        raise NotFoundError("Brand not found")
    db.delete(brand)
    db.commit()
    return None
