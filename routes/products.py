from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import List, Literal, Optional

from core.db import get_db
from core.errors import ConflictError, NotFoundError
from models.brand import Brand
from models.category import Category
from models.product import Product
from models.user import User
from routes.auth import require_admin
from schemas.product import ProductCreate, ProductUpdate, ProductOut

router = APIRouter(prefix="/products", tags=["products"])

ProductSort = Literal["newest", "price_asc", "price_desc", "popular", "rating"]

_SORT_COLUMNS = {
    "newest": Product.created_at.desc(),
    "price_asc": Product.price.asc(),
    "price_desc": Product.price.desc(),
    "popular": Product.sold_count.desc(),
    "rating": Product.rating.desc(),
}


def _check_refs(db: Session, category_id: Optional[int], brand_id: Optional[int]) -> None:
    if category_id and not db.get(Category, category_id):
        raise NotFoundError("Category not found")
    if brand_id and not db.get(Brand, brand_id):
        raise NotFoundError("Brand not found")


def _get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


@router.get("/", response_model=List[ProductOut])
def list_products(
    category_id: Optional[int] = None,
    brand_id: Optional[int] = None,
    q: Optional[str] = Query(default=None, max_length=100),
    featured: Optional[bool] = None,
    min_price: Optional[Decimal] = Query(default=None, ge=0),
    max_price: Optional[Decimal] = Query(default=None, ge=0),
    sort: ProductSort = "newest",
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    qs = db.query(Product).filter(Product.is_active.is_(True))
    if category_id:
        qs = qs.filter(Product.category_id == category_id)
    if brand_id:
        qs = qs.filter(Product.brand_id == brand_id)
    if featured is not None:
        qs = qs.filter(Product.is_featured.is_(featured))
    if q:
        pattern = f"%{q}%"
        qs = qs.filter(
            or_(
                Product.name.ilike(pattern),
                Product.author.ilike(pattern),
                Product.description.ilike(pattern),
                Product.isbn == q,
            )
        )
    if min_price is not None:
        qs = qs.filter(Product.price >= min_price)
    if max_price is not None:
        qs = qs.filter(Product.price <= max_price)
    return qs.order_by(_SORT_COLUMNS[sort], Product.id.desc()).offset(offset).limit(limit).all()


@router.post("/", response_model=ProductOut, status_code=201)
def create_product(data: ProductCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    if db.query(Product).filter(Product.slug == data.slug).one_or_none():
        raise ConflictError("Slug already exists")
    if data.sku and db.query(Product).filter(Product.sku == data.sku).one_or_none():
        raise ConflictError("SKU already exists")
    _check_refs(db, data.category_id, data.brand_id)

    product = Product(**data.model_dump(), is_active=True)
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


@router.get("/{slug}", response_model=ProductOut)
def get_product(slug: str, db: Session = Depends(get_db)):
    product = db.query(Product).filter(Product.slug == slug, Product.is_active.is_(True)).one_or_none()
    if not product:
        raise NotFoundError("Product not found")
    return product


@router.patch("/{product_id}", response_model=ProductOut)
def update_product(product_id: int, data: ProductUpdate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    product = _get_product(db, product_id)
    changes = data.model_dump(exclude_unset=True)
    _check_refs(db, changes.get("category_id"), changes.get("brand_id"))
    for field, value in changes.items():
        setattr(product, field, value)
    db.commit()
    db.refresh(product)
    return product


@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    # order items keep their frozen copy; product_id is set to NULL
    db.delete(_get_product(db, product_id))
    db.commit()
    return None
