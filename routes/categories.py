from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.db import get_db
from core.errors import ConflictError, NotFoundError, ValidationError
from models.category import Category
from models.user import User
from routes.auth import require_admin
from schemas.category import CategoryCreate, CategoryUpdate, CategoryOut

router = APIRouter(prefix="/categories", tags=["categories"])


def _get_category(db: Session, category_id: int) -> Category:
    category = db.get(Category, category_id)
    if not category:
        raise NotFoundError("Category not found")
    return category


@router.get("/", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    return (
        db.query(Category)
        .filter(Category.is_active.is_(True))
        .order_by(Category.sort_order, Category.name)
        .all()
    )


@router.post("/", response_model=CategoryOut, status_code=201)
def create_category(data: CategoryCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    if db.query(Category).filter(Category.slug == data.slug).one_or_none():
        raise ConflictError("Slug already exists")
    if data.parent_id:
        _get_category(db, data.parent_id)
    category = Category(**data.model_dump(), is_active=True)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@router.patch("/{category_id}", response_model=CategoryOut)
def update_category(category_id: int, data: CategoryUpdate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    category = _get_category(db, category_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("parent_id"):
        if changes["parent_id"] == category_id:
            raise ValidationError("A category cannot be its own parent")
        _get_category(db, changes["parent_id"])
    for field, value in changes.items():
        setattr(category, field, value)
    db.commit()
    db.refresh(category)
    return category


@router.delete("/{category_id}", status_code=204)
def delete_category(category_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    db.delete(_get_category(db, category_id))
    db.commit()
    return None
