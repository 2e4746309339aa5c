from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session, joinedload

from core.db import get_db
from core.errors import NotFoundError
from models.product import Product
from models.user import User
from models.wishlist import WishlistItem
from routes.auth import get_current_user
from schemas.wishlist import WishlistCreate, WishlistItemOut

router = APIRouter(prefix="/wishlist", tags=["wishlist"])


@router.get("/", response_model=List[WishlistItemOut])
def list_wishlist(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return (
        db.query(WishlistItem)
        .options(joinedload(WishlistItem.product))
        .filter(WishlistItem.user_id == current_user.id)
        .order_by(WishlistItem.created_at.desc())
        .all()
    )


@router.post("/", response_model=WishlistItemOut, status_code=201)
def add_to_wishlist(
    data: WishlistCreate, response: Response, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    if not db.get(Product, data.product_id):
        raise NotFoundError("Product not found")
    item = (
        db.query(WishlistItem)
        .filter(WishlistItem.user_id == current_user.id, WishlistItem.product_id == data.product_id)
        .one_or_none()
    )
    if item:
        response.status_code = 200
        return item
    item = WishlistItem(user_id=current_user.id, product_id=data.product_id)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@router.delete("/{product_id}", status_code=204)
def remove_from_wishlist(product_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    deleted = (
        db.query(WishlistItem)
        .filter(WishlistItem.user_id == current_user.id, WishlistItem.product_id == product_id)
        .delete(synchronize_session=False)
    )
    if not deleted:
        raise NotFoundError("Item not in wishlist")
    db.commit()
    return None
