from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.db import get_db
from models.user import User
from routes.auth import get_current_user
from schemas.cart import CartItemCreate, CartItemUpdate, CartItemOut, CartLineOut, CartOut
from services import cart as cart_service

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("/", response_model=CartOut)
def get_cart(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    lines = cart_service.get_cart_snapshot(db, current_user.id)
    return CartOut(
        items=[CartLineOut.model_validate(line) for line in lines],
        total=cart_service.cart_total(lines),
    )


@router.post("/", response_model=CartItemOut, status_code=201)
def add_to_cart(data: CartItemCreate, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return cart_service.add_to_cart(db, current_user.id, data.product_id, data.quantity)


@router.put("/{item_id}", response_model=CartItemOut)
def update_cart_item(
    item_id: int, data: CartItemUpdate, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    return cart_service.update_cart_line(db, current_user.id, item_id, data.quantity)


@router.delete("/{item_id}", status_code=204)
def remove_cart_item(item_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    cart_service.remove_cart_line(db, current_user.id, item_id)
    return None


@router.delete("/", status_code=204)
def clear_cart(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    cart_service.clear_cart(db, current_user.id)
    return None
