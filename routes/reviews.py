from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from core.db import get_db
from core.errors import ConflictError, NotFoundError, ValidationError
from models.product import Product
from models.review import Review
from models.user import User
from routes.auth import get_current_user, require_admin
from schemas.review import ReviewCreate, ReviewOut

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get("/product/{product_id}", response_model=List[ReviewOut])
def list_product_reviews(product_id: int, db: Session = Depends(get_db)):
    return (
        db.query(Review)
        .filter(Review.product_id == product_id, Review.is_approved.is_(True))
        .order_by(Review.created_at.desc())
        .all()
    )


@router.post("/", response_model=ReviewOut, status_code=201)
def create_review(data: ReviewCreate, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if not 1 <= data.rating <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    if not db.get(Product, data.product_id):
        raise NotFoundError("Product not found")
    existing = (
        db.query(Review)
        .filter(Review.product_id == data.product_id, Review.user_id == current_user.id)
        .one_or_none()
    )
    if existing:
        raise ConflictError("You already reviewed this product")

    review = Review(user_id=current_user.id, is_approved=False, **data.model_dump())
    db.add(review)
    db.commit()
    db.refresh(review)
    return review


@router.put("/{review_id}/approve", response_model=ReviewOut)
def approve_review(review_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    review = db.get(Review, review_id)
    if not review:
        raise NotFoundError("Review not found")
    review.is_approved = True
    db.flush()

    avg, count = (
        db.query(func.avg(Review.rating), func.count(Review.id))
        .filter(Review.product_id == review.product_id, Review.is_approved.is_(True))
        .one()
    )
    product = db.get(Product, review.product_id)
    product.rating = Decimal(str(avg or 0)).quantize(Decimal("0.1"))
    product.rating_count = count
    db.commit()
    db.refresh(review)
    return review
