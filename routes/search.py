from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.db import get_db
from models.product import Product
from schemas.product import ProductSuggestion

router = APIRouter(prefix="/search", tags=["search"])

MIN_SUGGESTION_QUERY = 2
MAX_SUGGESTIONS = 5


@router.get("/suggestions", response_model=List[ProductSuggestion])
def suggestions(q: Optional[str] = Query(default=None, max_length=100), db: Session = Depends(get_db)):
    """Active products whose name contains ``q``, for search-as-you-type."""
    if not q or len(q.strip()) < MIN_SUGGESTION_QUERY:
        return []
    return (
        db.query(Product)
        .filter(Product.is_active.is_(True), Product.name.ilike(f"%{q.strip()}%"))
        .order_by(Product.name)
        .limit(MAX_SUGGESTIONS)
        .all()
    )
