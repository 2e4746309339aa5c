from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from core.errors import NotFoundError
from models.product import Product


@dataclass(frozen=True)
class ProductSnapshot:
    id: int
    name: str
    price: Decimal
    thumbnail: Optional[str]
    stock: int
    is_active: bool


def _snapshot(product: Product) -> ProductSnapshot:
    return ProductSnapshot(
        id=product.id,
        name=product.name,
        price=Decimal(str(product.price)),
        thumbnail=product.thumbnail,
        stock=product.stock,
        is_active=product.is_active,
    )


class Catalog:
    """Read-only product lookups used by the cart and checkout."""

    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductSnapshot:
        product = self.db.get(Product, product_id)
        if not product:
            raise NotFoundError("Product not found")
        return _snapshot(product)

    def get_products(self, product_ids: Iterable[int]) -> Dict[int, ProductSnapshot]:
        ids = set(product_ids)
        if not ids:
            return {}
        products = self.db.query(Product).filter(Product.id.in_(ids)).all()
        return {p.id: _snapshot(p) for p in products}
