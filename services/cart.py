"""Cart reads and mutations.

Totals always use the live catalog price; the price stored on a cart line is
what the product cost when it was added and is kept for display only.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from core.errors import NotFoundError, ValidationError
from models.cart_item import CartItem, MAX_CART_QUANTITY
from models.user import User
from services.catalog import Catalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartLineSnapshot:
    id: int
    product_id: int
    product_name: str
    thumbnail: Optional[str]
    stock: int
    quantity: int
    stored_price: Decimal
    price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


def cart_total(lines: Sequence[CartLineSnapshot]) -> Decimal:
    return sum((line.line_total for line in lines), Decimal("0"))


def _check_quantity(quantity: int) -> None:
    if quantity < 1 or quantity > MAX_CART_QUANTITY:
        raise ValidationError(
            f"Quantity must be between 1 and {MAX_CART_QUANTITY}",
            details=[{"loc": ["quantity"], "msg": "out of range", "type": "value_error"}],
        )


def _require_principal(db: Session, principal_id: int) -> None:
    if db.get(User, principal_id) is None:
        raise NotFoundError("User not found")


def snapshot_lines(items: Sequence[CartItem], catalog: Catalog) -> List[CartLineSnapshot]:
    """Enrich cart rows with current catalog data."""
    products = catalog.get_products(item.product_id for item in items)
    lines = []
    for item in items:
        product = products.get(item.product_id)
        if product is None:
            # cart rows cascade with their product, so this only happens mid-delete
            continue
        lines.append(
            CartLineSnapshot(
                id=item.id,
                product_id=item.product_id,
                product_name=product.name,
                thumbnail=product.thumbnail,
                stock=product.stock,
                quantity=item.quantity,
                stored_price=Decimal(str(item.price)),
                price=product.price,
            )
        )
    return lines


def get_cart_snapshot(db: Session, principal_id: int, catalog: Optional[Catalog] = None) -> List[CartLineSnapshot]:
    _require_principal(db, principal_id)
    items = db.query(CartItem).filter(CartItem.user_id == principal_id).order_by(CartItem.id).all()
    return snapshot_lines(items, catalog or Catalog(db))


def _owned_line(db: Session, principal_id: int, line_id: int) -> CartItem:
    item = db.get(CartItem, line_id)
    if not item or item.user_id != principal_id:
        raise NotFoundError("Cart item not found")
    return item


def add_to_cart(db: Session, principal_id: int, product_id: int, quantity: int = 1) -> CartItem:
    _require_principal(db, principal_id)
    _check_quantity(quantity)
    product = Catalog(db).get_product(product_id)
    if not product.is_active:
        raise NotFoundError("Product not found")

    item = (
        db.query(CartItem)
        .filter(CartItem.user_id == principal_id, CartItem.product_id == product_id)
        .one_or_none()
    )
    if item:
        _check_quantity(item.quantity + quantity)
        item.quantity += quantity
    else:
        item = CartItem(user_id=principal_id, product_id=product_id, quantity=quantity, price=product.price)
        db.add(item)
    db.commit()
    db.refresh(item)
    logger.debug("Cart line %s for user %s now has quantity %s", item.id, principal_id, item.quantity)
    return item


def update_cart_line(db: Session, principal_id: int, line_id: int, quantity: int) -> CartItem:
    _check_quantity(quantity)
    item = _owned_line(db, principal_id, line_id)
    item.quantity = quantity
    db.commit()
    db.refresh(item)
    return item


def remove_cart_line(db: Session, principal_id: int, line_id: int) -> None:
    item = _owned_line(db, principal_id, line_id)
    db.delete(item)
    db.commit()


def clear_cart(db: Session, principal_id: int) -> int:
    deleted = db.query(CartItem).filter(CartItem.user_id == principal_id).delete(synchronize_session=False)
    db.commit()
    return deleted
