"""Order persistence over a SQLAlchemy session.

The repository never commits on its own except through ``commit``; the
lifecycle manager decides the transaction boundary.
"""
import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from models.cart_item import CartItem
from models.order import Order
from models.order_item import OrderItem
from models.product import Product
from services.cart import CartLineSnapshot, snapshot_lines
from services.catalog import Catalog

_BASE36 = string.digits + string.ascii_uppercase


@dataclass(frozen=True)
class OrderItemRecord:
    id: int
    product_id: Optional[int]
    product_name: str
    product_thumbnail: Optional[str]
    quantity: int
    price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class OrderRecord:
    id: int
    order_number: str
    user_id: Optional[int]
    status: str
    payment_status: str
    payment_method: str
    currency: str
    subtotal: Decimal
    shipping_fee: Decimal
    discount: Decimal
    total: Decimal
    shipping_name: str
    shipping_phone: str
    shipping_email: Optional[str]
    shipping_address: str
    note: Optional[str]
    payment_intent_id: Optional[str]
    paid_at: Optional[datetime]
    shipped_at: Optional[datetime]
    delivered_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    cancel_reason: Optional[str]
    created_at: datetime
    items: List[OrderItemRecord] = field(default_factory=list)


@dataclass
class OrderDraft:
    user_id: int
    order_number: str
    currency: str
    payment_method: str
    subtotal: Decimal
    shipping_fee: Decimal
    discount: Decimal
    total: Decimal
    shipping_name: str
    shipping_phone: str
    shipping_email: Optional[str]
    shipping_address: str
    note: Optional[str] = None


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _base36(number: int) -> str:
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits)) or "0"


def generate_order_number(prefix: str = "EB") -> str:
    """Prefix + base36 millisecond timestamp + 4 random base36 characters."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"{prefix}{_base36(int(time.time() * 1000))}{suffix}"


def to_record(order: Order) -> OrderRecord:
    return OrderRecord(
        id=order.id,
        order_number=order.order_number,
        user_id=order.user_id,
        status=order.status,
        payment_status=order.payment_status,
        payment_method=order.payment_method,
        currency=order.currency,
        subtotal=_to_decimal(order.subtotal),
        shipping_fee=_to_decimal(order.shipping_fee),
        discount=_to_decimal(order.discount),
        total=_to_decimal(order.total),
        shipping_name=order.shipping_name,
        shipping_phone=order.shipping_phone,
        shipping_email=order.shipping_email,
        shipping_address=order.shipping_address,
        note=order.note,
        payment_intent_id=order.payment_intent_id,
        paid_at=order.paid_at,
        shipped_at=order.shipped_at,
        delivered_at=order.delivered_at,
        cancelled_at=order.cancelled_at,
        cancel_reason=order.cancel_reason,
        created_at=order.created_at,
        items=[
            OrderItemRecord(
                id=item.id,
                product_id=item.product_id,
                product_name=item.product_name,
                product_thumbnail=item.product_thumbnail,
                quantity=item.quantity,
                price=_to_decimal(item.price),
            )
            for item in order.items
        ],
    )


class OrderRepository:
    def __init__(self, db: Session, catalog: Optional[Catalog] = None):
        self.db = db
        self.catalog = catalog or Catalog(db)

    # -- cart --------------------------------------------------------------

    def load_cart(self, principal_id: int) -> List[CartLineSnapshot]:
        """Load and row-lock the principal's cart, priced from the catalog."""
        items = (
            self.db.query(CartItem)
            .filter(CartItem.user_id == principal_id)
            .order_by(CartItem.id)
            .with_for_update()
            .all()
        )
        return snapshot_lines(items, self.catalog)

    def clear_cart(self, principal_id: int, line_ids: Sequence[int]) -> int:
        if not line_ids:
            return 0
        return (
            self.db.query(CartItem)
            .filter(CartItem.user_id == principal_id, CartItem.id.in_(list(line_ids)))
            .delete(synchronize_session=False)
        )

    # -- orders ------------------------------------------------------------

    def save_order(self, draft: OrderDraft) -> Optional[int]:
        """Insert the order header; None when its order number is already taken."""
        order = Order(
            user_id=draft.user_id,
            order_number=draft.order_number,
            status="pending",
            payment_status="unpaid",
            payment_method=draft.payment_method,
            currency=draft.currency,
            subtotal=draft.subtotal,
            shipping_fee=draft.shipping_fee,
            discount=draft.discount,
            total=draft.total,
            shipping_name=draft.shipping_name,
            shipping_phone=draft.shipping_phone,
            shipping_email=draft.shipping_email,
            shipping_address=draft.shipping_address,
            note=draft.note,
        )
        try:
            with self.db.begin_nested():
                self.db.add(order)
                self.db.flush()
        except IntegrityError:
            return None
        return order.id

    def save_order_items(self, order_id: int, lines: Sequence[CartLineSnapshot]) -> None:
        self.db.add_all(
            OrderItem(
                order_id=order_id,
                product_id=line.product_id,
                product_name=line.product_name,
                product_thumbnail=line.thumbnail,
                quantity=line.quantity,
                price=line.price,
            )
            for line in lines
        )
        self.db.flush()

    def record_sales(self, lines: Sequence[CartLineSnapshot]) -> None:
        for line in lines:
            self.db.execute(
                update(Product)
                .where(Product.id == line.product_id)
                .values(sold_count=Product.sold_count + line.quantity)
            )

    def set_authorization(self, order_id: int, authorization_id: str) -> None:
        result = self.db.execute(
            update(Order)
            .where(Order.id == order_id, Order.payment_intent_id.is_(None))
            .values(payment_intent_id=authorization_id)
        )
        if result.rowcount != 1:
            raise RuntimeError(f"Order {order_id} already holds a payment authorization")

    def _query(self):
        return self.db.query(Order).options(selectinload(Order.items)).populate_existing()

    def get_order(self, order_id: int) -> Optional[OrderRecord]:
        order = self._query().filter(Order.id == order_id).one_or_none()
        return to_record(order) if order else None

    def get_order_by_authorization(self, authorization_id: str) -> Optional[OrderRecord]:
        order = self._query().filter(Order.payment_intent_id == authorization_id).one_or_none()
        return to_record(order) if order else None

    def list_orders(self, user_id: Optional[int] = None) -> List[OrderRecord]:
        query = self._query()
        if user_id is not None:
            query = query.filter(Order.user_id == user_id)
        return [to_record(o) for o in query.order_by(Order.created_at.desc(), Order.id.desc()).all()]

    def compare_and_set_status(self, order_id: int, expected: str, new: str, fields: Dict[str, Any]) -> bool:
        """Move the order from ``expected`` to ``new``; False if it was not in ``expected``."""
        result = self.db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == expected)
            .values(status=new, updated_at=datetime.utcnow(), **fields)
        )
        return result.rowcount == 1

    def compare_and_set_payment_status(
        self, order_id: int, expected: str, new: str, fields: Dict[str, Any], exclude_status: Optional[str] = None
    ) -> bool:
        query = update(Order).where(Order.id == order_id, Order.payment_status == expected)
        if exclude_status is not None:
            query = query.where(Order.status != exclude_status)
        result = self.db.execute(
            query
            .values(payment_status=new, updated_at=datetime.utcnow(), **fields)
        )
        return result.rowcount == 1

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
