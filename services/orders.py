"""Order checkout and status lifecycle.

Checkout runs as one transaction per principal: the cart is loaded and
locked, the order and its items are flushed, the payment is authorized and
the cart lines are deleted, then everything commits together. Any failure
rolls the transaction back so no partial order is ever visible and the cart
stays intact for a retry.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from core.errors import (
    ConflictError,
    EmptyCartError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    PaymentAuthorizationError,
    ValidationError,
)
from models.user import User
from services.cart import CartLineSnapshot, cart_total
from services.context import Principal, ServiceContext
from services.order_status import OrderStatus, PaymentStatus, assert_transition
from services.repositories import OrderDraft, OrderRecord, OrderRepository, generate_order_number

logger = logging.getLogger(__name__)

MAX_ORDER_NUMBER_ATTEMPTS = 5


@dataclass
class CheckoutDetails:
    shipping_name: Optional[str] = None
    shipping_phone: Optional[str] = None
    shipping_email: Optional[str] = None
    shipping_address: Optional[str] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class CheckoutResult:
    order: OrderRecord
    client_secret: Optional[str]


class OrderLifecycleManager:
    def __init__(self, context: ServiceContext, repository: Optional[OrderRepository] = None):
        self.ctx = context
        self.repo = repository or OrderRepository(context.db, context.catalog)

    # -- checkout ------------------------------------------------------------

    def create_order(self, principal_id: int, details: Optional[CheckoutDetails] = None) -> CheckoutResult:
        with self.ctx.locks.hold(("checkout", principal_id)):
            try:
                return self._create_order(principal_id, details or CheckoutDetails())
            except Exception:
                self.repo.rollback()
                raise

    def _create_order(self, principal_id: int, details: CheckoutDetails) -> CheckoutResult:
        user = self.ctx.db.get(User, principal_id)
        if user is None:
            raise NotFoundError("User not found")

        lines = self.repo.load_cart(principal_id)
        if not lines:
            raise EmptyCartError()
        self._check_available(lines)

        subtotal = cart_total(lines)
        shipping_fee = self.shipping_fee_for(subtotal)
        discount = Decimal("0")
        total = subtotal + shipping_fee - discount

        draft = OrderDraft(
            user_id=principal_id,
            order_number="",
            currency=self.ctx.currency,
            payment_method="stripe",
            subtotal=subtotal,
            shipping_fee=shipping_fee,
            discount=discount,
            total=total,
            note=details.note,
            **self._shipping_fields(user, details),
        )
        order_id = self._save_order(draft)
        self.repo.save_order_items(order_id, lines)
        self.repo.record_sales(lines)

        authorization = self.ctx.payments.authorize(
            total,
            self.ctx.currency,
            {"order_id": order_id, "order_number": draft.order_number, "user_id": principal_id},
        )

        try:
            self.repo.set_authorization(order_id, authorization.authorization_id)
            self.repo.clear_cart(principal_id, [line.id for line in lines])
            self.repo.commit()
        except Exception as e:
            self.repo.rollback()
            logger.error("Checkout for user %s failed after payment authorization: %s", principal_id, e)
            self._void(authorization.authorization_id)
            raise InternalError("Order could not be saved") from e

        order = self.repo.get_order(order_id)
        logger.info(
            "Order %s created for user %s: %d items, total %s %s",
            order.order_number, principal_id, len(order.items), order.total, order.currency,
        )
        return CheckoutResult(order=order, client_secret=authorization.client_secret)

    def _check_available(self, lines: List[CartLineSnapshot]) -> None:
        products = self.ctx.catalog.get_products(line.product_id for line in lines)
        unavailable = [line.product_name for line in lines if not products[line.product_id].is_active]
        if unavailable:
            raise ValidationError(
                "Some products are no longer available",
                details=[{"loc": ["cart"], "msg": name, "type": "unavailable"} for name in unavailable],
            )

    def shipping_fee_for(self, subtotal: Decimal) -> Decimal:
        threshold = self.ctx.free_shipping_threshold
        if threshold > 0 and subtotal >= threshold:
            return Decimal("0")
        return self.ctx.shipping_fee

    def _save_order(self, draft: OrderDraft) -> int:
        for _ in range(MAX_ORDER_NUMBER_ATTEMPTS):
            draft.order_number = generate_order_number(self.ctx.order_number_prefix)
            order_id = self.repo.save_order(draft)
            if order_id is not None:
                return order_id
            logger.warning("Order number %s already taken, drawing another", draft.order_number)
        raise InternalError("Could not allocate an order number")

    @staticmethod
    def _shipping_fields(user: User, details: CheckoutDetails) -> dict:
        address = details.shipping_address or user.address
        if not address:
            raise ValidationError(
                "Shipping address is required",
                details=[{"loc": ["shipping_address"], "msg": "field required", "type": "missing"}],
            )
        return {
            "shipping_name": details.shipping_name or user.full_name,
            "shipping_phone": details.shipping_phone or user.phone or "",
            "shipping_email": details.shipping_email or user.email,
            "shipping_address": address,
        }

    def _void(self, authorization_id: str) -> None:
        try:
            self.ctx.payments.void(authorization_id)
        except PaymentAuthorizationError:
            logger.exception("Payment %s could not be voided", authorization_id)

    # -- reads ---------------------------------------------------------------

    def list_orders(self, actor: Principal) -> List[OrderRecord]:
        return self.repo.list_orders(None if actor.is_admin else actor.id)

    def get_order(self, order_id: int, actor: Principal) -> OrderRecord:
        order = self.repo.get_order(order_id)
        if order is None:
            raise NotFoundError("Order not found")
        if not actor.is_admin and order.user_id != actor.id:
            raise ForbiddenError("Not authorized to view this order")
        return order

    # -- status lifecycle ----------------------------------------------------

    def update_order_status(
        self, order_id: int, new_status: str, actor: Principal, reason: Optional[str] = None
    ) -> OrderRecord:
        if not actor.is_admin:
            raise ForbiddenError("Admin access required")

        with self.ctx.locks.hold(("order", order_id)):
            order = self.repo.get_order(order_id)
            if order is None:
                raise NotFoundError("Order not found")
            target = assert_transition(order.status, new_status)

            now = datetime.utcnow()
            fields = {}
            if target == OrderStatus.SHIPPING:
                fields["shipped_at"] = now
            elif target == OrderStatus.DELIVERED:
                fields["delivered_at"] = now
            elif target == OrderStatus.CANCELLED:
                fields["cancelled_at"] = now
                fields["cancel_reason"] = reason

            try:
                if not self.repo.compare_and_set_status(order_id, order.status, target.value, fields):
                    raise ConflictError("Order status changed concurrently, reload and retry")
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise

            logger.info("Order %s status %s -> %s by user %s", order.order_number, order.status, target.value, actor.id)
            updated = self.repo.get_order(order_id)
            if (
                target == OrderStatus.CANCELLED
                and updated.payment_status == PaymentStatus.UNPAID.value
                and updated.payment_intent_id
            ):
                # release the uncaptured PaymentIntent
                self._void(updated.payment_intent_id)
        return updated

    def mark_paid(self, authorization_id: str) -> OrderRecord:
        """Record a settled payment for the order holding ``authorization_id``.

        Cancelled orders are refused; the payment is logged for a manual refund.
        """
        order = self.repo.get_order_by_authorization(authorization_id)
        if order is None:
            raise NotFoundError("No order for this payment")

        with self.ctx.locks.hold(("order", order.id)):
            order = self.repo.get_order(order.id)
            if order.payment_status == PaymentStatus.PAID.value:
                return order
            if order.status == OrderStatus.CANCELLED.value:
                logger.error(
                    "Payment %s settled for cancelled order %s (total %s %s), refund it manually",
                    authorization_id, order.order_number, order.total, order.currency,
                )
                raise ConflictError("Order was cancelled, the payment must be refunded")
            try:
                if not self.repo.compare_and_set_payment_status(
                    order.id,
                    PaymentStatus.UNPAID.value,
                    PaymentStatus.PAID.value,
                    {"paid_at": datetime.utcnow()},
                    exclude_status=OrderStatus.CANCELLED.value,
                ):
                    raise ConflictError(f"Order payment status is '{order.payment_status}'")
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise

        logger.info("Order %s marked as paid (%s)", order.order_number, authorization_id)
        return self.repo.get_order(order.id)
