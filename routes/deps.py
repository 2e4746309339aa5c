from fastapi import Depends
from sqlalchemy.orm import Session

from core.config import settings
from core.db import get_db
from core.locks import KeyedLocks
from models.user import User
from routes.auth import get_current_user
from services.context import Principal, ServiceContext
from services.orders import OrderLifecycleManager
from services.payments import PaymentGateway, StripePaymentGateway

# Shared by every request handled in this process
checkout_locks = KeyedLocks(timeout=settings.CHECKOUT_LOCK_TIMEOUT_SECONDS)


def get_payment_gateway() -> PaymentGateway:
    return StripePaymentGateway()


def get_principal(current_user: User = Depends(get_current_user)) -> Principal:
    return Principal(id=current_user.id, role=current_user.role)


def get_service_context(
    db: Session = Depends(get_db), payments: PaymentGateway = Depends(get_payment_gateway)
) -> ServiceContext:
    return ServiceContext.from_settings(db, payments, checkout_locks)


def get_order_manager(context: ServiceContext = Depends(get_service_context)) -> OrderLifecycleManager:
    return OrderLifecycleManager(context)
