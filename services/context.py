from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.orm import Session

from core.config import settings
from core.locks import KeyedLocks
from services.catalog import Catalog
from services.payments import PaymentGateway


@dataclass(frozen=True)
class Principal:
    """Verified caller identity supplied by the auth layer."""

    id: int
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


@dataclass
class ServiceContext:
    """Collaborators the order services run against.

    Built per request by the routes and by hand in tests.
    """

    db: Session
    payments: PaymentGateway
    locks: KeyedLocks
    currency: str = "vnd"
    shipping_fee: Decimal = Decimal("0")
    free_shipping_threshold: Decimal = Decimal("0")
    order_number_prefix: str = "EB"
    catalog: Catalog = field(init=False)

    def __post_init__(self):
        self.catalog = Catalog(self.db)

    @classmethod
    def from_settings(cls, db: Session, payments: PaymentGateway, locks: KeyedLocks) -> "ServiceContext":
        return cls(
            db=db,
            payments=payments,
            locks=locks,
            currency=settings.CURRENCY,
            shipping_fee=settings.SHIPPING_FEE,
            free_shipping_threshold=settings.FREE_SHIPPING_THRESHOLD,
            order_number_prefix=settings.ORDER_NUMBER_PREFIX,
        )
