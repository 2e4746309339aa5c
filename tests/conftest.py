import itertools
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from main import app
from core.db import Base, build_engine, get_db
from core import config as core_config
from core.errors import PaymentAuthorizationError
from core.locks import KeyedLocks
from models.product import Product
from models.user import User
from routes.deps import get_payment_gateway
from security.password import hash_password
from security import jwt as jwt_utils
from services import email as email_service
from services.context import ServiceContext
from services.orders import OrderLifecycleManager
from services.payments import PaymentAuthorization


class FakePaymentGateway:
    """In-memory stand-in for the Stripe gateway."""

    def __init__(self):
        self._ids = itertools.count(1)
        self.authorized = []
        self.voided = []
        self.fail_with = None

    def authorize(self, amount, currency, metadata):
        if self.fail_with is not None:
            raise self.fail_with
        if amount <= 0:
            raise PaymentAuthorizationError("Payment amount must be greater than 0")
        auth_id = f"pi_test_{next(self._ids)}"
        self.authorized.append({"id": auth_id, "amount": amount, "currency": currency, "metadata": metadata})
        return PaymentAuthorization(authorization_id=auth_id, client_secret=f"{auth_id}_secret")

    def void(self, authorization_id):
        self.voided.append(authorization_id)


@pytest.fixture(scope="session", autouse=True)
def test_settings():
    core_config.settings.JWT_SECRET = "test-secret"
    core_config.settings.REFRESH_SECRET = "test-refresh"
    core_config.settings.DEBUG = True
    core_config.settings.TESTING = True
    yield


@pytest.fixture()
def db_session_override():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()

    def _get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db
    try:
        yield db
    finally:
        db.close()
        app.dependency_overrides.clear()
        engine.dispose()


@pytest.fixture(autouse=True)
def mock_email_send(monkeypatch):
    sent = []

    def _fake_send(to_email: str, subject: str, body: str) -> None:
        sent.append({"to": to_email, "subject": subject, "body": body})

    monkeypatch.setattr(email_service, "send_email", _fake_send)
    return sent


@pytest.fixture()
def payments():
    return FakePaymentGateway()


@pytest.fixture()
def client(db_session_override, payments):
    app.dependency_overrides[get_payment_gateway] = lambda: payments
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def service_context(db_session_override, payments):
    return ServiceContext(
        db=db_session_override,
        payments=payments,
        locks=KeyedLocks(timeout=5),
    )


@pytest.fixture()
def manager(service_context):
    return OrderLifecycleManager(service_context)


def _make_user(db, email, role="user", address="12 Book Street, Hanoi"):
    user = User(
        first_name="Test",
        last_name="User" if role == "user" else "Admin",
        email=email,
        password_hash=hash_password("testpass123"),
        role=role,
        is_verified=True,
        phone="0900000000",
        address=address,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def test_user(db_session_override):
    """Create a test user."""
    return _make_user(db_session_override, "test@example.com")


@pytest.fixture
def other_user(db_session_override):
    return _make_user(db_session_override, "other@example.com")


@pytest.fixture
def admin_user(db_session_override):
    return _make_user(db_session_override, "admin@example.com", role="admin")


@pytest.fixture
def auth_headers(test_user):
    """Return authorization headers with valid token."""
    return {"Authorization": f"Bearer {jwt_utils.create_access_token(str(test_user.id))}"}


@pytest.fixture
def other_headers(other_user):
    return {"Authorization": f"Bearer {jwt_utils.create_access_token(str(other_user.id))}"}


@pytest.fixture
def admin_headers(admin_user):
    return {"Authorization": f"Bearer {jwt_utils.create_access_token(str(admin_user.id), role='admin')}"}


def _make_product(db, name, price, stock=10, is_active=True):
    slug = name.lower().replace(" ", "-")
    product = Product(
        name=name,
        slug=slug,
        price=Decimal(price),
        stock=stock,
        author="Some Author",
        thumbnail=f"https://img.example.com/{slug}.jpg",
        is_active=is_active,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


@pytest.fixture
def book_a(db_session_override):
    return _make_product(db_session_override, "Book A", "100000")


@pytest.fixture
def book_b(db_session_override):
    return _make_product(db_session_override, "Book B", "50000")


@pytest.fixture
def inactive_book(db_session_override):
    return _make_product(db_session_override, "Retired Book", "75000", is_active=False)
