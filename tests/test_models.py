from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

import models  # noqa: F401
from core.db import Base, build_engine
from models.cart_item import CartItem
from models.order import Order
from models.order_item import OrderItem
from models.product import Product
from models.review import Review
from models.user import User


@pytest.fixture
def db_session():
    """Create a test database session"""
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def user(db_session):
    user = User(first_name="John", last_name="Doe", email="john.doe@example.com", password_hash="hashed")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def product(db_session):
    product = Product(name="Dune", slug="dune", price=Decimal("120000"), stock=5)
    db_session.add(product)
    db_session.commit()
    return product


class TestUser:
    """Test cases for User model"""

    def test_user_default_values(self, db_session, user):
        db_session.refresh(user)

        assert user.role == "user"
        assert user.is_admin is False
        assert user.is_verified is False
        assert isinstance(user.created_at, datetime)

    def test_full_name(self, user):
        assert user.full_name == "John Doe"

    def test_email_unique(self, db_session, user):
        db_session.add(User(first_name="A", last_name="B", email="john.doe@example.com", password_hash="x"))
        with pytest.raises(IntegrityError):
            db_session.commit()


class TestProduct:
    def test_product_defaults(self, db_session, product):
        db_session.refresh(product)

        assert product.is_active is True
        assert product.is_featured is False
        assert product.rating_count == 0
        assert product.price == Decimal("120000")

    def test_negative_price_rejected(self, db_session):
        db_session.add(Product(name="Bad", slug="bad", price=Decimal("-1"), stock=0))
        with pytest.raises(IntegrityError):
            db_session.commit()


class TestCartItem:
    def test_one_line_per_product(self, db_session, user, product):
        db_session.add(CartItem(user_id=user.id, product_id=product.id, quantity=1, price=product.price))
        db_session.commit()
        db_session.add(CartItem(user_id=user.id, product_id=product.id, quantity=2, price=product.price))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_quantity_must_be_positive(self, db_session, user, product):
        db_session.add(CartItem(user_id=user.id, product_id=product.id, quantity=0, price=product.price))
        with pytest.raises(IntegrityError):
            db_session.commit()


class TestOrder:
    def _order(self, user, number="EBTEST0001"):
        return Order(
            order_number=number,
            user_id=user.id,
            subtotal=Decimal("240000"),
            shipping_fee=Decimal("0"),
            discount=Decimal("0"),
            total=Decimal("240000"),
            shipping_name="John Doe",
            shipping_phone="0900000000",
            shipping_address="1 Main St",
        )

    def test_order_defaults_and_items(self, db_session, user, product):
        order = self._order(user)
        order.items.append(
            OrderItem(product_id=product.id, product_name=product.name, quantity=2, price=Decimal("120000"))
        )
        db_session.add(order)
        db_session.commit()
        db_session.refresh(order)

        assert order.status == "pending"
        assert order.payment_status == "unpaid"
        assert order.payment_method == "stripe"
        assert len(order.items) == 1
        assert order.items[0].order_id == order.id

    def test_order_number_unique(self, db_session, user):
        db_session.add(self._order(user))
        db_session.commit()
        db_session.add(self._order(user))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_items_deleted_with_order(self, db_session, user, product):
        order = self._order(user)
        order.items.append(OrderItem(product_id=product.id, product_name="Dune", quantity=1, price=Decimal("1")))
        db_session.add(order)
        db_session.commit()

        db_session.delete(order)
        db_session.commit()

        assert db_session.query(OrderItem).count() == 0


class TestReview:
    def test_rating_range_enforced(self, db_session, user, product):
        db_session.add(Review(user_id=user.id, product_id=product.id, rating=6))
        with pytest.raises(IntegrityError):
            db_session.commit()
