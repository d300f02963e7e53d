import fnmatch
import hashlib
import hmac
import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# configure before any app module reads the environment
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["EMAIL_HOST"] = ""
os.environ["REDIS_KEY_PREFIX"] = "test:"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from main import app
from models.product_model import Product
from models.user_model import User
from schemas.order_schema import OrderCreate, OrderItemIn, ShippingAddress
from services import notification_services
from services.order_services import OrderService
from utils.app_config import JWT_ALGORITHM, JWT_SECRET_KEY
from utils.redis_client import redis_client


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


class FakeRedis:
    """Just enough of the redis-py API for RedisClient."""

    def __init__(self):
        self.store = {}

    def ping(self):
        return True

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value

    def delete(self, *keys):
        return sum(1 for k in keys if self.store.pop(k, None) is not None)

    def scan_iter(self, match="*"):
        return [k for k in list(self.store) if fnmatch.fnmatch(k, match)]


def sign(gateway_order_id: str, payment_id: str, secret: str = "rzp_test_secret") -> str:
    return hmac.new(
        secret.encode(),
        f"{gateway_order_id}|{payment_id}".encode(),
        hashlib.sha256,
    ).hexdigest()


def auth_headers(user: User) -> dict:
    now = datetime.now(timezone.utc)
    claims = {"sub": user.email, "sub_id": user.id, "iat": now, "exp": now + timedelta(minutes=30)}
    token = jwt.encode(claims, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(redis_client, "client", fake)
    return fake


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    sent = []

    def fake_send_email(to, subject, html, text=None):
        sent.append({"to": to, "subject": subject, "html": html})
        return True

    monkeypatch.setattr(notification_services, "send_email", fake_send_email)
    return sent


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def customer(db):
    user = User(name="Asha Rao", email="asha@example.com", role="customer")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def other_customer(db):
    user = User(name="Vikram Shah", email="vikram@example.com", role="customer")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin(db):
    user = User(name="Store Admin", email="admin@example.com", role="admin")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


def _product(db, name, price, stock):
    product = Product(
        name=name,
        price=Decimal(price),
        image=f"{name.lower().replace(' ', '-')}.jpg",
        status="active",
        in_stock=True,
        stock_quantity=stock,
        reserved_quantity=0,
        track_inventory=True,
        allow_backorder=False,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


@pytest.fixture
def product(db):
    return _product(db, "Brass Diya", "20.00", 10)


@pytest.fixture
def second_product(db):
    return _product(db, "Incense Sticks", "12.50", 5)


@pytest.fixture
def place_order(db, customer, product):
    """Create an order through the service. Defaults to 2 x 20.00 + 10.00 shipping."""

    def _place(quantity=2, user=None, items=None):
        data = OrderCreate(
            items=items or [OrderItemIn(product_id=product.id, quantity=quantity)],
            shipping_address=ShippingAddress(full_name="Asha Rao", city="Pune", country="IN"),
        )
        return OrderService(db).create_order((user or customer).id, data)

    return _place
