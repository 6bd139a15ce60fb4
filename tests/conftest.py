import os
from datetime import datetime, timedelta

# Settings are read once at import time; pin them before storeapi loads.
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_storeapi_app.db")
os.environ.setdefault("MERCHANT_SECRET", "test_merchant_secret")
os.environ.setdefault("MERCHANT_UPI", "teststore@sbi")
os.environ.setdefault("JWT_SECRET", "test_jwt_secret")

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from storeapi.config import get_settings
from storeapi.database import Base
from storeapi.main import app as fastapi_app
from storeapi.merchant import MerchantDirectory
from storeapi.models import Product
from storeapi.payments import PaymentIntentManager
from storeapi.signature import Signer

SQLALCHEMY_DATABASE_URL = "sqlite:///./test_temp.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={
                       "check_same_thread": False})
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine)

MERCHANT_UPI = "teststore@sbi"


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db():
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def client(monkeypatch):
    # Route every request session to the test database
    monkeypatch.setattr("storeapi.database.SessionLocal", TestingSessionLocal)
    with TestClient(fastapi_app) as c:
        yield c


@pytest.fixture
def admin_headers():
    token = jwt.encode({"sub": "admin", "role": "admin"},
                       get_settings().jwt_secret, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 1, 15, 10, 30, 0))


@pytest.fixture
def manager(db, clock):
    return PaymentIntentManager(
        db,
        Signer(get_settings().merchant_secret),
        MerchantDirectory(db, MERCHANT_UPI),
        clock=clock,
    )


@pytest.fixture
def product(db):
    p = Product(
        id="P-1001",
        name="Basmati Rice",
        brand="Tilda",
        weight="5 kg",
        images=[{"url": "https://cdn.example.com/rice.jpg"}],
        category="Staples",
        mrp=899.0,
        dmart_price=749.0,
        discount=150.0,
        discount_percent=16.7,
        stock_quantity=20,
        is_veg=True,
        rating=4.5,
        status="active",
    )
    db.add(p)
    db.commit()
    return p
