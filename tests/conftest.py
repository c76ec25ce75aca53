from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import mongomock
import pytest
from fastapi.testclient import TestClient
from slugify import slugify

from database import get_db, init_indexes
from main import app
from payments import get_gateway
from security import create_access_token, hash_password


class FakeGateway:
    """Stands in for braintree.BraintreeGateway: records sales, approves or declines them."""

    def __init__(self):
        self.sales = []
        self.approve = True
        self.client_token = SimpleNamespace(generate=lambda: "fake-client-token")
        self.transaction = SimpleNamespace(sale=self._sale)

    def _sale(self, params):
        self.sales.append(params)
        if not self.approve:
            return SimpleNamespace(is_success=False, message="Processor Declined", transaction=None)
        tx = SimpleNamespace(
            id=f"tx{len(self.sales)}",
            status="submitted_for_settlement",
            amount=params["amount"],
            currency_iso_code="USD",
            payment_instrument_type="credit_card",
        )
        return SimpleNamespace(is_success=True, message=None, transaction=tx)


@pytest.fixture
def db():
    database = mongomock.MongoClient(tz_aware=True)["storefront_test"]
    init_indexes(database)
    return database


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(db, gateway):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(email="user@test.com", password="secret123", role=0, name="Test User", answer="blue"):
        user_id = db["user"].insert_one({
            "name": name,
            "email": email,
            "password": hash_password(password),
            "phone": "1234567890",
            "address": "1 Main St",
            "answer": answer,
            "role": role,
            "created_at": datetime.now(timezone.utc),
        }).inserted_id
        return user_id
    return _make


@pytest.fixture
def user_headers(make_user):
    user_id = make_user()
    return {"Authorization": create_access_token(user_id)}


@pytest.fixture
def admin_headers(make_user):
    admin_id = make_user(email="admin@test.com", role=1, name="Admin")
    return {"Authorization": create_access_token(admin_id)}


@pytest.fixture
def make_category(db):
    def _make(name):
        return db["category"].insert_one({"name": name, "slug": slugify(name)}).inserted_id
    return _make


@pytest.fixture
def make_product(db):
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make(name, category, price=10.0, description="A product", quantity=5, photo=None):
        counter["n"] += 1
        doc = {
            "name": name,
            "slug": slugify(name),
            "description": description,
            "price": price,
            "category": category,
            "quantity": quantity,
            "shipping": True,
            "photo": photo or {"data": None, "content_type": None},
            "created_at": base + timedelta(minutes=counter["n"]),
        }
        return db["product"].insert_one(doc).inserted_id
    return _make
