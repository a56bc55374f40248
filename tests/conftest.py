from datetime import datetime, timedelta, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import gateway
from main import app
from schemas import Role
from security import create_access_token, get_password_hash

PASSWORD = "secret123"
BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeGateway:
    """Approves the nonce "fake-valid-nonce" and declines anything else."""

    def __init__(self):
        self.sales = []
        self.token_error = None
        self.sale_error = None

    def generate_client_token(self):
        if self.token_error:
            raise self.token_error
        return "fake-client-token"

    def sale(self, amount, nonce):
        if self.sale_error:
            raise self.sale_error
        self.sales.append((amount, nonce))
        transaction = {"id": f"tx{len(self.sales)}", "amount": amount}
        if nonce == "fake-valid-nonce":
            return {"success": True, "transaction": {**transaction, "status": "submitted_for_settlement"}}
        return {
            "success": False,
            "message": "Do Not Honor",
            "transaction": {**transaction, "status": "processor_declined"},
            "errors": [],
        }


def make_user(db, email, role=Role.CUSTOMER, name="Jane Doe", answer="blue"):
    return str(db["user"].insert_one({
        "name": name,
        "email": email,
        "password": get_password_hash(PASSWORD),
        "phone": "91234567",
        "address": "1 Main St",
        "answer": answer,
        "role": int(role),
        "created_at": BASE_TIME,
        "updated_at": BASE_TIME,
    }).inserted_id)


def make_category(db, name, slug):
    return db["category"].insert_one({"name": name, "slug": slug, "created_at": BASE_TIME}).inserted_id


def make_product(db, name, price, category_id, minutes=0, quantity=10, photo=None, description=None):
    doc = {
        "name": name,
        "slug": name.lower().replace(" ", "-"),
        "description": description or f"{name} description",
        "price": price,
        "category": category_id,
        "quantity": quantity,
        "shipping": True,
        "created_at": BASE_TIME + timedelta(minutes=minutes),
        "updated_at": BASE_TIME + timedelta(minutes=minutes),
    }
    if photo is not None:
        doc["photo"] = photo
    return db["product"].insert_one(doc).inserted_id


def auth_headers(user_id):
    return {"Authorization": create_access_token({"sub": user_id})}


@pytest.fixture
def db():
    mock_db = mongomock.MongoClient()["ecommerce_test"]
    database.ensure_indexes(mock_db)
    return mock_db


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def client(db, fake_gateway):
    app.dependency_overrides[database.get_db] = lambda: db
    app.dependency_overrides[gateway.get_gateway] = lambda: fake_gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def customer(db):
    return make_user(db, "jane@shop.com")


@pytest.fixture
def admin(db):
    return make_user(db, "admin@shop.com", role=Role.ADMIN, name="Admin")


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def books(db):
    return make_category(db, "Books", "books")


@pytest.fixture
def games(db):
    return make_category(db, "Games", "games")
