import mongomock
from fastapi.testclient import TestClient

import database
from main import app


def test_root(client):
    assert client.get("/").json() == {"message": "E‑commerce backend is running"}


def test_health_without_database(client):
    body = client.get("/test").json()
    assert body["backend"] == "✅ Running"
    assert "payment_gateway" in body


def test_unknown_route_uses_error_envelope(client):
    res = client.get("/api/v1/nothing-here")
    assert res.status_code == 404
    assert res.json()["success"] is False


def test_malformed_body_is_a_validation_error(client, customer_headers):
    res = client.post("/api/v1/product/braintree/payment", json={"cart": "not-a-list"}, headers=customer_headers)
    assert res.status_code == 400
    assert res.json()["success"] is False


def test_startup_creates_indexes(monkeypatch):
    fresh = mongomock.MongoClient().db
    monkeypatch.setattr(database, "db", fresh)
    with TestClient(app):
        pass
    assert fresh["user"].index_information()["email_1"]["unique"] is True
    assert "slug_1" in fresh["category"].index_information()
