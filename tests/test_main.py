import mongomock
from fastapi.testclient import TestClient

from database import get_db
from main import app


def test_root(client):
    assert client.get("/").json() == {"message": "Welcome to the Storefront API"}


def test_database_status(client, make_category):
    make_category("Books")
    body = client.get("/test").json()
    assert body["connection_status"] == "Connected"
    assert body["database_name"] == "storefront_test"
    assert "category" in body["collections"]


def test_unknown_route_uses_envelope(client):
    res = client.get("/api/v1/nowhere")
    assert res.status_code == 404
    assert res.json() == {"success": False, "message": "Not Found"}


def test_malformed_body_is_400(client):
    res = client.post("/api/v1/product/product-filters", json={"radio": ["cheap", "expensive"]})
    assert res.status_code == 400
    assert res.json()["success"] is False


def test_startup_ensures_indexes():
    database = mongomock.MongoClient(tz_aware=True)["storefront_startup"]
    app.dependency_overrides[get_db] = lambda: database
    try:
        with TestClient(app) as client:
            assert client.get("/").status_code == 200
    finally:
        app.dependency_overrides.clear()
    assert database["user"].index_information()["email_1"]["unique"] is True
    assert database["checkout"].index_information()["buyer_1_idempotency_key_1"]["unique"] is True


def test_startup_survives_unreachable_database(caplog):
    def unreachable():
        raise ConnectionError("no server")

    app.dependency_overrides[get_db] = unreachable
    try:
        with TestClient(app) as client:
            assert client.get("/").status_code == 200
    finally:
        app.dependency_overrides.clear()
    assert "Could not ensure indexes" in caplog.text
