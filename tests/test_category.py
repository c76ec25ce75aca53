import pytest
from slugify import slugify


def test_create_category_sets_slug(client, db, admin_headers):
    res = client.post("/api/v1/category/create-category", headers=admin_headers, json={"name": "Home Office"})
    assert res.status_code == 201
    category = res.json()["category"]
    assert category["slug"] == slugify("Home Office") == "home-office"
    assert db["category"].find_one({"name": "Home Office"})["slug"] == "home-office"


def test_create_category_requires_name(client, admin_headers):
    res = client.post("/api/v1/category/create-category", headers=admin_headers, json={})
    assert res.status_code == 400
    assert res.json()["message"] == "Name is required"


def test_duplicate_category_is_rejected(client, db, admin_headers):
    client.post("/api/v1/category/create-category", headers=admin_headers, json={"name": "Books"})
    res = client.post("/api/v1/category/create-category", headers=admin_headers, json={"name": "Books"})
    assert res.status_code == 409
    assert res.json()["success"] is False
    assert db["category"].count_documents({}) == 1


def test_category_writes_require_admin(client, user_headers):
    res = client.post("/api/v1/category/create-category", headers=user_headers, json={"name": "Books"})
    assert res.status_code == 401
    assert client.post("/api/v1/category/create-category", json={"name": "Books"}).status_code == 401


def test_update_category(client, db, admin_headers, make_category):
    cid = make_category("Toys")
    res = client.put(f"/api/v1/category/update-category/{cid}", headers=admin_headers, json={"name": "Games & Toys"})
    assert res.status_code == 200
    assert res.json()["category"]["slug"] == slugify("Games & Toys")
    assert db["category"].find_one({"_id": cid})["name"] == "Games & Toys"


def test_update_category_to_existing_name(client, admin_headers, make_category):
    make_category("Books")
    cid = make_category("Toys")
    res = client.put(f"/api/v1/category/update-category/{cid}", headers=admin_headers, json={"name": "Books"})
    assert res.status_code == 409


def test_update_category_keeping_its_own_name(client, admin_headers, make_category):
    cid = make_category("Toys")
    res = client.put(f"/api/v1/category/update-category/{cid}", headers=admin_headers, json={"name": "Toys"})
    assert res.status_code == 200


@pytest.mark.parametrize("category_id", ["000000000000000000000000", "garbage"])
def test_update_and_delete_missing_category(client, admin_headers, category_id):
    res = client.put(f"/api/v1/category/update-category/{category_id}", headers=admin_headers, json={"name": "X"})
    assert res.status_code == 404
    res = client.delete(f"/api/v1/category/delete-category/{category_id}", headers=admin_headers)
    assert res.status_code == 404


def test_delete_category(client, db, admin_headers, make_category):
    cid = make_category("Garden")
    res = client.delete(f"/api/v1/category/delete-category/{cid}", headers=admin_headers)
    assert res.status_code == 200
    assert db["category"].count_documents({}) == 0
    res = client.delete(f"/api/v1/category/delete-category/{cid}", headers=admin_headers)
    assert res.status_code == 404


def test_list_and_single_category(client, make_category):
    make_category("Books")
    make_category("Electronics")
    res = client.get("/api/v1/category/get-category")
    assert [c["name"] for c in res.json()["category"]] == ["Books", "Electronics"]
    res = client.get("/api/v1/category/single-category/electronics")
    assert res.json()["category"]["name"] == "Electronics"
    assert client.get("/api/v1/category/single-category/nope").status_code == 404
