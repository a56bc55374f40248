from bson import ObjectId

from helpers import slugify


def test_slugify():
    assert slugify("Home & Garden") == "home-garden"
    assert slugify("  Café  Latte ") == "cafe-latte"


def test_create_category(client, db, admin_headers):
    res = client.post("/api/v1/category/create-category", json={"name": "Board Games"}, headers=admin_headers)
    assert res.status_code == 201
    body = res.json()
    assert body["message"] == "new category created"
    assert body["category"]["slug"] == "board-games"
    assert db["category"].count_documents({}) == 1


def test_create_category_requires_name(client, db, admin_headers):
    res = client.post("/api/v1/category/create-category", json={"named": "x"}, headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["message"] == "Name is required"


def test_create_duplicate_category(client, db, admin_headers, books):
    res = client.post("/api/v1/category/create-category", json={"name": "Books"}, headers=admin_headers)
    assert res.status_code == 409
    assert res.json()["message"] == "Category Already Exists"
    assert db["category"].count_documents({}) == 1


def test_update_category_recomputes_slug(client, db, admin_headers, books):
    res = client.put(f"/api/v1/category/update-category/{books}", json={"name": "Rare Books"}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["category"]["slug"] == "rare-books"
    assert db["category"].find_one({"_id": books})["name"] == "Rare Books"


def test_update_category_to_existing_name(client, admin_headers, books, games):
    res = client.put(f"/api/v1/category/update-category/{games}", json={"name": "Books"}, headers=admin_headers)
    assert res.status_code == 409


def test_update_missing_category(client, admin_headers):
    res = client.put(f"/api/v1/category/update-category/{ObjectId()}", json={"name": "Maps"}, headers=admin_headers)
    assert res.status_code == 404


def test_list_and_get_category(client, books, games):
    res = client.get("/api/v1/category/get-category")
    assert res.status_code == 200
    assert [c["name"] for c in res.json()["category"]] == ["Books", "Games"]

    one = client.get("/api/v1/category/get-one-category/games")
    assert one.status_code == 200
    assert one.json()["category"]["id"] == str(games)

    missing = client.get("/api/v1/category/get-one-category/nope")
    assert missing.status_code == 404


def test_delete_category(client, db, admin_headers, books):
    res = client.delete(f"/api/v1/category/delete-category/{books}", headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["message"] == "Category Deleted Successfully"
    assert db["category"].count_documents({}) == 0
    again = client.delete(f"/api/v1/category/delete-category/{books}", headers=admin_headers)
    assert again.status_code == 404


def test_database_failure_is_reported_with_cause(client, db, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(db["category"].__class__, "find", boom)
    res = client.get("/api/v1/category/get-category")
    assert res.status_code == 500
    assert res.json() == {"success": False, "message": "Error while getting all categories", "error": "db down"}
