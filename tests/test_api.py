import pytest
from fastapi.testclient import TestClient

import main
from auth import get_current_user

CUSTOMER = {"id": "u1", "email": "asha@example.com", "name": "Asha", "role": "customer"}


@pytest.fixture
def client(product_source, promo_store, kv_storage):
    main.app.dependency_overrides[main.get_product_source] = lambda: product_source
    main.app.dependency_overrides[main.get_promo_store] = lambda: promo_store
    main.app.dependency_overrides[main.get_kv_backend] = lambda: kv_storage
    main.app.dependency_overrides[get_current_user] = lambda: CUSTOMER
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def test_root(client):
    assert client.get("/").json() == {"message": "Eyewear Store API"}


def test_list_products_filters_and_paginates(client):
    res = client.get("/products", params={"gender": ["women"], "sort": "price-desc"})
    assert res.status_code == 200
    body = res.json()
    assert [p["id"] for p in body["items"]] == ["2", "6", "3"]
    assert body["total"] == 3
    assert body["page"] == 1
    assert body["pages"] == 1

    res = client.get("/products", params={"page": 2, "limit": 3})
    assert [p["id"] for p in res.json()["items"]] == ["4", "5", "6"]


def test_list_products_other_category(client):
    res = client.get("/products", params={"category": "lenses", "max_price": 1000})
    assert res.json()["items"] == []


def test_featured_and_search(client):
    assert [p["id"] for p in client.get("/products/featured").json()] == ["3", "1", "8"]
    assert [p["id"] for p in client.get("/products/search", params={"q": "aviator"}).json()] == ["1", "8"]


def test_product_detail(client):
    assert client.get("/products/3").json()["price"] == 1499
    assert client.get("/products/404").status_code == 404


def test_lens_options(client):
    body = client.get("/lens-options").json()
    assert [t["id"] for t in body["lens_types"]] == ["zeroPower", "singleVision", "bifocal"]
    assert {a["id"]: a["price"] for a in body["addons"]}["photochromic"] == 800


def test_cart_flow(client):
    res = client.post("/cart", json={"product_id": "1", "lens_type": "singleVision", "addons": ["blueCut"], "quantity": 2})
    assert res.status_code == 200
    body = res.json()
    assert body["subtotal"] == 6598
    assert body["delivery_free"] is True
    assert body["total"] == 6598

    client.post("/cart", json={"product_id": "1", "lens_type": "singleVision", "addons": ["blueCut"]})
    body = client.get("/cart").json()
    assert len(body["items"]) == 1
    assert body["item_count"] == 3

    body = client.patch("/cart/1-singleVision", json={"quantity": 0}).json()
    assert body["item_count"] == 3

    body = client.patch("/cart/1-singleVision", json={"quantity": 1}).json()
    assert body["subtotal"] == 3299

    body = client.delete("/cart/1-singleVision").json()
    assert body["items"] == []
    assert body["delivery_charge"] == 99


def test_cart_rejects_unknown_product(client):
    assert client.post("/cart", json={"product_id": "nope"}).status_code == 404


def test_cart_rejects_zero_quantity_on_add(client):
    assert client.post("/cart", json={"product_id": "1", "quantity": 0}).status_code == 422


def test_clear_cart(client):
    client.post("/cart", json={"product_id": "4"})
    assert client.delete("/cart").json()["item_count"] == 0


def test_wishlist(client):
    assert client.post("/wishlist/3").json() == {"product_id": "3", "wishlisted": True, "count": 1}
    assert client.get("/wishlist").json() == {"ids": ["3"], "count": 1}
    assert client.post("/wishlist/3").json()["wishlisted"] is False


def test_promo_validate(client):
    body = client.post("/promo/validate", json={"code": "save20", "subtotal": 1000}).json()
    assert body["valid"] is True
    assert body["discount_amount"] == 200

    body = client.post("/promo/validate", json={"code": "OLD10", "subtotal": 1000}).json()
    assert body == {"valid": False, "message": "Promo code expired"}


def test_order_with_bad_promo_is_rejected(client):
    client.post("/cart", json={"product_id": "1"})
    res = client.post("/orders", json={
        "shipping_name": "Asha",
        "shipping_phone": "9876543210",
        "shipping_address": "12 MG Road",
        "promo_code": "USEDUP",
    })
    assert res.status_code == 400
    assert res.json()["detail"] == "Promo code limit reached"


def test_admin_routes_need_admin(client):
    assert client.get("/admin/dashboard").status_code == 403
    assert client.post("/admin/promo-codes", json={"code": "X", "discount_value": 5}).status_code == 403


def test_auth_required_without_override(product_source):
    main.app.dependency_overrides[main.get_product_source] = lambda: product_source
    try:
        plain = TestClient(main.app)
        assert plain.get("/cart").status_code == 401
        assert plain.get("/products").status_code == 200
    finally:
        main.app.dependency_overrides.clear()


def test_anonymous_session_cart_persists_to_data_dir(product_source, tmp_path, monkeypatch):
    monkeypatch.setattr(main.config, "DATA_DIR", tmp_path)
    main.app.dependency_overrides[main.get_product_source] = lambda: product_source
    try:
        plain = TestClient(main.app)
        headers = {"X-Session-Id": "guest_abc12345"}
        assert plain.post("/cart", json={"product_id": "3"}, headers=headers).status_code == 200
        assert plain.post("/wishlist/3", headers=headers).json()["count"] == 1

        body = plain.get("/cart", headers=headers).json()
        assert body["item_count"] == 1
        assert body["subtotal"] == 1499
        assert (tmp_path / "sessions" / "guest_abc12345.json").exists()

        assert plain.get("/cart", headers={"X-Session-Id": "other-session-1"}).json()["items"] == []
        assert plain.get("/cart", headers={"X-Session-Id": "short"}).status_code == 401
        assert plain.get("/cart", headers={"X-Session-Id": "../../etc/passwd"}).status_code == 401
    finally:
        main.app.dependency_overrides.clear()
