from datetime import datetime, timedelta, timezone

import pytest

from schemas import Product, PromoCode
from stores import JsonFileStorage, ListStore, StaticProductSource, StaticPromoStore


def make_product(id, **overrides) -> Product:
    data = {
        "id": str(id),
        "name": f"Frame {id}",
        "price": 1000,
        "category": "frames",
        "gender": "unisex",
        "shape": "round",
        "colors": ["#1a1a1a"],
        "rating": 4.0,
        "images": [f"/img/{id}.jpg"],
    }
    data.update(overrides)
    return Product(**data)


@pytest.fixture
def products():
    return [
        make_product(1, price=2499, gender="men", shape="aviator", colors=["#1a1a1a", "#8B4513"], rating=4.6, badge="bestseller"),
        make_product(2, price=1899, gender="women", shape="round", colors=["#8B4513"], rating=4.4, badge="new"),
        make_product(3, price=1499, gender="unisex", shape="rectangle", colors=["#1a1a1a", "#808080"], rating=4.7, badge="bestseller"),
        make_product(4, price=999, gender="kids", shape="square", colors=["#003366"], rating=4.2),
        make_product(5, price=4999, gender="men", shape="rectangle", colors=["#808080"], rating=4.8, badge="limited"),
        make_product(6, price=1899, gender="women", shape="square", colors=["#d4d4d4"], rating=4.4),
        make_product(7, price=1299, category="lenses", gender="unisex", material="Polycarbonate", rating=4.5),
        make_product(8, price=3499, category="sunglasses", gender="men", shape="aviator", rating=4.6, badge="bestseller"),
        make_product(9, price=2099, gender="men", shape="round", colors=["#1a1a1a"], rating=3.9),
    ]


@pytest.fixture
def product_source(products):
    return StaticProductSource(products)


@pytest.fixture
def promo_store():
    now = datetime.now(timezone.utc)
    return StaticPromoStore([
        PromoCode(code="SAVE20", discount_type="percent", discount_value=20, min_order_value=0),
        PromoCode(code="FLAT500", discount_type="fixed", discount_value=500, min_order_value=2000),
        PromoCode(code="OLD10", discount_type="percent", discount_value=10, expires_at=now - timedelta(days=1)),
        PromoCode(code="USEDUP", discount_type="percent", discount_value=10, max_uses=5, used_count=5),
        PromoCode(code="PAUSED", discount_type="percent", discount_value=10, is_active=False),
    ])


@pytest.fixture
def kv_storage(tmp_path):
    return JsonFileStorage(tmp_path / "session.json")


@pytest.fixture
def cart_store(kv_storage):
    return ListStore(kv_storage, "sc_cart")
