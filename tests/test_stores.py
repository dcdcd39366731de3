import json
import threading

from admin import slugify, summarize_revenue
from cart import CART_KEY, Cart
from conftest import make_product
from stores import JsonFileStorage, ListStore, StaticProductSource


def test_static_source_hides_inactive_products():
    source = StaticProductSource([make_product(1), make_product(2, is_active=False)])
    assert [p.id for p in source.fetch_all()] == ["1"]
    assert source.get("2") is None
    assert source.get("1").name == "Frame 1"


def test_product_file_skips_invalid_entries(tmp_path):
    path = tmp_path / "products.json"
    path.write_text(json.dumps([
        {"id": "1", "name": "Ok", "price": 100, "category": "frames"},
        {"id": "2", "name": "No price", "category": "frames"},
        "junk",
    ]), encoding="utf-8")
    assert [p.id for p in StaticProductSource.from_json(path).fetch_all()] == ["1"]


def test_missing_product_file_is_empty(tmp_path):
    assert StaticProductSource.from_json(tmp_path / "absent.json").fetch_all() == []


def test_bundled_catalog_loads():
    from config import PRODUCTS_FILE

    products = StaticProductSource.from_json(PRODUCTS_FILE).fetch_all()
    assert len(products) > 0
    assert {p.category for p in products} == {"frames", "lenses", "sunglasses"}


def test_json_storage_keeps_keys_apart(tmp_path):
    storage = JsonFileStorage(tmp_path / "nested" / "kv.json")
    assert storage.get("sc_cart") is None
    storage.set("sc_cart", [1])
    storage.set("sc_wishlist", ["a"])
    assert storage.get("sc_cart") == [1]
    assert storage.get("sc_wishlist") == ["a"]


def run_threads(target, count=4):
    errors = []

    def worker(n):
        try:
            target(n)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return errors


def test_json_storage_concurrent_writers_keep_every_key(tmp_path):
    path = tmp_path / "kv.json"

    def write(n):
        storage = JsonFileStorage(path)
        for i in range(50):
            storage.set(f"k{n}-{i}", i)

    assert run_threads(write) == []
    data = json.loads(path.read_text(encoding="utf-8"))
    assert len(data) == 200
    assert data["k3-49"] == 49
    assert [p.name for p in tmp_path.iterdir()] == ["kv.json"]


def test_concurrent_cart_writes_leave_a_readable_cart(tmp_path):
    path = tmp_path / "session.json"

    def add(n):
        for _ in range(50):
            Cart.load(ListStore(JsonFileStorage(path), CART_KEY)).add_item(make_product(n))

    assert run_threads(add) == []
    cart = Cart.load(ListStore(JsonFileStorage(path), CART_KEY))
    assert cart.item_count >= 1
    assert {i.product_id for i in cart.items} <= {"0", "1", "2", "3"}


def test_list_store_non_list_value_loads_empty(tmp_path):
    storage = JsonFileStorage(tmp_path / "kv.json")
    storage.set("sc_cart", "oops")
    assert ListStore(storage, "sc_cart").load() == []


def test_slugify():
    assert slugify("Sun Glasses & More!") == "sun-glasses-more"
    assert slugify("  Frames ") == "frames"


def test_summarize_revenue():
    assert summarize_revenue([{"total": 0.1}, {"total": 0.2}, {"total": None}, {}]) == 0.3
