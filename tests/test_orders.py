import pytest

from cart import Cart, build_config
from conftest import make_product
from orders import build_order, payment_update
from promo import validate_promo
from schemas import ShippingDetails

SHIPPING = ShippingDetails(shipping_name="Asha Rao", shipping_phone="9876543210", shipping_address="12 MG Road, Pune")


def test_build_order_snapshots_cart():
    cart = Cart()
    cart.add_item(make_product(1, price=2499), build_config("singleVision", ["blueCut"], 2))
    order = build_order("u1", cart, SHIPPING)
    assert order.user_id == "u1"
    assert order.shipping_name == "Asha Rao"
    assert len(order.items) == 1
    assert order.items[0].line_total == 6598
    assert order.items[0].addons[0].id == "blueCut"
    assert order.subtotal == 6598
    assert order.delivery_charge == 0
    assert order.discount == 0
    assert order.total == 6598
    assert order.status == "pending"
    assert order.payment_status == "pending"


def test_build_order_applies_promo_and_delivery(promo_store):
    cart = Cart()
    cart.add_item(make_product(1, price=1000))
    promo = validate_promo("SAVE20", cart.subtotal, promo_store)
    order = build_order("u1", cart, SHIPPING, promo, payment_method="razorpay")
    assert order.discount == 200
    assert order.promo_code == "SAVE20"
    # delivery is judged on the subtotal before discount
    assert order.delivery_charge == 99
    assert order.total == 899
    assert order.payment_method == "razorpay"


def test_invalid_promo_result_is_ignored(promo_store):
    cart = Cart()
    cart.add_item(make_product(1, price=1600))
    order = build_order("u1", cart, SHIPPING, validate_promo("NOPE", 1600, promo_store))
    assert order.discount == 0
    assert order.promo_code is None
    assert order.total == 1600


def test_empty_cart_cannot_become_an_order():
    with pytest.raises(ValueError):
        build_order("u1", Cart(), SHIPPING)


def test_payment_update():
    assert payment_update("rp_1", "pay_1", "paid") == {
        "razorpay_order_id": "rp_1",
        "payment_id": "pay_1",
        "payment_status": "paid",
        "status": "confirmed",
    }
    assert payment_update(None, None, "failed")["status"] == "pending"
