from typing import Any, Dict, Optional

from cart import Cart, delivery_charge, unit_total_minor
from money import from_minor, to_minor
from schemas import Order, OrderItem, PromoResult, ShippingDetails

ORDER_STATUSES = ("pending", "confirmed", "processing", "dispatched", "delivered", "cancelled")


def build_order(
    user_id: Optional[str],
    cart: Cart,
    shipping: ShippingDetails,
    promo_result: Optional[PromoResult] = None,
    payment_method: str = "cod",
) -> Order:
    """Snapshot the cart into an order. Delivery is charged on the subtotal before discount."""
    if not cart.items:
        raise ValueError("Cart is empty")

    items = [
        OrderItem(
            product_id=i.product_id,
            name=i.name,
            unit_price=i.unit_price,
            lens_type_id=i.lens_type_id,
            lens_type_surcharge=i.lens_type_surcharge,
            addons=i.addons,
            addons_surcharge=i.addons_surcharge,
            image=i.image,
            quantity=i.quantity,
            line_total=from_minor(unit_total_minor(i) * i.quantity),
        )
        for i in cart.items
    ]

    subtotal_minor = cart.subtotal_minor
    discount_minor = 0
    promo_code = None
    if promo_result and promo_result.valid:
        discount_minor = to_minor(promo_result.discount_amount or 0)
        promo_code = promo_result.promo.code if promo_result.promo else None
    delivery_minor = to_minor(delivery_charge(from_minor(subtotal_minor)))

    return Order(
        **shipping.model_dump(),
        user_id=user_id,
        items=items,
        subtotal=from_minor(subtotal_minor),
        discount=from_minor(discount_minor),
        promo_code=promo_code,
        delivery_charge=from_minor(delivery_minor),
        total=from_minor(subtotal_minor - discount_minor + delivery_minor),
        payment_method=payment_method,
    )


def payment_update(razorpay_order_id: Optional[str], payment_id: Optional[str], payment_status: str) -> Dict[str, Any]:
    return {
        "razorpay_order_id": razorpay_order_id,
        "payment_id": payment_id,
        "payment_status": payment_status,
        "status": "confirmed" if payment_status == "paid" else "pending",
    }
