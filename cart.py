"""
Shopping cart and wishlist.

A Cart owns an ordered list of line items keyed by product id + lens type
and writes the whole list back to its storage after every change. Storage
is anything with load() -> list and save(list), usually stores.ListStore.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from config import DELIVERY_CHARGE, FREE_DELIVERY_THRESHOLD
from money import from_minor, to_minor
from schemas import Addon, CartLineItem, LensConfig, Product

logger = logging.getLogger(__name__)

CART_KEY = "sc_cart"
WISHLIST_KEY = "sc_wishlist"
ZERO_POWER = "zeroPower"

LENS_TYPES: Dict[str, Dict[str, Any]] = {
    "zeroPower": {"label": "Zero Power (Fashion/Protection)", "desc": "Includes anti-glare coating", "price": 0},
    "singleVision": {"label": "Single Vision", "desc": "For Distance or Reading", "price": 500},
    "bifocal": {"label": "Bifocal / Progressive", "desc": "For both Distance & Reading", "price": 1200},
}

ADDONS: Dict[str, Dict[str, Any]] = {
    "blueCut": {"label": "Blue Cut (Anti-glare)", "price": 300},
    "photochromic": {"label": "Photochromic", "price": 800},
    "antiFog": {"label": "Anti-Fog", "price": 200},
}


def line_key(product_id: str, lens_type_id: str = ZERO_POWER) -> str:
    return f"{product_id}-{lens_type_id or ZERO_POWER}"


def build_config(lens_type_id: Optional[str] = None, addon_ids: Iterable[str] = (), quantity: int = 1) -> LensConfig:
    """Resolve lens type and add-on ids against the price lists; unknown add-ons are dropped."""
    lens_id = lens_type_id if lens_type_id in LENS_TYPES else ZERO_POWER
    addons = []
    for addon_id in dict.fromkeys(addon_ids):
        info = ADDONS.get(addon_id)
        if info:
            addons.append(Addon(id=addon_id, label=info["label"], price=info["price"]))
    return LensConfig(
        lens_type_id=lens_id,
        lens_type_surcharge=LENS_TYPES[lens_id]["price"],
        addons=addons,
        addons_surcharge=from_minor(sum(to_minor(a.price) for a in addons)),
        quantity=quantity,
    )


def unit_total_minor(item: CartLineItem) -> int:
    return to_minor(item.unit_price) + to_minor(item.lens_type_surcharge) + to_minor(item.addons_surcharge)


class Cart:
    def __init__(self, storage=None):
        self._storage = storage
        self._items: List[CartLineItem] = []

    @classmethod
    def init(cls, snapshot: Any, storage=None) -> "Cart":
        cart = cls(storage)
        cart._items = _hydrate(snapshot)
        return cart

    @classmethod
    def load(cls, storage) -> "Cart":
        return cls.init(storage.load(), storage)

    @property
    def items(self) -> List[CartLineItem]:
        return [i.model_copy(deep=True) for i in self._items]

    def get(self, key: str) -> Optional[CartLineItem]:
        item = self._find(key)
        return item.model_copy(deep=True) if item else None

    def _find(self, key: str) -> Optional[CartLineItem]:
        for item in self._items:
            if item.key == key:
                return item
        return None

    def add_item(self, product: Product, config: Optional[LensConfig] = None) -> CartLineItem:
        config = config or LensConfig()
        key = line_key(product.id, config.lens_type_id)
        existing = self._find(key)
        if existing:
            existing.quantity += config.quantity
            item = existing
        else:
            item = CartLineItem(
                key=key,
                product_id=product.id,
                name=product.name,
                unit_price=product.price,
                lens_type_id=config.lens_type_id or ZERO_POWER,
                lens_type_surcharge=config.lens_type_surcharge,
                addons=list(config.addons),
                addons_surcharge=config.addons_surcharge,
                image=product.images[0] if product.images else None,
                quantity=config.quantity,
            )
            self._items.append(item)
        self._persist()
        return item.model_copy(deep=True)

    def remove_item(self, key: str) -> None:
        remaining = [i for i in self._items if i.key != key]
        if len(remaining) == len(self._items):
            return
        self._items = remaining
        self._persist()

    def update_qty(self, key: str, qty: int) -> None:
        # Decrementing to zero goes through remove_item, never through here.
        if qty < 1:
            return
        item = self._find(key)
        if item is None:
            return
        item.quantity = qty
        self._persist()

    def clear(self) -> None:
        self._items = []
        self._persist()

    @property
    def item_count(self) -> int:
        return sum(i.quantity for i in self._items)

    @property
    def subtotal_minor(self) -> int:
        return sum(unit_total_minor(i) * i.quantity for i in self._items)

    @property
    def subtotal(self) -> float:
        return from_minor(self.subtotal_minor)

    def serialize(self) -> List[Dict[str, Any]]:
        return [i.model_dump() for i in self._items]

    def _persist(self) -> None:
        if self._storage is not None:
            self._storage.save(self.serialize())


def _hydrate(snapshot: Any) -> List[CartLineItem]:
    if not isinstance(snapshot, list):
        return []
    try:
        return [CartLineItem.model_validate(raw) for raw in snapshot]
    except ValidationError as e:
        logger.warning("Discarding malformed stored cart (%s errors)", e.error_count())
        return []


# -----------------
# Delivery
# -----------------
def delivery_charge(subtotal: float) -> float:
    return 0 if to_minor(subtotal) >= to_minor(FREE_DELIVERY_THRESHOLD) else DELIVERY_CHARGE


def order_total(subtotal: float) -> float:
    return from_minor(to_minor(subtotal) + to_minor(delivery_charge(subtotal)))


def amount_for_free_delivery(subtotal: float) -> float:
    return from_minor(max(to_minor(FREE_DELIVERY_THRESHOLD) - to_minor(subtotal), 0))


@dataclass
class CartTotals:
    item_count: int
    subtotal: float
    delivery_charge: float
    delivery_free: bool
    amount_for_free_delivery: float
    total: float


def summarize(cart: Cart) -> CartTotals:
    subtotal = cart.subtotal
    charge = delivery_charge(subtotal)
    return CartTotals(
        item_count=cart.item_count,
        subtotal=subtotal,
        delivery_charge=charge,
        delivery_free=charge == 0,
        amount_for_free_delivery=amount_for_free_delivery(subtotal),
        total=order_total(subtotal),
    )


# -----------------
# Wishlist
# -----------------
class Wishlist:
    def __init__(self, storage=None):
        self._storage = storage
        self._ids: Dict[str, None] = {}

    @classmethod
    def load(cls, storage) -> "Wishlist":
        wishlist = cls(storage)
        wishlist._ids = dict.fromkeys(str(i) for i in storage.load())
        return wishlist

    @property
    def ids(self) -> List[str]:
        return list(self._ids)

    @property
    def count(self) -> int:
        return len(self._ids)

    def is_wishlisted(self, product_id: str) -> bool:
        return product_id in self._ids

    def toggle(self, product_id: str) -> bool:
        """Add or remove the product; returns True when it is now wishlisted."""
        if product_id in self._ids:
            del self._ids[product_id]
        else:
            self._ids[product_id] = None
        if self._storage is not None:
            self._storage.save(self.serialize())
        return product_id in self._ids

    def serialize(self) -> List[str]:
        return list(self._ids)
