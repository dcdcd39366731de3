"""
Catalog browsing.

Everything here is a pure function of (products, filter state) so the
storefront can re-derive the visible page on every request.
"""

import math
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Sequence, Tuple

from schemas import Product

DEFAULT_CATEGORY = "frames"
CATEGORIES = ("frames", "lenses", "sunglasses")
SORT_OPTIONS = ("featured", "price-asc", "price-desc", "rating")
PAGE_SIZE = 6


@dataclass(frozen=True)
class FilterState:
    category: str = DEFAULT_CATEGORY
    genders: Tuple[str, ...] = ()
    shapes: Tuple[str, ...] = ()
    colors: Tuple[str, ...] = ()
    price_max: Optional[float] = None
    sort: str = "featured"
    page: int = 1

    def with_changes(self, **changes) -> "FilterState":
        # Any change other than the page itself sends the shopper back to page 1
        if any(k != "page" for k in changes):
            changes["page"] = 1
        for k in ("genders", "shapes", "colors"):
            if k in changes:
                changes[k] = tuple(changes[k])
        return replace(self, **changes)

    def toggle_gender(self, gender: str) -> "FilterState":
        return self.with_changes(genders=_toggle(self.genders, gender))

    def toggle_shape(self, shape: str) -> "FilterState":
        return self.with_changes(shapes=_toggle(self.shapes, shape))

    def toggle_color(self, color: str) -> "FilterState":
        return self.with_changes(colors=_toggle(self.colors, color))

    def clear_filters(self) -> "FilterState":
        return self.with_changes(genders=(), shapes=(), colors=(), price_max=None)


@dataclass
class CatalogPage:
    items: List[Product] = field(default_factory=list)
    total: int = 0
    page: int = 1
    pages: int = 0
    per_page: int = PAGE_SIZE


def _toggle(values: Tuple[str, ...], value: str) -> Tuple[str, ...]:
    if value in values:
        return tuple(v for v in values if v != value)
    return values + (value,)


def _matches(product: Product, state: FilterState) -> bool:
    if product.category != state.category:
        return False
    if state.genders and product.gender != "unisex" and product.gender not in state.genders:
        return False
    if state.shapes and product.shape not in state.shapes:
        return False
    if state.colors and not set(product.colors) & set(state.colors):
        return False
    if state.price_max is not None and product.price > state.price_max:
        return False
    return True


def filter_products(products: Iterable[Product], state: FilterState) -> List[Product]:
    return [p for p in products if _matches(p, state)]


def sort_products(products: Sequence[Product], sort: str) -> List[Product]:
    """Return a new list in the requested order; sorted() is stable so ties keep input order."""
    if sort == "price-asc":
        return sorted(products, key=lambda p: p.price)
    if sort == "price-desc":
        return sorted(products, key=lambda p: p.price, reverse=True)
    if sort == "rating":
        return sorted(products, key=lambda p: p.rating, reverse=True)
    return list(products)


def total_pages(count: int, per_page: int = PAGE_SIZE) -> int:
    return math.ceil(count / per_page) if per_page > 0 else 0


def paginate(items: Sequence[Product], page: int, per_page: int = PAGE_SIZE) -> List[Product]:
    page = max(page, 1)
    start = (page - 1) * per_page
    return list(items[start:start + per_page])


def browse(products: Iterable[Product], state: FilterState, per_page: int = PAGE_SIZE) -> CatalogPage:
    ordered = sort_products(filter_products(products, state), state.sort)
    page = max(state.page, 1)
    return CatalogPage(
        items=paginate(ordered, page, per_page),
        total=len(ordered),
        page=page,
        pages=total_pages(len(ordered), per_page),
        per_page=per_page,
    )


def featured(products: Iterable[Product], badge: str = "bestseller", limit: int = 4) -> List[Product]:
    tagged = [p for p in products if p.badge == badge]
    return sorted(tagged, key=lambda p: p.rating, reverse=True)[:limit]


def search(products: Iterable[Product], query: str, limit: int = 8) -> List[Product]:
    needle = query.strip().lower()
    if not needle:
        return []
    hits = []
    for p in products:
        haystack = " ".join(filter(None, [p.name, p.category, p.shape, p.material])).lower()
        if needle in haystack:
            hits.append(p)
            if len(hits) >= limit:
                break
    return hits
