import logging
import re
from dataclasses import asdict
from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Any, Dict, List, Literal, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, EmailStr, Field

import config
from admin import router as admin_router
from auth import (
    create_access_token,
    get_current_user,
    get_optional_user,
    hash_password,
    public_user,
    verify_password,
)
from cart import ADDONS, CART_KEY, LENS_TYPES, WISHLIST_KEY, Cart, Wishlist, build_config, summarize
from catalog import CATEGORIES, DEFAULT_CATEGORY, PAGE_SIZE, FilterState, browse, featured, search
from database import create_document, db, get_db, object_id, serialize_doc
from orders import build_order, payment_update
from promo import validate_promo
from schemas import Appointment, PaymentStatus, ShippingDetails, User as UserSchema
from stores import (
    JsonFileStorage,
    ListStore,
    MongoKeyValueStorage,
    MongoProductSource,
    MongoPromoStore,
    StaticProductSource,
    StaticPromoStore,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Eyewear Store API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(admin_router)


# Collaborators

@lru_cache(maxsize=1)
def _bundled_products() -> StaticProductSource:
    return StaticProductSource.from_json(config.PRODUCTS_FILE)


def get_product_source():
    if db is not None:
        return MongoProductSource(db)
    return _bundled_products()


def get_promo_store():
    if db is not None:
        return MongoPromoStore(db)
    return StaticPromoStore([])


SESSION_ID = re.compile(r"[A-Za-z0-9_-]{8,64}")


def get_session_id(
    current_user: Optional[dict] = Depends(get_optional_user),
    x_session_id: Optional[str] = Header(default=None),
) -> str:
    """Signed-in users own their cart; without MongoDB an anonymous X-Session-Id header does."""
    if current_user:
        return current_user["id"]
    if db is None and x_session_id and SESSION_ID.fullmatch(x_session_id):
        return x_session_id
    raise HTTPException(status_code=401, detail="Not authenticated")


def get_kv_backend(session_id: str = Depends(get_session_id)):
    if db is not None:
        return MongoKeyValueStorage(db["kv_store"], session_id)
    return JsonFileStorage(config.DATA_DIR / "sessions" / f"{session_id}.json")


def get_cart(backend=Depends(get_kv_backend)) -> Cart:
    return Cart.load(ListStore(backend, CART_KEY))


def get_wishlist(backend=Depends(get_kv_backend)) -> Wishlist:
    return Wishlist.load(ListStore(backend, WISHLIST_KEY))


def cart_response(cart: Cart) -> Dict[str, Any]:
    return {"items": cart.serialize(), **asdict(summarize(cart))}


# Routes
@app.get("/")
def read_root():
    return {"message": "Eyewear Store API"}


# Auth models
class RegisterInput(BaseModel):
    name: str
    email: EmailStr
    password: str
    phone: Optional[str] = None


class LoginInput(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Dict[str, Any]


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    avatar_url: Optional[str] = None


# Auth
@app.post("/auth/register", response_model=TokenResponse)
def register(payload: RegisterInput):
    users = get_db()["user"]
    existing = users.find_one({"email": payload.email.lower()})
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")
    user_model = UserSchema(
        name=payload.name,
        email=payload.email.lower(),
        password_hash=hash_password(payload.password),
        role="customer",
        phone=payload.phone,
    )
    result = users.insert_one(user_model.model_dump())
    user_id = str(result.inserted_id)
    token = create_access_token({"sub": user_id})
    user = users.find_one({"_id": result.inserted_id})
    return TokenResponse(access_token=token, user=public_user(user))


@app.post("/auth/login", response_model=TokenResponse)
def login(payload: LoginInput):
    user = get_db()["user"].find_one({"email": payload.email.lower()})
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        raise HTTPException(status_code=400, detail="Invalid email or password")
    token = create_access_token({"sub": str(user["_id"])})
    return TokenResponse(access_token=token, user=public_user(user))


@app.get("/auth/me")
def me(current_user: dict = Depends(get_current_user)):
    return current_user


@app.patch("/auth/me")
def update_profile(data: ProfileUpdate, current_user: dict = Depends(get_current_user)):
    updates = data.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    updates["updated_at"] = datetime.now(timezone.utc)
    users = get_db()["user"]
    obj_id = object_id(current_user["id"], "user id")
    users.update_one({"_id": obj_id}, {"$set": updates})
    return public_user(users.find_one({"_id": obj_id}))


# Catalog
@app.get("/categories")
def list_categories():
    if db is None:
        return [{"name": slug.title(), "slug": slug, "sort_order": i} for i, slug in enumerate(CATEGORIES)]
    docs = db["category"].find({"is_active": True}).sort("sort_order", 1)
    return [serialize_doc(d) for d in docs]


@app.get("/products")
def list_products(
    category: str = DEFAULT_CATEGORY,
    gender: List[str] = Query(default=[]),
    shape: List[str] = Query(default=[]),
    color: List[str] = Query(default=[]),
    max_price: Optional[float] = None,
    sort: str = "featured",
    page: int = 1,
    limit: int = Query(default=PAGE_SIZE, ge=1, le=60),
    source=Depends(get_product_source),
):
    state = FilterState(
        category=category,
        genders=tuple(gender),
        shapes=tuple(shape),
        colors=tuple(color),
        price_max=max_price,
        sort=sort,
        page=page,
    )
    result = browse(source.fetch_all(), state, per_page=limit)
    return {
        "items": [p.model_dump() for p in result.items],
        "total": result.total,
        "page": result.page,
        "pages": result.pages,
        "limit": result.per_page,
    }


@app.get("/products/featured")
def featured_products(badge: str = "bestseller", limit: int = Query(default=4, ge=1, le=24), source=Depends(get_product_source)):
    return [p.model_dump() for p in featured(source.fetch_all(), badge=badge, limit=limit)]


@app.get("/products/search")
def search_products(q: str, limit: int = Query(default=8, ge=1, le=50), source=Depends(get_product_source)):
    return [p.model_dump() for p in search(source.fetch_all(), q, limit=limit)]


@app.get("/products/{product_id}")
def get_product(product_id: str, source=Depends(get_product_source)):
    product = source.get(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product.model_dump()


@app.get("/lens-options")
def lens_options():
    return {
        "lens_types": [{"id": k, **v} for k, v in LENS_TYPES.items()],
        "addons": [{"id": k, **v} for k, v in ADDONS.items()],
    }


# Cart
class AddToCart(BaseModel):
    product_id: str
    lens_type: Optional[str] = None
    addons: List[str] = Field(default_factory=list)
    quantity: int = Field(default=1, ge=1)


class UpdateCartItem(BaseModel):
    quantity: int


@app.get("/cart")
def get_cart_contents(cart: Cart = Depends(get_cart)):
    return cart_response(cart)


@app.post("/cart")
def add_to_cart(item: AddToCart, cart: Cart = Depends(get_cart), source=Depends(get_product_source)):
    product = source.get(item.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    cart.add_item(product, build_config(item.lens_type, item.addons, item.quantity))
    return cart_response(cart)


@app.patch("/cart/{key}")
def update_cart_item(key: str, item: UpdateCartItem, cart: Cart = Depends(get_cart)):
    cart.update_qty(key, item.quantity)
    return cart_response(cart)


@app.delete("/cart/{key}")
def remove_cart_item(key: str, cart: Cart = Depends(get_cart)):
    cart.remove_item(key)
    return cart_response(cart)


@app.delete("/cart")
def clear_cart(cart: Cart = Depends(get_cart)):
    cart.clear()
    return cart_response(cart)


# Wishlist
@app.get("/wishlist")
def get_wishlist_contents(wishlist: Wishlist = Depends(get_wishlist)):
    return {"ids": wishlist.ids, "count": wishlist.count}


@app.post("/wishlist/{product_id}")
def toggle_wishlist(product_id: str, wishlist: Wishlist = Depends(get_wishlist)):
    wishlisted = wishlist.toggle(product_id)
    return {"product_id": product_id, "wishlisted": wishlisted, "count": wishlist.count}


# Promo codes
class PromoCheck(BaseModel):
    code: str
    subtotal: float = Field(..., ge=0)


@app.post("/promo/validate")
def check_promo(payload: PromoCheck, promos=Depends(get_promo_store)):
    result = validate_promo(payload.code, payload.subtotal, promos)
    return result.model_dump(exclude_none=True)


# Orders
class CheckoutInput(ShippingDetails):
    promo_code: Optional[str] = None
    payment_method: Literal["razorpay", "cod"] = "cod"


class PaymentInput(BaseModel):
    razorpay_order_id: Optional[str] = None
    payment_id: Optional[str] = None
    payment_status: PaymentStatus


@app.post("/orders")
def create_order(
    payload: CheckoutInput,
    current_user: dict = Depends(get_current_user),
    cart: Cart = Depends(get_cart),
    promos=Depends(get_promo_store),
):
    promo_result = None
    if payload.promo_code:
        promo_result = validate_promo(payload.promo_code, cart.subtotal, promos)
        if not promo_result.valid:
            raise HTTPException(status_code=400, detail=promo_result.message)
    shipping = ShippingDetails(**payload.model_dump(include=set(ShippingDetails.model_fields)))
    try:
        order = build_order(current_user["id"], cart, shipping, promo_result, payload.payment_method)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    order_id = create_document("order", order)
    if order.promo_code:
        get_db()["promo_code"].update_one({"code": order.promo_code}, {"$inc": {"used_count": 1}})
    cart.clear()
    logger.info("Order %s created for user %s, total %s", order_id, current_user["id"], order.total)
    return {"order_id": order_id, "total": order.total, "order": order.model_dump()}


@app.get("/orders")
def list_orders(current_user: dict = Depends(get_current_user)):
    docs = get_db()["order"].find({"user_id": current_user["id"]}).sort("created_at", -1)
    return [serialize_doc(d) for d in docs]


def _own_order(order_id: str, current_user: dict) -> dict:
    order = get_db()["order"].find_one({"_id": object_id(order_id, "order id")})
    if not order or (order.get("user_id") != current_user["id"] and current_user.get("role") != "admin"):
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@app.get("/orders/{order_id}")
def get_order(order_id: str, current_user: dict = Depends(get_current_user)):
    return serialize_doc(_own_order(order_id, current_user))


@app.patch("/orders/{order_id}/payment")
def update_order_payment(order_id: str, payload: PaymentInput, current_user: dict = Depends(get_current_user)):
    order = _own_order(order_id, current_user)
    updates = payment_update(payload.razorpay_order_id, payload.payment_id, payload.payment_status)
    updates["updated_at"] = datetime.now(timezone.utc)
    orders = get_db()["order"]
    orders.update_one({"_id": order["_id"]}, {"$set": updates})
    return serialize_doc(orders.find_one({"_id": order["_id"]}))


# Appointments
class AppointmentIn(BaseModel):
    name: str
    phone: str
    email: Optional[EmailStr] = None
    preferred_date: date
    preferred_time: str
    service: str = "eye-test"
    notes: Optional[str] = None


@app.post("/appointments")
def book_appointment(payload: AppointmentIn, current_user: Optional[dict] = Depends(get_optional_user)):
    appointment = Appointment(**payload.model_dump(), user_id=current_user["id"] if current_user else None)
    appointment_id = create_document("appointment", appointment)
    logger.info("Appointment %s booked for %s", appointment_id, appointment.preferred_date)
    return {"id": appointment_id, **appointment.model_dump(mode="json")}


@app.get("/appointments")
def list_appointments(current_user: dict = Depends(get_current_user)):
    docs = get_db()["appointment"].find({"user_id": current_user["id"]}).sort("preferred_date", 1)
    return [serialize_doc(d) for d in docs]


@app.post("/appointments/{appointment_id}/cancel")
def cancel_appointment(appointment_id: str, current_user: dict = Depends(get_current_user)):
    appointments = get_db()["appointment"]
    obj_id = object_id(appointment_id, "appointment id")
    res = appointments.update_one(
        {"_id": obj_id, "user_id": current_user["id"]},
        {"$set": {"status": "cancelled", "updated_at": datetime.now(timezone.utc)}},
    )
    if res.matched_count == 0:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return serialize_doc(appointments.find_one({"_id": obj_id}))


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
