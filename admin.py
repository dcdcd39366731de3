"""
Back office routes: products, categories, orders, appointments, dashboard,
store settings and promo codes. Every route requires an admin user.
"""

import logging
import re
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from auth import require_admin
from config import LOW_STOCK_THRESHOLD
from database import create_document, get_db, object_id, serialize_doc
from money import from_minor, to_minor
from orders import ORDER_STATUSES
from schemas import AppointmentStatus, BadgeType, Category, Gender, OrderStatus, PromoCode

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# -----------------
# Helpers
# -----------------

def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def summarize_revenue(orders: Iterable[Dict[str, Any]]) -> float:
    return from_minor(sum(to_minor(o.get("total") or 0) for o in orders))


def _page(cursor, page: int, per_page: int):
    skip = max(page - 1, 0) * per_page
    return [serialize_doc(d) for d in cursor.skip(skip).limit(per_page)]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _update(collection: str, item_id: str, updates: Dict[str, Any], what: str) -> Dict[str, Any]:
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    obj_id = object_id(item_id, f"{what} id")
    updates["updated_at"] = _now()
    res = get_db()[collection].update_one({"_id": obj_id}, {"$set": updates})
    if res.matched_count == 0:
        raise HTTPException(status_code=404, detail=f"{what.capitalize()} not found")
    return serialize_doc(get_db()[collection].find_one({"_id": obj_id}))


def _delete(collection: str, item_id: str, what: str) -> Dict[str, Any]:
    res = get_db()[collection].delete_one({"_id": object_id(item_id, f"{what} id")})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail=f"{what.capitalize()} not found")
    return {"ok": True}


# -----------------
# Products
# -----------------
class ProductIn(BaseModel):
    name: str
    price: float = Field(..., ge=0)
    mrp: Optional[float] = Field(default=None, ge=0)
    discount: int = Field(default=0, ge=0, le=100)
    category: str
    gender: Gender = "unisex"
    shape: Optional[str] = None
    material: Optional[str] = None
    colors: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    badge: Optional[BadgeType] = None
    stock_qty: int = Field(default=0, ge=0)
    is_active: bool = True


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    mrp: Optional[float] = Field(default=None, ge=0)
    discount: Optional[int] = Field(default=None, ge=0, le=100)
    category: Optional[str] = None
    gender: Optional[Gender] = None
    shape: Optional[str] = None
    material: Optional[str] = None
    colors: Optional[List[str]] = None
    images: Optional[List[str]] = None
    badge: Optional[BadgeType] = None
    stock_qty: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class ActiveToggle(BaseModel):
    is_active: bool


@router.get("/products")
def admin_list_products(
    search: Optional[str] = None,
    category: Optional[str] = None,
    is_active: Optional[bool] = None,
    page: int = 1,
    per_page: int = Query(default=20, ge=1, le=100),
):
    query: Dict[str, Any] = {}
    if search:
        query["name"] = {"$regex": re.escape(search), "$options": "i"}
    if category:
        query["category"] = category
    if is_active is not None:
        query["is_active"] = is_active
    products = get_db()["product"]
    cursor = products.find(query).sort("created_at", -1)
    return {"items": _page(cursor, page, per_page), "total": products.count_documents(query), "page": page, "limit": per_page}


@router.post("/products")
def admin_create_product(data: ProductIn):
    new_id = create_document("product", data)
    logger.info("Product %s created: %s", new_id, data.name)
    return {"id": new_id}


@router.put("/products/{product_id}")
def admin_update_product(product_id: str, data: ProductUpdate):
    return _update("product", product_id, data.model_dump(exclude_unset=True), "product")


@router.patch("/products/{product_id}/active")
def admin_toggle_product(product_id: str, data: ActiveToggle):
    return _update("product", product_id, {"is_active": data.is_active}, "product")


@router.delete("/products/{product_id}")
def admin_delete_product(product_id: str):
    return _delete("product", product_id, "product")


# -----------------
# Categories
# -----------------
class CategoryIn(BaseModel):
    name: str
    slug: Optional[str] = None
    description: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


@router.get("/categories")
def admin_list_categories():
    return [serialize_doc(d) for d in get_db()["category"].find({}).sort("sort_order", 1)]


@router.post("/categories")
def admin_create_category(data: CategoryIn):
    category = Category(**data.model_dump(exclude={"slug"}), slug=data.slug or slugify(data.name))
    if get_db()["category"].find_one({"slug": category.slug}):
        raise HTTPException(status_code=400, detail="Slug already exists")
    return {"id": create_document("category", category), **category.model_dump()}


@router.put("/categories/{category_id}")
def admin_update_category(category_id: str, data: CategoryUpdate):
    updates = data.model_dump(exclude_unset=True)
    if "slug" in updates and updates["slug"]:
        updates["slug"] = slugify(updates["slug"])
    return _update("category", category_id, updates, "category")


@router.delete("/categories/{category_id}")
def admin_delete_category(category_id: str):
    return _delete("category", category_id, "category")


# -----------------
# Orders
# -----------------
class OrderStatusUpdate(BaseModel):
    status: OrderStatus


@router.get("/orders")
def admin_list_orders(
    status: str = "all",
    search: Optional[str] = None,
    page: int = 1,
    per_page: int = Query(default=20, ge=1, le=100),
):
    query: Dict[str, Any] = {}
    if status != "all":
        if status not in ORDER_STATUSES:
            raise HTTPException(status_code=400, detail="Unknown order status")
        query["status"] = status
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"shipping_name": pattern}, {"shipping_phone": pattern}]
    orders = get_db()["order"]
    cursor = orders.find(query).sort("created_at", -1)
    return {"items": _page(cursor, page, per_page), "total": orders.count_documents(query), "page": page, "limit": per_page}


@router.get("/orders/{order_id}")
def admin_get_order(order_id: str):
    order = get_db()["order"].find_one({"_id": object_id(order_id, "order id")})
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return serialize_doc(order)


@router.patch("/orders/{order_id}/status")
def admin_update_order_status(order_id: str, data: OrderStatusUpdate):
    logger.info("Order %s moved to %s", order_id, data.status)
    return _update("order", order_id, {"status": data.status}, "order")


# -----------------
# Appointments
# -----------------
class AppointmentUpdate(BaseModel):
    status: Optional[AppointmentStatus] = None
    preferred_date: Optional[date] = None
    preferred_time: Optional[str] = None
    notes: Optional[str] = None


@router.get("/appointments")
def admin_list_appointments(
    status: str = "all",
    on: Optional[date] = Query(default=None, alias="date"),
    page: int = 1,
    per_page: int = Query(default=20, ge=1, le=100),
):
    query: Dict[str, Any] = {}
    if status != "all":
        query["status"] = status
    if on:
        query["preferred_date"] = on.isoformat()
    appointments = get_db()["appointment"]
    cursor = appointments.find(query).sort("preferred_date", 1)
    return {"items": _page(cursor, page, per_page), "total": appointments.count_documents(query), "page": page, "limit": per_page}


@router.patch("/appointments/{appointment_id}")
def admin_update_appointment(appointment_id: str, data: AppointmentUpdate):
    return _update("appointment", appointment_id, data.model_dump(mode="json", exclude_unset=True), "appointment")


# -----------------
# Dashboard
# -----------------
@router.get("/dashboard")
def dashboard_stats():
    database = get_db()
    now = _now()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    month_start = today.replace(day=1)

    today_orders = database["order"].find({"created_at": {"$gte": today}}, {"total": 1})
    month_orders = database["order"].find({"created_at": {"$gte": month_start}, "payment_status": "paid"}, {"total": 1})

    return {
        "today_revenue": summarize_revenue(today_orders),
        "month_revenue": summarize_revenue(month_orders),
        "pending_orders": database["order"].count_documents({"status": "pending"}),
        "today_appointments": database["appointment"].count_documents({"preferred_date": today.date().isoformat()}),
        "low_stock_products": database["product"].count_documents({"stock_qty": {"$lt": LOW_STOCK_THRESHOLD}, "is_active": True}),
    }


# -----------------
# Settings
# -----------------
@router.get("/settings/{key}")
def get_setting(key: str):
    doc = get_db()["store_setting"].find_one({"key": key})
    return {"key": key, "value": doc.get("value") if doc else None}


@router.put("/settings/{key}")
def put_setting(key: str, value: Dict[str, Any]):
    get_db()["store_setting"].update_one(
        {"key": key},
        {"$set": {"value": value, "updated_at": _now()}},
        upsert=True,
    )
    return {"key": key, "value": value}


# -----------------
# Promo codes
# -----------------
class PromoCodeIn(BaseModel):
    code: str = Field(..., min_length=1)
    discount_type: Literal["percent", "fixed"] = "percent"
    discount_value: float = Field(..., gt=0)
    min_order_value: float = Field(default=0, ge=0)
    max_uses: Optional[int] = Field(default=None, ge=1)
    expires_at: Optional[datetime] = None
    is_active: bool = True


@router.get("/promo-codes")
def admin_list_promo_codes():
    return [serialize_doc(d) for d in get_db()["promo_code"].find({}).sort("created_at", -1)]


@router.post("/promo-codes")
def admin_create_promo_code(data: PromoCodeIn):
    promo = PromoCode(**data.model_dump())
    if get_db()["promo_code"].find_one({"code": promo.code}):
        raise HTTPException(status_code=400, detail="Promo code already exists")
    promo_id = create_document("promo_code", promo)
    logger.info("Promo code %s created", promo.code)
    return {"id": promo_id, **promo.model_dump(mode="json")}


@router.delete("/promo-codes/{promo_id}")
def admin_delete_promo_code(promo_id: str):
    return _delete("promo_code", promo_id, "promo code")
