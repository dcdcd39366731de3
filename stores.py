"""
Collaborators the domain core reads from and writes to.

Product and promo lookups come either from MongoDB or from a static,
in-memory collection; carts and wishlists go to a small key-value store
that is either a JSON file on disk or a Mongo collection.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from database import serialize_doc
from schemas import Product, PromoCode

logger = logging.getLogger(__name__)


# -----------------
# Products
# -----------------
class StaticProductSource:
    def __init__(self, products: Iterable[Product]):
        self._products = list(products)

    @classmethod
    def from_json(cls, path: Path) -> "StaticProductSource":
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not read product file %s: %s", path, e)
            return cls([])
        return cls(_parse_products(raw if isinstance(raw, list) else []))

    def fetch_all(self) -> List[Product]:
        return [p for p in self._products if p.is_active]

    def get(self, product_id: str) -> Optional[Product]:
        for p in self.fetch_all():
            if p.id == product_id:
                return p
        return None


class MongoProductSource:
    def __init__(self, db):
        self.db = db

    def fetch_all(self) -> List[Product]:
        docs = self.db["product"].find({"is_active": True}).sort("created_at", -1)
        return _parse_products(serialize_doc(d) for d in docs)

    def get(self, product_id: str) -> Optional[Product]:
        if not ObjectId.is_valid(product_id):
            return None
        doc = self.db["product"].find_one({"_id": ObjectId(product_id), "is_active": True})
        if not doc:
            return None
        found = _parse_products([serialize_doc(doc)])
        return found[0] if found else None


def _parse_products(raw: Iterable[Dict[str, Any]]) -> List[Product]:
    products = []
    for doc in raw:
        if not isinstance(doc, dict):
            continue
        try:
            products.append(Product.model_validate(doc))
        except ValidationError as e:
            logger.warning("Skipping invalid product %s: %s", doc.get("id"), e.error_count())
    return products


# -----------------
# Promo codes
# -----------------
class StaticPromoStore:
    def __init__(self, promos: Iterable[PromoCode]):
        self._promos = {p.code: p for p in promos}

    def find_active_by_code(self, code: str) -> Optional[PromoCode]:
        promo = self._promos.get(code.strip().upper())
        if promo is None or not promo.is_active:
            return None
        return promo


class MongoPromoStore:
    def __init__(self, db):
        self.db = db

    def find_active_by_code(self, code: str) -> Optional[PromoCode]:
        doc = self.db["promo_code"].find_one({"code": code.strip().upper(), "is_active": True})
        if not doc:
            return None
        try:
            return PromoCode.model_validate(serialize_doc(doc))
        except ValidationError:
            logger.warning("Promo code %s is stored in an invalid shape", doc.get("code"))
            return None


# -----------------
# Key-value storage (cart, wishlist)
# -----------------
_path_locks: Dict[str, threading.Lock] = {}
_path_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _path_locks_guard:
        return _path_locks.setdefault(key, threading.Lock())


class JsonFileStorage:
    """All keys live in a single JSON object on disk; a missing or corrupt file reads as empty."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = _lock_for(self.path)

    def _read(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable storage file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Any:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Writers of other keys in the same file must not lose each other's updates
        with self._lock:
            data = self._read()
            data[key] = value
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.path.parent, suffix=".tmp", delete=False
            ) as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(f.name, self.path)


class MongoKeyValueStorage:
    def __init__(self, collection, namespace: str):
        self.collection = collection
        self.namespace = namespace

    def get(self, key: str) -> Any:
        doc = self.collection.find_one({"namespace": self.namespace, "key": key})
        return doc.get("value") if doc else None

    def set(self, key: str, value: Any) -> None:
        self.collection.update_one(
            {"namespace": self.namespace, "key": key},
            {"$set": {"value": value}},
            upsert=True,
        )


class ListStore:
    """A list persisted under one fixed key of a key-value backend."""

    def __init__(self, backend, key: str):
        self.backend = backend
        self.key = key

    def load(self) -> List[Any]:
        try:
            value = self.backend.get(self.key)
        except (PyMongoError, OSError, ValueError) as e:
            logger.warning("Could not load %s: %s", self.key, e)
            return []
        return list(value) if isinstance(value, list) else []

    def save(self, items: List[Any]) -> None:
        self.backend.set(self.key, items)
