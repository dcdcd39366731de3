"""
MongoDB access.

`db` is None when DATABASE_URL / DATABASE_NAME are not set; callers decide
how to degrade in that case.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Union

from bson import ObjectId
from fastapi import HTTPException
from pydantic import BaseModel
from pymongo import MongoClient

from config import DATABASE_NAME, DATABASE_URL

logger = logging.getLogger(__name__)

db = None
if DATABASE_URL and DATABASE_NAME:
    _client = MongoClient(DATABASE_URL)
    db = _client[DATABASE_NAME]
else:
    logger.info("DATABASE_URL/DATABASE_NAME not set, running without MongoDB")


def get_db():
    if db is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    return db


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    database = get_db()
    doc = data.model_dump(mode="json") if isinstance(data, BaseModel) else dict(data)
    now = datetime.now(timezone.utc)
    doc["created_at"] = now
    doc["updated_at"] = now
    result = database[collection_name].insert_one(doc)
    return str(result.inserted_id)


def serialize_doc(doc: Dict[str, Any]) -> Dict[str, Any]:
    if not doc:
        return doc
    doc = dict(doc)
    _id = doc.get("_id")
    if isinstance(_id, ObjectId):
        doc["id"] = str(_id)
        del doc["_id"]
    # Convert ObjectId in nested fields if any
    for k, v in list(doc.items()):
        if isinstance(v, ObjectId):
            doc[k] = str(v)
    return doc


def object_id(value: str, what: str = "id") -> ObjectId:
    if not ObjectId.is_valid(value):
        raise HTTPException(status_code=400, detail=f"Invalid {what}")
    return ObjectId(value)
