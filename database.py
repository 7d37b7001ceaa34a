"""
MongoDB access for PizzaHub.

The client is created lazily and handed to route handlers through the
``get_db`` dependency so tests can swap in another database.
"""
import os
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "pizzahub")

_client: Optional[MongoClient] = None


def get_client() -> MongoClient:
    global _client
    if _client is None:
        _client = MongoClient(DATABASE_URL)
    return _client


def get_db() -> Database:
    return get_client()[DATABASE_NAME]


def ensure_indexes(db: Database):
    db["user"].create_index("email", unique=True)
    db["inventory"].create_index([("category", ASCENDING), ("name", ASCENDING)], unique=True)
    db["order"].create_index("order_number", unique=True)
    db["order"].create_index("user_id")


def create_document(db: Database, collection_name: str, data: dict) -> str:
    """Insert a document stamped with created_at/updated_at, return its id."""
    now = datetime.now(timezone.utc)
    doc = data.copy()
    doc.setdefault("created_at", now)
    doc.setdefault("updated_at", now)
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(db: Database, collection_name: str, filter_dict: Optional[dict] = None,
                  sort: Optional[list] = None, limit: Optional[int] = None) -> list:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def to_object_id(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail="Invalid ID format")


def serialize_doc(doc: Optional[dict]):
    if not doc:
        return None
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc
