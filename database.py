"""
MongoDB access helpers.

The client is built once by create_app() from Settings and handed to routes
through app.state; nothing here holds a module-level connection.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import OperationFailure
from pymongo.server_api import ServerApi

from config import Settings
from errors import invalid

logger = logging.getLogger(__name__)

DOCTORS = "doctors"
SERVICES = "services"
REVIEWS = "reviews"
USERS = "users"
APPOINTMENTS = "appointments"
PAYMENTS = "payments"

COLLECTIONS = (DOCTORS, SERVICES, REVIEWS, USERS, APPOINTMENTS, PAYMENTS)

# Owned by the server; never taken from request bodies.
SERVER_FIELDS = ("_id", "created_at", "updated_at")


def connect(settings: Settings) -> Database:
    client = MongoClient(settings.database_url, server_api=ServerApi("1", strict=True, deprecation_errors=True))
    logger.info(f"✅ MongoDB client created for database '{settings.database_name}'")
    return client[settings.database_name]


def ensure_indexes(db: Database) -> None:
    try:
        db[USERS].create_index([("email", ASCENDING)], unique=True)
    except OperationFailure as e:
        # Legacy duplicate emails block the unique index; the insert-time check still applies.
        logger.error(f"❌ Unique index on users.email not built, remove duplicate emails: {e}")
    db[APPOINTMENTS].create_index([("email", ASCENDING), ("appointmentDate", ASCENDING)])


def ping(db: Database) -> bool:
    db.client.admin.command("ping")
    return True


def to_object_id(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise invalid("Invalid ID format")


def _serialize_value(v: Any) -> Any:
    if isinstance(v, ObjectId):
        return str(v)
    if isinstance(v, datetime):
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc).isoformat()
    if isinstance(v, dict):
        return {k: _serialize_value(x) for k, x in v.items()}
    if isinstance(v, list):
        return [_serialize_value(x) for x in v]
    return v


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    return _serialize_value(dict(doc))


def create_document(db: Database, collection: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    if isinstance(data, BaseModel):
        doc = data.model_dump(by_alias=True, exclude_none=True)
    else:
        doc = dict(data)
    for key in SERVER_FIELDS:
        doc.pop(key, None)
    now = datetime.now(timezone.utc)
    doc["created_at"] = now
    doc["updated_at"] = now
    result = db[collection].insert_one(doc)
    return str(result.inserted_id)


def get_documents(
    db: Database,
    collection: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    sort: Optional[List[Tuple[str, int]]] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    cursor = db[collection].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return [serialize(doc) for doc in cursor]
