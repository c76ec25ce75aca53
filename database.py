"""
Database helpers

MongoDB access for the storefront. Each collection is the lowercase
singular model name ("user", "category", "product", "order", "cart").
"checkout" holds the idempotency keys claimed by payments.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import Binary, ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

import config

logger = logging.getLogger(__name__)

# MongoClient connects lazily, so importing this module never blocks on the server.
client: MongoClient = MongoClient(config.DATABASE_URL, tz_aware=True)
db: Database = client[config.DATABASE_NAME]


def get_db() -> Database:
    return db


def init_indexes(database: Database) -> None:
    database["user"].create_index([("email", ASCENDING)], unique=True)
    database["category"].create_index([("name", ASCENDING)], unique=True)
    database["product"].create_index([("slug", ASCENDING)])
    database["order"].create_index([("buyer", ASCENDING)])
    # one checkout per (buyer, idempotency_key); claimed before the card is charged
    database["checkout"].create_index([("buyer", ASCENDING), ("idempotency_key", ASCENDING)], unique=True)
    database["cart"].create_index([("user", ASCENDING)], unique=True)
    logger.info("Indexes ensured on %s", database.name)


def now() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Return an ObjectId for ``value`` or None when it is not a valid id."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def create_document(database: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> ObjectId:
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    stamp = now()
    doc.setdefault("created_at", stamp)
    doc["updated_at"] = stamp
    result = database[collection_name].insert_one(doc)
    return result.inserted_id


def serialize_doc(value: Any) -> Any:
    """Make a Mongo document JSON-ready: ObjectIds and datetimes become strings."""
    if isinstance(value, dict):
        return {k: serialize_doc(v) for k, v in value.items() if not isinstance(v, (bytes, Binary))}
    if isinstance(value, (list, tuple)):
        return [serialize_doc(v) for v in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def populate(database: Database, docs: List[Dict[str, Any]], field: str, collection_name: str, projection: Optional[Dict[str, int]] = None) -> List[Dict[str, Any]]:
    """Replace ObjectId references in ``field`` with the referenced documents.

    References that no longer resolve are dropped from lists and become None
    on single-valued fields.
    """
    ids = set()
    for doc in docs:
        value = doc.get(field)
        if isinstance(value, list):
            ids.update(v for v in value if isinstance(v, ObjectId))
        elif isinstance(value, ObjectId):
            ids.add(value)
    found = {}
    if ids:
        found = {d["_id"]: d for d in database[collection_name].find({"_id": {"$in": list(ids)}}, projection)}
    for doc in docs:
        value = doc.get(field)
        if isinstance(value, list):
            doc[field] = [found[v] for v in value if v in found]
        elif isinstance(value, ObjectId):
            doc[field] = found.get(value)
    return docs
