"""
Database helpers

MongoDB access for the application. Collections are named after the schema
classes in lowercase (User -> "user", Potion -> "potion").
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Union

from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import Settings

logger = logging.getLogger(__name__)


def get_client(settings: Settings) -> MongoClient:
    return MongoClient(
        settings.mongo_uri,
        serverSelectionTimeoutMS=settings.db_timeout_ms,
        socketTimeoutMS=settings.db_timeout_ms,
        tz_aware=True,
    )


def get_database(settings: Settings) -> Database:
    return get_client(settings)[settings.database_name]


def ensure_indexes(db: Database) -> None:
    db["user"].create_index([("name", ASCENDING)], unique=True)
    db["potion"].create_index([("vendor_id", ASCENDING)])
    db["potion"].create_index([("price", ASCENDING)])


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    """Insert a document, stamping created_at/updated_at. Returns the stored document."""
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    now = datetime.now(timezone.utc)
    doc["created_at"] = now
    doc["updated_at"] = now
    res = db[collection_name].insert_one(doc)
    doc["_id"] = res.inserted_id
    logger.debug("Inserted %s into %s", res.inserted_id, collection_name)
    return doc
