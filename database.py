"""
Database access for the store.

A single MongoClient is created at import time from DATABASE_URL. When the
URL is not set, ``db`` stays ``None`` and request handlers answer with a 500
through ``get_db``.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from fastapi import HTTPException
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

import config

logger = logging.getLogger(__name__)

db: Optional[Database] = None

if config.DATABASE_URL:
    _client = MongoClient(config.DATABASE_URL)
    db = _client[config.DATABASE_NAME]


def get_db() -> Database:
    if db is None:
        raise HTTPException(500, "Database not configured")
    return db


def ensure_indexes(database: Database) -> None:
    database["user"].create_index([("email", ASCENDING)], unique=True)
    database["category"].create_index([("name", ASCENDING)], unique=True)
    database["category"].create_index([("slug", ASCENDING)], unique=True)
    database["product"].create_index([("slug", ASCENDING)])
    database["order"].create_index([("buyer", ASCENDING)])
    logger.info("Indexes ensured on %s", database.name)


def create_document(database: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document with timestamps and return its id as a string."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    now = datetime.now(timezone.utc)
    data_dict["created_at"] = now
    data_dict["updated_at"] = now
    result = database[collection_name].insert_one(data_dict)
    return str(result.inserted_id)
