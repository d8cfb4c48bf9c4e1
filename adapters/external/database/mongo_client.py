# adapters/external/database/mongo_client.py

from __future__ import annotations

from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database

from config import get_settings

_client: Optional[MongoClient] = None
_db: Optional[Database] = None


def get_mongo_client() -> MongoClient:
    """
    Lazily created MongoClient shared by every repository (MONGO_URI).
    """
    global _client
    if _client is None:
        uri = get_settings().MONGO_URI
        if not uri:
            raise RuntimeError(
                "MONGO_URI is not configured. Set it or use OUTCOME_STORE=memory."
            )
        _client = MongoClient(uri)
    return _client


def get_mongo_db() -> Database:
    """
    Database selected by MONGO_DB, cached at module level.
    """
    global _db
    if _db is None:
        db_name = get_settings().MONGO_DB
        if not db_name:
            raise RuntimeError("MONGO_DB is not configured.")
        _db = get_mongo_client()[db_name]
    return _db
