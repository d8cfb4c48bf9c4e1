# deployment_outcome_repository_mongodb.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database

from adapters.external.database.helper_repo import sanitize_for_mongo
from adapters.external.database.mongo_client import get_mongo_db
from core.domain.entities.deployment_outcome_entity import DeploymentOutcomeEntity
from core.domain.enums.deployment_enums import DeploymentState
from core.domain.repositories.deployment_outcome_repository_interface import DeploymentOutcomeRepository


class DeploymentOutcomeRepositoryMongoDB(DeploymentOutcomeRepository):
    """
    Short-lived deployment outcomes.

    Collection: deployment_outcomes (TTL on `expires_at`)
    """

    COLLECTION_NAME = "deployment_outcomes"

    def __init__(self, db: Optional[Database] = None, *, ttl_sec: int = 24 * 60 * 60) -> None:
        self._db: Database = db if db is not None else get_mongo_db()
        self._collection: Collection = self._db[self.COLLECTION_NAME]
        self._ttl = timedelta(seconds=int(ttl_sec))
        self.ensure_indexes()

    @property
    def collection(self) -> Collection:
        return self._collection

    def ensure_indexes(self) -> None:
        self._collection.create_index([("channel_id", 1)], unique=True, name="ux_deployment_outcomes_channel")
        self._collection.create_index([("state", 1)], name="ix_deployment_outcomes_state")
        self._collection.create_index([("expires_at", 1)], expireAfterSeconds=0, name="ttl_deployment_outcomes")

    def get(self, *, channel_id: int) -> Optional[DeploymentOutcomeEntity]:
        doc = self._collection.find_one({"channel_id": int(channel_id)})
        return DeploymentOutcomeEntity.from_mongo(doc)

    def upsert(self, entity: DeploymentOutcomeEntity) -> DeploymentOutcomeEntity:
        entity = entity.touch_for_insert() if entity.created_at is None else entity.touch_for_update()
        entity.expires_at = datetime.now(timezone.utc) + self._ttl

        doc = sanitize_for_mongo(entity.to_mongo())
        doc.pop("_id", None)
        created = {k: doc.pop(k) for k in ("created_at", "created_at_iso") if k in doc}

        saved = self._collection.find_one_and_update(
            {"channel_id": int(entity.channel_id)},
            {"$set": doc, "$setOnInsert": created},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return DeploymentOutcomeEntity.from_mongo(saved)

    def delete(self, *, channel_id: int) -> bool:
        res = self._collection.delete_one({"channel_id": int(channel_id)})
        return res.deleted_count > 0

    def list_open(self, *, limit: int = 100) -> Sequence[DeploymentOutcomeEntity]:
        terminal = [DeploymentState.ACTIVE.value, DeploymentState.FAILED.value]
        cursor = self._collection.find({"state": {"$nin": terminal}}, sort=[("updated_at", -1)]).limit(int(limit))
        return [DeploymentOutcomeEntity.from_mongo(d) for d in cursor if d]
