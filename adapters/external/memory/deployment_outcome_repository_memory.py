from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Sequence

from core.domain.entities.deployment_outcome_entity import DeploymentOutcomeEntity
from core.domain.enums.deployment_enums import DeploymentState
from core.domain.repositories.deployment_outcome_repository_interface import DeploymentOutcomeRepository


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeploymentOutcomeRepositoryMemory(DeploymentOutcomeRepository):
    """
    Process-local outcome store keyed by channel id.

    Entries carry the same `expires_at` the Mongo store writes and are
    dropped once it has passed.
    """

    def __init__(self, *, ttl_sec: int = 24 * 60 * 60, now: Callable[[], datetime] = _utcnow) -> None:
        self._items: Dict[int, DeploymentOutcomeEntity] = {}
        self._lock = threading.Lock()
        self._ttl = timedelta(seconds=int(ttl_sec))
        self._now = now

    def _prune(self) -> None:
        now = self._now()
        expired = [k for k, e in self._items.items() if e.expires_at is not None and e.expires_at <= now]
        for key in expired:
            del self._items[key]

    def get(self, *, channel_id: int) -> Optional[DeploymentOutcomeEntity]:
        with self._lock:
            self._prune()
            item = self._items.get(int(channel_id))
            return item.model_copy() if item else None

    def upsert(self, entity: DeploymentOutcomeEntity) -> DeploymentOutcomeEntity:
        with self._lock:
            self._prune()
            previous = self._items.get(int(entity.channel_id))
            if previous is not None:
                entity.created_at = previous.created_at
                entity.created_at_iso = previous.created_at_iso
                entity = entity.touch_for_update()
            else:
                entity = entity.touch_for_insert()
            entity.expires_at = self._now() + self._ttl
            self._items[int(entity.channel_id)] = entity.model_copy()
            return entity

    def delete(self, *, channel_id: int) -> bool:
        with self._lock:
            return self._items.pop(int(channel_id), None) is not None

    def list_open(self, *, limit: int = 100) -> Sequence[DeploymentOutcomeEntity]:
        with self._lock:
            self._prune()
            items = [e.model_copy() for e in self._items.values() if not DeploymentState(e.state).is_terminal]
        items.sort(key=lambda e: e.updated_at or 0, reverse=True)
        return items[: int(limit)]
