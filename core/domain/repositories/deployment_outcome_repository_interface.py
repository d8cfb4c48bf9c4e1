from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from core.domain.entities.deployment_outcome_entity import DeploymentOutcomeEntity


class DeploymentOutcomeRepository(ABC):
    @abstractmethod
    def get(self, *, channel_id: int) -> Optional[DeploymentOutcomeEntity]:
        raise NotImplementedError

    @abstractmethod
    def upsert(self, entity: DeploymentOutcomeEntity) -> DeploymentOutcomeEntity:
        raise NotImplementedError

    @abstractmethod
    def delete(self, *, channel_id: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    def list_open(self, *, limit: int = 100) -> Sequence[DeploymentOutcomeEntity]:
        raise NotImplementedError
