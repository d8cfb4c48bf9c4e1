from .deployment_outcome_repository_interface import DeploymentOutcomeRepository

__all__ = [
    "DeploymentOutcomeRepository",
]
