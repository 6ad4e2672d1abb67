"""
Domain Events Package

Architectural Intent:
- Contains domain events raised by the deployment workflow
- Events are the primary mechanism for cross-boundary communication
"""

from redeploy.domain.events.event_base import DomainEvent
from redeploy.domain.events.deployment_events import (
    DeploymentStartedEvent,
    StageCompletedEvent,
    DeploymentCompletedEvent,
    DeploymentFailedEvent,
    RollbackCompletedEvent,
)

__all__ = [
    "DomainEvent",
    "DeploymentStartedEvent",
    "StageCompletedEvent",
    "DeploymentCompletedEvent",
    "DeploymentFailedEvent",
    "RollbackCompletedEvent",
]
