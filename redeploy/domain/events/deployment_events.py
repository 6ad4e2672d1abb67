"""
Deployment Events

Published on the event bus at the end of each deployment run, in the order
the Deployment aggregate recorded them.
"""

from dataclasses import dataclass
from typing import Any, Optional

from redeploy.domain.events.event_base import DomainEvent


@dataclass(frozen=True)
class DeploymentStartedEvent(DomainEvent):
    service_name: str = ""
    source_path: str = ""
    destination_path: str = ""
    what_if: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "service_name": self.service_name,
            "source_path": self.source_path,
            "destination_path": self.destination_path,
            "what_if": self.what_if,
        }


@dataclass(frozen=True)
class StageCompletedEvent(DomainEvent):
    stage: str = ""
    duration_ms: float = 0.0


@dataclass(frozen=True)
class DeploymentCompletedEvent(DomainEvent):
    service_name: str = ""
    files_copied: int = 0


@dataclass(frozen=True)
class DeploymentFailedEvent(DomainEvent):
    service_name: str = ""
    failed_stage: str = ""
    error_message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "failed_stage": self.failed_stage,
            "error_message": self.error_message,
        }


@dataclass(frozen=True)
class RollbackCompletedEvent(DomainEvent):
    backup_path: str = ""
    restored: bool = False
    service_restarted: Optional[bool] = None
