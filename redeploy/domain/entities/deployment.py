"""
Deployment Module

Architectural Intent:
- Deployment aggregate is the consistency boundary for one deployment run
- Stage lifecycle managed through state transitions enforced by domain methods
- Transitions are strictly forward along STAGE_ORDER; FAILED is reachable
  from any non-terminal stage; terminal stages are never left
- All state changes produce new instances to ensure auditability
- Domain events published for cross-context communication (e.g., notifications, monitoring)

Domain Events:
- DeploymentStartedEvent: Published when a run begins
- StageCompletedEvent: Published when a stage finishes, with its duration
- DeploymentCompletedEvent: Published when the run succeeds
- DeploymentFailedEvent: Published when the run fails
- RollbackCompletedEvent: Published after a rollback attempt on a failed run
"""

from __future__ import annotations
import uuid
from typing import Optional
from redeploy.domain.events.event_base import DomainEvent
from redeploy.domain.events.deployment_events import (
    DeploymentStartedEvent,
    StageCompletedEvent,
    DeploymentCompletedEvent,
    DeploymentFailedEvent,
    RollbackCompletedEvent,
)
from redeploy.domain.value_objects.deployment_stage import DeploymentStage, STAGE_ORDER


class Deployment:
    __slots__ = (
        "_deployment_id",
        "_service_name",
        "_stage",
        "_failed_stage",
        "_error_message",
        "_domain_events",
    )

    def __init__(
        self,
        service_name: str,
        deployment_id: Optional[str] = None,
        stage: DeploymentStage = DeploymentStage.STARTING,
        failed_stage: Optional[DeploymentStage] = None,
        error_message: Optional[str] = None,
        domain_events: tuple = (),
    ):
        if not service_name:
            raise ValueError("Deployment service name cannot be empty")
        self._service_name = service_name
        self._deployment_id = deployment_id or uuid.uuid4().hex[:12]
        self._stage = stage
        self._failed_stage = failed_stage
        self._error_message = error_message
        self._domain_events = domain_events

    @property
    def deployment_id(self) -> str:
        return self._deployment_id

    @property
    def service_name(self) -> str:
        return self._service_name

    @property
    def stage(self) -> DeploymentStage:
        return self._stage

    @property
    def failed_stage(self) -> Optional[DeploymentStage]:
        return self._failed_stage

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def domain_events(self) -> tuple:
        return self._domain_events

    def _evolve(self, event: Optional[DomainEvent] = None, **changes) -> "Deployment":
        state = {
            "service_name": self._service_name,
            "deployment_id": self._deployment_id,
            "stage": self._stage,
            "failed_stage": self._failed_stage,
            "error_message": self._error_message,
            "domain_events": self._domain_events + ((event,) if event else ()),
        }
        state.update(changes)
        return Deployment(**state)

    def start(
        self, source_path: str, destination_path: str, what_if: bool = False
    ) -> "Deployment":
        if self._stage != DeploymentStage.STARTING or self._domain_events:
            raise ValueError("Deployment can only start once, from STARTING state")
        return self._evolve(
            DeploymentStartedEvent(
                aggregate_id=self._deployment_id,
                service_name=self._service_name,
                source_path=source_path,
                destination_path=destination_path,
                what_if=what_if,
            )
        )

    def advance_to(self, stage: DeploymentStage) -> "Deployment":
        if stage.is_terminal:
            raise ValueError(f"Use complete() or fail() to enter {stage.name}")
        if self._stage.is_terminal:
            raise ValueError(f"Deployment already {self._stage.name}")
        if STAGE_ORDER.index(stage) <= STAGE_ORDER.index(self._stage):
            raise ValueError(
                f"Cannot move from {self._stage.name} back to {stage.name}"
            )
        return self._evolve(stage=stage)

    def stage_completed(self, duration_ms: float) -> "Deployment":
        if self._stage.is_terminal:
            raise ValueError(f"Deployment already {self._stage.name}")
        return self._evolve(
            StageCompletedEvent(
                aggregate_id=self._deployment_id,
                stage=self._stage.name,
                duration_ms=duration_ms,
            )
        )

    def complete(self, files_copied: int = 0) -> "Deployment":
        if self._stage.is_terminal:
            raise ValueError(f"Deployment already {self._stage.name}")
        return self._evolve(
            DeploymentCompletedEvent(
                aggregate_id=self._deployment_id,
                service_name=self._service_name,
                files_copied=files_copied,
            ),
            stage=DeploymentStage.COMPLETED,
        )

    def fail(self, message: str) -> "Deployment":
        if self._stage.is_terminal:
            raise ValueError(f"Deployment already {self._stage.name}")
        if not message:
            raise ValueError("A failed deployment needs an error message")
        return self._evolve(
            DeploymentFailedEvent(
                aggregate_id=self._deployment_id,
                service_name=self._service_name,
                failed_stage=self._stage.name,
                error_message=message,
            ),
            stage=DeploymentStage.FAILED,
            failed_stage=self._stage,
            error_message=message,
        )

    def record_rollback(
        self,
        backup_path: str,
        restored: bool,
        service_restarted: Optional[bool] = None,
    ) -> "Deployment":
        if self._stage != DeploymentStage.FAILED:
            raise ValueError("Rollback is only recorded for FAILED deployments")
        return self._evolve(
            RollbackCompletedEvent(
                aggregate_id=self._deployment_id,
                backup_path=backup_path,
                restored=restored,
                service_restarted=service_restarted,
            )
        )

    def __repr__(self) -> str:
        return (
            f"Deployment(deployment_id={self._deployment_id}, "
            f"service_name={self._service_name}, stage={self._stage}, "
            f"error_message={self._error_message})"
        )
