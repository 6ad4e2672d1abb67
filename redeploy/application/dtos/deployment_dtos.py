"""
Deployment DTOs

Architectural Intent:
- Data Transfer Objects for the deployment use case boundary
- Input validation at the application boundary
- Decouples external representation from domain model
"""

import os
from dataclasses import dataclass
from typing import Callable, Optional

from redeploy.domain.value_objects.deployment_stage import DeploymentStage


def _same_path(a: str, b: str) -> bool:
    return os.path.normcase(os.path.normpath(a)) == os.path.normcase(os.path.normpath(b))


@dataclass(frozen=True)
class DeploymentOptions:
    service_name: str
    source_path: str
    destination_path: str
    remote_host: Optional[str] = None
    backup_enabled: bool = True
    version_tag: Optional[str] = None
    backup_retention_days: int = 30
    verify_after_copy: bool = True
    max_retries: int = 3
    retry_delay_seconds: float = 10
    service_timeout_seconds: float = 60
    max_parallelism: int = 8
    rollback_enabled: bool = True
    what_if: bool = False

    def __post_init__(self) -> None:
        if not self.service_name:
            raise ValueError("service_name cannot be empty")
        if not self.source_path:
            raise ValueError("source_path cannot be empty")
        if not self.destination_path:
            raise ValueError("destination_path cannot be empty")
        if _same_path(self.source_path, self.destination_path):
            raise ValueError("source_path and destination_path must differ")
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {self.max_retries}")
        if self.max_parallelism < 1:
            raise ValueError(f"max_parallelism must be >= 1, got {self.max_parallelism}")
        if self.backup_retention_days < 0:
            raise ValueError("backup_retention_days cannot be negative")
        if self.retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds cannot be negative")
        if self.service_timeout_seconds <= 0:
            raise ValueError("service_timeout_seconds must be positive")


@dataclass(frozen=True)
class DeploymentResult:
    success: bool
    error_message: Optional[str] = None
    backup_path: Optional[str] = None
    files_copied: int = 0
    duration_seconds: float = 0.0
    service_running: bool = False

    def __post_init__(self) -> None:
        if not self.success and not self.error_message:
            raise ValueError("A failed result needs an error message")


@dataclass(frozen=True)
class DeploymentProgress:
    message: str
    percent: float
    stage: DeploymentStage

    def __post_init__(self) -> None:
        if not (0 <= self.percent <= 100):
            raise ValueError(f"percent must be 0-100, got {self.percent}")


ProgressSink = Callable[[DeploymentProgress], None]
