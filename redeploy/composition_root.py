"""
Composition Root

Architectural Intent:
- Dependency injection composition root for redeploy
- Single place where all adapters and use cases are wired together
- No adapter instantiation should occur outside this module

Design Decisions:
- Uses a simple dataclass container instead of a DI framework
- Factory function creates and wires all dependencies from RedeployConfig
- Telemetry only exports when an endpoint is configured
"""

from dataclasses import dataclass
from typing import Optional
from redeploy.infrastructure.config import RedeployConfig
from redeploy.infrastructure.adapters.systemd_adapter import SystemdServiceController
from redeploy.infrastructure.adapters.file_transfer_adapter import FileTransferAdapter
from redeploy.infrastructure.adapters.backup_manager import BackupManager
from redeploy.infrastructure.audit_log import AuditLog
from redeploy.infrastructure.event_bus import EventBus
from redeploy.infrastructure.telemetry.deployment_telemetry import (
    DeploymentTelemetry,
    create_telemetry,
)
from redeploy.application.use_cases.deploy_service import DeployService


@dataclass
class RedeployContainer:
    """DI container holding all wired dependencies."""

    config: RedeployConfig
    service_controller: SystemdServiceController
    file_operations: FileTransferAdapter
    backup_manager: BackupManager
    audit_log: AuditLog
    event_bus: EventBus
    telemetry: DeploymentTelemetry
    deploy_service: DeployService


def create_container(config: Optional[RedeployConfig] = None) -> RedeployContainer:
    """Create and wire all dependencies."""
    config = config or RedeployConfig()
    settings = config.deployment

    service_controller = SystemdServiceController(use_sudo=settings.use_sudo)
    file_operations = FileTransferAdapter()
    backup_manager = BackupManager(file_operations, settings.max_parallelism)
    audit_log = AuditLog(settings.log_file_path)
    event_bus = EventBus()
    telemetry = create_telemetry(
        endpoint=config.telemetry.endpoint,
        service_name=config.telemetry.service_name,
        insecure=config.telemetry.insecure,
        environment=config.telemetry.environment,
    )

    deploy_service = DeployService(
        service_controller,
        file_operations,
        backup_manager,
        audit_log,
        event_bus=event_bus,
        telemetry=telemetry,
        status_settle_seconds=settings.status_settle_seconds,
    )

    return RedeployContainer(
        config=config,
        service_controller=service_controller,
        file_operations=file_operations,
        backup_manager=backup_manager,
        audit_log=audit_log,
        event_bus=event_bus,
        telemetry=telemetry,
        deploy_service=deploy_service,
    )
