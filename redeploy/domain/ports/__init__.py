"""
Domain Ports Package

Architectural Intent:
- Contains port interfaces (abstract contracts) for external dependencies
- Ports define what the domain needs, adapters implement how
- Follows Hexagonal Architecture principles
"""

from redeploy.domain.ports.service_controller_port import ServiceControllerPort
from redeploy.domain.ports.file_operations_port import FileOperationsPort
from redeploy.domain.ports.backup_manager_port import BackupManagerPort
from redeploy.domain.ports.audit_log_port import AuditLogPort
from redeploy.domain.ports.event_bus_port import EventBusPort
from redeploy.domain.ports.telemetry_port import TelemetryPort

__all__ = [
    "ServiceControllerPort",
    "FileOperationsPort",
    "BackupManagerPort",
    "AuditLogPort",
    "EventBusPort",
    "TelemetryPort",
]
