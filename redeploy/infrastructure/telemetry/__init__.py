"""
redeploy Telemetry Infrastructure

Architectural Intent:
- OpenTelemetry integration for deployment metrics
"""

from redeploy.infrastructure.telemetry.deployment_telemetry import (
    DeploymentTelemetry,
    OTELConfig,
    create_telemetry,
)

__all__ = [
    "DeploymentTelemetry",
    "OTELConfig",
    "create_telemetry",
]
