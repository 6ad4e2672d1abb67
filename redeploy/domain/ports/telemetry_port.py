"""
Telemetry Port

Architectural Intent:
- Hooks the deployment use case calls to report stage timings and outcomes
- Implemented by the OpenTelemetry exporter; optional for the use case
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class TelemetryPort(Protocol):
    def record_stage(self, stage: str, duration_ms: float, success: bool) -> None: ...

    def record_deployment(
        self,
        service_name: str,
        success: bool,
        duration_seconds: float,
        files_copied: int,
    ) -> None: ...
