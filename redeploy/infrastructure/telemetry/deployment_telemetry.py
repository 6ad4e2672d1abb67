"""
OpenTelemetry Exporter for redeploy

Architectural Intent:
- Exports deployment stage timings and outcomes to OTLP-compatible backends
- Implements TelemetryPort for the deployment use case
- Disabled (buffer only) unless an endpoint is configured

Security:
- Endpoint defaults to empty string (must be explicitly configured)
- Non-localhost http:// endpoints rejected unless insecure=True
- Validation in __post_init__ prevents accidental plaintext export
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Any
from urllib.parse import urlparse
import logging
from datetime import datetime, UTC

logger = logging.getLogger(__name__)


@dataclass
class OTELConfig:
    endpoint: str = ""
    service_name: str = "redeploy"
    environment: str = "production"
    enable_metrics: bool = True
    insecure: bool = False

    def __post_init__(self) -> None:
        if self.endpoint:
            parsed = urlparse(self.endpoint)
            is_localhost = parsed.hostname in ("localhost", "127.0.0.1", "::1")
            if parsed.scheme == "http" and not is_localhost and not self.insecure:
                raise ValueError(
                    f"Non-localhost HTTP endpoint '{self.endpoint}' requires "
                    "insecure=True or use https://. "
                    "Set insecure=True to explicitly allow plaintext export."
                )


class DeploymentTelemetry:
    """
    OpenTelemetry exporter for deployment runs.

    Metrics:
    - redeploy.stage.duration_ms (stage, success)
    - redeploy.deployment.duration_seconds (service, success)
    - redeploy.deployment.files_copied (service)
    - redeploy.deployment.success (service)
    """

    def __init__(self, config: OTELConfig):
        self.config = config
        self._initialized = False
        self._metrics_buffer: list[dict[str, Any]] = []
        self._meter: Any = None
        self._gauges: dict[str, Any] = {}

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def buffered_metrics(self) -> list[dict[str, Any]]:
        return list(self._metrics_buffer)

    def initialize(self) -> None:
        """Initialize OpenTelemetry SDK and exporters."""
        if not self.config.endpoint:
            logger.info("OTEL endpoint not configured, telemetry disabled")
            return

        try:
            from opentelemetry.sdk.resources import Resource, SERVICE_NAME
            from opentelemetry import metrics
            from opentelemetry.sdk.metrics import MeterProvider
            from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
            from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
                OTLPMetricExporter,
            )

            resource = Resource(
                attributes={
                    SERVICE_NAME: self.config.service_name,
                    "environment": self.config.environment,
                }
            )

            if self.config.enable_metrics:
                metric_reader = PeriodicExportingMetricReader(
                    OTLPMetricExporter(
                        endpoint=self.config.endpoint, insecure=self.config.insecure
                    )
                )
                provider = MeterProvider(
                    resource=resource, metric_readers=[metric_reader]
                )
                metrics.set_meter_provider(provider)
                self._meter = metrics.get_meter(__name__)

            self._initialized = True

        except ImportError:
            logger.warning("OpenTelemetry SDK not installed, telemetry disabled")
            self._initialized = False
        except Exception as e:
            logger.error("Failed to initialize OTEL: %s", e)
            self._initialized = False

    def _get_gauge(self, name: str, unit: str = "") -> Any:
        """Get or create a gauge for a metric name."""
        if name not in self._gauges and self._meter:
            self._gauges[name] = self._meter.create_gauge(name, unit=unit)
        return self._gauges.get(name)

    def record_metric(
        self,
        name: str,
        value: float,
        unit: str = "",
        attributes: Optional[dict[str, str]] = None,
    ) -> None:
        """Record a metric value."""
        self._metrics_buffer.append(
            {
                "name": name,
                "value": value,
                "unit": unit,
                "attributes": attributes or {},
                "timestamp": datetime.now(UTC).isoformat(),
            }
        )

        if self._initialized:
            gauge = self._get_gauge(name, unit)
            if gauge:
                gauge.set(value, attributes=attributes or {})

    def record_stage(self, stage: str, duration_ms: float, success: bool) -> None:
        self.record_metric(
            "redeploy.stage.duration_ms",
            duration_ms,
            unit="ms",
            attributes={"stage": stage, "success": str(success)},
        )

    def record_deployment(
        self,
        service_name: str,
        success: bool,
        duration_seconds: float,
        files_copied: int,
    ) -> None:
        attributes = {"service": service_name, "success": str(success)}
        self.record_metric(
            "redeploy.deployment.duration_seconds",
            duration_seconds,
            unit="s",
            attributes=attributes,
        )
        self.record_metric(
            "redeploy.deployment.files_copied",
            float(files_copied),
            attributes={"service": service_name},
        )
        self.record_metric(
            "redeploy.deployment.success",
            1.0 if success else 0.0,
            attributes={"service": service_name},
        )

    def flush(self) -> None:
        """Drops the local buffer; the SDK reader exports on its own schedule."""
        exported_count = len(self._metrics_buffer)
        self._metrics_buffer.clear()
        if exported_count:
            logger.debug("Flushed %d buffered metrics", exported_count)


def create_telemetry(
    endpoint: Optional[str] = None,
    service_name: str = "redeploy",
    insecure: bool = False,
    environment: str = "production",
) -> DeploymentTelemetry:
    """Factory function to create and initialize the telemetry exporter."""
    config = OTELConfig(
        endpoint=endpoint or "",
        service_name=service_name,
        environment=environment,
        insecure=insecure,
    )
    telemetry = DeploymentTelemetry(config)
    telemetry.initialize()
    return telemetry
