"""Tests for DeploymentTelemetry."""

import pytest
from unittest.mock import MagicMock, patch

from redeploy.infrastructure.telemetry.deployment_telemetry import (
    DeploymentTelemetry,
    OTELConfig,
    create_telemetry,
)


class TestOTELConfig:
    def test_default_empty_endpoint(self):
        assert OTELConfig().endpoint == ""

    def test_localhost_http_allowed(self):
        assert OTELConfig(endpoint="http://localhost:4317").endpoint == "http://localhost:4317"

    def test_remote_https_allowed(self):
        OTELConfig(endpoint="https://otel.example.com:4317")

    def test_remote_http_rejected(self):
        with pytest.raises(ValueError, match="insecure=True"):
            OTELConfig(endpoint="http://otel.example.com:4317")

    def test_remote_http_with_insecure(self):
        assert OTELConfig(endpoint="http://otel.example.com:4317", insecure=True).insecure


class TestDeploymentTelemetry:
    def test_disabled_without_endpoint(self):
        telemetry = create_telemetry()
        assert telemetry.initialized is False

    def test_record_stage_buffers(self):
        telemetry = DeploymentTelemetry(OTELConfig())
        telemetry.record_stage("COPYING_FILES", 120.0, True)

        (metric,) = telemetry.buffered_metrics
        assert metric["name"] == "redeploy.stage.duration_ms"
        assert metric["value"] == 120.0
        assert metric["attributes"] == {"stage": "COPYING_FILES", "success": "True"}

    def test_record_deployment(self):
        telemetry = DeploymentTelemetry(OTELConfig())
        telemetry.record_deployment("api", False, 12.5, 3)

        names = [m["name"] for m in telemetry.buffered_metrics]
        assert names == [
            "redeploy.deployment.duration_seconds",
            "redeploy.deployment.files_copied",
            "redeploy.deployment.success",
        ]
        assert telemetry.buffered_metrics[-1]["value"] == 0.0

    def test_forwards_to_gauge_when_initialized(self):
        telemetry = DeploymentTelemetry(OTELConfig())
        telemetry._initialized = True
        telemetry._meter = MagicMock()

        telemetry.record_metric("redeploy.test", 1.0, attributes={"k": "v"})

        telemetry._meter.create_gauge.assert_called_once_with("redeploy.test", unit="")
        telemetry._meter.create_gauge.return_value.set.assert_called_once_with(
            1.0, attributes={"k": "v"}
        )

    def test_flush_clears_buffer(self):
        telemetry = DeploymentTelemetry(OTELConfig())
        telemetry.record_metric("redeploy.test", 1.0)
        telemetry.flush()
        assert telemetry.buffered_metrics == []

    def test_initialize_sets_up_metrics_only(self):
        telemetry = DeploymentTelemetry(OTELConfig(endpoint="http://localhost:4317"))

        with patch("opentelemetry.sdk.metrics.export.PeriodicExportingMetricReader") as reader, \
             patch("opentelemetry.exporter.otlp.proto.grpc.metric_exporter.OTLPMetricExporter"), \
             patch("opentelemetry.sdk.metrics.MeterProvider"), \
             patch("opentelemetry.metrics.set_meter_provider") as set_meter_provider, \
             patch("opentelemetry.trace.set_tracer_provider") as set_tracer_provider:
            telemetry.initialize()

        assert telemetry.initialized is True
        reader.assert_called_once()
        set_meter_provider.assert_called_once()
        set_tracer_provider.assert_not_called()

    def test_config_has_no_trace_switch(self):
        assert not hasattr(OTELConfig(), "enable_traces")
