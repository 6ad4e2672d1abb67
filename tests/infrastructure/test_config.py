"""Tests for configuration module."""

import json
import os
import pytest
from dataclasses import fields
from unittest.mock import patch

from redeploy.infrastructure.config import (
    DeploymentSettings,
    RedeployConfig,
    TelemetryConfig,
    load_config,
)


class TestDefaultConfig:
    def test_defaults(self):
        config = load_config(path="/nonexistent/redeploy.json")
        assert config.log_level == "WARNING"
        assert config.deployment.max_retries == 3
        assert config.deployment.retry_delay_seconds == 10.0
        assert config.deployment.service_timeout_seconds == 60.0
        assert config.deployment.max_parallelism == 8
        assert config.deployment.backup_retention_days == 30
        assert config.deployment.log_file_path == "deployment.log"
        assert config.deployment.status_settle_seconds == 5.0
        assert config.telemetry.endpoint == ""

    def test_all_sections_present(self):
        config = load_config(path="/nonexistent/redeploy.json")
        assert isinstance(config, RedeployConfig)
        assert isinstance(config.deployment, DeploymentSettings)
        assert isinstance(config.telemetry, TelemetryConfig)


class TestFileConfig:
    def test_load_from_file(self, tmp_path):
        config_file = tmp_path / "redeploy.json"
        config_file.write_text(json.dumps({
            "log_level": "INFO",
            "deployment": {
                "service_name": "api",
                "source_path": "/build/api",
                "destination_path": "/srv/api",
                "max_parallelism": 16,
                "backup_enabled": False,
            },
            "telemetry": {"endpoint": "https://otel.example.com:4317"},
        }))

        config = load_config(path=str(config_file))
        assert config.log_level == "INFO"
        assert config.deployment.service_name == "api"
        assert config.deployment.max_parallelism == 16
        assert config.deployment.backup_enabled is False
        assert config.telemetry.endpoint == "https://otel.example.com:4317"

    def test_partial_config(self, tmp_path):
        config_file = tmp_path / "redeploy.json"
        config_file.write_text(json.dumps({"deployment": {"max_retries": 5}}))

        config = load_config(path=str(config_file))
        assert config.deployment.max_retries == 5
        assert config.deployment.max_parallelism == 8

    def test_invalid_json_returns_defaults(self, tmp_path):
        config_file = tmp_path / "redeploy.json"
        config_file.write_text("not valid json{{{")

        config = load_config(path=str(config_file))
        assert config.deployment.max_retries == 3

    def test_non_object_returns_defaults(self, tmp_path):
        config_file = tmp_path / "redeploy.json"
        config_file.write_text("[1, 2]")

        assert load_config(path=str(config_file)) == RedeployConfig()

    def test_unknown_keys_ignored(self, tmp_path):
        config_file = tmp_path / "redeploy.json"
        config_file.write_text(json.dumps({
            "deployment": {"max_retries": 4, "unknown_key": "ignored"},
            "mystery": {"x": 1},
        }))

        config = load_config(path=str(config_file))
        assert config.deployment.max_retries == 4


class TestEnvOverride:
    def test_env_overrides_file(self, tmp_path):
        config_file = tmp_path / "redeploy.json"
        config_file.write_text(json.dumps({"deployment": {"max_retries": 5}}))

        with patch.dict(os.environ, {"REDEPLOY_DEPLOYMENT_MAX_RETRIES": "7"}):
            config = load_config(path=str(config_file))

        assert config.deployment.max_retries == 7

    def test_type_conversion(self):
        env = {
            "REDEPLOY_DEPLOYMENT_RETRY_DELAY_SECONDS": "2.5",
            "REDEPLOY_DEPLOYMENT_VERIFY_AFTER_COPY": "no",
            "REDEPLOY_DEPLOYMENT_ROLLBACK_ENABLED": "true",
            "REDEPLOY_TELEMETRY_INSECURE": "1",
        }
        with patch.dict(os.environ, env):
            config = load_config(path="/nonexistent/redeploy.json")

        assert config.deployment.retry_delay_seconds == 2.5
        assert config.deployment.verify_after_copy is False
        assert config.deployment.rollback_enabled is True
        assert config.telemetry.insecure is True

    def test_top_level_log_level(self):
        with patch.dict(os.environ, {"REDEPLOY_LOG_LEVEL": "DEBUG"}):
            config = load_config(path="/nonexistent/redeploy.json")
        assert config.log_level == "DEBUG"

    def test_custom_prefix(self):
        with patch.dict(os.environ, {"MYAPP_DEPLOYMENT_SERVICE_NAME": "worker"}):
            config = load_config(path="/nonexistent/redeploy.json", env_prefix="MYAPP")

        assert config.deployment.service_name == "worker"


class TestToOptions:
    def _settings(self, **changes):
        values = {"service_name": "api", "source_path": "/build/api", "destination_path": "/srv/api"}
        values.update(changes)
        return DeploymentSettings(**values)

    def test_copies_settings(self):
        options = self._settings(max_retries=5, remote_host="").to_options()
        assert options.max_retries == 5
        assert options.version_tag is None
        assert options.remote_host is None
        assert options.what_if is False

    def test_overrides_win(self):
        options = self._settings().to_options(
            what_if=True, max_parallelism=2, backup_enabled=False, version_tag="1.0"
        )
        assert options.what_if is True
        assert options.max_parallelism == 2
        assert options.backup_enabled is False
        assert options.version_tag == "1.0"

    def test_none_overrides_ignored(self):
        options = self._settings(max_retries=4).to_options(max_retries=None, service_name=None)
        assert options.max_retries == 4
        assert options.service_name == "api"

    def test_version_tag_is_per_run_only(self):
        assert "version_tag" not in {f.name for f in fields(DeploymentSettings)}
        assert self._settings().to_options(version_tag="").version_tag is None

    def test_version_tag_in_config_file_ignored(self, tmp_path):
        path = tmp_path / "redeploy.json"
        path.write_text(json.dumps({"deployment": {"service_name": "api", "version_tag": "9.9"}}))

        config = load_config(path=str(path))

        assert config.deployment.service_name == "api"
        assert not hasattr(config.deployment, "version_tag")

    def test_invalid_settings(self):
        with pytest.raises(ValueError):
            DeploymentSettings().to_options()


class TestConfigImmutability:
    def test_frozen(self):
        config = load_config(path="/nonexistent/redeploy.json")
        with pytest.raises(AttributeError):
            config.log_level = "DEBUG"

    def test_sub_config_frozen(self):
        config = load_config(path="/nonexistent/redeploy.json")
        with pytest.raises(AttributeError):
            config.deployment.max_retries = 9
