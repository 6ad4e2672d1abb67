"""
Configuration Module

Architectural Intent:
- Centralized configuration loading from a JSON file
- Provides typed access to all redeploy settings
- Falls back to sensible defaults when config file is absent
- Environment variables override file-based config

Design Decisions:
- Config is a frozen dataclass for immutability after load
- Nested config sections map to sub-dataclasses
- DeploymentSettings holds the persistent defaults; per-run values come from
  DeploymentSettings.to_options() with CLI overrides applied on top
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Optional
import json
import logging
import os

from redeploy.application.dtos.deployment_dtos import DeploymentOptions

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "redeploy.json"


@dataclass(frozen=True)
class DeploymentSettings:
    """Defaults for a deployment run."""
    service_name: str = ""
    source_path: str = ""
    destination_path: str = ""
    remote_host: str = ""
    backup_enabled: bool = True
    backup_retention_days: int = 30
    verify_after_copy: bool = True
    max_retries: int = 3
    retry_delay_seconds: float = 10.0
    service_timeout_seconds: float = 60.0
    max_parallelism: int = 8
    rollback_enabled: bool = True
    log_file_path: str = "deployment.log"
    status_settle_seconds: float = 5.0
    use_sudo: bool = False

    def to_options(
        self,
        what_if: bool = False,
        version_tag: Optional[str] = None,
        **overrides: Any,
    ) -> DeploymentOptions:
        """Builds DeploymentOptions from these settings.

        what_if and version_tag are per-run only and never come from config.
        Overrides whose value is None are ignored, so unset CLI flags keep the
        configured value. Raises ValueError when the result is invalid.
        """
        settings = replace(
            self, **{k: v for k, v in overrides.items() if v is not None}
        )
        return DeploymentOptions(
            service_name=settings.service_name,
            source_path=settings.source_path,
            destination_path=settings.destination_path,
            remote_host=settings.remote_host or None,
            backup_enabled=settings.backup_enabled,
            version_tag=version_tag or None,
            backup_retention_days=settings.backup_retention_days,
            verify_after_copy=settings.verify_after_copy,
            max_retries=settings.max_retries,
            retry_delay_seconds=settings.retry_delay_seconds,
            service_timeout_seconds=settings.service_timeout_seconds,
            max_parallelism=settings.max_parallelism,
            rollback_enabled=settings.rollback_enabled,
            what_if=what_if,
        )


@dataclass(frozen=True)
class TelemetryConfig:
    """OpenTelemetry configuration."""
    endpoint: str = ""
    insecure: bool = False
    service_name: str = "redeploy"
    environment: str = "production"


@dataclass(frozen=True)
class RedeployConfig:
    """Root configuration for redeploy."""
    deployment: DeploymentSettings = field(default_factory=DeploymentSettings)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    log_level: str = "WARNING"


_TOP_LEVEL_KEYS = {"log_level"}


def _env_override(data: dict, prefix: str = "REDEPLOY") -> dict:
    """Override config values with environment variables.

    Environment variables follow the pattern REDEPLOY_SECTION_KEY.
    For example: REDEPLOY_DEPLOYMENT_MAX_RETRIES=5, REDEPLOY_LOG_LEVEL=INFO
    """
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}_"):
            continue
        name = key[len(prefix) + 1:].lower()
        if name in _TOP_LEVEL_KEYS:
            data[name] = value
            continue
        parts = name.split("_", 1)
        if len(parts) == 2:
            section, field_name = parts
            if not isinstance(data.get(section), dict):
                data[section] = {}
            data[section][field_name] = value
        elif len(parts) == 1:
            data[parts[0]] = value
    return data


def _parse_config_file(path: Path) -> dict:
    """Parse a JSON config file. Returns empty dict on failure."""
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.debug("Config file not found: %s", path)
        return {}
    except json.JSONDecodeError as e:
        logger.warning("Invalid config file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file %s must hold a JSON object", path)
        return {}
    return data


def _build_sub_config(cls, data: Any):
    """Build a sub-config dataclass from a dict, ignoring unknown keys."""
    if not isinstance(data, dict):
        return cls()
    valid_fields = {f.name for f in fields(cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}

    # Convert strings from the environment to the declared field type
    for f in fields(cls):
        if f.name in filtered and isinstance(filtered[f.name], str):
            if f.type == "int":
                filtered[f.name] = int(filtered[f.name])
            elif f.type == "float":
                filtered[f.name] = float(filtered[f.name])
            elif f.type == "bool":
                filtered[f.name] = filtered[f.name].lower() in ("true", "1", "yes")

    return cls(**filtered)


def load_config(
    path: Optional[str] = None,
    env_prefix: str = "REDEPLOY",
) -> RedeployConfig:
    """Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (REDEPLOY_SECTION_KEY)
    2. Config file values
    3. Defaults

    Args:
        path: Path to config file (JSON). Defaults to redeploy.json in CWD.
        env_prefix: Environment variable prefix. Defaults to REDEPLOY.
    """
    config_path = Path(path) if path else Path(DEFAULT_CONFIG_FILE)
    data = _parse_config_file(config_path)
    data = _env_override(data, env_prefix)

    return RedeployConfig(
        deployment=_build_sub_config(DeploymentSettings, data.get("deployment", {})),
        telemetry=_build_sub_config(TelemetryConfig, data.get("telemetry", {})),
        log_level=str(data.get("log_level", "WARNING")),
    )
