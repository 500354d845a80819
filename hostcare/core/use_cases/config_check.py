"""
Config check use case — load hostcare.yml the way a run would, then lint it.

Errors make the configuration unusable for a run; warnings flag settings
that load fine but probably are not what the operator meant.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from hostcare.core.config.loader import (
    SERVICE_PREFIX,
    ConfigError,
    HostcareConfig,
    find_config_file,
    load_config,
)


@dataclass
class ConfigCheckResult:
    config_path: Path | None = None
    config: HostcareConfig | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return self.config is not None and not self.errors

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
        }
        if self.config is not None:
            data["services"] = self.config.services.critical_services
            data["settings"] = self.config.services.model_dump(
                mode="json", exclude={"critical_services"}
            )
            data["data_directory"] = (
                str(self.config.data_directory) if self.config.data_directory else None
            )
        return data


def _errors(config: HostcareConfig) -> list[str]:
    found = [
        f"Invalid service name in {SERVICE_PREFIX}.critical_services: {raw!r}"
        for raw in config.rejected_services
    ]
    data_dir = config.data_directory
    if data_dir is not None and data_dir.exists() and not data_dir.is_dir():
        found.append(f"system.data_directory is not a directory: {data_dir}")
    return found


def _warnings(config: HostcareConfig) -> list[str]:
    settings = config.services
    found = []
    if config.source is None:
        found.append("No hostcare.yml found; using built-in defaults.")
    if not settings.critical_services:
        found.append(f"{SERVICE_PREFIX}.critical_services is empty; nothing will be monitored.")
    if not settings.auto_restart:
        found.append("Auto-restart is disabled; failed services are reported but not restarted.")
    elif settings.restart_delay_seconds == 0 and settings.max_restart_attempts > 1:
        found.append("restart_delay_seconds is 0; retries will not back off.")
    notifications = config.notifications
    if notifications.smtp_server and not notifications.email_enabled:
        found.append(
            "notifications.email.smtp_server is set without 'from' and 'to'; "
            "email alerts stay off."
        )
    return found


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate configuration.

    Args:
        config_path: hostcare.yml to check. None searches like a run would.

    Returns:
        ConfigCheckResult; ``config`` is None when the file could not be loaded.
    """
    path = config_path or find_config_file()
    result = ConfigCheckResult(config_path=path)

    try:
        result.config = load_config(path)
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    result.errors.extend(_errors(result.config))
    result.warnings.extend(_warnings(result.config))
    return result
