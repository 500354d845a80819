"""
Configuration loader — reads hostcare.yml into typed settings.

Keys are addressed by dotted path (``modules.service_management.auto_restart``).
A file may nest them as YAML mappings or spell them out as flat dotted
keys; both resolve the same way. Missing keys fall back to documented
defaults, and a missing file is simply "all defaults".
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from hostcare.core.models.service import (
    InvalidServiceName,
    unique_names,
    validate_service_name,
)

logger = logging.getLogger(__name__)

CONFIG_FILE = "hostcare.yml"
CONFIG_ENV_VAR = "HOSTCARE_CONFIG"
SYSTEM_CONFIG_PATH = Path("/etc/hostcare") / CONFIG_FILE

SERVICE_PREFIX = "modules.service_management"
DEFAULT_CRITICAL_SERVICES = ["sshd", "systemd-resolved", "cron", "NetworkManager"]

_MISSING = object()


class ConfigError(Exception):
    """Raised when configuration is unreadable or invalid."""


class NotificationSettings(BaseModel):
    """Where escalations go."""

    audience: str = "admin"
    command: str | None = None
    smtp_server: str | None = None
    smtp_port: int = 25
    email_from: str | None = None
    email_to: list[str] = Field(default_factory=list)

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_server and self.email_from and self.email_to)


class ServiceSettings(BaseModel):
    """``modules.service_management.*`` — the controller's parameters."""

    critical_services: list[str] = Field(default_factory=lambda: list(DEFAULT_CRITICAL_SERVICES))
    max_restart_attempts: int = Field(default=3, ge=1)
    restart_delay_seconds: float = Field(default=30.0, ge=0)
    auto_restart: bool = True
    settle_seconds: float = Field(default=5.0, ge=0)
    command_timeout_seconds: float = Field(default=30.0, gt=0)
    concurrent_recovery: bool = False


class HostcareConfig(BaseModel):
    """Validated configuration for one invocation."""

    services: ServiceSettings = Field(default_factory=ServiceSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    data_directory: Path | None = None
    source: Path | None = None
    rejected_services: list[str] = Field(default_factory=list)


# ── Lookup ───────────────────────────────────────────────────────


def get_config(data: dict[str, Any], key: str, default: Any = None) -> Any:
    """Resolve a dotted key against nested mappings or flat dotted keys.

    ``{"a": {"b": 1}}`` and ``{"a.b": 1}`` both answer ``get_config(d, "a.b")``.
    """
    if key in data:
        return data[key]

    head, sep, rest = key.partition(".")
    while sep:
        node = data.get(head, _MISSING)
        if isinstance(node, dict):
            found = get_config(node, rest, _MISSING)
            if found is not _MISSING:
                return found
        next_head, sep, rest = rest.partition(".")
        head = f"{head}.{next_head}"

    return default


def parse_service_names(value: Any) -> tuple[list[str], list[str]]:
    """Turn a configured service list into validated, de-duplicated names.

    Accepts a YAML list or a whitespace/comma separated string.

    Returns:
        (accepted names in first-seen order, rejected raw entries)
    """
    if value is None:
        return [], []
    if isinstance(value, str):
        raw = [part for part in re.split(r"[\s,]+", value) if part]
    elif isinstance(value, (list, tuple)):
        raw = [str(item) for item in value if item is not None]
    else:
        raise ConfigError(
            f"{SERVICE_PREFIX}.critical_services must be a list or string, "
            f"got {type(value).__name__}"
        )

    accepted: list[str] = []
    rejected: list[str] = []
    for item in raw:
        try:
            accepted.append(validate_service_name(item))
        except InvalidServiceName as e:
            logger.warning("Ignoring configured service: %s", e)
            rejected.append(item)
    return unique_names(accepted), rejected


# ── File discovery ───────────────────────────────────────────────


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Locate hostcare.yml.

    Order: $HOSTCARE_CONFIG, then ./hostcare.yml walking upward from
    ``start_dir`` (default: cwd), then /etc/hostcare/hostcare.yml.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    current = (start_dir or Path.cwd()).resolve()
    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    if SYSTEM_CONFIG_PATH.is_file():
        return SYSTEM_CONFIG_PATH
    return None


def read_config_file(path: Path) -> dict[str, Any]:
    """Read and parse a YAML config file into a mapping.

    Raises:
        ConfigError: If the file is missing, unreadable, or not a mapping.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def build_config(data: dict[str, Any], source: Path | None = None) -> HostcareConfig:
    """Validate a raw mapping into HostcareConfig."""
    services_value = get_config(data, f"{SERVICE_PREFIX}.critical_services", _MISSING)
    if services_value is _MISSING:
        names, rejected = list(DEFAULT_CRITICAL_SERVICES), []
    else:
        names, rejected = parse_service_names(services_value)

    service_fields: dict[str, Any] = {"critical_services": names}
    for field_name in ServiceSettings.model_fields:
        if field_name == "critical_services":
            continue
        value = get_config(data, f"{SERVICE_PREFIX}.{field_name}", _MISSING)
        if value is not _MISSING and value is not None:
            service_fields[field_name] = value

    notification_fields: dict[str, Any] = {}
    for field_name, key in (
        ("audience", "notifications.audience"),
        ("command", "notifications.command"),
        ("smtp_server", "notifications.email.smtp_server"),
        ("smtp_port", "notifications.email.smtp_port"),
        ("email_from", "notifications.email.from"),
        ("email_to", "notifications.email.to"),
    ):
        value = get_config(data, key, _MISSING)
        if value is not _MISSING and value is not None:
            notification_fields[field_name] = value
    if isinstance(notification_fields.get("email_to"), str):
        notification_fields["email_to"] = [
            a for a in re.split(r"[\s,]+", notification_fields["email_to"]) if a
        ]

    data_directory = get_config(data, "system.data_directory")

    try:
        return HostcareConfig(
            services=ServiceSettings.model_validate(service_fields),
            notifications=NotificationSettings.model_validate(notification_fields),
            data_directory=Path(data_directory) if data_directory else None,
            source=source,
            rejected_services=rejected,
        )
    except ValidationError as e:
        where = f" in {source}" if source else ""
        raise ConfigError(f"Invalid configuration{where}: {e}") from e


def load_config(path: Path | None = None) -> HostcareConfig:
    """Load configuration, falling back to defaults when no file exists.

    Args:
        path: Explicit config path. If None, searches for one.

    Raises:
        ConfigError: If an explicit or discovered file is invalid.
    """
    if path is None:
        path = find_config_file()

    if path is None:
        logger.debug("No %s found; using defaults", CONFIG_FILE)
        return build_config({})

    logger.debug("Loading config from %s", path)
    config = build_config(read_config_file(path), source=path)
    logger.info(
        "Loaded config from %s with %d services", path, len(config.services.critical_services)
    )
    return config
