"""Application configuration loading utilities."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, MutableMapping, Optional
import logging
import os
import tomllib

import zoneinfo


CONFIG_ENV_VAR = "BIRTHDAY_NOTIFIER_CONFIG"
DEFAULT_CONFIG_FILE = "config.toml"
DEFAULT_CRON = "0 9 * * *"

BACKEND_TYPES = ("console", "email", "webhook")


class ConfigError(RuntimeError):
    """Raised when the configuration file is missing or invalid."""


@dataclass
class ScheduleConfig:
    """When to scan the contacts."""

    cron: str = DEFAULT_CRON
    timezone: str = "UTC"
    run_on_startup: bool = False
    handle_leap_years: bool = False


@dataclass
class ContactsConfig:
    """Where the contacts live."""

    csv_path: Path


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[Path] = None
    json: bool = False


@dataclass
class BackendConfig:
    """One ``[[backends]]`` entry; ``options`` holds the type-specific keys."""

    type: str
    vendor: Optional[str] = None
    options: Mapping[str, object] = field(default_factory=dict)


@dataclass
class AppConfig:
    """Top level application configuration."""

    schedule: ScheduleConfig
    contacts: ContactsConfig
    backends: List[BackendConfig]
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _read_toml(path: Path) -> MutableMapping[str, object]:
    try:
        with path.open("rb") as fh:
            return tomllib.load(fh)
    except FileNotFoundError as exc:  # pragma: no cover - simple IO error path
        raise ConfigError(f"Configuration file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Configuration file is invalid TOML: {path}") from exc


def _resolve_path(value: str, *, base_dir: Path) -> Path:
    path = Path(value)
    if not path.is_absolute():
        path = base_dir / path
    return path


def _as_bool(data: Mapping[str, object], key: str, default: bool, section: str) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{section}.{key} must be true or false")
    return value


def _load_schedule_config(data: Mapping[str, object]) -> ScheduleConfig:
    cron = data.get("cron", DEFAULT_CRON)
    if not isinstance(cron, str) or not cron.strip():
        raise ConfigError("schedule.cron must be a non-empty string")
    timezone = str(data.get("timezone", "UTC"))
    try:
        zoneinfo.ZoneInfo(timezone)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"schedule.timezone is not a known timezone: {timezone}") from exc
    return ScheduleConfig(
        cron=cron.strip(),
        timezone=timezone,
        run_on_startup=_as_bool(data, "run_on_startup", False, "schedule"),
        handle_leap_years=_as_bool(data, "handle_leap_years", False, "schedule"),
    )


def _load_contacts_config(data: Mapping[str, object], *, base_dir: Path) -> ContactsConfig:
    try:
        csv_path = _resolve_path(str(data["csv_path"]), base_dir=base_dir)
    except KeyError as exc:
        raise ConfigError("contacts.csv_path is required") from exc
    return ContactsConfig(csv_path=csv_path)


def _load_logging_config(data: Mapping[str, object], *, base_dir: Path) -> LoggingConfig:
    file_raw = data.get("file")
    level = str(data.get("level", "INFO")).upper()
    if level not in logging.getLevelNamesMapping():
        raise ConfigError(f"logging.level is not a known level: {level}")
    return LoggingConfig(
        level=level,
        file=_resolve_path(str(file_raw), base_dir=base_dir) if file_raw else None,
        json=_as_bool(data, "json", False, "logging"),
    )


def _load_backends_config(data: object) -> List[BackendConfig]:
    if not isinstance(data, list) or not data:
        raise ConfigError("At least one [[backends]] entry is required in the configuration")

    backends: List[BackendConfig] = []
    for index, entry in enumerate(data):
        if not isinstance(entry, Mapping):
            raise ConfigError(f"backends[{index}] must be a table")
        backend_type = str(entry.get("type", "")).lower()
        if backend_type not in BACKEND_TYPES:
            raise ConfigError(
                f"backends[{index}].type must be one of {', '.join(BACKEND_TYPES)} (got {backend_type!r})"
            )
        options: Dict[str, object] = {
            str(key): value for key, value in entry.items() if key not in ("type", "vendor")
        }
        vendor = entry.get("vendor")
        backends.append(
            BackendConfig(type=backend_type, vendor=str(vendor) if vendor else None, options=options)
        )
    return backends


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load application configuration from TOML.

    Args:
        path: Optional explicit configuration path.

    Returns:
        Parsed :class:`AppConfig` instance.
    """

    config_path = path
    if config_path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            config_path = Path(env_path)
        else:
            config_path = Path(DEFAULT_CONFIG_FILE)

    data = _read_toml(config_path)
    base_dir = config_path.parent

    schedule_raw = data.get("schedule", {})
    contacts_raw = data.get("contacts")
    logging_raw = data.get("logging", {})

    if not isinstance(schedule_raw, Mapping):
        raise ConfigError("[schedule] must be a table")
    if not isinstance(contacts_raw, Mapping):
        raise ConfigError("[contacts] section is required in the configuration")
    if not isinstance(logging_raw, Mapping):
        raise ConfigError("[logging] must be a table")

    schedule = _load_schedule_config(schedule_raw)
    contacts = _load_contacts_config(contacts_raw, base_dir=base_dir)
    logging_config = _load_logging_config(logging_raw, base_dir=base_dir)
    backends = _load_backends_config(data.get("backends"))

    return AppConfig(
        schedule=schedule,
        contacts=contacts,
        backends=backends,
        logging=logging_config,
    )
