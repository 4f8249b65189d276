"""Runtime configuration helpers."""

from __future__ import annotations

import ipaddress
import logging
import logging.handlers
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from .constants import (
    DEFAULT_EXTENDED_COMMIT_COUNT,
    DEFAULT_LOG_KEEP_LINES,
    DEFAULT_LOG_MAX_LINES,
    DEFAULT_MILESTONES_KEPT,
    DEFAULT_RECENT_COMMIT_COUNT,
    ERROR_LOG_FILE_NAME,
)
from .errors import GCCError
from .file_manager import FileManager

logger = logging.getLogger(__name__)

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}
TRANSPORTS = {"stdio", "streamable-http"}
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
PROJECT_DIR_ENV_KEYS = ("GCC_PROJECT_DIR", "CLAUDE_PROJECT_DIR")
SETTINGS_ENV_KEYS = {
    "GCC_MILESTONES_KEPT": "milestones_kept",
    "GCC_LOG_MAX_LINES": "log_max_lines",
    "GCC_LOG_KEEP_LINES": "log_keep_lines",
}
ERROR_LOG_HANDLER_NAME = "gcc-journal-error-log"
ERROR_LOG_MAX_BYTES = 64 * 1024
ERROR_LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


class JournalSettings(BaseModel):
    """Per-project tunables for the journal engine."""

    milestones_kept: int = Field(default=DEFAULT_MILESTONES_KEPT, ge=1, le=100)
    log_max_lines: int = Field(default=DEFAULT_LOG_MAX_LINES, ge=10)
    log_keep_lines: int = Field(default=DEFAULT_LOG_KEEP_LINES, ge=1)
    recent_commit_count: int = Field(default=DEFAULT_RECENT_COMMIT_COUNT, ge=1)
    extended_commit_count: int = Field(default=DEFAULT_EXTENDED_COMMIT_COUNT, ge=1)

    @model_validator(mode="after")
    def _keep_fits_in_max(self) -> "JournalSettings":
        if self.log_keep_lines > self.log_max_lines:
            raise ValueError("log_keep_lines must not exceed log_max_lines")
        return self


@dataclass(frozen=True)
class RuntimeServerDefaults:
    """Server transport settings sourced from environment variables."""

    transport: str
    host: str
    port: int
    allow_public_http: bool
    log_level: str


def load_settings(
    config_path: Path,
    env: Mapping[str, str] | None = None,
    file_manager: FileManager | None = None,
) -> JournalSettings:
    """Resolve settings: environment > ``config.yaml`` > defaults.

    Unreadable or invalid sources are reported as warnings and skipped.
    """
    source = os.environ if env is None else env
    manager = file_manager or FileManager()

    values: dict[str, Any] = {}
    try:
        loaded = manager.read_yaml(config_path)
    except (GCCError, yaml.YAMLError):
        logger.warning("Ignoring unreadable config file %s", config_path, exc_info=True)
        loaded = {}
    for key in JournalSettings.model_fields:
        if key in loaded:
            values[key] = loaded[key]

    settings = _validated_settings(values, origin=str(config_path))

    overrides: dict[str, Any] = {}
    for env_key, field_name in SETTINGS_ENV_KEYS.items():
        raw = source.get(env_key)
        if raw is None or not str(raw).strip():
            continue
        try:
            overrides[field_name] = _parse_int_env(source=source, key=env_key, default=0, min_value=1)
        except ValueError:
            logger.warning("Ignoring invalid %s=%r", env_key, raw)
    if not overrides:
        return settings
    return _validated_settings({**settings.model_dump(), **overrides}, origin="environment")


def resolve_project_dir(directory: str | None = None, env: Mapping[str, str] | None = None) -> str:
    """Pick the project directory: explicit value, then env vars, then cwd."""
    if directory and str(directory).strip():
        return str(directory)
    source = os.environ if env is None else env
    for key in PROJECT_DIR_ENV_KEYS:
        value = source.get(key, "").strip()
        if value:
            return value
    return os.getcwd()


def get_runtime_server_defaults(env: Mapping[str, str] | None = None) -> RuntimeServerDefaults:
    """Validate and return server defaults from environment variables."""
    source = os.environ if env is None else env

    transport = source.get("GCC_JOURNAL_TRANSPORT", "stdio").strip() or "stdio"
    if transport not in TRANSPORTS:
        raise ValueError("GCC_JOURNAL_TRANSPORT must be 'stdio' or 'streamable-http'.")

    host = source.get("GCC_JOURNAL_HOST", "127.0.0.1")
    port = _parse_int_env(source=source, key="GCC_JOURNAL_PORT", default=8000, min_value=1)
    if port > 65535:
        raise ValueError("GCC_JOURNAL_PORT must be between 1 and 65535.")

    allow_public_http = _parse_bool_env(
        source=source,
        key="GCC_JOURNAL_ALLOW_PUBLIC_HTTP",
        default=False,
    )
    log_level = source.get("GCC_JOURNAL_LOG_LEVEL", "INFO").strip().upper() or "INFO"
    if log_level not in LOG_LEVELS:
        raise ValueError(f"GCC_JOURNAL_LOG_LEVEL must be one of: {', '.join(sorted(LOG_LEVELS))}.")

    validate_streamable_http_binding(
        transport=transport,
        host=host,
        allow_public_http=allow_public_http,
    )
    return RuntimeServerDefaults(
        transport=transport,
        host=host,
        port=port,
        allow_public_http=allow_public_http,
        log_level=log_level,
    )


def validate_streamable_http_binding(transport: str, host: str, allow_public_http: bool) -> None:
    """Validate host exposure policy for streamable HTTP transport."""
    if transport != "streamable-http":
        return
    if not host.strip():
        raise ValueError("Host must not be empty when using streamable-http transport.")
    if not is_loopback_host(host) and not allow_public_http:
        raise ValueError(
            "Refusing non-loopback streamable-http binding without explicit opt-in. "
            "Set --allow-public-http or GCC_JOURNAL_ALLOW_PUBLIC_HTTP=true."
        )


def is_loopback_host(host: str) -> bool:
    """Return whether a host value maps to a loopback interface."""
    normalized = host.strip().lower().strip("[]")
    if normalized in {"localhost", "127.0.0.1", "::1"}:
        return True
    try:
        return ipaddress.ip_address(normalized).is_loopback
    except ValueError:
        return False


def configure_error_log(gcc_root: Path, level: int = logging.WARNING) -> logging.Handler | None:
    """Point the package's rotating ``error.log`` handler at ``gcc_root``.

    Only one such handler is installed at a time; switching projects closes
    the previous one. Returns the active handler, or ``None`` when
    ``gcc_root`` does not exist.
    """
    if not gcc_root.is_dir():
        return None
    log_path = (gcc_root / ERROR_LOG_FILE_NAME).resolve()
    package_logger = logging.getLogger(__package__ or "gcc_journal")
    for handler in list(package_logger.handlers):
        if handler.get_name() != ERROR_LOG_HANDLER_NAME:
            continue
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_path:
            return handler
        package_logger.removeHandler(handler)
        handler.close()

    handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=ERROR_LOG_MAX_BYTES,
        backupCount=1,
        encoding="utf-8",
        delay=True,
    )
    handler.set_name(ERROR_LOG_HANDLER_NAME)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(ERROR_LOG_FORMAT))
    package_logger.addHandler(handler)
    return handler


def _validated_settings(values: dict[str, Any], origin: str) -> JournalSettings:
    try:
        return JournalSettings(**values)
    except ValidationError:
        logger.warning("Ignoring invalid journal settings from %s", origin, exc_info=True)
        return JournalSettings()


def _parse_bool_env(source: Mapping[str, str], key: str, default: bool) -> bool:
    raw = source.get(key)
    if raw is None or not str(raw).strip():
        return default
    normalized = str(raw).strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise ValueError(f"{key} must be a boolean value (true/false).")


def _parse_int_env(
    source: Mapping[str, str],
    key: str,
    default: int,
    min_value: int | None = None,
) -> int:
    raw = source.get(key)
    if raw is None or not str(raw).strip():
        return default
    try:
        parsed = int(str(raw).strip())
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer.") from exc
    if min_value is not None and parsed < min_value:
        raise ValueError(f"{key} must be >= {min_value}.")
    return parsed
