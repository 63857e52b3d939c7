"""Configuration loading and validation for the code chat client."""

from __future__ import annotations

from copy import deepcopy
import logging
import os
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .exceptions import ConfigValidationError

import tomllib

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "codechat"
CONFIG_PATH = CONFIG_DIR / "config.toml"

VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _require_path(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError("Endpoint path must be a string.")
    normalized = value.strip()
    if not normalized.startswith("/"):
        raise ValueError("Endpoint path must start with '/'.")
    return normalized


class ApiConfig(BaseModel):
    """Chat service endpoint settings."""

    base_url: str = "http://localhost:3000"
    stream_path: str = "/api/query/stream"
    query_path: str = "/api/query"
    reset_path: str = "/api/chat/reset"
    new_path: str = "/api/chat/new"
    timeout_seconds: float = Field(default=90.0, gt=0, le=3600)
    user_id: str = ""

    @field_validator("base_url", mode="before")
    @classmethod
    def _validate_base_url(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Expected a string value.")
        normalized = value.strip().rstrip("/")
        if not normalized:
            raise ValueError("base_url must not be empty.")
        return normalized

    @field_validator("stream_path", "query_path", "reset_path", "new_path", mode="before")
    @classmethod
    def _validate_path(cls, value: Any) -> str:
        return _require_path(value)

    @field_validator("user_id", mode="before")
    @classmethod
    def _normalize_user_id(cls, value: Any) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError("user_id must be a string.")
        return value.strip()


class AttachmentsConfig(BaseModel):
    """Limits applied to the pending attachment set."""

    max_attachments: int = Field(default=3, ge=1, le=50)
    max_file_bytes: int = Field(default=50 * 1024, ge=1, le=50_000_000)
    error_clear_seconds: float = Field(default=5.0, ge=0, le=3600)


class DetectionConfig(BaseModel):
    """Thresholds for the code detection heuristics."""

    size_threshold: int = Field(default=300, ge=0, le=1_000_000)
    line_ratio: float = Field(default=0.5, ge=0, le=1)
    paste_line_ratio: float = Field(default=0.3, ge=0, le=1)
    min_code_lines: int = Field(default=5, ge=1, le=10_000)
    min_file_signatures: int = Field(default=2, ge=1, le=1_000)


class SecurityConfig(BaseModel):
    """Which chat service hosts the client may talk to."""

    allowed_schemes: list[str] = ["http", "https"]
    allow_remote_hosts: bool = False
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "::1"]

    @field_validator("allowed_hosts", "allowed_schemes", mode="before")
    @classmethod
    def _validate_names(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            raise ValueError("Expected a list of names.")
        normalized = [
            item.strip().lower()
            for item in value
            if isinstance(item, str) and item.strip()
        ]
        if not normalized:
            raise ValueError("List must contain at least one entry.")
        return normalized


class LoggingConfig(BaseModel):
    """Logging behavior and output destinations."""

    level: str = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: str = "~/.local/state/codechat/client.log"

    @field_validator("level", mode="before")
    @classmethod
    def _validate_level(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Logging level must be a string.")
        normalized = value.strip().upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(f"Unsupported log level {normalized!r}.")
        return normalized

    @field_validator("log_file_path", mode="before")
    @classmethod
    def _validate_log_file_path(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("log_file_path must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("log_file_path must not be empty.")
        return normalized


class Config(BaseModel):
    """Root configuration model for all sections."""

    api: ApiConfig = ApiConfig()
    attachments: AttachmentsConfig = AttachmentsConfig()
    detection: DetectionConfig = DetectionConfig()
    security: SecurityConfig = SecurityConfig()
    logging: LoggingConfig = LoggingConfig()

    @model_validator(mode="after")
    def _validate_security_policy(self) -> Config:
        parsed = urlparse(self.api.base_url)
        scheme = parsed.scheme.lower()
        hostname = (parsed.hostname or "").strip().lower()

        if scheme not in set(self.security.allowed_schemes):
            raise ValueError("api.base_url scheme is not in security.allowed_schemes.")
        if not hostname:
            raise ValueError("api.base_url must include a hostname.")
        if not self.security.allow_remote_hosts and hostname not in set(
            self.security.allowed_hosts
        ):
            raise ValueError(
                "api.base_url is not in security.allowed_hosts while allow_remote_hosts is false."
            )
        return self


DEFAULT_CONFIG: dict[str, dict[str, Any]] = Config().model_dump()


def ensure_config_dir(config_dir: Path | None = None) -> Path:
    """Ensure that the config directory exists and return its path."""
    directory = config_dir or CONFIG_DIR
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning("Unable to create config directory %s: %s", directory, exc)
    return directory


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged: dict[str, Any] = deepcopy(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _enforce_private_permissions(path: Path) -> None:
    """Best-effort 0600 on POSIX; the file may hold a user id."""
    if os.name != "posix" or not path.exists():
        return
    try:
        path.chmod(0o600)
    except OSError as exc:
        LOGGER.warning("Unable to enforce 0600 permissions for %s: %s", path, exc)


def _safe_default_config() -> dict[str, dict[str, Any]]:
    return deepcopy(DEFAULT_CONFIG)


def _validate_config(raw: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Validate merged config and fallback to safe defaults when possible."""
    try:
        return Config.model_validate(raw).model_dump()
    except ValidationError as exc:
        LOGGER.warning(
            "config.invalid",
            extra={"event": "config.invalid", "errors": exc.error_count()},
        )
        return _safe_default_config()
    except Exception as exc:  # noqa: BLE001 - unexpected model construction failure.
        raise ConfigValidationError(f"Unable to validate configuration: {exc}") from exc


def load_config(config_path: Path | None = None) -> dict[str, dict[str, Any]]:
    """
    Load configuration from TOML, merge with defaults, and validate.

    A missing file yields the defaults; an unreadable or invalid file is
    logged and replaced by the defaults rather than raised.
    """
    target_path = config_path or CONFIG_PATH
    ensure_config_dir(target_path.parent)

    raw_data: dict[str, Any] = {}
    if target_path.exists():
        _enforce_private_permissions(target_path)
        try:
            raw_data = tomllib.loads(target_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
            LOGGER.warning("Failed to parse config at %s: %s", target_path, exc)
            raw_data = {}

    return _validate_config(_deep_merge(DEFAULT_CONFIG, raw_data))
