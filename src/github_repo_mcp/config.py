"""Configuration loading for github-repo-mcp.

Configuration is supplied by the host environment (e.g., MCP client config), not by the agent.
The access token is a secret and must never be emitted to agents, logs, or audit events.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

from .errors import config_error

DEFAULT_API_BASE_URL = "https://api.github.com"


@dataclass(frozen=True, slots=True)
class LimitsConfig:
    """Network limits.

    `http_timeout_s` of None means no per-request deadline; the invocation waits
    until GitHub answers or the transport is torn down.
    """

    http_timeout_s: float | None = None


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Host configuration shared by every tool call."""

    token: str
    api_base_url: str
    audit_log_path: Path | None
    audit_max_bytes: int
    audit_max_backups: int
    limits: LimitsConfig


def _parse_base_url(value: str | None) -> str:
    if not value or not value.strip():
        return DEFAULT_API_BASE_URL
    raw = value.strip().rstrip("/")
    parts = urlsplit(raw)
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        raise config_error("GITHUB_BASE_URL must be an absolute http(s) URL")
    return raw


def _parse_timeout(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    try:
        timeout = float(value)
    except ValueError as exc:
        raise config_error("GITHUB_MCP_HTTP_TIMEOUT_S must be a number") from exc
    if timeout <= 0:
        raise config_error("GITHUB_MCP_HTTP_TIMEOUT_S must be > 0")
    return timeout


def log_level_from_env() -> int:
    """Return the stdlib logging level named by LOG_LEVEL (INFO when unset or unknown)."""
    value = os.getenv("LOG_LEVEL")
    if not value:
        return logging.INFO
    level = logging.getLevelName(value.strip().upper())
    if not isinstance(level, int):
        return logging.INFO
    return level


def load_config_from_env() -> AppConfig:
    """Load and validate configuration from environment variables.

    Raises:
        SafeError: If configuration is missing/invalid.
    """
    token = (os.getenv("GITHUB_TOKEN") or "").strip()
    if not token:
        raise config_error("Missing required configuration (GITHUB_TOKEN)")

    audit_path_raw = os.getenv("GITHUB_MCP_AUDIT_LOG_PATH")
    audit_path: Path | None = None
    if audit_path_raw:
        p = Path(audit_path_raw)
        if not p.is_absolute():
            raise config_error("GITHUB_MCP_AUDIT_LOG_PATH must be an absolute path when set")
        audit_path = p

    return AppConfig(
        token=token,
        api_base_url=_parse_base_url(os.getenv("GITHUB_BASE_URL")),
        audit_log_path=audit_path,
        audit_max_bytes=5 * 1024 * 1024,
        audit_max_backups=2,
        limits=LimitsConfig(http_timeout_s=_parse_timeout(os.getenv("GITHUB_MCP_HTTP_TIMEOUT_S"))),
    )
