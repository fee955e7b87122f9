"""Server configuration resolved from environment variables."""

from __future__ import annotations

from dataclasses import dataclass
import os

from chunkback.streaming.base import DEFAULT_MODEL
from chunkback.tool_cache import DEFAULT_MAX_ENTRIES, DEFAULT_TTL_SECONDS

HOST_ENV = "CHUNKBACK_HOST"
PORT_ENV = "CHUNKBACK_PORT"
PORT_ENV_FALLBACK = "PORT"
MODEL_ENV = "CHUNKBACK_MODEL"
LOG_LEVEL_ENV = "CHUNKBACK_LOG_LEVEL"
TOOL_CACHE_TTL_ENV = "CHUNKBACK_TOOL_CACHE_TTL_SECONDS"
TOOL_CACHE_MAX_ENTRIES_ENV = "CHUNKBACK_TOOL_CACHE_MAX_ENTRIES"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5653
DEFAULT_LOG_LEVEL = "INFO"
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(slots=True)
class ServerConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    model: str = DEFAULT_MODEL
    tool_cache_ttl_seconds: float = DEFAULT_TTL_SECONDS
    tool_cache_max_entries: int = DEFAULT_MAX_ENTRIES


def _env_value(*names: str) -> str | None:
    for name in names:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return None


def resolve_host() -> str:
    return _env_value(HOST_ENV) or DEFAULT_HOST


def resolve_port() -> int:
    raw = _env_value(PORT_ENV, PORT_ENV_FALLBACK)
    if raw is None:
        return DEFAULT_PORT
    try:
        parsed = int(raw)
    except ValueError:
        return DEFAULT_PORT
    if parsed < 0 or parsed > 65535:
        return DEFAULT_PORT
    return parsed


def resolve_model() -> str:
    return _env_value(MODEL_ENV) or DEFAULT_MODEL


def resolve_log_level() -> str:
    raw = (_env_value(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).upper()
    return raw if raw in _LOG_LEVELS else DEFAULT_LOG_LEVEL


def resolve_tool_cache_ttl_seconds() -> float:
    raw = _env_value(TOOL_CACHE_TTL_ENV)
    if raw is None:
        return DEFAULT_TTL_SECONDS
    try:
        parsed = float(raw)
    except ValueError:
        return DEFAULT_TTL_SECONDS
    # Zero or negative disables expiry.
    return max(0.0, parsed)


def resolve_tool_cache_max_entries() -> int:
    raw = _env_value(TOOL_CACHE_MAX_ENTRIES_ENV)
    if raw is None:
        return DEFAULT_MAX_ENTRIES
    try:
        parsed = int(raw)
    except ValueError:
        return DEFAULT_MAX_ENTRIES
    return parsed if parsed > 0 else DEFAULT_MAX_ENTRIES


def config_from_env() -> ServerConfig:
    return ServerConfig(
        host=resolve_host(),
        port=resolve_port(),
        model=resolve_model(),
        tool_cache_ttl_seconds=resolve_tool_cache_ttl_seconds(),
        tool_cache_max_entries=resolve_tool_cache_max_entries(),
    )
