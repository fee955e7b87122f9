import pytest

from chunkback.config import (
    DEFAULT_PORT,
    config_from_env,
    resolve_log_level,
    resolve_port,
    resolve_tool_cache_max_entries,
    resolve_tool_cache_ttl_seconds,
)


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "CHUNKBACK_HOST",
        "CHUNKBACK_PORT",
        "PORT",
        "CHUNKBACK_MODEL",
        "CHUNKBACK_LOG_LEVEL",
        "CHUNKBACK_TOOL_CACHE_TTL_SECONDS",
        "CHUNKBACK_TOOL_CACHE_MAX_ENTRIES",
    ):
        monkeypatch.delenv(name, raising=False)


def test_config_defaults_without_environment() -> None:
    config = config_from_env()

    assert config.host == "127.0.0.1"
    assert config.port == DEFAULT_PORT == 5653
    assert config.model == "echo-model"
    assert resolve_log_level() == "INFO"


def test_config_reads_environment_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHUNKBACK_HOST", "0.0.0.0")
    monkeypatch.setenv("CHUNKBACK_PORT", "8080")
    monkeypatch.setenv("CHUNKBACK_MODEL", "mock-1")
    monkeypatch.setenv("CHUNKBACK_TOOL_CACHE_TTL_SECONDS", "30")
    monkeypatch.setenv("CHUNKBACK_TOOL_CACHE_MAX_ENTRIES", "12")

    config = config_from_env()

    assert (config.host, config.port, config.model) == ("0.0.0.0", 8080, "mock-1")
    assert config.tool_cache_ttl_seconds == 30.0
    assert config.tool_cache_max_entries == 12


def test_port_falls_back_to_generic_port_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "9000")
    assert resolve_port() == 9000

    monkeypatch.setenv("CHUNKBACK_PORT", "9001")
    assert resolve_port() == 9001


def test_unparsable_values_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHUNKBACK_PORT", "not-a-port")
    monkeypatch.setenv("CHUNKBACK_LOG_LEVEL", "chatty")
    monkeypatch.setenv("CHUNKBACK_TOOL_CACHE_TTL_SECONDS", "soon")
    monkeypatch.setenv("CHUNKBACK_TOOL_CACHE_MAX_ENTRIES", "-4")

    assert resolve_port() == DEFAULT_PORT
    assert resolve_log_level() == "INFO"
    assert resolve_tool_cache_ttl_seconds() == 3600.0
    assert resolve_tool_cache_max_entries() == 10_000
