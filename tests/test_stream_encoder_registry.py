from __future__ import annotations

from pathlib import Path

import pytest

from chunkback.streaming import (
    EncoderRegistryError,
    GeminiStreamEncoder,
    get_stream_encoder,
    initialize_default_stream_encoders,
    list_stream_encoder_keys,
    register_stream_encoder,
    register_stream_encoder_entrypoint,
    reset_stream_encoder_registry,
)


def test_stream_encoder_registry_defaults_include_all_providers() -> None:
    assert list_stream_encoder_keys() == ("anthropic", "gemini", "openai")


def test_stream_encoder_registry_builds_encoders_with_options() -> None:
    encoder = get_stream_encoder(" Gemini ", model="gemini-1.5-pro")

    assert isinstance(encoder, GeminiStreamEncoder)
    assert encoder.model == "gemini-1.5-pro"
    assert encoder.content_type == "application/json"


def test_stream_encoder_registry_rejects_unknown_and_duplicate_keys() -> None:
    with pytest.raises(EncoderRegistryError, match="not registered"):
        get_stream_encoder("cohere")
    with pytest.raises(EncoderRegistryError, match="already registered"):
        register_stream_encoder("openai", GeminiStreamEncoder)
    with pytest.raises(EncoderRegistryError, match="cannot be empty"):
        register_stream_encoder("  ", GeminiStreamEncoder)


def test_stream_encoder_registry_entrypoint_registration(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    plugin_module = tmp_path / "encoder_plugin_fixture.py"
    plugin_module.write_text(
        "\n".join(
            [
                "from chunkback.streaming.gemini import GeminiStreamEncoder",
                "",
                "class FixtureEncoder(GeminiStreamEncoder):",
                "    name = 'fixture'",
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    monkeypatch.syspath_prepend(str(tmp_path))

    reset_stream_encoder_registry()
    initialize_default_stream_encoders()
    try:
        register_stream_encoder_entrypoint("fixture", "encoder_plugin_fixture:FixtureEncoder")
        assert "fixture" in list_stream_encoder_keys()
        assert get_stream_encoder("fixture").name == "fixture"

        with pytest.raises(EncoderRegistryError, match="Expected module:attribute"):
            register_stream_encoder_entrypoint("broken", "encoder_plugin_fixture.FixtureEncoder")
    finally:
        reset_stream_encoder_registry()
        initialize_default_stream_encoders()
