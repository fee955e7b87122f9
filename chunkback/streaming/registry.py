"""Stream encoder registry keyed by provider name."""

from __future__ import annotations

import importlib
from typing import Any, Callable

from chunkback.streaming.base import StreamEncoder
from chunkback.streaming.exceptions import EncoderRegistryError

EncoderFactory = Callable[..., StreamEncoder]
_ENCODER_REGISTRY: dict[str, EncoderFactory] = {}


def register_stream_encoder(
    key: str,
    factory: EncoderFactory,
    *,
    overwrite: bool = False,
) -> None:
    normalized_key = key.strip().lower()
    if not normalized_key:
        raise EncoderRegistryError("Encoder key cannot be empty.")
    if not overwrite and normalized_key in _ENCODER_REGISTRY:
        raise EncoderRegistryError(f"Encoder '{normalized_key}' is already registered.")
    _ENCODER_REGISTRY[normalized_key] = factory


def register_stream_encoder_entrypoint(
    key: str,
    entrypoint: str,
    *,
    overwrite: bool = False,
) -> None:
    module_name, separator, attr = entrypoint.partition(":")
    if not separator:
        raise EncoderRegistryError(
            f"Invalid stream encoder entrypoint '{entrypoint}'. Expected module:attribute."
        )
    module = importlib.import_module(module_name)
    target = getattr(module, attr)
    if not callable(target):
        raise EncoderRegistryError(f"Stream encoder entrypoint '{entrypoint}' is not callable.")
    register_stream_encoder(key, target, overwrite=overwrite)


def get_stream_encoder(key: str, **options: Any) -> StreamEncoder:
    normalized_key = key.strip().lower()
    if normalized_key not in _ENCODER_REGISTRY:
        raise EncoderRegistryError(f"Encoder '{normalized_key}' is not registered.")
    return _ENCODER_REGISTRY[normalized_key](**options)


def list_stream_encoder_keys() -> tuple[str, ...]:
    return tuple(sorted(_ENCODER_REGISTRY.keys()))


def reset_stream_encoder_registry() -> None:
    _ENCODER_REGISTRY.clear()


def initialize_default_stream_encoders(*, overwrite: bool = False) -> None:
    from chunkback.streaming.anthropic import AnthropicStreamEncoder
    from chunkback.streaming.gemini import GeminiStreamEncoder
    from chunkback.streaming.openai import OpenAIStreamEncoder

    defaults: dict[str, EncoderFactory] = {
        "anthropic": AnthropicStreamEncoder,
        "gemini": GeminiStreamEncoder,
        "openai": OpenAIStreamEncoder,
    }
    for key, factory in defaults.items():
        if key in _ENCODER_REGISTRY and not overwrite:
            continue
        register_stream_encoder(key, factory, overwrite=True)
