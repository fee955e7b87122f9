"""Provider stream encoders and the chunk scheduling they share."""

from chunkback.streaming.anthropic import AnthropicStreamEncoder, ContentBlockTracker
from chunkback.streaming.base import (
    DEFAULT_MODEL,
    StreamEncoder,
    StreamWriter,
    drain_frames,
    render_stream,
)
from chunkback.streaming.chunking import (
    DEFAULT_CHUNK_LATENCY_MS,
    EMPTY_PROGRAM_MESSAGE,
    StreamUnit,
    chunk_string,
    effective_chunk_size,
    effective_latency_ms,
    iter_stream_units,
    paced_units,
)
from chunkback.streaming.exceptions import (
    EncoderRegistryError,
    StreamingError,
)
from chunkback.streaming.gemini import GeminiStreamEncoder
from chunkback.streaming.openai import OpenAIStreamEncoder
from chunkback.streaming.pacing import Pacer, RecordingPacer
from chunkback.streaming.registry import (
    get_stream_encoder,
    initialize_default_stream_encoders,
    list_stream_encoder_keys,
    register_stream_encoder,
    register_stream_encoder_entrypoint,
    reset_stream_encoder_registry,
)

initialize_default_stream_encoders()

__all__ = [
    "AnthropicStreamEncoder",
    "ContentBlockTracker",
    "GeminiStreamEncoder",
    "OpenAIStreamEncoder",
    "DEFAULT_MODEL",
    "StreamEncoder",
    "StreamWriter",
    "drain_frames",
    "render_stream",
    "DEFAULT_CHUNK_LATENCY_MS",
    "EMPTY_PROGRAM_MESSAGE",
    "StreamUnit",
    "chunk_string",
    "effective_chunk_size",
    "effective_latency_ms",
    "iter_stream_units",
    "paced_units",
    "StreamingError",
    "EncoderRegistryError",
    "Pacer",
    "RecordingPacer",
    "get_stream_encoder",
    "initialize_default_stream_encoders",
    "list_stream_encoder_keys",
    "register_stream_encoder",
    "register_stream_encoder_entrypoint",
    "reset_stream_encoder_registry",
]
