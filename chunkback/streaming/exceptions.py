"""Streaming subsystem exceptions."""


class StreamingError(Exception):
    """Base class for streaming errors."""


class EncoderRegistryError(StreamingError, ValueError):
    """Raised when stream encoder registration or lookup fails."""
