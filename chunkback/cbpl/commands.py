"""CBPL statements and the executable commands the stream encoders consume."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True, slots=True)
class Say:
    """Stream literal text back to the caller."""

    content: str


@dataclass(frozen=True, slots=True)
class ToolCall:
    """Emit a tool invocation with opaque arguments."""

    tool_name: str
    arguments: str


@dataclass(frozen=True, slots=True)
class ChunkSize:
    """Set the chunk size for subsequent output."""

    size: int


@dataclass(frozen=True, slots=True)
class ChunkLatency:
    """Set a fixed delay between chunks for subsequent output."""

    latency_ms: int


@dataclass(frozen=True, slots=True)
class RandomLatency:
    """Set an inclusive random delay range between chunks for subsequent output."""

    min_ms: int
    max_ms: int


Statement = Union[Say, ToolCall, ChunkSize, ChunkLatency, RandomLatency]
Directive = Union[Say, ToolCall]


@dataclass(frozen=True, slots=True)
class ExecutableCommand:
    """An output directive paired with the chunking configuration in effect at its position."""

    directive: Directive
    chunk_size: int | None = None
    chunk_latency_ms: int | None = None
    random_latency_range: tuple[int, int] | None = None

    def to_dict(self) -> dict[str, Any]:
        directive = self.directive
        if isinstance(directive, Say):
            body: dict[str, Any] = {"type": "SAY", "content": directive.content}
        elif isinstance(directive, ToolCall):
            body = {
                "type": "TOOLCALL",
                "toolName": directive.tool_name,
                "arguments": directive.arguments,
            }
        else:
            raise TypeError(f"Unsupported directive: {type(directive).__name__}")
        return {
            "command": body,
            "chunkSize": self.chunk_size,
            "chunkLatency": self.chunk_latency_ms,
            "randomLatency": list(self.random_latency_range) if self.random_latency_range else None,
        }
