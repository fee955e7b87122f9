"""Stream encoder contract and transport helpers."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
import json
import logging
from typing import Any, BinaryIO, Protocol
import uuid

from chunkback.cbpl.commands import ExecutableCommand
from chunkback.streaming.pacing import Pacer

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "echo-model"


class StreamEncoder(Protocol):
    """Protocol for provider-specific stream framing."""

    name: str
    content_type: str

    def iter_frames(
        self,
        commands: Sequence[ExecutableCommand],
        *,
        pacer: Pacer,
    ) -> Iterator[bytes]:
        """Yield framed wire bytes for one response, in order."""


def new_call_id(prefix: str, *, separator: str = "_") -> str:
    return f"{prefix}{separator}{uuid.uuid4().hex[:24]}"


def compact_json(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=True, separators=(",", ":"))


def sse_data_frame(payload: Any) -> bytes:
    return f"data: {compact_json(payload)}\n\n".encode("utf-8")


def sse_event_frame(event_type: str, payload: Any) -> bytes:
    return f"event: {event_type}\ndata: {compact_json(payload)}\n\n".encode("utf-8")


class StreamWriter:
    """Write frames to a response body; once the client disconnects, writes become no-ops."""

    def __init__(self, stream: BinaryIO, *, pacer: Pacer | None = None) -> None:
        self._stream = stream
        self._pacer = pacer
        self.closed = False
        self.bytes_written = 0

    def write(self, frame: bytes) -> bool:
        if self.closed:
            return False
        try:
            self._stream.write(frame)
            self._stream.flush()
        except (BrokenPipeError, ConnectionResetError, ConnectionAbortedError) as error:
            logger.info("client closed the stream: %s", error)
            self.closed = True
            if self._pacer is not None:
                self._pacer.cancel()
            return False
        self.bytes_written += len(frame)
        return True


def drain_frames(frames: Iterable[bytes], writer: StreamWriter) -> int:
    """Write frames until exhausted or the writer closes; return bytes written."""
    iterator = iter(frames)
    try:
        for frame in iterator:
            if not writer.write(frame):
                break
    finally:
        close = getattr(iterator, "close", None)
        if close is not None:
            close()
    return writer.bytes_written


def render_stream(
    encoder: StreamEncoder,
    commands: Sequence[ExecutableCommand],
    *,
    pacer: Pacer,
) -> bytes:
    """Collect the full wire output of one response."""
    return b"".join(encoder.iter_frames(commands, pacer=pacer))
