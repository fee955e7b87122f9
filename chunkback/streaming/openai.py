"""OpenAI chat-completions stream encoder."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
import random
import time
from typing import Any, Callable

from chunkback.cbpl.commands import ExecutableCommand, Say, ToolCall
from chunkback.streaming.base import DEFAULT_MODEL, new_call_id, sse_data_frame
from chunkback.streaming.chunking import paced_units
from chunkback.streaming.pacing import Pacer
from chunkback.tool_cache import ToolResponseCache, record_tool_call

DONE_FRAME = b"data: [DONE]\n\n"


def create_chunk(
    *,
    completion_id: str,
    created: int,
    model: str,
    content: str | None = None,
    role: str | None = None,
    tool_call: dict[str, Any] | None = None,
    finish_reason: str | None = None,
) -> dict[str, Any]:
    delta: dict[str, Any] = {}
    if role is not None:
        delta["role"] = role
    if content is not None:
        delta["content"] = content
    if tool_call is not None:
        delta["tool_calls"] = [tool_call]
    return {
        "id": completion_id,
        "object": "chat.completion.chunk",
        "created": created,
        "model": model,
        "choices": [
            {
                "index": 0,
                "delta": delta,
                "finish_reason": finish_reason,
            }
        ],
    }


def tool_call_delta(
    *,
    index: int,
    arguments: str,
    call_id: str | None = None,
    name: str | None = None,
) -> dict[str, Any]:
    """Incremental tool call delta; only the opening delta names the call."""
    if call_id is None:
        return {"index": index, "function": {"arguments": arguments}}
    return {
        "index": index,
        "id": call_id,
        "type": "function",
        "function": {"name": name, "arguments": arguments},
    }


class OpenAIStreamEncoder:
    name = "openai"
    content_type = "text/event-stream"

    def __init__(
        self,
        *,
        model: str = DEFAULT_MODEL,
        tool_cache: ToolResponseCache | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.model = model
        self._tool_cache = tool_cache
        self._rng = rng
        self._clock = clock

    def iter_frames(
        self,
        commands: Sequence[ExecutableCommand],
        *,
        pacer: Pacer,
    ) -> Iterator[bytes]:
        completion_id = new_call_id("chatcmpl", separator="-")
        created = int(self._clock())
        tool_index = -1

        for unit in paced_units(commands, pacer=pacer, chunk_tool_arguments=True, rng=self._rng):
            directive = unit.command.directive
            role = "assistant" if unit.is_first else None
            if isinstance(directive, Say):
                chunk = create_chunk(
                    completion_id=completion_id,
                    created=created,
                    model=self.model,
                    content=unit.text,
                    role=role,
                    finish_reason="stop" if unit.is_last else None,
                )
            elif isinstance(directive, ToolCall):
                if unit.is_command_start:
                    tool_index += 1
                    call_id = new_call_id("call")
                    record_tool_call(
                        self._tool_cache,
                        call_id=call_id,
                        provider=self.name,
                        tool_name=directive.tool_name,
                        arguments=directive.arguments,
                    )
                    delta = tool_call_delta(
                        index=tool_index,
                        arguments=unit.text,
                        call_id=call_id,
                        name=directive.tool_name,
                    )
                else:
                    delta = tool_call_delta(index=tool_index, arguments=unit.text)
                chunk = create_chunk(
                    completion_id=completion_id,
                    created=created,
                    model=self.model,
                    role=role,
                    tool_call=delta,
                    finish_reason="tool_calls" if unit.is_last else None,
                )
            else:
                raise TypeError(f"Unsupported directive: {type(directive).__name__}")
            yield sse_data_frame(chunk)

        if not pacer.cancelled:
            yield DONE_FRAME
