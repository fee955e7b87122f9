"""Anthropic messages stream encoder with explicit content-block lifecycle."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
import random
from typing import Any, Literal

from chunkback.cbpl.commands import ExecutableCommand, Say, ToolCall
from chunkback.streaming.base import DEFAULT_MODEL, new_call_id, sse_event_frame
from chunkback.streaming.chunking import UnitKind, paced_units
from chunkback.streaming.pacing import Pacer
from chunkback.tool_cache import ToolResponseCache, record_tool_call

BlockState = Literal["none", "text", "tool"]


class ContentBlockTracker:
    """Track the open content block and its index.

    Contiguous text shares one block. Every tool call gets its own block,
    because a tool_use block carries exactly one call id and name.
    """

    def __init__(self) -> None:
        self.state: BlockState = "none"
        self.index = -1

    def enter(self, kind: UnitKind, *, opens_tool_call: bool = False) -> tuple[int | None, int | None]:
        """Move into a block of `kind`; return (index to stop, index to start).

        Back-to-back tool calls still get a new block index each, unlike
        back-to-back text.
        """
        if self.state == kind and not (kind == "tool" and opens_tool_call):
            return None, None
        stop_index = self.index if self.state != "none" else None
        self.index += 1
        self.state = kind
        return stop_index, self.index

    def close(self) -> int | None:
        """Close the open block, if any; return its index."""
        if self.state == "none":
            return None
        self.state = "none"
        return self.index


def message_start_event(*, message_id: str, model: str) -> dict[str, Any]:
    return {
        "type": "message_start",
        "message": {
            "id": message_id,
            "type": "message",
            "role": "assistant",
            "content": [],
            "model": model,
            "stop_reason": None,
            "stop_sequence": None,
            "usage": {"input_tokens": 0, "output_tokens": 0},
        },
    }


def text_block_start_event(index: int) -> dict[str, Any]:
    return {
        "type": "content_block_start",
        "index": index,
        "content_block": {"type": "text", "text": ""},
    }


def tool_block_start_event(index: int, *, call_id: str, name: str) -> dict[str, Any]:
    return {
        "type": "content_block_start",
        "index": index,
        "content_block": {"type": "tool_use", "id": call_id, "name": name, "input": {}},
    }


def text_delta_event(index: int, text: str) -> dict[str, Any]:
    return {
        "type": "content_block_delta",
        "index": index,
        "delta": {"type": "text_delta", "text": text},
    }


def input_json_delta_event(index: int, partial_json: str) -> dict[str, Any]:
    return {
        "type": "content_block_delta",
        "index": index,
        "delta": {"type": "input_json_delta", "partial_json": partial_json},
    }


def block_stop_event(index: int) -> dict[str, Any]:
    return {"type": "content_block_stop", "index": index}


def message_delta_event(*, stop_reason: str, output_tokens: int) -> dict[str, Any]:
    return {
        "type": "message_delta",
        "delta": {"stop_reason": stop_reason, "stop_sequence": None},
        "usage": {"output_tokens": output_tokens},
    }


class AnthropicStreamEncoder:
    name = "anthropic"
    content_type = "text/event-stream"

    def __init__(
        self,
        *,
        model: str = DEFAULT_MODEL,
        tool_cache: ToolResponseCache | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.model = model
        self._tool_cache = tool_cache
        self._rng = rng

    def iter_frames(
        self,
        commands: Sequence[ExecutableCommand],
        *,
        pacer: Pacer,
    ) -> Iterator[bytes]:
        for event in self.iter_events(commands, pacer=pacer):
            yield sse_event_frame(event["type"], event)

    def iter_events(
        self,
        commands: Sequence[ExecutableCommand],
        *,
        pacer: Pacer,
    ) -> Iterator[dict[str, Any]]:
        tracker = ContentBlockTracker()
        output_units = 0

        for unit in paced_units(commands, pacer=pacer, rng=self._rng):
            directive = unit.command.directive
            if unit.is_first:
                yield message_start_event(message_id=new_call_id("msg"), model=self.model)

            stop_index, start_index = tracker.enter(
                unit.kind,
                opens_tool_call=unit.is_command_start,
            )
            if stop_index is not None:
                yield block_stop_event(stop_index)

            if isinstance(directive, Say):
                if start_index is not None:
                    yield text_block_start_event(start_index)
                yield text_delta_event(tracker.index, unit.text)
            elif isinstance(directive, ToolCall):
                call_id = new_call_id("toolu")
                record_tool_call(
                    self._tool_cache,
                    call_id=call_id,
                    provider=self.name,
                    tool_name=directive.tool_name,
                    arguments=directive.arguments,
                )
                yield tool_block_start_event(
                    tracker.index,
                    call_id=call_id,
                    name=directive.tool_name,
                )
                yield input_json_delta_event(tracker.index, unit.text)
            else:
                raise TypeError(f"Unsupported directive: {type(directive).__name__}")
            output_units += 1

            if unit.is_last:
                closed_index = tracker.close()
                if closed_index is not None:
                    yield block_stop_event(closed_index)
                yield message_delta_event(
                    stop_reason="tool_use" if unit.kind == "tool" else "end_turn",
                    output_tokens=output_units,
                )
                yield {"type": "message_stop"}
