"""Gemini generateContent stream encoder (newline-delimited JSON)."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
import json
import random
from typing import Any

from chunkback.cbpl.commands import ExecutableCommand, Say, ToolCall
from chunkback.streaming.base import DEFAULT_MODEL, compact_json, new_call_id
from chunkback.streaming.chunking import paced_units
from chunkback.streaming.pacing import Pacer
from chunkback.tool_cache import ToolResponseCache, record_tool_call


def parse_function_args(arguments: str) -> dict[str, Any]:
    """Decode tool arguments as a JSON object, else wrap the raw string."""
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError:
        return {"value": arguments}
    if not isinstance(parsed, dict):
        return {"value": arguments}
    return parsed


def create_chunk(*, parts: list[dict[str, Any]], is_last: bool) -> dict[str, Any]:
    candidate: dict[str, Any] = {
        "content": {"parts": parts, "role": "model"},
        "index": 0,
    }
    if is_last:
        candidate["finishReason"] = "STOP"
    return {"candidates": [candidate]}


class GeminiStreamEncoder:
    name = "gemini"
    content_type = "application/json"

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
        for unit in paced_units(commands, pacer=pacer, rng=self._rng):
            directive = unit.command.directive
            if isinstance(directive, Say):
                parts = [{"text": unit.text}]
            elif isinstance(directive, ToolCall):
                call_id = new_call_id("call")
                record_tool_call(
                    self._tool_cache,
                    call_id=call_id,
                    provider=self.name,
                    tool_name=directive.tool_name,
                    arguments=directive.arguments,
                )
                parts = [
                    {
                        "functionCall": {
                            "id": call_id,
                            "name": directive.tool_name,
                            "args": parse_function_args(directive.arguments),
                        }
                    }
                ]
            else:
                raise TypeError(f"Unsupported directive: {type(directive).__name__}")

            document = compact_json(create_chunk(parts=parts, is_last=unit.is_last))
            # Documents are newline-separated; the final one has no trailing newline.
            suffix = "" if unit.is_last else "\n"
            yield f"{document}{suffix}".encode("utf-8")
