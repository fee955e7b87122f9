"""Chunk scheduling shared by every provider encoder."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
import random
from typing import Literal

from chunkback.cbpl.commands import ExecutableCommand, Say, ToolCall
from chunkback.streaming.pacing import Pacer

DEFAULT_CHUNK_LATENCY_MS = 10
EMPTY_PROGRAM_MESSAGE = "No valid commands found in prompt"

UnitKind = Literal["text", "tool"]


def chunk_string(text: str, size: int) -> list[str]:
    """Split text into consecutive pieces of `size` characters; the last may be shorter."""
    if size <= 0:
        raise ValueError(f"chunk size must be positive, got {size}")
    if not text:
        return [""]
    return [text[index : index + size] for index in range(0, len(text), size)]


def effective_chunk_size(command: ExecutableCommand, text: str) -> int:
    if command.chunk_size is not None and command.chunk_size > 0:
        return command.chunk_size
    return max(1, len(text))


def effective_latency_ms(command: ExecutableCommand, rng: random.Random | None = None) -> int:
    if command.chunk_latency_ms is not None:
        return command.chunk_latency_ms
    if command.random_latency_range is not None:
        low, high = command.random_latency_range
        return (rng or random).randint(low, high)
    return DEFAULT_CHUNK_LATENCY_MS


@dataclass(frozen=True, slots=True)
class StreamUnit:
    """One emitted delta: a text chunk or a (piece of a) tool call."""

    command: ExecutableCommand
    command_index: int
    chunk_index: int
    text: str
    delay_ms: int
    is_first: bool
    is_last: bool
    is_command_end: bool

    @property
    def kind(self) -> UnitKind:
        return "tool" if isinstance(self.command.directive, ToolCall) else "text"

    @property
    def is_command_start(self) -> bool:
        return self.chunk_index == 0


def _command_pieces(command: ExecutableCommand, *, chunk_tool_arguments: bool) -> list[str]:
    directive = command.directive
    if isinstance(directive, Say):
        return chunk_string(directive.content, effective_chunk_size(command, directive.content))
    if isinstance(directive, ToolCall):
        if not chunk_tool_arguments:
            return [directive.arguments]
        return chunk_string(directive.arguments, effective_chunk_size(command, directive.arguments))
    raise TypeError(f"Unsupported directive: {type(directive).__name__}")


def iter_stream_units(
    commands: Sequence[ExecutableCommand],
    *,
    chunk_tool_arguments: bool = False,
    rng: random.Random | None = None,
) -> Iterator[StreamUnit]:
    """Expand commands into ordered units with per-unit delays and terminal marking.

    The first unit of every command has no delay; the units after it wait the
    command's effective latency. An empty command list yields a single
    terminal diagnostic unit.
    """
    if not commands:
        commands = [ExecutableCommand(directive=Say(content=EMPTY_PROGRAM_MESSAGE))]

    last_command_index = len(commands) - 1
    for command_index, command in enumerate(commands):
        pieces = _command_pieces(command, chunk_tool_arguments=chunk_tool_arguments)
        latency_ms = effective_latency_ms(command, rng) if len(pieces) > 1 else 0
        last_piece_index = len(pieces) - 1
        for chunk_index, piece in enumerate(pieces):
            yield StreamUnit(
                command=command,
                command_index=command_index,
                chunk_index=chunk_index,
                text=piece,
                delay_ms=latency_ms if chunk_index > 0 else 0,
                is_first=command_index == 0 and chunk_index == 0,
                is_last=command_index == last_command_index and chunk_index == last_piece_index,
                is_command_end=chunk_index == last_piece_index,
            )


def paced_units(
    commands: Sequence[ExecutableCommand],
    *,
    pacer: Pacer,
    chunk_tool_arguments: bool = False,
    rng: random.Random | None = None,
) -> Iterator[StreamUnit]:
    """Yield stream units, waiting on the pacer before each delayed unit.

    Iteration stops early once the pacer is cancelled.
    """
    for unit in iter_stream_units(commands, chunk_tool_arguments=chunk_tool_arguments, rng=rng):
        if pacer.cancelled:
            return
        if unit.delay_ms > 0 and not pacer.wait(unit.delay_ms):
            return
        yield unit
