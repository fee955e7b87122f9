"""Recursive-descent CBPL parser producing executable commands."""

from __future__ import annotations

import logging

from chunkback.cbpl.catalog import CommandCatalog, load_catalog
from chunkback.cbpl.commands import (
    ChunkLatency,
    ChunkSize,
    ExecutableCommand,
    RandomLatency,
    Say,
    Statement,
    ToolCall,
)
from chunkback.cbpl.exceptions import ParseError
from chunkback.cbpl.lexer import tokenize
from chunkback.cbpl.tokens import Token

logger = logging.getLogger(__name__)


class Parser:
    """Single-use parser over one token sequence.

    Configuration statements (CHUNKSIZE, CHUNKLATENCY, RANDOMLATENCY) only
    update the ambient settings; each SAY/TOOLCALL snapshots the settings seen
    so far. Statements whose operand slot holds an INVALID token are dropped;
    any other missing operand raises ParseError.
    """

    def __init__(self, tokens: list[Token], *, catalog: CommandCatalog | None = None) -> None:
        if not tokens or tokens[-1].type != "END":
            raise ValueError("token sequence must end with an END token")
        self._tokens = tokens
        self._current = 0
        self._catalog = catalog or load_catalog()

    def parse(self) -> list[ExecutableCommand]:
        commands: list[ExecutableCommand] = []
        chunk_size: int | None = None
        chunk_latency: int | None = None
        random_latency: tuple[int, int] | None = None

        while not self._check("END"):
            if self._check("NEWLINE"):
                self._advance()
                continue

            statement = self._parse_statement()
            if isinstance(statement, (Say, ToolCall)):
                commands.append(
                    ExecutableCommand(
                        directive=statement,
                        chunk_size=chunk_size,
                        chunk_latency_ms=chunk_latency,
                        random_latency_range=random_latency,
                    )
                )
            elif isinstance(statement, ChunkSize):
                chunk_size = statement.size
            elif isinstance(statement, ChunkLatency):
                chunk_latency = statement.latency_ms
                random_latency = None
            elif isinstance(statement, RandomLatency):
                random_latency = (statement.min_ms, statement.max_ms)
                chunk_latency = None
            elif statement is not None:
                raise TypeError(f"Unsupported statement: {type(statement).__name__}")

            if self._check("NEWLINE"):
                self._advance()

        return commands

    def _parse_statement(self) -> Statement | None:
        token = self._peek()
        if token.type == "SAY":
            return self._parse_say()
        if token.type == "TOOLCALL":
            return self._parse_tool_call()
        if token.type == "CHUNKSIZE":
            return self._parse_chunk_size()
        if token.type == "CHUNKLATENCY":
            return self._parse_chunk_latency()
        if token.type == "RANDOMLATENCY":
            return self._parse_random_latency()

        logger.debug(
            "skipping %s at line %d, column %d",
            token.describe(),
            token.line,
            token.column,
        )
        self._advance()
        return None

    def _parse_say(self) -> Say | None:
        keyword = self._advance()
        content = self._expect(keyword, "STRING", "Expected string after SAY")
        if content is None:
            return None
        return Say(content=str(content.value))

    def _parse_tool_call(self) -> ToolCall | None:
        keyword = self._advance()
        tool_name = self._expect(keyword, "STRING", "Expected tool name string")
        if tool_name is None:
            return None
        arguments = self._expect(keyword, "STRING", "Expected arguments string")
        if arguments is None:
            return None
        return ToolCall(tool_name=str(tool_name.value), arguments=str(arguments.value))

    def _parse_chunk_size(self) -> ChunkSize | None:
        keyword = self._advance()
        size = self._expect(keyword, "NUMBER", "Expected number after CHUNKSIZE")
        if size is None:
            return None
        return ChunkSize(size=self._bounded(keyword, "size", size))

    def _parse_chunk_latency(self) -> ChunkLatency | None:
        keyword = self._advance()
        latency = self._expect(keyword, "NUMBER", "Expected number after CHUNKLATENCY")
        if latency is None:
            return None
        return ChunkLatency(latency_ms=self._bounded(keyword, "latency", latency))

    def _parse_random_latency(self) -> RandomLatency | None:
        keyword = self._advance()
        lower = self._expect(keyword, "NUMBER", "Expected minimum latency after RANDOMLATENCY")
        if lower is None:
            return None
        upper = self._expect(keyword, "NUMBER", "Expected maximum latency after RANDOMLATENCY")
        if upper is None:
            return None
        min_ms = self._bounded(keyword, "min", lower)
        max_ms = self._bounded(keyword, "max", upper)
        if min_ms > max_ms:
            min_ms, max_ms = max_ms, min_ms
        return RandomLatency(min_ms=min_ms, max_ms=max_ms)

    def _expect(self, keyword: Token, token_type: str, message: str) -> Token | None:
        token = self._peek()
        if token.type == token_type:
            return self._advance()
        if token.type == "INVALID":
            logger.warning(
                "dropping %s statement at line %d, column %d: unexpected %s",
                keyword.type,
                keyword.line,
                keyword.column,
                token.describe(),
            )
            self._advance()
            return None
        raise ParseError(message, line=token.line, column=token.column)

    def _bounded(self, keyword: Token, parameter_name: str, token: Token) -> int:
        value = int(token.value)
        command = self._catalog.get(keyword.type)
        if command is None:
            return value
        clamped = command.parameter(parameter_name).clamp(value)
        if clamped != value:
            logger.warning(
                "%s %s=%d out of range at line %d, column %d; using %d",
                keyword.type,
                parameter_name,
                value,
                token.line,
                token.column,
                clamped,
            )
        return clamped

    def _check(self, token_type: str) -> bool:
        return self._peek().type == token_type

    def _peek(self) -> Token:
        return self._tokens[self._current]

    def _advance(self) -> Token:
        token = self._tokens[self._current]
        if token.type != "END":
            self._current += 1
        return token


def parse(tokens: list[Token]) -> list[ExecutableCommand]:
    """Parse a token sequence into executable commands."""
    return Parser(tokens).parse()


def parse_prompt(text: str) -> list[ExecutableCommand]:
    """Tokenize and parse CBPL source text."""
    return parse(tokenize(text))
