"""Token definitions for the CBPL lexer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from chunkback.cbpl.catalog import load_catalog

TokenType = Literal[
    "SAY",
    "TOOLCALL",
    "CHUNKSIZE",
    "CHUNKLATENCY",
    "RANDOMLATENCY",
    "STRING",
    "NUMBER",
    "NEWLINE",
    "END",
    "INVALID",
]


# Keyword table mirrors the command catalog; a directive added there becomes a keyword here.
KEYWORDS: dict[str, str] = {name: name for name in load_catalog().names}


@dataclass(frozen=True, slots=True)
class Token:
    type: str
    value: str | int
    line: int
    column: int

    def describe(self) -> str:
        if self.type == "END":
            return "end of input"
        if self.type == "NEWLINE":
            return "newline"
        if self.type == "STRING":
            return f"string {self.value!r}"
        return f"{self.type.lower()} {self.value!r}"
