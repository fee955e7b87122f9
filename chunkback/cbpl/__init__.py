"""CBPL (Chunkback Prompt Language) lexer, parser and command catalog."""

from chunkback.cbpl.catalog import (
    CommandCatalog,
    CommandDefinition,
    ParameterDefinition,
    build_catalog,
    load_catalog,
)
from chunkback.cbpl.commands import (
    ChunkLatency,
    ChunkSize,
    Directive,
    ExecutableCommand,
    RandomLatency,
    Say,
    Statement,
    ToolCall,
)
from chunkback.cbpl.exceptions import CatalogError, CBPLError, ParseError
from chunkback.cbpl.lexer import Lexer, tokenize
from chunkback.cbpl.parser import Parser, parse, parse_prompt
from chunkback.cbpl.tokens import KEYWORDS, Token

__all__ = [
    "CBPLError",
    "CatalogError",
    "ParseError",
    "CommandCatalog",
    "CommandDefinition",
    "ParameterDefinition",
    "build_catalog",
    "load_catalog",
    "Say",
    "ToolCall",
    "ChunkSize",
    "ChunkLatency",
    "RandomLatency",
    "Statement",
    "Directive",
    "ExecutableCommand",
    "KEYWORDS",
    "Token",
    "Lexer",
    "tokenize",
    "Parser",
    "parse",
    "parse_prompt",
]
