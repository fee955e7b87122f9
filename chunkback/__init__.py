"""Chunkback: scripted streaming emulator for OpenAI, Anthropic and Gemini APIs.

A CBPL script in the prompt decides what the emulated model streams back:

    SAY "Hello"
    CHUNKSIZE 3
    CHUNKLATENCY 50
    TOOLCALL "get_weather" "{\\"city\\": \\"Paris\\"}"
"""

from chunkback.cbpl import ExecutableCommand, ParseError, parse_prompt, tokenize
from chunkback.config import ServerConfig, config_from_env
from chunkback.server import create_server, start_server
from chunkback.streaming import get_stream_encoder, render_stream
from chunkback.tool_cache import MockedToolResponse, ToolResponseCache

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ExecutableCommand",
    "ParseError",
    "parse_prompt",
    "tokenize",
    "ServerConfig",
    "config_from_env",
    "create_server",
    "start_server",
    "get_stream_encoder",
    "render_stream",
    "MockedToolResponse",
    "ToolResponseCache",
]
