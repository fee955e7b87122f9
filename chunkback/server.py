"""HTTP server emulating the OpenAI, Anthropic and Gemini streaming endpoints."""

from __future__ import annotations

from contextlib import contextmanager
import gzip
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
import io
import json
import logging
import random
import signal
import socketserver
import threading
from typing import Any, Callable, Iterator
from urllib.parse import parse_qsl, unquote, urlsplit
import zlib

import zstandard as zstd

from chunkback.cbpl import ParseError, parse_prompt
from chunkback.config import ServerConfig
from chunkback.gateway import (
    MODELS_PATHS,
    TOOL_RESPONSE_PREFIX,
    RequestValidationError,
    build_models_payload,
    detect_models_provider,
    detect_route,
    error_payload,
    extract_prompt,
    resolve_model,
)
from chunkback.streaming import Pacer, StreamWriter, drain_frames, get_stream_encoder
from chunkback.tool_cache import MockedToolResponse, ToolResponseCache

logger = logging.getLogger(__name__)


class ChunkbackServer(ThreadingHTTPServer):
    allow_reuse_address = True
    daemon_threads = True

    def server_bind(self) -> None:
        # Avoid reverse-DNS lookup latency in HTTPServer.server_bind/getfqdn.
        socketserver.TCPServer.server_bind(self)
        host, port = self.server_address[:2]
        self.server_name = str(host)
        self.server_port = int(port)

    def __init__(
        self,
        server_address: tuple[str, int],
        request_handler_class: type[BaseHTTPRequestHandler],
        *,
        config: ServerConfig,
        tool_cache: ToolResponseCache,
        pacer_factory: Callable[[], Pacer] = Pacer,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(server_address, request_handler_class)
        self.config = config
        self.tool_cache = tool_cache
        self.pacer_factory = pacer_factory
        self.rng = rng
        self._pacers_lock = threading.Lock()
        self._active_pacers: set[Pacer] = set()
        self._metrics_lock = threading.Lock()
        self.streams_started = 0
        self.streams_aborted = 0

    def open_pacer(self) -> Pacer:
        pacer = self.pacer_factory()
        with self._pacers_lock:
            self._active_pacers.add(pacer)
        return pacer

    def release_pacer(self, pacer: Pacer) -> None:
        with self._pacers_lock:
            self._active_pacers.discard(pacer)

    def cancel_streams(self) -> None:
        with self._pacers_lock:
            pacers = list(self._active_pacers)
        for pacer in pacers:
            pacer.cancel()

    def register_stream(self, *, aborted: bool) -> None:
        with self._metrics_lock:
            self.streams_started += 1
            if aborted:
                self.streams_aborted += 1

    def metrics_payload(self) -> dict[str, int]:
        with self._metrics_lock:
            return {
                "streams_started": self.streams_started,
                "streams_aborted": self.streams_aborted,
                "tool_responses_cached": len(self.tool_cache),
            }

    def server_close(self) -> None:
        self.cancel_streams()
        super().server_close()


class ChunkbackHandler(BaseHTTPRequestHandler):
    server: ChunkbackServer

    def do_GET(self) -> None:  # noqa: N802
        parsed = urlsplit(self.path)
        path = parsed.path.rstrip("/") or "/"
        if path == "/health":
            self._write_json(200, {"status": "ok", "metrics": self.server.metrics_payload()})
            return
        if path in MODELS_PATHS:
            query = {key: value for key, value in parse_qsl(parsed.query, keep_blank_values=True)}
            headers = {str(key): str(value) for key, value in self.headers.items()}
            provider = detect_models_provider(headers, query)
            self._write_json(200, build_models_payload(provider))
            return
        if path.startswith(TOOL_RESPONSE_PREFIX):
            call_id = unquote(path[len(TOOL_RESPONSE_PREFIX) :])
            stored = self.server.tool_cache.get(call_id)
            if stored is None:
                self._write_json(
                    404,
                    error_payload(f"No tool response for call id: {call_id}", error_type="not_found_error"),
                )
                return
            body = stored.to_dict() if isinstance(stored, MockedToolResponse) else {"value": stored}
            self._write_json(200, body)
            return
        self._write_json(404, error_payload("not found", error_type="not_found_error"))

    def do_POST(self) -> None:  # noqa: N802
        parsed = urlsplit(self.path)
        route = detect_route(parsed.path)
        if route is None:
            self._write_json(404, error_payload("unsupported path", error_type="not_found_error"))
            return

        headers_sent = False
        streaming = False
        try:
            payload, body_error = self._read_json_body()
            if body_error:
                self._write_json(400, error_payload(body_error))
                return
            try:
                prompt = extract_prompt(route.provider, payload)
            except RequestValidationError as error:
                self._write_json(400, error_payload(str(error)))
                return
            try:
                commands = parse_prompt(prompt)
            except ParseError as error:
                logger.info("rejected %s request: %s", route.provider, error)
                body = error_payload(str(error))
                body["error"]["line"] = error.line
                body["error"]["column"] = error.column
                self._write_json(400, body)
                return

            encoder = get_stream_encoder(
                route.provider,
                model=resolve_model(route, payload, default=self.server.config.model),
                tool_cache=self.server.tool_cache,
                rng=self.server.rng,
            )
            streaming = True
            pacer = self.server.open_pacer()
            try:
                self.send_response(200)
                self.send_header("Content-Type", encoder.content_type)
                self.send_header("Cache-Control", "no-cache")
                self.send_header("Connection", "close")
                self.end_headers()
                headers_sent = True
                writer = StreamWriter(self.wfile, pacer=pacer)
                drain_frames(encoder.iter_frames(commands, pacer=pacer), writer)
            finally:
                self.server.release_pacer(pacer)
            self.server.register_stream(aborted=writer.closed)
            logger.debug(
                "streamed %d commands as %s (%d bytes)",
                len(commands),
                route.provider,
                writer.bytes_written,
            )
            self.close_connection = True
        except (BrokenPipeError, ConnectionResetError, ConnectionAbortedError) as error:
            logger.info("client disconnected from %s: %s", parsed.path, error)
            if streaming and not headers_sent:
                self.server.register_stream(aborted=True)
            self.close_connection = True
        except Exception:
            logger.exception("request to %s failed", parsed.path)
            if not headers_sent:
                self._write_json(500, error_payload("Internal server error", error_type="api_error"))
            self.close_connection = True

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)

    def _read_json_body(self) -> tuple[dict[str, Any], str | None]:
        try:
            length = int(self.headers.get("Content-Length", "0") or "0")
        except ValueError:
            return {}, "invalid_content_length"
        if length < 0:
            return {}, "invalid_content_length"
        body = self.rfile.read(length) if length > 0 else b""
        if not body:
            return {}, "request body is required"
        decoded_body, decode_error = _decode_request_body(
            body=body,
            content_encoding=self.headers.get("Content-Encoding"),
        )
        if decode_error:
            return {}, decode_error
        try:
            parsed = json.loads(decoded_body.decode("utf-8", errors="replace"))
        except json.JSONDecodeError:
            return {}, "invalid_json_body"
        if not isinstance(parsed, dict):
            return {}, "non_object_json_body"
        return parsed, None

    def _write_json(self, status_code: int, payload: dict[str, Any]) -> None:
        body = json.dumps(payload, ensure_ascii=True, sort_keys=True).encode("utf-8")
        self.send_response(status_code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


def _decode_request_body(*, body: bytes, content_encoding: str | None) -> tuple[bytes, str | None]:
    if not content_encoding:
        return body, None
    encodings = [entry.strip().lower() for entry in content_encoding.split(",") if entry.strip()]
    decoded = body
    for encoding in reversed(encodings):
        try:
            if encoding == "identity":
                continue
            if encoding == "gzip":
                decoded = gzip.decompress(decoded)
                continue
            if encoding == "deflate":
                try:
                    decoded = zlib.decompress(decoded)
                except zlib.error:
                    decoded = zlib.decompress(decoded, -zlib.MAX_WBITS)
                continue
            if encoding == "zstd":
                decoded = _decode_zstd(decoded)
                continue
        except (OSError, EOFError, zlib.error, zstd.ZstdError):
            return body, f"invalid_content_encoding:{encoding}"
        return body, f"unsupported_content_encoding:{encoding}"
    return decoded, None


def _decode_zstd(body: bytes) -> bytes:
    decompressor = zstd.ZstdDecompressor()
    try:
        return decompressor.decompress(body)
    except zstd.ZstdError:
        # Frames without a content size need the streaming reader.
        with decompressor.stream_reader(io.BytesIO(body)) as reader:
            return reader.read()


def create_server(
    config: ServerConfig,
    *,
    tool_cache: ToolResponseCache | None = None,
    pacer_factory: Callable[[], Pacer] = Pacer,
    rng: random.Random | None = None,
) -> ChunkbackServer:
    cache = tool_cache or ToolResponseCache(
        ttl_seconds=config.tool_cache_ttl_seconds,
        max_entries=config.tool_cache_max_entries,
    )
    return ChunkbackServer(
        (config.host, config.port),
        ChunkbackHandler,
        config=config,
        tool_cache=cache,
        pacer_factory=pacer_factory,
        rng=rng,
    )


@contextmanager
def start_server(
    config: ServerConfig,
    *,
    tool_cache: ToolResponseCache | None = None,
    pacer_factory: Callable[[], Pacer] = Pacer,
    rng: random.Random | None = None,
) -> Iterator[tuple[ChunkbackServer, threading.Thread]]:
    server = create_server(config, tool_cache=tool_cache, pacer_factory=pacer_factory, rng=rng)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server, thread
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=2)


def serve(server: ChunkbackServer) -> None:
    """Serve until SIGINT/SIGTERM."""

    def _handle_signal(_signum: int, _frame: Any) -> None:
        threading.Thread(target=server.shutdown, daemon=True).start()

    signal.signal(signal.SIGTERM, _handle_signal)
    signal.signal(signal.SIGINT, _handle_signal)
    try:
        server.serve_forever(poll_interval=0.2)
    finally:
        server.server_close()
