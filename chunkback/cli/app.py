import json
from importlib.metadata import PackageNotFoundError, version as package_version
import logging
from pathlib import Path
import sys
from dataclasses import dataclass
from typing import Any

import typer

from chunkback.cbpl import ExecutableCommand, ParseError, load_catalog, parse_prompt
from chunkback.config import config_from_env, resolve_log_level, resolve_model
from chunkback.gateway import SUPPORTED_PROVIDERS
from chunkback.server import create_server, serve
from chunkback.streaming import (
    EncoderRegistryError,
    Pacer,
    RecordingPacer,
    get_stream_encoder,
    list_stream_encoder_keys,
)
from chunkback.tool_cache import ToolResponseCache

app = typer.Typer(help="Chunkback CLI: scripted streaming LLM API emulator.")


@dataclass(slots=True)
class _OutputOptions:
    quiet: bool = False
    stable_json: bool = True


_OUTPUT_OPTIONS = _OutputOptions()


def _resolve_cli_version() -> str:
    try:
        return package_version("chunkback")
    except PackageNotFoundError:
        from chunkback import __version__ as local_version

        return local_version


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(_resolve_cli_version(), color=False)
    raise typer.Exit()


@app.callback()
def app_options(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show Chunkback version and exit.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        help="Suppress non-error text output.",
    ),
    stable_json: bool = typer.Option(
        True,
        "--stable-json/--pretty-json",
        help="Emit stable compact JSON (or pretty JSON).",
    ),
) -> None:
    """Global output controls for all CLI commands."""
    _OUTPUT_OPTIONS.quiet = quiet
    _OUTPUT_OPTIONS.stable_json = stable_json


def _echo(message: str, *, err: bool = False, force: bool = False) -> None:
    if _OUTPUT_OPTIONS.quiet and not err and not force:
        return
    typer.echo(message, err=err)


def _echo_json(payload: dict[str, Any], *, err: bool = False) -> None:
    if _OUTPUT_OPTIONS.stable_json:
        rendered = json.dumps(payload, ensure_ascii=True, sort_keys=True, separators=(",", ":"))
    else:
        rendered = json.dumps(payload, ensure_ascii=True, sort_keys=True, indent=2)
    typer.echo(rendered, err=err)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _read_script(prompt: str | None, script_file: Path | None) -> str:
    if script_file is not None:
        try:
            return script_file.read_text(encoding="utf-8")
        except OSError as error:
            _echo(f"cannot read script: {error}", err=True)
            raise typer.Exit(code=2)
    if prompt is None:
        _echo("provide a PROMPT argument or --file.", err=True)
        raise typer.Exit(code=2)
    return prompt


def _parse_or_exit(script: str, *, json_output: bool) -> list[ExecutableCommand]:
    try:
        return parse_prompt(script)
    except ParseError as error:
        if json_output:
            _echo_json(
                {
                    "status": "error",
                    "exit_code": 1,
                    "message": error.message,
                    "line": error.line,
                    "column": error.column,
                }
            )
        else:
            _echo(str(error), err=True)
        raise typer.Exit(code=1)


@app.command("serve")
def serve_command(
    host: str | None = typer.Option(
        None,
        "--host",
        help="Bind host (default: CHUNKBACK_HOST or 127.0.0.1).",
        show_default=False,
    ),
    port: int | None = typer.Option(
        None,
        "--port",
        help="Bind port (default: CHUNKBACK_PORT, PORT or 5653; 0 chooses a free port).",
        show_default=False,
    ),
    model: str | None = typer.Option(
        None,
        "--model",
        help="Model name echoed when a request does not name one.",
        show_default=False,
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Logging level (default: CHUNKBACK_LOG_LEVEL or INFO).",
        show_default=False,
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable startup output.",
    ),
) -> None:
    """Run the streaming emulator until interrupted."""
    _configure_logging(log_level or resolve_log_level())
    config = config_from_env()
    if host:
        config.host = host
    if port is not None:
        config.port = port
    if model:
        config.model = model
    if not (0 <= config.port <= 65535):
        _echo("serve failed: --port must be between 0 and 65535.", err=True)
        raise typer.Exit(code=2)
    try:
        server = create_server(config)
    except OSError as error:
        _echo(f"serve failed: {error}", err=True)
        raise typer.Exit(code=1)

    bound_host, bound_port = server.server_address[0], int(server.server_address[1])
    base_url = f"http://{bound_host}:{bound_port}"
    if json_output:
        _echo_json({"status": "running", "host": bound_host, "port": bound_port, "base_url": base_url})
    else:
        _echo(f"chunkback listening on {base_url}")
        _echo(f"  OpenAI:    {base_url}/v1/chat/completions")
        _echo(f"  Anthropic: {base_url}/v1/messages")
        _echo(f"  Gemini:    {base_url}/v1beta/models/<model>:generateContent")
        _echo(f"  Health:    {base_url}/health")
    serve(server)
    _echo("chunkback stopped")


@app.command()
def parse(
    prompt: str | None = typer.Argument(None, help="CBPL script text."),
    script_file: Path | None = typer.Option(
        None,
        "--file",
        help="Read the CBPL script from a file instead.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable command list.",
    ),
) -> None:
    """Parse a CBPL script and print its executable commands."""
    script = _read_script(prompt, script_file)
    commands = _parse_or_exit(script, json_output=json_output)
    if json_output:
        _echo_json(
            {
                "status": "ok",
                "exit_code": 0,
                "commands": [command.to_dict() for command in commands],
            }
        )
        return
    if not commands:
        _echo("no executable commands", force=True)
        return
    for index, command in enumerate(commands, start=1):
        _echo(f"{index}. {json.dumps(command.to_dict(), ensure_ascii=True)}", force=True)


@app.command()
def render(
    prompt: str | None = typer.Argument(None, help="CBPL script text."),
    provider: str = typer.Option(
        "openai",
        "--provider",
        help=f"Wire format to render. Supported: {', '.join(SUPPORTED_PROVIDERS)}.",
    ),
    script_file: Path | None = typer.Option(
        None,
        "--file",
        help="Read the CBPL script from a file instead.",
    ),
    model: str | None = typer.Option(
        None,
        "--model",
        help="Model name to place in payloads.",
        show_default=False,
    ),
    delay: bool = typer.Option(
        False,
        "--delay/--no-delay",
        help="Honor chunk latency with real waits.",
    ),
) -> None:
    """Write the exact wire bytes a provider endpoint would stream for a script."""
    script = _read_script(prompt, script_file)
    commands = _parse_or_exit(script, json_output=False)
    try:
        encoder = get_stream_encoder(
            provider,
            model=model or resolve_model(),
            tool_cache=ToolResponseCache(),
        )
    except EncoderRegistryError as error:
        _echo(f"render failed: {error}", err=True)
        raise typer.Exit(code=2)
    pacer = Pacer() if delay else RecordingPacer()
    for frame in encoder.iter_frames(commands, pacer=pacer):
        typer.echo(frame, nl=False)
    sys.stdout.flush()


@app.command("commands")
def list_commands(
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable command catalog.",
    ),
) -> None:
    """List the CBPL directives and their parameters."""
    catalog = load_catalog()
    if json_output:
        _echo_json(
            {
                "status": "ok",
                "version": catalog.version,
                "commands": [command.to_dict() for command in catalog.commands.values()],
            }
        )
        return
    for command in catalog.commands.values():
        signature = " ".join(
            f"<{parameter.name}:{parameter.type}>" for parameter in command.parameters
        )
        _echo(f"{command.name} {signature}  {command.description}", force=True)


@app.command()
def providers() -> None:
    """List supported provider wire formats."""
    _echo("\n".join(list_stream_encoder_keys()), force=True)


def main() -> None:
    app()
