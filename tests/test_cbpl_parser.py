import logging

import pytest

from chunkback.cbpl import (
    ExecutableCommand,
    ParseError,
    Say,
    ToolCall,
    parse,
    parse_prompt,
    tokenize,
)


def test_parser_say_without_configuration_leaves_defaults_unset() -> None:
    commands = parse_prompt('SAY "Hello World"')

    assert commands == [ExecutableCommand(directive=Say(content="Hello World"))]


def test_parser_tool_call_keeps_arguments_opaque() -> None:
    commands = parse_prompt('TOOLCALL "get_weather" "San Francisco"')

    assert len(commands) == 1
    assert commands[0].directive == ToolCall(tool_name="get_weather", arguments="San Francisco")


def test_parser_configuration_applies_forward_only() -> None:
    commands = parse_prompt(
        'SAY "First"\nCHUNKSIZE 3\nCHUNKLATENCY 50\nSAY "Second"\n'
        'CHUNKLATENCY 100\nSAY "Third"\nTOOLCALL "test" "args"'
    )

    assert [(c.chunk_size, c.chunk_latency_ms) for c in commands] == [
        (None, None),
        (3, 50),
        (3, 100),
        (3, 100),
    ]


def test_parser_latency_directives_override_each_other() -> None:
    commands = parse_prompt(
        'RANDOMLATENCY 5 10\nSAY "a"\nCHUNKLATENCY 20\nSAY "b"\nRANDOMLATENCY 30 40\nSAY "c"'
    )

    assert commands[0].random_latency_range == (5, 10)
    assert commands[0].chunk_latency_ms is None
    assert commands[1].random_latency_range is None
    assert commands[1].chunk_latency_ms == 20
    assert commands[2].random_latency_range == (30, 40)
    assert commands[2].chunk_latency_ms is None


def test_parser_random_latency_swaps_inverted_bounds() -> None:
    commands = parse_prompt('RANDOMLATENCY 90 10\nSAY "x"')

    assert commands[0].random_latency_range == (10, 90)


def test_parser_clamps_out_of_range_operands(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="chunkback.cbpl.parser"):
        commands = parse_prompt('CHUNKSIZE 0\nCHUNKLATENCY 99999\nSAY "x"')

    assert commands[0].chunk_size == 1
    assert commands[0].chunk_latency_ms == 10000
    assert "out of range" in caplog.text


def test_parser_statements_on_one_line_and_blank_lines() -> None:
    commands = parse_prompt('\n\nSAY "a" SAY "b"\n\n\nSAY "c"\n')

    assert [c.directive.content for c in commands] == ["a", "b", "c"]


def test_parser_skips_unknown_lines() -> None:
    commands = parse_prompt('HELLO there\n# comment\nSAY "kept"\n42\n"stray"')

    assert [c.directive for c in commands] == [Say(content="kept")]


def test_parser_missing_operand_raises_with_position() -> None:
    with pytest.raises(ParseError) as excinfo:
        parse_prompt('SAY "ok"\nSAY\nSAY "after"')

    error = excinfo.value
    assert error.line == 2
    assert error.column == 4
    assert "Expected string after SAY" in str(error)


def test_parser_wrong_operand_kind_raises() -> None:
    with pytest.raises(ParseError):
        parse_prompt('CHUNKSIZE "five"')
    with pytest.raises(ParseError):
        parse_prompt('TOOLCALL "only_name"')
    with pytest.raises(ParseError):
        parse_prompt("RANDOMLATENCY 5")


def test_parser_invalid_token_in_operand_slot_drops_statement() -> None:
    tokens = tokenize('SAY @ "hello"')
    assert [token.type for token in tokens] == ["SAY", "INVALID", "STRING", "END"]

    assert parse(tokens) == []
    assert parse_prompt('SAY @ "hello"\nSAY "next"') == [
        ExecutableCommand(directive=Say(content="next"))
    ]


def test_parser_rejects_token_stream_without_end() -> None:
    with pytest.raises(ValueError):
        parse([])


def test_executable_command_to_dict_uses_wire_names() -> None:
    command = parse_prompt('CHUNKSIZE 2\nTOOLCALL "lookup" "{}"')[0]

    assert command.to_dict() == {
        "command": {"type": "TOOLCALL", "toolName": "lookup", "arguments": "{}"},
        "chunkSize": 2,
        "chunkLatency": None,
        "randomLatency": None,
    }


def test_parser_clamps_oversized_numbers_from_lexer() -> None:
    commands = parse_prompt("CHUNKSIZE " + "9" * 5000 + '\nSAY "hi"')

    assert commands[0].chunk_size == 1000
