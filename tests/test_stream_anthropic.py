import json
from typing import Any

from chunkback.cbpl import parse_prompt
from chunkback.streaming import AnthropicStreamEncoder, ContentBlockTracker, RecordingPacer, render_stream
from chunkback.tool_cache import ToolResponseCache


def _events(script: str, **options: Any) -> list[dict[str, Any]]:
    body = render_stream(AnthropicStreamEncoder(**options), parse_prompt(script), pacer=RecordingPacer())
    events: list[dict[str, Any]] = []
    for frame in body.decode("utf-8").split("\n\n"):
        if not frame:
            continue
        event_line, data_line = frame.split("\n")
        assert event_line.startswith("event: ")
        assert data_line.startswith("data: ")
        payload = json.loads(data_line[len("data: ") :])
        assert payload["type"] == event_line[len("event: ") :]
        events.append(payload)
    return events


def _summary(events: list[dict[str, Any]]) -> list[tuple[str, Any]]:
    return [(event["type"], event.get("index")) for event in events]


def test_anthropic_text_stream_has_single_block_and_terminal_sequence() -> None:
    events = _events('CHUNKSIZE 5\nSAY "Hello World"')

    assert _summary(events) == [
        ("message_start", None),
        ("content_block_start", 0),
        ("content_block_delta", 0),
        ("content_block_delta", 0),
        ("content_block_delta", 0),
        ("content_block_stop", 0),
        ("message_delta", None),
        ("message_stop", None),
    ]
    assert events[0]["message"]["role"] == "assistant"
    assert events[0]["message"]["model"] == "echo-model"
    assert events[0]["message"]["id"].startswith("msg_")
    assert events[1]["content_block"] == {"type": "text", "text": ""}
    texts = [event["delta"]["text"] for event in events if event["type"] == "content_block_delta"]
    assert texts == ["Hello", " Worl", "d"]
    assert events[-2]["delta"]["stop_reason"] == "end_turn"


def test_anthropic_contiguous_says_share_one_block() -> None:
    events = _events('SAY "a"\nSAY "b"')

    starts = [event for event in events if event["type"] == "content_block_start"]
    assert len(starts) == 1
    assert [event["index"] for event in events if event["type"] == "content_block_delta"] == [0, 0]


def test_anthropic_block_index_changes_on_text_tool_transitions() -> None:
    events = _events('SAY "Hi"\nTOOLCALL "lookup" "{}"\nSAY "Done"')

    assert _summary(events) == [
        ("message_start", None),
        ("content_block_start", 0),
        ("content_block_delta", 0),
        ("content_block_stop", 0),
        ("content_block_start", 1),
        ("content_block_delta", 1),
        ("content_block_stop", 1),
        ("content_block_start", 2),
        ("content_block_delta", 2),
        ("content_block_stop", 2),
        ("message_delta", None),
        ("message_stop", None),
    ]
    tool_start = events[4]["content_block"]
    assert tool_start["type"] == "tool_use"
    assert tool_start["id"].startswith("toolu_")
    assert tool_start["name"] == "lookup"
    assert tool_start["input"] == {}
    assert events[5]["delta"] == {"type": "input_json_delta", "partial_json": "{}"}


def test_anthropic_tool_call_ends_with_tool_use_and_caches_response() -> None:
    cache = ToolResponseCache()
    events = _events('TOOLCALL "get_weather" "San Francisco"', tool_cache=cache)

    tool_block = events[1]["content_block"]
    assert events[2]["delta"]["partial_json"] == "San Francisco"
    assert events[-2]["delta"]["stop_reason"] == "tool_use"
    assert events[-1] == {"type": "message_stop"}
    assert cache.get(tool_block["id"]).tool_name == "get_weather"


def test_anthropic_each_tool_call_opens_its_own_block() -> None:
    events = _events('TOOLCALL "a" "1"\nTOOLCALL "b" "2"')

    starts = [event for event in events if event["type"] == "content_block_start"]
    assert [(event["index"], event["content_block"]["name"]) for event in starts] == [(0, "a"), (1, "b")]
    assert _summary(events)[3] == ("content_block_stop", 0)


def test_anthropic_message_stop_is_emitted_exactly_once() -> None:
    for script in ['SAY "x"', 'TOOLCALL "a" "b"', "", 'SAY "x"\nTOOLCALL "a" "b"\nSAY "y"']:
        events = _events(script)
        assert [event["type"] for event in events].count("message_stop") == 1
        assert events[-1]["type"] == "message_stop"


def test_anthropic_empty_program_streams_diagnostic() -> None:
    events = _events("")

    deltas = [event for event in events if event["type"] == "content_block_delta"]
    assert deltas[0]["delta"]["text"] == "No valid commands found in prompt"


def test_content_block_tracker_transitions() -> None:
    tracker = ContentBlockTracker()

    assert tracker.enter("text", opens_tool_call=False) == (None, 0)
    assert tracker.enter("text", opens_tool_call=False) == (None, None)
    assert tracker.enter("tool", opens_tool_call=True) == (0, 1)
    assert tracker.enter("tool", opens_tool_call=True) == (1, 2)
    assert tracker.enter("tool", opens_tool_call=False) == (None, None)
    assert tracker.close() == 2
    assert tracker.state == "none"
    assert tracker.close() is None
