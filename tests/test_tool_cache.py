import threading

import pytest

from chunkback.tool_cache import MockedToolResponse, ToolResponseCache, record_tool_call


class _FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_tool_cache_put_get_pop_and_clear() -> None:
    cache = ToolResponseCache()

    cache.put("call_1", {"ok": True})
    assert cache.get("call_1") == {"ok": True}
    assert len(cache) == 1
    assert cache.pop("call_1") == {"ok": True}
    assert cache.get("call_1") is None

    cache.put("call_2", "x")
    cache.clear()
    assert len(cache) == 0


def test_tool_cache_expires_entries_after_ttl() -> None:
    clock = _FakeClock()
    cache = ToolResponseCache(ttl_seconds=10, clock=clock)

    cache.put("old", 1)
    clock.now += 5
    cache.put("new", 2)
    clock.now += 6

    assert cache.get("old") is None
    assert cache.get("new") == 2


def test_tool_cache_without_ttl_never_expires() -> None:
    clock = _FakeClock()
    cache = ToolResponseCache(ttl_seconds=0, clock=clock)

    cache.put("call", 1)
    clock.now += 10**9

    assert cache.get("call") == 1


def test_tool_cache_evicts_oldest_beyond_max_entries() -> None:
    cache = ToolResponseCache(max_entries=2)

    cache.put("a", 1)
    cache.put("b", 2)
    cache.put("a", 3)
    cache.put("c", 4)

    assert cache.get("b") is None
    assert cache.get("a") == 3
    assert cache.get("c") == 4


def test_tool_cache_rejects_non_positive_capacity() -> None:
    with pytest.raises(ValueError):
        ToolResponseCache(max_entries=0)


def test_tool_cache_is_safe_under_concurrent_writers() -> None:
    cache = ToolResponseCache(max_entries=10_000)

    def writer(prefix: str) -> None:
        for index in range(500):
            cache.put(f"{prefix}-{index}", index)

    threads = [threading.Thread(target=writer, args=(f"t{n}",)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(cache) == 4000


def test_record_tool_call_stores_mocked_response() -> None:
    cache = ToolResponseCache()

    response = record_tool_call(
        cache,
        call_id="call_abc",
        provider="openai",
        tool_name="get_weather",
        arguments='{"city": "Paris"}',
    )

    assert isinstance(response, MockedToolResponse)
    assert cache.get("call_abc") is response
    payload = response.to_dict()
    assert payload["call_id"] == "call_abc"
    assert payload["tool_name"] == "get_weather"
    assert payload["created_at"].endswith("+00:00")


def test_record_tool_call_without_cache_only_builds_response() -> None:
    response = record_tool_call(None, call_id="c", provider="gemini", tool_name="t", arguments="")

    assert response.provider == "gemini"
