"""In-memory store for mocked tool-call responses keyed by emitted call id."""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
import threading
import time
from typing import Any, Callable

DEFAULT_TTL_SECONDS = 3600.0
DEFAULT_MAX_ENTRIES = 10_000


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True, slots=True)
class MockedToolResponse:
    call_id: str
    provider: str
    tool_name: str
    arguments: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "call_id": self.call_id,
            "provider": self.provider,
            "tool_name": self.tool_name,
            "arguments": self.arguments,
            "created_at": self.created_at,
        }


class ToolResponseCache:
    """Thread-safe bounded cache; expired and oldest entries are evicted on write."""

    def __init__(
        self,
        *,
        ttl_seconds: float | None = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._ttl_seconds = ttl_seconds if ttl_seconds and ttl_seconds > 0 else None
        self._max_entries = max_entries
        self._clock = clock

    def put(self, call_id: str, value: Any) -> None:
        with self._lock:
            now = self._clock()
            self._evict_expired_locked(now)
            self._entries.pop(call_id, None)
            self._entries[call_id] = (now, value)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def get(self, call_id: str) -> Any | None:
        with self._lock:
            self._evict_expired_locked(self._clock())
            entry = self._entries.get(call_id)
            return entry[1] if entry is not None else None

    def pop(self, call_id: str) -> Any | None:
        with self._lock:
            self._evict_expired_locked(self._clock())
            entry = self._entries.pop(call_id, None)
            return entry[1] if entry is not None else None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            self._evict_expired_locked(self._clock())
            return len(self._entries)

    def _evict_expired_locked(self, now: float) -> None:
        if self._ttl_seconds is None:
            return
        # Insertion order is also age order.
        while self._entries:
            call_id, (stored_at, _value) = next(iter(self._entries.items()))
            if now - stored_at < self._ttl_seconds:
                break
            del self._entries[call_id]


def record_tool_call(
    cache: ToolResponseCache | None,
    *,
    call_id: str,
    provider: str,
    tool_name: str,
    arguments: str,
) -> MockedToolResponse:
    """Store the mocked response for an emitted tool call and return it."""
    response = MockedToolResponse(
        call_id=call_id,
        provider=provider,
        tool_name=tool_name,
        arguments=arguments,
        created_at=_utc_now(),
    )
    if cache is not None:
        cache.put(call_id, response)
    return response


