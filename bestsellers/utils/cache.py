# bestsellers/utils/cache.py
from __future__ import annotations
import json
import time
from typing import Any, Callable, Dict, Optional, Tuple

from bestsellers.domain.models.bestsellers import BestsellersResult


def unwrap_payload(raw: Any) -> Optional[BestsellersResult]:
    """
    Defensive decode of a cached value. Older writers stored the result as a
    JSON string, as a JSON string of that JSON string, or wrapped as
    {"value": "<json>", "EX": ttl}. Anything unrecognisable is a miss (None).
    """
    val = raw
    for _ in range(4):
        if isinstance(val, (bytes, bytearray)):
            val = val.decode("utf-8", errors="replace")
        if isinstance(val, str):
            try:
                val = json.loads(val)
            except ValueError:
                return None
            continue
        if isinstance(val, dict) and "handles" not in val and isinstance(val.get("value"), (str, dict)):
            val = val["value"]
            continue
        break

    if isinstance(val, BestsellersResult):
        return val
    if not isinstance(val, dict) or not isinstance(val.get("handles"), list):
        return None
    handles = [h for h in val["handles"] if isinstance(h, str) and h]
    meta = val.get("meta") if isinstance(val.get("meta"), dict) else {}
    return BestsellersResult(handles=handles, meta=meta)


def dump_payload(result: BestsellersResult) -> str:
    return json.dumps(result.model_dump(), separators=(",", ":"), default=str)


class MemoryTTLCache:
    """
    Process-local cache layer. TTL is checked at read time (no sweeper), and
    expired entries are kept so `get_stale` can still serve them on error.
    One instance per process; build a fresh one per test.
    """

    def __init__(self, ttl_s: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_s = ttl_s
        self._clock = clock
        self._data: Dict[str, Tuple[float, BestsellersResult]] = {}

    def get(self, key: str) -> Optional[BestsellersResult]:
        entry = self._data.get(key)
        if entry is None:
            return None
        at, value = entry
        if self._clock() - at >= self.ttl_s:
            return None
        return value

    def get_stale(self, key: str) -> Optional[BestsellersResult]:
        entry = self._data.get(key)
        return entry[1] if entry else None

    def set(self, key: str, value: BestsellersResult, age_s: float = 0.0) -> None:
        """`age_s` backdates the entry, e.g. a value that already aged in Redis."""
        self._data[key] = (self._clock() - max(age_s, 0.0), value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)
