"""
Response Cache
==============

Time-bounded, size-bounded cache of gateway results keyed by a digest of
the request.
"""

import hashlib
import json
import time
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from core.schemas import ExecutionResult, GatewayContext


def make_cache_key(prompt: str, system_prompt: str, context: GatewayContext) -> str:
    """
    Derive the cache key for a request.

    Only the prompt head, the system prompt head, the agent and the phase
    participate, so requests differing further down the prompt share a key.
    """
    key_data = {
        "prompt": prompt[:100],
        "system_prompt": system_prompt[:50],
        "agent_id": context.agent_id,
        "phase": context.phase,
    }
    canonical = json.dumps(key_data, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class ResponseCache:
    """
    Insertion-ordered cache with a lifetime and a hard size bound.

    Not synchronized; the gateway guards it with its own lock.

    Example:
        >>> cache = ResponseCache(lifetime_seconds=1800)
        >>> cache.put(key, result)
        >>> cache.get(key)  # result, until it expires
    """

    def __init__(
        self,
        lifetime_seconds: float = 30 * 60,
        max_entries: int = 512,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.lifetime_seconds = lifetime_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, ExecutionResult]]" = OrderedDict()

    def get(self, key: str) -> Optional[ExecutionResult]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, result = entry
        if self._clock() - stored_at >= self.lifetime_seconds:
            del self._entries[key]
            return None
        return result

    def put(self, key: str, result: ExecutionResult) -> None:
        now = self._clock()
        self._entries.pop(key, None)
        self._entries[key] = (now, result)
        self._purge(now)

    def _purge(self, now: float) -> None:
        stale = [k for k, (stored_at, _) in self._entries.items()
                 if now - stored_at >= self.lifetime_seconds]
        for key in stale:
            del self._entries[key]
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
