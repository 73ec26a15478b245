from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Generic, Hashable, Optional, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()

DIAGRAM_CACHE_SIZE = 100
FORMULA_CACHE_SIZE = 200


class LRUCache(Generic[V]):
    """Bounded mapping that evicts the least recently used key first.

    ``None`` is a valid value (a render that failed); absent keys are
    reported with the ``MISSING`` sentinel.
    """

    def __init__(self, capacity: int, name: str = "cache") -> None:
        if capacity < 1:
            raise ValueError("Cache capacity must be at least 1.")
        self.capacity = capacity
        self.name = name
        self._entries: "OrderedDict[Hashable, V]" = OrderedDict()

    def get(self, key: Hashable, default: Any = MISSING) -> V | Any:
        if key not in self._entries:
            return default
        self._entries.move_to_end(key)
        return self._entries[key]

    def set(self, key: Hashable, value: V) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        elif len(self._entries) >= self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("%s: evicted %r", self.name, _short(evicted))
        self._entries[key] = value

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[Hashable]:
        """Keys from least to most recently used."""
        return list(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


async def cached_render(
    cache: LRUCache[Optional[V]],
    key: Hashable,
    render: Callable[[], Awaitable[Optional[V]]],
    timeout: float | None = None,
) -> Optional[V]:
    """Return the cached result for ``key`` or render, store and return it.

    Failures (``None``, an exception or a timeout) are stored as ``None`` so
    the same source is not rendered twice within a run.
    """
    cached = cache.get(key)
    if cached is not MISSING:
        logger.debug("%s hit: %r", cache.name, _short(key))
        return cached

    logger.debug("%s miss: %r", cache.name, _short(key))
    try:
        if timeout is None:
            result = await render()
        else:
            result = await asyncio.wait_for(render(), timeout)
    except asyncio.TimeoutError:
        logger.warning("Rendering timed out after %.1fs: %r", timeout, _short(key))
        result = None
    except Exception as exc:
        logger.warning("Rendering failed for %r: %s", _short(key), exc)
        result = None
    cache.set(key, result)
    return result


def _short(key: Hashable, limit: int = 40) -> str:
    text = str(key)
    return text if len(text) <= limit else text[: limit - 3] + "..."
