from __future__ import annotations

"""Request Deduplication
=======================

Collapses concurrent requests for the same resource into a single in-flight
call. Every caller awaiting a key receives the same outcome, success or
failure, and the key is released as soon as the call settles so the next
request starts fresh.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, TypeVar

from loguru import logger

__all__ = ["RequestDeduplicator"]

T = TypeVar("T")


class RequestDeduplicator:
    """Share one in-flight coroutine per key among concurrent callers.

    Example:
        ```python
        dedup = RequestDeduplicator("token-list")
        tokens = await dedup.dedupe("mainnet", fetch_token_list)
        ```

    A factory may itself call ``dedupe`` for a different key; nothing here
    holds a lock across the await, so nested keys cannot deadlock.
    """

    def __init__(self, name: str = "dedup"):
        self.name = name
        self._in_flight: Dict[str, asyncio.Task] = {}
        self._stats = {"calls": 0, "started": 0, "shared": 0}

    async def dedupe(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """Run ``factory`` for ``key`` unless a call for it is already running.

        Args:
            key: Resource identifier
            factory: Zero-argument coroutine function performing the fetch

        Returns:
            The result of the shared call. Its exception propagates to every waiter.
        """
        self._stats["calls"] += 1

        task = self._in_flight.get(key)
        if task is not None:
            self._stats["shared"] += 1
            logger.debug(f"[{self.name}] Joining in-flight request for '{key}'")
        else:
            self._stats["started"] += 1
            task = asyncio.ensure_future(self._run(key, factory))
            self._in_flight[key] = task

        # A cancelled waiter must not cancel the call the others are sharing
        return await asyncio.shield(task)

    async def _run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        try:
            return await factory()
        finally:
            self._in_flight.pop(key, None)

    def in_flight(self, key: str) -> bool:
        """Whether a call for ``key`` is currently running."""
        return key in self._in_flight

    @property
    def pending_count(self) -> int:
        return len(self._in_flight)

    def get_stats(self) -> Dict[str, Any]:
        return {**self._stats, "in_flight": sorted(self._in_flight)}
