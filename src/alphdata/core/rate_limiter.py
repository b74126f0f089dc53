from __future__ import annotations

"""Rate-Limited Gateway
======================

A bounded-concurrency FIFO queue for upstream calls. Two invariants hold for
every gateway instance:

- at most ``max_concurrent`` operations run at any instant
- no operation starts sooner than ``min_delay`` seconds after the previous start

The gateway never retries. A failing operation rejects only its own caller
and always releases its slot.
"""

import asyncio
import time
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Optional, Set, Tuple, TypeVar

from loguru import logger

from alphdata.exceptions import UpstreamUnavailableError

__all__ = ["RateLimitedGateway"]

T = TypeVar("T")

Operation = Callable[[], Awaitable[Any]]


class RateLimitedGateway:
    """FIFO queue that paces and bounds calls to a remote service.

    Example:
        ```python
        gateway = RateLimitedGateway(max_concurrent=3, min_delay=0.1)
        balance = await gateway.execute(lambda: source.get_address_balance(address))
        ```
    """

    def __init__(
        self,
        max_concurrent: int = 3,
        min_delay: float = 0.1,
        name: str = "gateway",
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the gateway.

        Args:
            max_concurrent: Maximum number of operations running at once
            min_delay: Minimum seconds between two consecutive operation starts
            name: Label used in log lines
            clock: Monotonic clock in seconds
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if min_delay < 0:
            raise ValueError("min_delay cannot be negative")

        self.max_concurrent = max_concurrent
        self.min_delay = min_delay
        self.name = name
        self._clock = clock

        self._queue: Deque[Tuple[Operation, asyncio.Future]] = deque()
        self._running = 0
        self._last_start: Optional[float] = None
        self._drain_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

        self._stats = {"executed": 0, "failed": 0}

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Queue ``operation`` and wait for its outcome.

        Args:
            operation: Zero-argument coroutine function

        Returns:
            Whatever the operation returns; its exception propagates unchanged.
        """
        if self._closed:
            raise UpstreamUnavailableError(f"Gateway '{self.name}' is closed")

        future = asyncio.get_running_loop().create_future()
        self._queue.append((operation, future))
        self._schedule_drain()
        return await future

    def _schedule_drain(self) -> None:
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.ensure_future(self._drain())

    async def _drain(self) -> None:
        try:
            while self._queue and self._running < self.max_concurrent:
                operation, future = self._queue.popleft()
                if future.done():
                    # The caller stopped waiting before the task started
                    continue

                if self._last_start is not None:
                    wait = self.min_delay - (self._clock() - self._last_start)
                    if wait > 0:
                        try:
                            await asyncio.sleep(wait)
                        except asyncio.CancelledError:
                            if not future.done():
                                future.set_exception(
                                    UpstreamUnavailableError(f"Gateway '{self.name}' is closed")
                                )
                            raise
                    if future.done():
                        continue

                self._last_start = self._clock()
                self._running += 1
                task = asyncio.ensure_future(self._run(operation, future))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
        finally:
            self._drain_task = None

    async def _run(self, operation: Operation, future: asyncio.Future) -> None:
        try:
            result = await operation()
        except asyncio.CancelledError:
            if not future.done():
                future.cancel()
            raise
        except Exception as e:
            self._stats["failed"] += 1
            logger.debug(f"[{self.name}] Operation failed: {e}")
            if not future.done():
                future.set_exception(e)
        else:
            self._stats["executed"] += 1
            if not future.done():
                future.set_result(result)
        finally:
            self._running -= 1
            if not self._closed:
                self._schedule_drain()

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    @property
    def active_requests(self) -> int:
        return self._running

    def get_stats(self) -> Dict[str, Any]:
        return {
            "queue_length": self.queue_length,
            "active_requests": self.active_requests,
            "max_concurrent": self.max_concurrent,
            "min_delay": self.min_delay,
            **self._stats,
        }

    async def aclose(self) -> None:
        """Reject queued operations and wait for running ones to settle."""
        self._closed = True
        while self._queue:
            _, future = self._queue.popleft()
            if not future.done():
                future.set_exception(UpstreamUnavailableError(f"Gateway '{self.name}' is closed"))
        if self._drain_task is not None:
            self._drain_task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        logger.debug(f"[{self.name}] Gateway closed")
