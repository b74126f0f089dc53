"""
Tests for the rate-limited gateway.
"""

import asyncio
import time

import pytest

from alphdata.core.rate_limiter import RateLimitedGateway
from alphdata.exceptions import UpstreamUnavailableError


class TestRateLimitedGateway:

    def test_rejects_invalid_settings(self):
        with pytest.raises(ValueError):
            RateLimitedGateway(max_concurrent=0)
        with pytest.raises(ValueError):
            RateLimitedGateway(min_delay=-1)

    @pytest.mark.asyncio
    async def test_never_exceeds_max_concurrent(self):
        gateway = RateLimitedGateway(max_concurrent=3, min_delay=0)
        running = 0
        peak = 0

        async def operation(i):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.02)
            running -= 1
            return i

        results = await asyncio.gather(*(gateway.execute(lambda i=i: operation(i)) for i in range(10)))

        assert results == list(range(10))
        assert peak == 3
        assert gateway.active_requests == 0
        assert gateway.queue_length == 0

    @pytest.mark.asyncio
    async def test_starts_are_fifo(self):
        gateway = RateLimitedGateway(max_concurrent=1, min_delay=0)
        order = []

        async def operation(i):
            order.append(i)
            await asyncio.sleep(0)

        await asyncio.gather(*(gateway.execute(lambda i=i: operation(i)) for i in range(5)))

        assert order == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    @pytest.mark.slow
    async def test_spaces_consecutive_starts(self):
        gateway = RateLimitedGateway(max_concurrent=3, min_delay=0.05)
        starts = []

        async def operation():
            starts.append(time.monotonic())

        await asyncio.gather(*(gateway.execute(operation) for _ in range(4)))

        gaps = [later - earlier for earlier, later in zip(starts, starts[1:])]
        assert len(gaps) == 3
        assert all(gap >= 0.045 for gap in gaps)

    @pytest.mark.asyncio
    async def test_failure_rejects_only_its_caller_and_frees_slot(self):
        gateway = RateLimitedGateway(max_concurrent=1, min_delay=0)

        async def failing():
            raise UpstreamUnavailableError("node down")

        async def succeeding():
            return "ok"

        results = await asyncio.gather(
            gateway.execute(failing),
            gateway.execute(succeeding),
            return_exceptions=True,
        )

        assert isinstance(results[0], UpstreamUnavailableError)
        assert results[1] == "ok"
        assert gateway.active_requests == 0
        assert gateway.get_stats()["failed"] == 1
        assert gateway.get_stats()["executed"] == 1

    @pytest.mark.asyncio
    async def test_closed_gateway_rejects_new_work(self):
        gateway = RateLimitedGateway(min_delay=0)
        await gateway.aclose()

        async def operation():
            return 1

        with pytest.raises(UpstreamUnavailableError):
            await gateway.execute(operation)
