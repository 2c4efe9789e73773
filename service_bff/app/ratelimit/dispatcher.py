"""
Process-wide rate-limited dispatcher for outbound upstream calls.

Every upstream request (directory resolution and resource traffic alike)
goes through one dispatcher, which caps how many requests are in flight and
how closely consecutive requests may start. Admission is serialized through
a single lock, so waiters are admitted strictly in arrival order.
"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from shared.logging import get_logger
from shared.metrics import MetricsCollector


DEFAULT_MAX_CONCURRENT = 5
DEFAULT_MIN_INTERVAL = 0.1  # seconds


class RateLimitedDispatcher:
    """Concurrency ceiling plus minimum inter-request spacing over httpx."""

    def __init__(
        self,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        min_interval: float = DEFAULT_MIN_INTERVAL,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        metrics: Optional[MetricsCollector] = None,
    ):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if min_interval < 0:
            raise ValueError("min_interval must not be negative")

        self.max_concurrent = max_concurrent
        self.min_interval = min_interval
        self.metrics = metrics
        self.logger = get_logger("bff.dispatcher")

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

        self._slots = asyncio.Semaphore(max_concurrent)
        self._admission = asyncio.Lock()
        self._last_start: Optional[float] = None

        self._in_flight = 0
        self._peak_in_flight = 0
        self._queued = 0
        self._dispatched = 0

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def build_request(self, method: str, url: str, **kwargs: Any) -> httpx.Request:
        """Build a request on the dispatcher's client (headers, cookies, timeout)."""
        return self._client.build_request(method, url, **kwargs)

    async def dispatch(self, request: httpx.Request) -> httpx.Response:
        """Send ``request`` once a slot is free and the spacing interval has passed.

        Transport errors propagate unchanged and status codes are not
        interpreted; both are the caller's concern.
        """
        self._queued += 1
        try:
            async with self._admission:
                await self._slots.acquire()
                try:
                    await self._wait_for_spacing()
                except BaseException:
                    self._slots.release()
                    raise
        finally:
            self._queued -= 1

        self._enter()
        try:
            return await self._client.send(request)
        finally:
            self._leave()
            self._slots.release()

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Build and dispatch a request in one call."""
        return await self.dispatch(self.build_request(method, url, **kwargs))

    async def _wait_for_spacing(self) -> None:
        loop = asyncio.get_running_loop()
        if self._last_start is not None and self.min_interval > 0:
            delay = self._last_start + self.min_interval - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
        self._last_start = loop.time()

    def _enter(self) -> None:
        self._in_flight += 1
        self._dispatched += 1
        self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
        if self.metrics:
            self.metrics.set_gauge("dispatch_in_flight", self._in_flight)

    def _leave(self) -> None:
        self._in_flight -= 1
        if self.metrics:
            self.metrics.set_gauge("dispatch_in_flight", self._in_flight)

    def stats(self) -> Dict[str, Any]:
        """Get dispatcher statistics."""
        return {
            "max_concurrent": self.max_concurrent,
            "min_interval_seconds": self.min_interval,
            "in_flight": self._in_flight,
            "peak_in_flight": self._peak_in_flight,
            "queued": self._queued,
            "dispatched": self._dispatched,
        }

    async def aclose(self) -> None:
        """Close the underlying client if the dispatcher created it."""
        if self._owns_client:
            await self._client.aclose()
            self.logger.info("Dispatcher client closed")
