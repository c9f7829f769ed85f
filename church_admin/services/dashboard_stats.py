from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from ..config import settings

logger = logging.getLogger(__name__)

LOAD_ERROR = "Failed to load statistics"

StatsPayload = Dict[str, Any]
StatsFetcher = Callable[[], Awaitable[StatsPayload]]
Subscriber = Callable[[], None]


def default_stats() -> Dict[str, int]:
    return {
        "totalMembers": 0,
        "totalMinistries": 0,
        "upcomingEvents": 0,
        "recentRegistrations": 0,
    }


def http_stats_fetcher(
    base_url: Optional[str] = None,
    *,
    timeout_s: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> StatsFetcher:
    """
    Build a fetcher that GETs /api/dashboard/stats and returns the JSON body.
    Non-2xx responses raise httpx.HTTPStatusError.
    """
    base = (base_url or settings.dashboard_api_base).rstrip("/")
    timeout = float(timeout_s if timeout_s is not None else settings.http_timeout_s)

    async def fetch() -> StatsPayload:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            r = await client.get(
                f"{base}/api/dashboard/stats",
                headers={
                    "Accept": "application/json",
                    "Cache-Control": "no-cache, no-store, must-revalidate",
                    "Pragma": "no-cache",
                    "Expires": "0",
                },
            )
            r.raise_for_status()
            data = r.json()
            if not isinstance(data, dict):
                raise ValueError("Unexpected stats response format")
            return data

    return fetch


class DashboardStatsStore:
    """
    Observable dashboard counters shared by every widget in a client process.

    - refresh() flips loading, notifies, fetches, stores, notifies again.
    - start() polls every interval_s on the running loop; stop() cancels.
    - Subscribers are plain callables with no arguments; read the store's
      attributes inside the callback.
    """

    def __init__(self, fetcher: StatsFetcher, interval_s: Optional[float] = None) -> None:
        self.fetcher = fetcher
        self.interval_s = float(interval_s if interval_s is not None else settings.stats_poll_interval_s)

        self.stats: Dict[str, Any] = default_stats()
        self.loading: bool = True
        self.error: Optional[str] = None

        self._subscribers: List[Subscriber] = []
        self._task: Optional[asyncio.Task] = None

    # ---- observers ----

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for cb in list(self._subscribers):
            try:
                cb()
            except Exception:
                logger.exception("Dashboard stats subscriber failed")

    # ---- refresh ----

    async def refresh(self) -> None:
        self.loading = True
        self._notify()

        try:
            payload = await self.fetcher()
        except Exception as e:
            logger.warning("Dashboard stats fetch failed: %s", e)
            self.stats = default_stats()
            self.error = LOAD_ERROR
        else:
            if payload.get("success"):
                self.stats = dict(payload.get("stats") or default_stats())
                self.error = None
            else:
                self.stats = dict(payload.get("stats") or default_stats())
                self.error = LOAD_ERROR

        self.loading = False
        self._notify()

    # ---- lifecycle ----

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _poll(self) -> None:
        while True:
            await self.refresh()
            await asyncio.sleep(self.interval_s)

    def start(self) -> None:
        """Start polling on the running event loop. Calling twice is a no-op."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._poll())
        logger.info("Dashboard stats polling every %.0fs", self.interval_s)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
