"""
Background jobs for the dashboard API.

- Full data refresh for each configured business every 15 minutes
- Cache sweep for expired entries every few minutes
"""

import asyncio
from typing import Optional

from backend.config import CACHE_CLEANUP_INTERVAL_SECONDS, REFRESH_INTERVAL_SECONDS, get_refresh_tenants
from backend.services.cache_manager import CacheManager
from backend.services.data_aggregator import DataAggregator


class RefreshScheduler:
    """Runs the periodic refresh and cleanup loops as asyncio tasks."""

    def __init__(self, aggregator: DataAggregator, cache: CacheManager,
                 refresh_interval: float = REFRESH_INTERVAL_SECONDS,
                 cleanup_interval: float = CACHE_CLEANUP_INTERVAL_SECONDS,
                 tenants: Optional[list] = None):
        self.aggregator = aggregator
        self.cache = cache
        self.refresh_interval = refresh_interval
        self.cleanup_interval = cleanup_interval
        self.tenants = tenants if tenants is not None else get_refresh_tenants()
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self):
        """Start both loops on the running event loop."""
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(self._refresh_loop()),
            asyncio.create_task(self._cleanup_loop()),
        ]
        print(f"[Scheduler] Started (refresh every {self.refresh_interval}s, cleanup every {self.cleanup_interval}s)")

    async def stop(self):
        """Cancel both loops and wait for them to finish."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        print("[Scheduler] Stopped")

    async def run_refresh(self):
        """Refresh every configured business, one after another."""
        print("[Scheduler] Running scheduled data refresh...")
        for tenant_id in self.tenants:
            try:
                await self.aggregator.refresh_all_data(tenant_id)
            except Exception as e:
                print(f"[Scheduler] Data refresh failed for {tenant_id or 'default'}: {e}")

    async def _refresh_loop(self):
        while True:
            await asyncio.sleep(self.refresh_interval)
            await self.run_refresh()

    async def _cleanup_loop(self):
        while True:
            await asyncio.sleep(self.cleanup_interval)
            self.cache.cleanup()
