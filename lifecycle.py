# lifecycle.py
import asyncio
import logging
import random
import time
from typing import Optional

from analysis import StockAnalyst
from broadcaster import BroadcastScheduler, release
from config import Settings
from metrics import MetricsRecorder
from price_feed import PriceFeed
from registry import ConnectionEntry, ConnectionRegistry

logger = logging.getLogger(__name__)


class StreamServer:
    """Owns the process-scoped state and its construction/teardown order.

    Construction: price feed and metrics first, then the registry, then the
    scheduler that depends on all three. Shutdown runs in reverse: stop the
    scheduler, close every registered connection, then drop the analyst.
    """

    def __init__(self, settings: Optional[Settings] = None, analyst: Optional[StockAnalyst] = None):
        self.settings = settings or Settings()
        seed = self.settings.price_feed_seed
        self.feed = PriceFeed(rng=random.Random(seed) if seed is not None else None)
        self.metrics = MetricsRecorder(
            capacity=self.settings.metrics_log_capacity,
            window_seconds=self.settings.metrics_window_seconds,
        )
        self.registry = ConnectionRegistry()
        self.scheduler = BroadcastScheduler(
            self.feed, self.metrics, self.registry,
            interval_ms=self.settings.broadcast_interval_ms,
        )
        self.analyst = analyst if analyst is not None else StockAnalyst.from_settings(self.settings)
        self.started_at = time.monotonic()
        self.accepting = False
        self._shutdown_started = False

    def uptime(self) -> float:
        return time.monotonic() - self.started_at

    async def start(self) -> None:
        self.scheduler.start()
        self.accepting = True
        logger.info("Stream server started: %d instruments, interval=%dms",
                    len(self.feed.instruments), self.settings.broadcast_interval_ms)

    async def _close_entry(self, entry: ConnectionEntry) -> None:
        try:
            await entry.websocket.close()
        except Exception as e:
            logger.warning("Error closing client %s: %s", entry.client_id, e)

    async def shutdown(self) -> None:
        if self._shutdown_started:
            return
        self._shutdown_started = True
        self.accepting = False
        logger.info("Shutting down stream server")

        await self.scheduler.stop()

        entries = self.registry.snapshot()
        if entries:
            logger.info("Closing %d client connections", len(entries))
            try:
                await asyncio.wait_for(
                    asyncio.gather(*(self._close_entry(e) for e in entries)),
                    timeout=self.settings.shutdown_grace_seconds,
                )
            except asyncio.TimeoutError:
                logger.warning("Timed out closing client connections after %.1fs",
                               self.settings.shutdown_grace_seconds)
        for entry in entries:
            release(entry, self.registry, self.metrics)

        if self.analyst is not None:
            await self.analyst.aclose()
        logger.info("Stream server stopped")
