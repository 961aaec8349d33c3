# broadcaster.py
import asyncio
import enum
import logging
from typing import Optional, Set

from fastapi import status

from metrics import MetricsRecorder
from models import UpdateMessage
from price_feed import PriceFeed, now_ms
from registry import ConnectionEntry, ConnectionRegistry

logger = logging.getLogger(__name__)


class SchedulerState(str, enum.Enum):
    IDLE = "idle"
    BROADCASTING = "broadcasting"


def release(entry: ConnectionEntry, registry: ConnectionRegistry, metrics: MetricsRecorder) -> bool:
    """Drop ``entry`` from the registry and the connection count, exactly once."""
    if not registry.remove(entry):
        return False
    metrics.remove_connection()
    return True


class BroadcastScheduler:
    def __init__(self,
                 feed: PriceFeed,
                 metrics: MetricsRecorder,
                 registry: ConnectionRegistry,
                 interval_ms: int = 1000,
                 send_timeout: Optional[float] = None):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")
        self.feed = feed
        self.metrics = metrics
        self.registry = registry
        self.interval_ms = interval_ms
        # Slow consumers may not hold a pass past the next tick.
        self.send_timeout = send_timeout if send_timeout is not None else interval_ms / 1000.0
        self.state = SchedulerState.IDLE
        self._task: Optional[asyncio.Task] = None
        self._closing: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> int:
        """Run one fan-out pass and return the number of successful sends.

        Sends run concurrently and the pass waits at most ``send_timeout``
        seconds for them. A send that raises or is still pending at the
        deadline counts as a failure: the entry is released and its socket
        closed in the background.
        """
        if len(self.registry) == 0:
            return 0

        self.state = SchedulerState.BROADCASTING
        try:
            message = UpdateMessage(
                stocks=self.feed.advance(),
                metrics=self.metrics.snapshot(),
                server_time=now_ms(),
            ).to_json()

            live = []
            for entry in self.registry.snapshot():
                if entry.is_open:
                    live.append(entry)
                else:
                    logger.warning("Client %s is not open, dropping it", entry.client_id)
                    release(entry, self.registry, self.metrics)
            if not live:
                return 0

            sends = [asyncio.ensure_future(entry.websocket.send_text(message)) for entry in live]
            _, pending = await asyncio.wait(sends, timeout=self.send_timeout)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

            success = 0
            for entry, task in zip(live, sends):
                if task in pending or task.cancelled():
                    logger.warning("Client %s too slow, dropping it", entry.client_id)
                    self._drop(entry)
                    continue
                error = task.exception()
                if error is not None:
                    logger.warning("Error sending to client %s: %s", entry.client_id, error)
                    self._drop(entry)
                    continue
                self.metrics.record_message()
                success += 1

            if success:
                logger.debug("Broadcast to %d clients", success)
            return success
        finally:
            self.state = SchedulerState.IDLE

    def _drop(self, entry: ConnectionEntry) -> None:
        if not release(entry, self.registry, self.metrics):
            return
        task = asyncio.create_task(self._close_quietly(entry))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _close_quietly(self, entry: ConnectionEntry) -> None:
        try:
            await entry.websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        except Exception as e:
            logger.debug("Error closing dropped client %s: %s", entry.client_id, e)

    async def _run(self):
        interval = self.interval_ms / 1000.0
        logger.info("Broadcast scheduler started (interval=%dms)", self.interval_ms)
        try:
            while True:
                await asyncio.sleep(interval)
                try:
                    await self.tick()
                except Exception:
                    logger.exception("Broadcast pass failed")
        except asyncio.CancelledError:
            logger.info("Broadcast scheduler cancelled.")
            raise

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)
