"""Connection and throughput metrics for the broadcast server.

The recorder keeps a live connection counter, a cumulative message counter and
a bounded log of send timestamps. The log is a ``collections.deque`` with a
fixed ``maxlen`` so appending past capacity silently drops the oldest entry in
O(1); the rolling rate is computed on demand from that log.

Notes:
- Timestamps come from an injectable clock (``time.monotonic`` by default) so
  rates are unaffected by wall-clock adjustments and tests can freeze time.
- ``reset()`` clears cumulative activity only. The connection counter reflects
  live sockets and survives a reset, as does the uptime origin.
"""

import logging
import math
import time
from collections import deque
from typing import Callable, Optional, Tuple

from models import MetricsSnapshot

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1000
DEFAULT_WINDOW_SECONDS = 5.0


class MetricsRecorder:
    def __init__(self,
                 capacity: int = DEFAULT_CAPACITY,
                 window_seconds: float = DEFAULT_WINDOW_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.capacity = capacity
        self.window_seconds = window_seconds
        self.clock = clock
        self.started_at = clock()
        self._connections = 0
        self._messages_sent = 0
        self._timestamps: deque[float] = deque(maxlen=capacity)

    @property
    def connections(self) -> int:
        return self._connections

    @property
    def total_messages_sent(self) -> int:
        return self._messages_sent

    @property
    def timestamps(self) -> Tuple[float, ...]:
        return tuple(self._timestamps)

    def add_connection(self) -> None:
        self._connections += 1

    def remove_connection(self) -> None:
        # Unmatched removal is a caller bug; keep the counter meaningful.
        if self._connections <= 0:
            logger.warning("remove_connection called with no active connections; ignoring")
            return
        self._connections -= 1

    def record_message(self) -> None:
        self._messages_sent += 1
        self._timestamps.append(self.clock())

    def messages_per_second(self, window_seconds: Optional[float] = None) -> float:
        """Rate of recorded sends over the trailing ``window_seconds``.

        Contract:
        - Counts log entries with timestamp >= now - window and divides by the
          window length.
        - Returns 0.0 when the log is empty or every entry is stale.
        - The log holds at most ``capacity`` entries, so the rate saturates at
          ``capacity / window`` under heavy load.
        """
        window = self.window_seconds if window_seconds is None else window_seconds
        if window <= 0:
            raise ValueError("window_seconds must be > 0")
        if not self._timestamps:
            return 0.0

        cutoff = self.clock() - window
        recent = 0
        # Newest entries sit at the right; stop at the first stale one.
        for ts in reversed(self._timestamps):
            if ts < cutoff:
                break
            recent += 1
        return recent / window

    def uptime(self) -> int:
        return int(self.clock() - self.started_at)

    def snapshot(self) -> MetricsSnapshot:
        rate = self.messages_per_second()
        return MetricsSnapshot(
            connections=self._connections,
            total_messages_sent=self._messages_sent,
            messages_per_second=round(rate, 2),
            throughput=math.floor(rate),
            uptime=self.uptime(),
        )

    def reset(self) -> None:
        self._messages_sent = 0
        self._timestamps.clear()
