"""Simulated-time scheduler and repeating timer used to drive tick callbacks."""

from __future__ import annotations

import heapq
import logging
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class SimScheduler:
    """Minimal discrete-event queue ordered by ``(time, seq)``."""

    def __init__(self) -> None:
        self._queue: List[Tuple[float, int, Callable[[], Any]]] = []
        self._seq = 0
        self.now_s = 0.0
        self._stopped = False

    def schedule(self, delay_s: float, callback: Callable[[], Any]) -> None:
        if delay_s < 0:
            raise ValueError(f"delay_s must be >= 0, got {delay_s}")
        if self._stopped:
            return
        heapq.heappush(self._queue, (self.now_s + delay_s, self._seq, callback))
        self._seq += 1

    def stop(self) -> None:
        """Signal simulation end; pending and later-scheduled events are discarded."""
        self._stopped = True
        self._queue.clear()

    def run(self, until_s: Optional[float] = None) -> None:
        """Dispatch events in time order until empty, stopped or past ``until_s``."""
        while self._queue and not self._stopped:
            t, _, callback = self._queue[0]
            if until_s is not None and t > until_s:
                break
            heapq.heappop(self._queue)
            self.now_s = t
            callback()
        if until_s is not None and not self._stopped:
            self.now_s = max(self.now_s, until_s)

    def __len__(self) -> int:
        return len(self._queue)


class RepeatingTimer:
    """
    Re-arms a callback every ``period_s`` of simulated time.

    The callback knows nothing about re-arming; ``cancel()`` (or the
    scheduler's ``stop()``) ends the chain cleanly.
    """

    def __init__(
        self,
        scheduler: SimScheduler,
        period_s: float,
        callback: Callable[[], Any],
    ) -> None:
        if period_s <= 0:
            raise ValueError(f"period_s must be > 0, got {period_s}")
        self.scheduler = scheduler
        self.period_s = float(period_s)
        self.callback = callback
        self.fired = 0
        self.active = False

    def start(self, delay_s: float = 0.0) -> None:
        self.active = True
        self.scheduler.schedule(delay_s, self._fire)

    def cancel(self) -> None:
        self.active = False

    def _fire(self) -> None:
        if not self.active:
            return
        self.fired += 1
        self.callback()
        if self.active:
            self.scheduler.schedule(self.period_s, self._fire)
        else:
            logger.debug("timer cancelled after %d ticks", self.fired)
