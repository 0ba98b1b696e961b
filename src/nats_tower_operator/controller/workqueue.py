"""De-duplicating work queue with delayed and rate limited re-adds."""

from __future__ import annotations

import heapq
import itertools
import threading
import time
from collections import deque
from typing import Hashable, Optional

from .. import metrics
from ..utils.rate_limit import RateLimiter, default_controller_rate_limiter


class RateLimitingQueue:
    """FIFO work queue shared by the workers of one controller.

    Guarantees:
        * an item waiting in the queue is not queued twice;
        * an item being processed is never handed to a second worker; if it is
          re-added meanwhile it is queued again once ``done`` is called;
        * after ``shut_down`` nothing is accepted and ``get`` returns at once
          with ``shutdown=True``, leaving items still waiting unprocessed.
    """

    def __init__(self, rate_limiter: RateLimiter | None = None, name: str = "") -> None:
        self.name = name
        self._rate_limiter = rate_limiter or default_controller_rate_limiter()
        self._queue: deque[Hashable] = deque()
        self._dirty: set[Hashable] = set()
        self._processing: set[Hashable] = set()
        self._waiting: list[tuple[float, int, Hashable]] = []
        self._counter = itertools.count()
        self._cond = threading.Condition()
        self._shutting_down = False
        self._delay_thread = threading.Thread(
            target=self._wait_loop,
            name=f"workqueue-delay-{name}" if name else "workqueue-delay",
            daemon=True,
        )
        self._delay_thread.start()

    def _report_depth(self) -> None:
        if self.name:
            metrics.workqueue_depth.labels(kind=self.name).set(len(self._queue))

    def add(self, item: Hashable) -> None:
        with self._cond:
            if self._shutting_down or item in self._dirty:
                return
            self._dirty.add(item)
            if item in self._processing:
                return
            self._queue.append(item)
            self._report_depth()
            self._cond.notify_all()

    def get(self, timeout: float | None = None) -> tuple[Optional[Hashable], bool]:
        """Block until an item is available.

        Args:
            timeout: Optional maximum wait in seconds

        Returns:
            ``(item, shutdown)``; ``item`` is None when shutting down or when
            the timeout expired
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while not self._queue and not self._shutting_down:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return None, False
                self._cond.wait(remaining)
            if self._shutting_down:
                return None, True
            item = self._queue.popleft()
            self._processing.add(item)
            self._dirty.discard(item)
            self._report_depth()
            return item, False

    def done(self, item: Hashable) -> None:
        with self._cond:
            self._processing.discard(item)
            if item in self._dirty and not self._shutting_down:
                self._queue.append(item)
                self._report_depth()
                self._cond.notify_all()

    def add_after(self, item: Hashable, delay: float) -> None:
        if delay <= 0:
            self.add(item)
            return
        with self._cond:
            if self._shutting_down:
                return
            heapq.heappush(self._waiting, (time.monotonic() + delay, next(self._counter), item))
            self._cond.notify_all()

    def add_rate_limited(self, item: Hashable) -> None:
        self.add_after(item, self._rate_limiter.when(item))

    def forget(self, item: Hashable) -> None:
        self._rate_limiter.forget(item)

    def num_requeues(self, item: Hashable) -> int:
        return self._rate_limiter.num_requeues(item)

    def shut_down(self) -> None:
        with self._cond:
            self._shutting_down = True
            self._cond.notify_all()

    def shutting_down(self) -> bool:
        with self._cond:
            return self._shutting_down

    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)

    def _wait_loop(self) -> None:
        """Move delayed items into the queue once their delay has elapsed."""
        while True:
            ready: list[Hashable] = []
            with self._cond:
                if self._shutting_down:
                    return
                now = time.monotonic()
                while self._waiting and self._waiting[0][0] <= now:
                    ready.append(heapq.heappop(self._waiting)[2])
                if not ready:
                    timeout = self._waiting[0][0] - now if self._waiting else None
                    self._cond.wait(timeout)
                    continue
            for item in ready:
                self.add(item)
