import heapq
import itertools
import logging
import time
from typing import Any, Callable, List, Optional, Tuple


class ScheduledTask:
    """A delayed callback that can be cancelled until it fires."""

    def __init__(self, deadline: float, callback: Callable[..., Any], args: Tuple[Any, ...], label: str = '') -> None:
        self.deadline = deadline
        self.callback = callback
        self.args = args
        self.label = label
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    def run(self, logger: Optional[logging.Logger] = None) -> None:
        if self.cancelled or self.fired:
            return
        self.fired = True
        try:
            self.callback(*self.args)
        except Exception:
            (logger or logging.getLogger(__name__)).exception(f"[timer-error] task={self.label}")


class BackgroundScheduler:
    """Runs delayed callbacks on Socket.IO background tasks.

    Each task sleeps through ``socketio.sleep`` so it cooperates with
    whichever async mode the server picked (threading, eventlet, gevent).
    """

    def __init__(self, socketio, logger: Optional[logging.Logger] = None) -> None:
        self.socketio = socketio
        self.logger = logger or logging.getLogger(__name__)

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any, label: str = '') -> ScheduledTask:
        task = ScheduledTask(self.now() + delay, callback, args, label)
        self.socketio.start_background_task(self._worker, task)
        return task

    def _worker(self, task: ScheduledTask) -> None:
        sleep_for = max(0.0, task.deadline - self.now())
        if sleep_for:
            self.socketio.sleep(sleep_for)
        if task.cancelled:
            self.logger.debug(f"[timer-skip] task={task.label} cancelled")
            return
        task.run(self.logger)


class ManualScheduler:
    """Virtual-clock scheduler; tasks fire only when ``advance`` is called."""

    def __init__(self, start: float = 0.0, logger: Optional[logging.Logger] = None) -> None:
        self._now = start
        self._queue: List[Tuple[float, int, ScheduledTask]] = []
        self._counter = itertools.count()
        self.logger = logger or logging.getLogger(__name__)

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any, label: str = '') -> ScheduledTask:
        task = ScheduledTask(self._now + delay, callback, args, label)
        heapq.heappush(self._queue, (task.deadline, next(self._counter), task))
        return task

    def pending(self) -> List[ScheduledTask]:
        return [task for _, _, task in sorted(self._queue) if not task.cancelled]

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due tasks in deadline order."""
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            deadline, _, task = heapq.heappop(self._queue)
            self._now = max(self._now, deadline)
            task.run(self.logger)
        self._now = target

    def run_all(self) -> None:
        while self._queue:
            self.advance(max(0.0, self._queue[0][0] - self._now))
