"""Background scheduling on top of Flask-SocketIO's task primitives.

``socketio.start_background_task`` and ``socketio.sleep`` pick the right
implementation for the async mode in use (threads, eventlet or gevent).
"""

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TaskHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class SocketIOScheduler:
    def __init__(self, socketio):
        self.socketio = socketio

    def spawn(self, fn: Callable[[], None]) -> None:
        self.socketio.start_background_task(fn)

    def call_later(self, delay: float, fn: Callable[[], None]) -> TaskHandle:
        handle = TaskHandle()

        def _runner():
            self.socketio.sleep(delay)
            if not handle.cancelled:
                fn()

        self.socketio.start_background_task(_runner)
        return handle

    def sleep(self, seconds: float) -> None:
        self.socketio.sleep(seconds)


class Ticker:
    """Calls ``engine.tick()`` once per interval until stopped.

    Deadlines advance by a fixed step from a monotonic start so a slow tick
    does not push every later one back.
    """

    def __init__(self, engine, scheduler, interval: float = 1.0, clock: Callable[[], float] = time.monotonic):
        self.engine = engine
        self.scheduler = scheduler
        self.interval = interval
        self._clock = clock
        self._handle: Optional[TaskHandle] = None

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._handle.cancelled

    def start(self) -> None:
        if self.running:
            return
        handle = TaskHandle()
        self._handle = handle
        self.scheduler.spawn(lambda: self._loop(handle))
        logger.info(f"[ticker-start] interval={self.interval}s")

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            logger.info("[ticker-stop]")

    def _loop(self, handle: TaskHandle) -> None:
        next_at = self._clock() + self.interval
        while not handle.cancelled:
            self.scheduler.sleep(max(0.0, next_at - self._clock()))
            if handle.cancelled:
                return
            try:
                self.engine.tick()
            except Exception:
                logger.exception("[ticker-fail]")
            next_at += self.interval
            if next_at < self._clock():
                # fell behind (suspended host); resync instead of bursting
                next_at = self._clock() + self.interval
