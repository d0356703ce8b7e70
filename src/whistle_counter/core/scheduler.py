"""Tick source and deferred callbacks backed by threads."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Timing services the session depends on."""

    def call_every(self, interval_s: float, callback: Callable[[], None]) -> Cancellable: ...

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> Cancellable: ...

    def submit(self, callback: Callable[[], None]) -> None: ...


class TickLoop(threading.Thread):
    """
    Calls ``callback`` every ``interval_s`` until cancelled.

    A failing callback is logged and the loop carries on with the next tick.
    """

    def __init__(self, interval_s: float, callback: Callable[[], None], name: str = "TickThread"):
        super().__init__(name=name, daemon=True)
        self._interval_s = interval_s
        self._callback = callback
        self._stop_event = threading.Event()

    def run(self) -> None:
        next_tick = time.monotonic()
        while not self._stop_event.is_set():
            try:
                self._callback()
            except Exception as e:
                logger.error(f"Tick callback failed: {e}", exc_info=True)
            next_tick += self._interval_s
            delay = next_tick - time.monotonic()
            if delay < 0:
                # Fell behind; resynchronize instead of bursting.
                next_tick = time.monotonic()
                delay = 0
            self._stop_event.wait(delay)
        logger.debug("Tick loop stopped")

    def cancel(self) -> None:
        self._stop_event.set()

    def is_cancelled(self) -> bool:
        return self._stop_event.is_set()


class ThreadingScheduler:
    """Scheduler implementation using daemon threads and ``threading.Timer``."""

    def call_every(self, interval_s: float, callback: Callable[[], None]) -> TickLoop:
        loop = TickLoop(interval_s, callback)
        loop.start()
        return loop

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay_s, callback)
        timer.daemon = True
        timer.start()
        return timer

    def submit(self, callback: Callable[[], None]) -> None:
        threading.Thread(target=callback, name="BackgroundTask", daemon=True).start()
