"""Coalesce bursts of change events into one trigger carrying the latest event."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, TypeVar

LOGGER = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3

E = TypeVar("E")


class DebounceCoalescer(Generic[E]):
    """Invoke callback once per quiet period with the most recent event.

    Every notify() restarts the timer; events replaced before the timer
    fires are discarded, not merged.
    """

    def __init__(
        self,
        callback: Callable[[E], None],
        delay_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        logger: logging.Logger | None = None,
    ) -> None:
        self.callback = callback
        self.delay_seconds = max(0.0, delay_seconds)
        self.logger = logger or LOGGER
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._latest: E | None = None
        self._generation = 0
        self._closed = False

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def notify(self, event: E) -> None:
        with self._lock:
            if self._closed:
                return
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._latest = event
            timer = threading.Timer(self.delay_seconds, self._fire, args=(self._generation,))
            timer.daemon = True
            timer.name = "crown-debounce"
            self._timer = timer
            timer.start()

    def cancel(self) -> None:
        """Drop any pending event without invoking the callback."""

        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._latest = None
            self._generation += 1

    def close(self) -> None:
        self.cancel()
        with self._lock:
            self._closed = True

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A newer notify() or cancel() superseded this timer.
            if generation != self._generation or self._latest is None:
                return
            event = self._latest
            self._latest = None
            self._timer = None
        try:
            self.callback(event)
        except Exception:
            self.logger.exception("debounce.callback_failed event=%s", event)
