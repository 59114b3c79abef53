"""Fan-out notification of build outcomes to passive observers."""

from __future__ import annotations

import logging
import queue
import threading
from pathlib import Path
from typing import Any, Iterable, Protocol, runtime_checkable

from crown.build.models import BuildAttempt

LOGGER = logging.getLogger(__name__)

BUILDING_EVENT = "crown:building"
SUCCESS_EVENT = "crown:success"
ERROR_EVENT = "crown:error"


@runtime_checkable
class BuildObserver(Protocol):
    def on_build_start(self) -> None: ...

    def on_build_result(self, attempt: BuildAttempt) -> None: ...

    def on_restart_required(self, path: Path) -> None: ...


class PushChannel(Protocol):
    """Anything that can broadcast a named event with a JSON payload."""

    def broadcast(self, event: str, payload: dict[str, Any]) -> None: ...


class ObserverChannel:
    """Deliver notifications to observers on a dedicated dispatcher thread.

    Publishing only enqueues, so a slow observer never delays the caller.
    Exceptions raised by observers are logged and contained.
    """

    _STOP = object()

    def __init__(self, observers: Iterable[BuildObserver] = (), logger: logging.Logger | None = None) -> None:
        self.logger = logger or LOGGER
        self._observers: list[BuildObserver] = list(observers)
        self._observers_lock = threading.Lock()
        self._queue: queue.Queue[Any] = queue.Queue()
        self._closed = False
        self._thread = threading.Thread(target=self._dispatch_loop, name="crown-observers", daemon=True)
        self._thread.start()

    def add_observer(self, observer: BuildObserver) -> None:
        with self._observers_lock:
            self._observers.append(observer)

    def build_started(self) -> None:
        self._publish("on_build_start")

    def build_result(self, attempt: BuildAttempt) -> None:
        self._publish("on_build_result", attempt)

    def restart_required(self, path: Path) -> None:
        self._publish("on_restart_required", path)

    def drain(self, timeout: float | None = None) -> bool:
        """Wait until everything published so far has been delivered."""

        if self._closed:
            return True
        marker = threading.Event()
        self._queue.put(marker)
        return marker.wait(timeout)

    def close(self, timeout: float | None = 5.0) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put(self._STOP)
        self._thread.join(timeout)

    def _publish(self, method: str, *args: Any) -> None:
        if self._closed:
            self.logger.debug("observers.publish_after_close method=%s", method)
            return
        self._queue.put((method, args))

    def _dispatch_loop(self) -> None:
        while True:
            item = self._queue.get()
            if item is self._STOP:
                return
            if isinstance(item, threading.Event):
                item.set()
                continue
            method, args = item
            with self._observers_lock:
                observers = list(self._observers)
            for observer in observers:
                try:
                    getattr(observer, method)(*args)
                except Exception:
                    self.logger.exception(
                        "observers.observer_failed observer=%s method=%s",
                        type(observer).__name__,
                        method,
                    )


class TerminalObserver:
    """Report build progress and outcomes through logging."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("crown")

    def on_build_start(self) -> None:
        self.logger.info("watch.build_starting")

    def on_build_result(self, attempt: BuildAttempt) -> None:
        if attempt.succeeded:
            self.logger.info(
                "watch.build_succeeded duration_ms=%s documents=%s html=%s pdf=%s",
                round(attempt.duration_ms),
                attempt.document_count,
                attempt.html_path,
                attempt.pdf_path,
            )
        else:
            self.logger.error(
                "watch.build_failed kind=%s duration_ms=%s errors=%s",
                attempt.failure_kind,
                round(attempt.duration_ms),
                len(attempt.errors),
            )
        for warning in attempt.warnings:
            self.logger.warning("watch.build_warning %s", warning)
        for error in attempt.errors:
            self.logger.error("watch.build_error %s", error)

    def on_restart_required(self, path: Path) -> None:
        self.logger.warning("watch.config_changed path=%s; restart to apply configuration changes", path)


class LiveReloadObserver:
    """Translate build outcomes into live-reload push events."""

    def __init__(self, channel: PushChannel) -> None:
        self.channel = channel

    def on_build_start(self) -> None:
        self.channel.broadcast(BUILDING_EVENT, {})

    def on_build_result(self, attempt: BuildAttempt) -> None:
        if attempt.succeeded:
            self.channel.broadcast(SUCCESS_EVENT, {"duration": attempt.duration_ms})
        else:
            self.channel.broadcast(ERROR_EVENT, {"message": "\n".join(attempt.errors)})

    def on_restart_required(self, path: Path) -> None:
        # Clients keep showing the last PDF; the terminal carries the restart notice.
        return None
