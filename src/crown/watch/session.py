"""Watch session lifecycle: initial build, watching, graceful teardown."""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from crown.build.models import BuildAttempt
from crown.build.pipeline import execute_build
from crown.config import ResolvedConfig
from crown.watch.classify import ChangeEvent
from crown.watch.coordinator import BuildCoordinator, Pipeline
from crown.watch.debounce import DebounceCoalescer
from crown.watch.observers import BuildObserver, ObserverChannel
from crown.watch.watcher import FileWatcher

LOGGER = logging.getLogger(__name__)


class WatchSession:
    """Wire watcher -> coalescer -> coordinator -> observers for one configuration."""

    def __init__(
        self,
        config: ResolvedConfig,
        observers: Iterable[BuildObserver] = (),
        *,
        pipeline: Pipeline = execute_build,
        watcher: FileWatcher | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or LOGGER
        self.channel = ObserverChannel(observers, logger=self.logger)
        self.coordinator = BuildCoordinator(
            config,
            self.channel,
            pipeline=pipeline,
            rebuild_when_dirty=config.watch.rebuild_when_dirty,
            logger=self.logger,
        )
        self.coalescer: DebounceCoalescer[ChangeEvent] = DebounceCoalescer(
            self.coordinator.trigger,
            delay_seconds=config.watch.debounce_ms / 1000.0,
            logger=self.logger,
        )
        self.watcher = watcher or FileWatcher(config, self.coalescer.notify, logger=self.logger)
        self._stopped = threading.Event()
        self._started = False

    def start(self) -> BuildAttempt | None:
        """Run the mandatory initial build, then begin watching regardless of its outcome."""

        if self._started:
            return None
        self._started = True
        self.logger.info("watch.initial_build")
        attempt = self.coordinator.run_initial_build()
        if attempt is not None and not attempt.succeeded:
            self.logger.warning("watch.initial_build_failed errors=%s; watching anyway", len(attempt.errors))
        self.watcher.start()
        return attempt

    def wait(self, timeout: float | None = None) -> bool:
        """Block until stop() is called."""

        return self._stopped.wait(timeout)

    def stop(self) -> None:
        if self._stopped.is_set():
            return
        self.logger.info("watch.stopping")
        self.watcher.stop()
        self.coalescer.close()
        self.coordinator.shutdown(wait=True)
        self.channel.drain(timeout=5.0)
        self.channel.close()
        self._stopped.set()
        self.logger.info("watch.stopped")
