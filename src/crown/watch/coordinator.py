"""Single-flight build coordination for watch sessions."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from crown.build.models import BuildAttempt
from crown.build.pipeline import execute_build
from crown.config import ResolvedConfig
from crown.utils.time_utils import now_utc
from crown.watch.classify import ChangeEvent
from crown.watch.observers import ObserverChannel

LOGGER = logging.getLogger(__name__)

Pipeline = Callable[[ResolvedConfig], BuildAttempt]


class TriggerOutcome(str, Enum):
    STARTED = "started"
    DROPPED = "dropped"
    RESTART_REQUIRED = "restart_required"
    CLOSED = "closed"


@dataclass(slots=True)
class CoordinatorState:
    """Mutable coordinator state; only touched while holding the coordinator lock."""

    building: bool = False
    dirty_since_build_start: bool = False
    pending_event: ChangeEvent | None = None


class BuildCoordinator:
    """Run at most one pipeline at a time and report every attempt exactly once.

    Triggers arriving mid-build are dropped but mark the state dirty; when
    rebuild_when_dirty is set, one follow-up build starts as soon as the
    running one completes. Config changes never start a build.
    """

    def __init__(
        self,
        config: ResolvedConfig,
        channel: ObserverChannel,
        *,
        pipeline: Pipeline = execute_build,
        rebuild_when_dirty: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.channel = channel
        self.pipeline = pipeline
        self.rebuild_when_dirty = rebuild_when_dirty
        self.logger = logger or LOGGER
        self.state = CoordinatorState()
        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._closed = False
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="crown-build")

    @property
    def is_building(self) -> bool:
        with self._lock:
            return self.state.building

    def _try_begin(self) -> bool:
        """Atomically move Idle -> Building; False when a build is already running."""

        with self._lock:
            if self._closed or self.state.building:
                return False
            self._begin_locked()
            return True

    def _begin_locked(self) -> None:
        self.state.building = True
        self.state.dirty_since_build_start = False
        self.state.pending_event = None
        self._idle.clear()

    def run_initial_build(self) -> BuildAttempt | None:
        """Run one build synchronously on the calling thread; None if one is already running."""

        if not self._try_begin():
            self.logger.debug("coordinator.initial_build_skipped")
            return None
        return self._run(None)

    def trigger(self, event: ChangeEvent) -> TriggerOutcome:
        """React to one coalesced change event without ever blocking on a build."""

        if event.category == "config":
            with self._lock:
                if self._closed:
                    return TriggerOutcome.CLOSED
            self.logger.info("coordinator.restart_required path=%s", event.path)
            self.channel.restart_required(event.path)
            return TriggerOutcome.RESTART_REQUIRED

        with self._lock:
            if self._closed:
                return TriggerOutcome.CLOSED
            if self.state.building:
                # Same critical section as _complete(), which reads the flag.
                self.state.dirty_since_build_start = True
                self.state.pending_event = event
                started = False
            else:
                self._begin_locked()
                started = True

        if not started:
            self.logger.debug("coordinator.trigger_dropped category=%s path=%s", event.category, event.path)
            return TriggerOutcome.DROPPED
        self.logger.info("coordinator.build_triggered category=%s kind=%s path=%s", event.category, event.kind, event.path)
        self._submit(event)
        return TriggerOutcome.STARTED

    def wait_idle(self, timeout: float | None = None) -> bool:
        return self._idle.wait(timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Refuse new triggers and optionally wait for the in-flight build."""

        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)

    def _submit(self, event: ChangeEvent | None) -> None:
        try:
            self._executor.submit(self._run, event)
        except RuntimeError:
            # Executor already shut down.
            self._finish_without_run()

    def _finish_without_run(self) -> None:
        with self._lock:
            self.state.building = False
            self.state.dirty_since_build_start = False
            self.state.pending_event = None
            self._idle.set()

    def _run(self, event: ChangeEvent | None) -> BuildAttempt:
        self.channel.build_started()
        started_at = now_utc()
        try:
            attempt = self.pipeline(self.config)
        except Exception as exc:
            self.logger.exception("coordinator.pipeline_raised")
            attempt = BuildAttempt.failed(
                started_at=started_at,
                duration_ms=0.0,
                html_path=self.config.html_output,
                pdf_path=self.config.pdf_output,
                errors=[f"{type(exc).__name__}: {exc}"],
                failure_kind="unexpected_error",
            )
        self.channel.build_result(attempt)
        self._complete()
        return attempt

    def _complete(self) -> None:
        with self._lock:
            rerun = (
                self.rebuild_when_dirty
                and self.state.dirty_since_build_start
                and not self._closed
            )
            follow_up = self.state.pending_event
            self.state.dirty_since_build_start = False
            self.state.pending_event = None
            if not rerun:
                self.state.building = False
                self._idle.set()
                return
        # Stay in Building so no other trigger can slip in between.
        self.logger.info("coordinator.rebuild_dirty path=%s", follow_up.path if follow_up else None)
        self._submit(follow_up)
