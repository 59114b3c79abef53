from __future__ import annotations

import threading
import time
from pathlib import Path

import pytest

from crown.build.models import BuildAttempt
from crown.utils.time_utils import now_utc
from crown.watch.classify import ChangeEvent
from crown.watch.coordinator import BuildCoordinator, TriggerOutcome
from crown.watch.observers import ObserverChannel


class RecordingObserver:
    def __init__(self) -> None:
        self.events: list[tuple[str, object]] = []

    def on_build_start(self) -> None:
        self.events.append(("start", None))

    def on_build_result(self, attempt: BuildAttempt) -> None:
        self.events.append(("result", attempt))

    def on_restart_required(self, path: Path) -> None:
        self.events.append(("restart", path))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


class GatedPipeline:
    """Pipeline that blocks until released and tracks concurrent executions."""

    def __init__(self, succeed: bool = True, gated: bool = True) -> None:
        self.succeed = succeed
        self.release = threading.Event()
        if not gated:
            self.release.set()
        self.entered = threading.Event()
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def __call__(self, config) -> BuildAttempt:
        with self._lock:
            self.calls += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        self.entered.set()
        self.release.wait(5.0)
        with self._lock:
            self.active -= 1
        return BuildAttempt(
            started_at=now_utc(),
            succeeded=self.succeed,
            duration_ms=1.0,
            document_count=3,
            html_path=config.html_output,
            pdf_path=config.pdf_output,
            errors=() if self.succeed else ("RenderError: missing",),
        )


def _event(category: str = "content", name: str = "chapter.md") -> ChangeEvent:
    return ChangeEvent(category=category, path=Path("/book") / name, kind="modified")


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def channel(observer):
    channel = ObserverChannel([observer])
    yield channel
    channel.close()


def test_initial_build_runs_synchronously(project_config, channel, observer) -> None:
    pipeline = GatedPipeline(gated=False)
    coordinator = BuildCoordinator(project_config, channel, pipeline=pipeline)

    attempt = coordinator.run_initial_build()

    assert attempt is not None and attempt.succeeded
    assert not coordinator.is_building
    assert channel.drain(2.0)
    assert observer.names() == ["start", "result"]
    coordinator.shutdown()


def test_trigger_while_building_is_dropped_without_extra_attempt(project_config, channel, observer) -> None:
    pipeline = GatedPipeline()
    coordinator = BuildCoordinator(project_config, channel, pipeline=pipeline, rebuild_when_dirty=False)

    assert coordinator.trigger(_event()) is TriggerOutcome.STARTED
    assert pipeline.entered.wait(2.0)
    assert coordinator.trigger(_event(name="other.md")) is TriggerOutcome.DROPPED
    assert coordinator.trigger(_event("template", "layout.html")) is TriggerOutcome.DROPPED

    pipeline.release.set()
    assert coordinator.wait_idle(2.0)
    assert channel.drain(2.0)

    assert pipeline.calls == 1
    assert observer.names() == ["start", "result"]
    coordinator.shutdown()


def test_dirty_flag_runs_exactly_one_follow_up_build(project_config, channel, observer) -> None:
    pipeline = GatedPipeline()
    coordinator = BuildCoordinator(project_config, channel, pipeline=pipeline, rebuild_when_dirty=True)

    coordinator.trigger(_event())
    assert pipeline.entered.wait(2.0)
    for index in range(4):
        assert coordinator.trigger(_event(name=f"{index}.md")) is TriggerOutcome.DROPPED

    pipeline.release.set()
    deadline = time.monotonic() + 5.0
    while pipeline.calls < 2 and time.monotonic() < deadline:
        time.sleep(0.01)
    assert coordinator.wait_idle(5.0)
    assert channel.drain(2.0)

    assert pipeline.calls == 2
    assert observer.names() == ["start", "result", "start", "result"]
    coordinator.shutdown()


def test_config_trigger_while_building_emits_one_restart_and_no_build(project_config, channel, observer) -> None:
    pipeline = GatedPipeline()
    coordinator = BuildCoordinator(project_config, channel, pipeline=pipeline, rebuild_when_dirty=True)

    coordinator.trigger(_event())
    assert pipeline.entered.wait(2.0)
    config_path = project_config.root / "crown.yaml"
    outcome = coordinator.trigger(ChangeEvent(category="config", path=config_path, kind="modified"))
    assert outcome is TriggerOutcome.RESTART_REQUIRED

    pipeline.release.set()
    assert coordinator.wait_idle(2.0)
    assert channel.drain(2.0)

    assert pipeline.calls == 1
    assert observer.names().count("restart") == 1
    assert ("restart", config_path) in observer.events
    coordinator.shutdown()


def test_config_trigger_while_idle_never_builds(project_config, channel, observer) -> None:
    pipeline = GatedPipeline(gated=False)
    coordinator = BuildCoordinator(project_config, channel, pipeline=pipeline)

    outcome = coordinator.trigger(_event("config", "crown.yaml"))

    assert outcome is TriggerOutcome.RESTART_REQUIRED
    assert channel.drain(2.0)
    assert pipeline.calls == 0
    assert observer.names() == ["restart"]
    coordinator.shutdown()


def test_failed_build_returns_to_idle_and_accepts_triggers(project_config, channel, observer) -> None:
    pipeline = GatedPipeline(succeed=False, gated=False)
    coordinator = BuildCoordinator(project_config, channel, pipeline=pipeline)

    assert coordinator.trigger(_event()) is TriggerOutcome.STARTED
    assert coordinator.wait_idle(2.0)
    assert not coordinator.is_building
    assert coordinator.trigger(_event()) is TriggerOutcome.STARTED
    assert coordinator.wait_idle(2.0)
    assert channel.drain(2.0)

    results = [payload for name, payload in observer.events if name == "result"]
    assert len(results) == 2
    assert all(not attempt.succeeded and attempt.errors for attempt in results)
    coordinator.shutdown()


def test_pipeline_exception_is_contained(project_config, channel, observer) -> None:
    def exploding(config):
        raise RuntimeError("kaboom")

    coordinator = BuildCoordinator(project_config, channel, pipeline=exploding)

    attempt = coordinator.run_initial_build()

    assert attempt is not None
    assert not attempt.succeeded
    assert attempt.errors == ("RuntimeError: kaboom",)
    assert not coordinator.is_building
    coordinator.shutdown()


def test_concurrent_triggers_never_overlap_builds(project_config, channel) -> None:
    pipeline = GatedPipeline(gated=False)
    coordinator = BuildCoordinator(project_config, channel, pipeline=pipeline, rebuild_when_dirty=True)
    start = threading.Barrier(8)

    def fire() -> None:
        start.wait()
        for index in range(25):
            coordinator.trigger(_event(name=f"{index}.md"))

    threads = [threading.Thread(target=fire) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(5.0)

    deadline = time.monotonic() + 5.0
    while coordinator.is_building and time.monotonic() < deadline:
        time.sleep(0.01)
    assert coordinator.wait_idle(5.0)
    assert pipeline.max_active == 1
    assert pipeline.calls >= 1
    assert not coordinator.state.dirty_since_build_start
    assert coordinator.state.pending_event is None
    coordinator.shutdown()


def test_triggers_after_shutdown_are_refused(project_config, channel) -> None:
    pipeline = GatedPipeline(gated=False)
    coordinator = BuildCoordinator(project_config, channel, pipeline=pipeline)
    coordinator.shutdown()

    assert coordinator.trigger(_event()) is TriggerOutcome.CLOSED
    assert pipeline.calls == 0


def test_trigger_racing_build_completion_gets_a_follow_up_build(project_config, channel, observer) -> None:
    pipeline = GatedPipeline(gated=False)
    coordinator = BuildCoordinator(project_config, channel, pipeline=pipeline, rebuild_when_dirty=True)
    original_complete = coordinator._complete
    outcomes: list[TriggerOutcome] = []

    def complete_after_late_trigger() -> None:
        if not outcomes:
            late = threading.Thread(target=lambda: outcomes.append(coordinator.trigger(_event(name="late.md"))))
            late.start()
            late.join(5.0)
        original_complete()

    coordinator._complete = complete_after_late_trigger

    assert coordinator.trigger(_event()) is TriggerOutcome.STARTED
    deadline = time.monotonic() + 5.0
    while pipeline.calls < 2 and time.monotonic() < deadline:
        time.sleep(0.01)
    assert coordinator.wait_idle(5.0)
    assert channel.drain(2.0)

    assert outcomes == [TriggerOutcome.DROPPED]
    assert pipeline.calls == 2
    assert not coordinator.is_building
    assert not coordinator.state.dirty_since_build_start
    assert observer.names() == ["start", "result", "start", "result"]
    coordinator.shutdown()


def test_config_trigger_after_shutdown_is_refused(project_config, channel, observer) -> None:
    coordinator = BuildCoordinator(project_config, channel, pipeline=GatedPipeline(gated=False))
    coordinator.shutdown()

    outcome = coordinator.trigger(_event("config", "crown.yaml"))

    assert outcome is TriggerOutcome.CLOSED
    assert channel.drain(2.0)
    assert observer.events == []
