"""Incremental rebuild orchestration for watch and dev modes."""

from crown.watch.classify import ChangeEvent, classify, make_event
from crown.watch.coordinator import BuildCoordinator, CoordinatorState, TriggerOutcome
from crown.watch.debounce import DebounceCoalescer
from crown.watch.observers import (
    BuildObserver,
    LiveReloadObserver,
    ObserverChannel,
    TerminalObserver,
)
from crown.watch.session import WatchSession
from crown.watch.watcher import FileWatcher, is_watched_path, watch_patterns, watch_targets

__all__ = [
    "BuildCoordinator",
    "BuildObserver",
    "ChangeEvent",
    "CoordinatorState",
    "DebounceCoalescer",
    "FileWatcher",
    "LiveReloadObserver",
    "ObserverChannel",
    "TerminalObserver",
    "TriggerOutcome",
    "WatchSession",
    "classify",
    "is_watched_path",
    "make_event",
    "watch_patterns",
    "watch_targets",
]
