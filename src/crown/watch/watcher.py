"""Filesystem notifications via watchdog, filtered to the project's watched patterns."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from crown.build.pipeline import STYLESHEET_OUTPUT_NAME
from crown.config import CONFIG_FILE_NAMES, ResolvedConfig
from crown.content.discover import glob_base_dir
from crown.watch.classify import (
    CONTENT_EXTENSIONS,
    TEMPLATE_EXTENSIONS,
    ChangeEvent,
    ChangeKind,
    is_config_path,
    make_event,
    normalize_path,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WatchTarget:
    directory: Path
    recursive: bool


def watch_targets(config: ResolvedConfig) -> list[WatchTarget]:
    """Directories to schedule, merged so each is watched once."""

    wanted: dict[Path, bool] = {}

    def add(directory: Path, recursive: bool) -> None:
        wanted[directory] = wanted.get(directory, False) or recursive

    add(glob_base_dir(config.content_glob), True)
    add(config.template.parent, True)
    add(config.styles.parent, False)
    add(config.root, False)
    if config.helpers is not None:
        add(config.helpers.parent, False)
    return [WatchTarget(directory=directory, recursive=recursive) for directory, recursive in wanted.items()]


def watch_patterns(config: ResolvedConfig) -> list[str]:
    """Human-readable list of the patterns the watcher reacts to."""

    content_dir = glob_base_dir(config.content_glob)
    template_dir = config.template.parent
    patterns = [
        str(content_dir / "**" / "*.md"),
        str(template_dir / "**" / "*.{html,hbs}"),
        str(config.styles),
        *(str(config.root / name) for name in CONFIG_FILE_NAMES),
    ]
    if config.helpers is not None:
        patterns.append(str(config.helpers))
    return patterns


def _is_under(path: Path, directory: Path) -> bool:
    try:
        path.relative_to(normalize_path(directory))
    except ValueError:
        return False
    return True


def is_watched_path(path: str | os.PathLike[str], config: ResolvedConfig) -> bool:
    candidate = normalize_path(path)
    outputs = {
        normalize_path(config.html_output),
        normalize_path(config.pdf_output),
        normalize_path(config.html_output.parent / STYLESHEET_OUTPUT_NAME),
    }
    if candidate in outputs:
        return False
    if is_config_path(candidate, config):
        return True
    if config.helpers is not None and candidate == normalize_path(config.helpers):
        return True
    if candidate == normalize_path(config.styles):
        return True
    suffix = candidate.suffix.lower()
    if suffix in CONTENT_EXTENSIONS and _is_under(candidate, glob_base_dir(config.content_glob)):
        return True
    return suffix in TEMPLATE_EXTENSIONS and _is_under(candidate, config.template.parent)


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, watcher: "FileWatcher") -> None:
        super().__init__()
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        self.watcher.handle(event.src_path, "added", is_directory=event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        self.watcher.handle(event.src_path, "modified", is_directory=event.is_directory)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self.watcher.handle(event.src_path, "removed", is_directory=event.is_directory)

    def on_moved(self, event: FileSystemEvent) -> None:
        self.watcher.handle(event.src_path, "removed", is_directory=event.is_directory)
        self.watcher.handle(event.dest_path, "added", is_directory=event.is_directory)


class FileWatcher:
    """Translate watchdog events into classified ChangeEvents.

    Only changes after start() produce events; files already present are
    never reported.
    """

    def __init__(
        self,
        config: ResolvedConfig,
        on_event: Callable[[ChangeEvent], None],
        *,
        observer_factory: Callable[[], Observer] = Observer,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.on_event = on_event
        self.observer_factory = observer_factory
        self.logger = logger or LOGGER
        self._observer: Observer | None = None
        self._handler = _ChangeHandler(self)

    @property
    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def handle(self, src_path: str | bytes, kind: ChangeKind, *, is_directory: bool = False) -> ChangeEvent | None:
        """Classify and forward one raw event; returns the event when forwarded."""

        if is_directory or not src_path:
            return None
        path = os.fsdecode(src_path)
        if not is_watched_path(path, self.config):
            return None
        event = make_event(path, kind, self.config)
        self.logger.debug("watcher.event category=%s kind=%s path=%s", event.category, event.kind, event.path)
        self.on_event(event)
        return event

    def start(self) -> None:
        if self._observer is not None:
            return
        observer = self.observer_factory()
        for target in watch_targets(self.config):
            if not target.directory.is_dir():
                self.logger.warning("watcher.directory_missing directory=%s", target.directory)
                continue
            observer.schedule(self._handler, str(target.directory), recursive=target.recursive)
        observer.start()
        self._observer = observer
        self.logger.info("watcher.started patterns=%s", watch_patterns(self.config))

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop the observer and wait for its thread to exit."""

        observer = self._observer
        if observer is None:
            return
        self._observer = None
        observer.stop()
        observer.join(timeout)
        self.logger.info("watcher.stopped")
