"""Map raw filesystem paths onto semantic change categories."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from crown.config import CONFIG_FILE_NAMES, ResolvedConfig

ChangeCategory = Literal["content", "template", "style", "config", "custom_logic"]
ChangeKind = Literal["added", "modified", "removed"]

CONTENT_EXTENSIONS = frozenset({".md", ".markdown"})
TEMPLATE_EXTENSIONS = frozenset({".html", ".htm", ".hbs", ".j2", ".jinja"})
STYLE_EXTENSIONS = frozenset({".css", ".scss"})

REBUILD_CATEGORIES: frozenset[str] = frozenset({"content", "template", "style", "custom_logic"})


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A classified filesystem change."""

    category: ChangeCategory
    path: Path
    kind: ChangeKind = "modified"


def normalize_path(path: str | os.PathLike[str]) -> Path:
    return Path(os.path.normcase(os.path.abspath(os.fspath(path))))


def _same_path(left: Path, right: Path | None) -> bool:
    return right is not None and left == normalize_path(right)


def is_config_path(path: Path, config: ResolvedConfig) -> bool:
    """True for the active config file or any config-file name at the project root."""

    if _same_path(path, config.config_file):
        return True
    return path.name in CONFIG_FILE_NAMES and path.parent == normalize_path(config.root)


def classify(path: str | os.PathLike[str], config: ResolvedConfig) -> ChangeCategory:
    """Classify a path; first matching rule wins and unknown paths count as content."""

    try:
        candidate = normalize_path(path)
    except (TypeError, ValueError, OSError):
        return "content"

    if is_config_path(candidate, config):
        return "config"
    if _same_path(candidate, config.helpers):
        return "custom_logic"

    suffix = candidate.suffix.lower()
    if suffix in CONTENT_EXTENSIONS:
        return "content"
    if suffix in TEMPLATE_EXTENSIONS:
        return "template"
    if suffix in STYLE_EXTENSIONS:
        return "style"
    return "content"


def make_event(path: str | os.PathLike[str], kind: ChangeKind, config: ResolvedConfig) -> ChangeEvent:
    return ChangeEvent(category=classify(path, config), path=Path(os.fspath(path)), kind=kind)
