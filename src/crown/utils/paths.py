"""Path and filesystem helper functions."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable
from uuid import uuid4


def ensure_directories(paths: Iterable[Path]) -> list[Path]:
    """Create all directories in the iterable if they do not exist."""

    created_or_existing: list[Path] = []
    for directory in paths:
        directory.mkdir(parents=True, exist_ok=True)
        created_or_existing.append(directory)
    return created_or_existing


def write_marker_file(path: Path, content: str) -> Path:
    """Write a scaffold file with deterministic UTF-8 content."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content.rstrip() + "\n", encoding="utf-8")
    return path


def atomic_temp_path(target_path: Path) -> Path:
    """Create a unique temp path next to the target for atomic replacement."""

    return target_path.parent / f".{target_path.name}.{uuid4().hex}.tmp"


def write_text_atomically(text: str, output_path: Path) -> Path:
    """Write UTF-8 text via a temporary file then os.replace."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = atomic_temp_path(output_path)
    try:
        temp_path.write_text(text, encoding="utf-8")
        os.replace(temp_path, output_path)
    finally:
        if temp_path.exists():
            temp_path.unlink()
    return output_path
