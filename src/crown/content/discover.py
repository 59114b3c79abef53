"""Discover content files from the configured glob pattern."""

from __future__ import annotations

import glob
import logging
from pathlib import Path

from crown.exceptions import NoContentFound

LOGGER = logging.getLogger(__name__)

_GLOB_MAGIC = ("*", "?", "[")


def glob_base_dir(pattern: str) -> Path:
    """Return the deepest directory of pattern that contains no glob wildcards."""

    parts = Path(pattern).parts
    static_parts: list[str] = []
    for part in parts:
        if any(token in part for token in _GLOB_MAGIC):
            break
        static_parts.append(part)
    if len(static_parts) == len(parts):
        # No wildcard at all; the pattern names a single file.
        return Path(*static_parts).parent
    return Path(*static_parts) if static_parts else Path(".")


def discover_content_files(content_glob: str, logger: logging.Logger | None = None) -> list[Path]:
    """Expand the content glob to a sorted list of files, failing when nothing matches."""

    effective_logger = logger or LOGGER
    matches = sorted(
        Path(match).resolve(strict=False)
        for match in glob.glob(content_glob, recursive=True)
        if Path(match).is_file()
    )
    if not matches:
        raise NoContentFound(f"No content files found matching pattern: {content_glob}")
    effective_logger.debug("discover.content_files pattern=%s count=%s", content_glob, len(matches))
    return matches
