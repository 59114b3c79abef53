"""Shared utility helpers."""

from crown.utils.paths import atomic_temp_path, ensure_directories, write_marker_file, write_text_atomically
from crown.utils.time_utils import elapsed_ms, now_utc

__all__ = [
    "atomic_temp_path",
    "ensure_directories",
    "write_marker_file",
    "write_text_atomically",
    "elapsed_ms",
    "now_utc",
]
