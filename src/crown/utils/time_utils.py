"""Time utility helpers for UTC-safe timestamps."""

from __future__ import annotations

import time
from datetime import datetime, timezone


def now_utc() -> datetime:
    """Return current timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)


def elapsed_ms(started_mono: float) -> float:
    """Milliseconds elapsed since a time.monotonic() reading."""

    return round((time.monotonic() - started_mono) * 1000.0, 3)
