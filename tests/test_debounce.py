from __future__ import annotations

import threading
import time

from crown.watch.debounce import DebounceCoalescer


def _collector():
    calls: list[tuple[object, float]] = []
    fired = threading.Event()

    def callback(event: object) -> None:
        calls.append((event, time.monotonic()))
        fired.set()

    return calls, fired, callback


def test_burst_invokes_callback_once_with_last_event() -> None:
    calls, fired, callback = _collector()
    coalescer = DebounceCoalescer(callback, delay_seconds=0.15)

    for index in range(5):
        coalescer.notify(index)
        time.sleep(0.02)
    last_notify = time.monotonic()

    assert fired.wait(2.0)
    time.sleep(0.3)
    assert [event for event, _ in calls] == [4]
    assert calls[0][1] - last_notify >= 0.14


def test_separate_bursts_fire_separately() -> None:
    calls, fired, callback = _collector()
    coalescer = DebounceCoalescer(callback, delay_seconds=0.05)

    coalescer.notify("first")
    assert fired.wait(2.0)
    fired.clear()
    coalescer.notify("second")
    assert fired.wait(2.0)

    assert [event for event, _ in calls] == ["first", "second"]


def test_cancel_discards_pending_event() -> None:
    calls, fired, callback = _collector()
    coalescer = DebounceCoalescer(callback, delay_seconds=0.05)

    coalescer.notify("dropped")
    assert coalescer.pending
    coalescer.cancel()

    assert not fired.wait(0.2)
    assert calls == []
    assert not coalescer.pending


def test_close_ignores_later_notifications() -> None:
    calls, fired, callback = _collector()
    coalescer = DebounceCoalescer(callback, delay_seconds=0.01)
    coalescer.close()
    coalescer.notify("ignored")
    assert not fired.wait(0.1)
    assert calls == []


def test_callback_exception_is_contained() -> None:
    done = threading.Event()

    def callback(event: object) -> None:
        done.set()
        raise RuntimeError("boom")

    coalescer = DebounceCoalescer(callback, delay_seconds=0.01)
    coalescer.notify("x")
    assert done.wait(2.0)
    time.sleep(0.05)
    assert not coalescer.pending
