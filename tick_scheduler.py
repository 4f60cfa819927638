"""
ringweave - Tick schedulers
Drivers for the animation engine's per-frame callback. A scheduler runs at
most one pending tick; request_tick() replaces it and cancel() drops it.
"""

import time
from typing import Callable, Optional, Protocol

from PyQt6.QtCore import QTimer


class TickScheduler(Protocol):
    def request_tick(self, callback: Callable[[], None]) -> None: ...
    def cancel(self) -> None: ...


def monotonic_ms() -> float:
    return time.perf_counter() * 1000.0


class QtTickScheduler:
    """One single-shot QTimer per display frame, on the Qt event loop."""

    def __init__(self, frame_interval_ms: int = 16):
        self._callback: Optional[Callable[[], None]] = None
        self._timer = QTimer()
        self._timer.setSingleShot(True)
        self._timer.setInterval(frame_interval_ms)
        self._timer.timeout.connect(self._fire)

    def request_tick(self, callback: Callable[[], None]) -> None:
        self._callback = callback
        self._timer.start()

    def cancel(self) -> None:
        self._timer.stop()
        self._callback = None

    def _fire(self) -> None:
        callback, self._callback = self._callback, None
        if callback is not None:
            callback()


class ManualTickScheduler:
    """Headless scheduler with its own clock. advance() moves time and runs the pending tick."""

    def __init__(self, start_ms: float = 0.0):
        self._now = float(start_ms)
        self._callback: Optional[Callable[[], None]] = None

    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> bool:
        return self._callback is not None

    def request_tick(self, callback: Callable[[], None]) -> None:
        self._callback = callback

    def cancel(self) -> None:
        self._callback = None

    def advance(self, ms: float) -> bool:
        """Move the clock forward by `ms` and fire the pending tick. Returns True if one ran."""
        self._now += ms
        callback, self._callback = self._callback, None
        if callback is None:
            return False
        callback()
        return True

    def run_for(self, total_ms: float, frame_ms: float = 16.0) -> int:
        """Advance in `frame_ms` steps until `total_ms` elapsed or nothing is pending."""
        ticks = 0
        elapsed = 0.0
        while elapsed < total_ms and self._callback is not None:
            step = min(frame_ms, total_ms - elapsed)
            elapsed += step
            if self.advance(step):
                ticks += 1
        return ticks
