"""Coalesce bursts of value changes into a single trailing call."""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional, Protocol

from .utils import configure_logger

logger = configure_logger(__name__)


class TimerLike(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerLike]


def _thread_timer(interval: float, callback: Callable[[], None]) -> TimerLike:
    timer = threading.Timer(interval, callback)
    timer.daemon = True
    return timer


class Debouncer:
    """Run ``func`` with the latest submitted arguments once the window goes quiet.

    Every ``submit`` restarts the window; only the arguments of the last call
    before a quiet period are executed, so the final state is never dropped.
    """

    def __init__(
        self,
        func: Callable[..., Any],
        interval: float,
        timer_factory: TimerFactory = _thread_timer,
    ) -> None:
        if interval < 0:
            raise ValueError("interval must be non-negative")
        self._func = func
        self._interval = interval
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: Optional[TimerLike] = None
        self._pending: Optional[tuple] = None
        self._generation = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def submit(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._pending = (args, kwargs)
            if self._timer is not None:
                self._timer.cancel()
            self._timer = self._timer_factory(self._interval, lambda: self._fire(generation))
            self._timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._pending is None:
                return
            args, kwargs = self._pending
            self._pending = None
            self._timer = None
        self._run(args, kwargs)

    def _run(self, args: tuple, kwargs: dict) -> None:
        try:
            self._func(*args, **kwargs)
        except Exception:
            logger.exception("Debounced call failed")

    def flush(self) -> bool:
        """Run the pending call now. Returns False when nothing was pending."""

        with self._lock:
            if self._pending is None:
                return False
            args, kwargs = self._pending
            self._pending = None
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self._run(args, kwargs)
        return True

    def cancel(self) -> None:
        with self._lock:
            self._pending = None
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


__all__ = ["Debouncer", "TimerFactory", "TimerLike"]
