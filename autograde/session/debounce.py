"""
Debouncing of rapidly changing input.
"""

import threading
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class Debouncer(Generic[T]):
    """
    Calls ``callback`` with the latest value once input has been quiet for
    ``delay`` seconds.

    Every ``trigger`` restarts the window. The callback runs on a timer
    thread, or on the caller's thread for ``flush``.
    """

    def __init__(self, delay: float, callback: Callable[[T], None]):
        self._delay = delay
        self._callback = callback
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._generation = 0
        self._pending = False
        self._value: T | None = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """Whether a value is waiting for the window to elapse."""
        with self._lock:
            return self._pending

    def trigger(self, value: T) -> None:
        """Record a new value and restart the quiescence window."""
        with self._lock:
            self._cancel_timer()
            self._generation += 1
            self._value = value
            self._pending = True
            timer = threading.Timer(self._delay, self._fire, args=(self._generation,))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def flush(self) -> bool:
        """
        Fire the pending value now instead of waiting.

        Returns:
            True if a pending value was delivered.
        """
        with self._lock:
            if not self._pending:
                return False
            self._cancel_timer()
            self._generation += 1
            value = self._take()
        self._callback(value)
        return True

    def cancel(self) -> None:
        """Drop the pending value, if any."""
        with self._lock:
            self._cancel_timer()
            self._generation += 1
            self._take()

    def _fire(self, generation: int) -> None:
        with self._lock:
            # superseded by a later trigger, flush or cancel
            if generation != self._generation or not self._pending:
                return
            self._timer = None
            value = self._take()
        self._callback(value)

    def _take(self) -> T:
        value = self._value
        self._value = None
        self._pending = False
        return value  # type: ignore[return-value]

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
