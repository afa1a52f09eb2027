"""Per-doctrine notification cool-down."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Callable

from ..models import utc_now


class NotificationGate:
    """Remembers when each doctrine was last announced.

    State is in memory only, so a restart re-announces everything once.
    """

    def __init__(
        self,
        interval: timedelta,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._interval = interval
        self._clock = clock
        self._last_notified: dict[str, datetime] = {}
        self._lock = threading.Lock()

    @property
    def interval(self) -> timedelta:
        return self._interval

    def should_notify(self, name: str) -> bool:
        with self._lock:
            last = self._last_notified.get(name)
        if last is None:
            return True
        return self._clock() - last > self._interval

    def mark_notified(self, name: str) -> None:
        with self._lock:
            self._last_notified[name] = self._clock()

    def mark_all(self, names: list[str]) -> None:
        instant = self._clock()
        with self._lock:
            for name in names:
                self._last_notified[name] = instant

    def last_notified(self, name: str) -> datetime | None:
        with self._lock:
            return self._last_notified.get(name)


__all__ = ["NotificationGate"]
