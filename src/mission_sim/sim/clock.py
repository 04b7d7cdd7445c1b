from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ManualClock:
    """Settable clock for tests and replay tooling."""

    def __init__(self, start: datetime) -> None:
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, *, ms: int = 0, seconds: float = 0.0) -> datetime:
        self.current = self.current + timedelta(milliseconds=ms, seconds=seconds)
        return self.current

    def set(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        self.current = value
        return self.current
