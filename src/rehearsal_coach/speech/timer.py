"""Elapsed-time tracking for practice sessions."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Protocol

TICK_SECONDS = 1.0


def format_elapsed(seconds: int) -> str:
    """Format whole seconds as ``mm:ss``; minutes are not capped at 59."""
    total = max(0, int(seconds))
    minutes, remainder = divmod(total, 60)
    return f"{minutes:02d}:{remainder:02d}"


class ElapsedTimer:
    """Whole-second counter that only advances while running."""

    def __init__(self, elapsed_seconds: int = 0) -> None:
        self._elapsed = max(0, elapsed_seconds)
        self._running = False

    @property
    def elapsed_seconds(self) -> int:
        return self._elapsed

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        self._running = True

    def stop(self) -> None:
        self._running = False

    def tick(self) -> bool:
        """Advance by one second; return whether the tick was counted."""
        if not self._running:
            return False
        self._elapsed += 1
        return True

    def reset(self) -> None:
        self._running = False
        self._elapsed = 0


class TickSource(Protocol):
    """Produces one callback per elapsed tick until stopped."""

    def start(self, callback: Callable[[], None]) -> None:
        """Begin invoking ``callback`` once per tick."""

    def stop(self) -> None:
        """Stop invoking the callback. Safe to call when not running."""


class ManualTicker:
    """Tick source driven explicitly by the caller."""

    def __init__(self) -> None:
        self._callback: Callable[[], None] | None = None

    @property
    def running(self) -> bool:
        return self._callback is not None

    def start(self, callback: Callable[[], None]) -> None:
        self._callback = callback

    def stop(self) -> None:
        self._callback = None

    def fire(self, count: int = 1) -> None:
        for _ in range(count):
            if self._callback is None:
                return
            self._callback()


class AsyncioTicker:
    """Tick source backed by an asyncio task sleeping ``interval`` seconds."""

    def __init__(self, interval: float = TICK_SECONDS, logger: logging.Logger | None = None) -> None:
        self._interval = interval
        self._task: asyncio.Task[None] | None = None
        self._logger = logger or logging.getLogger("rehearsal_coach.timer")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, callback: Callable[[], None]) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(callback), name="practice-timer")
        self._logger.debug("timer_started", extra={"interval": self._interval})

    def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        self._logger.debug("timer_stopped")

    async def _run(self, callback: Callable[[], None]) -> None:
        while True:
            await asyncio.sleep(self._interval)
            callback()
