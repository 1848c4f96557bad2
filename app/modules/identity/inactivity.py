"""Inactivity countdown that forces logout of idle admin sessions."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

TimeoutCallback = Callable[[], Awaitable[object]]


class InactivityMonitor:
    """Single reset-on-activity countdown for one session."""

    def __init__(self, timeout_seconds: float, on_timeout: TimeoutCallback) -> None:
        self.timeout_seconds = timeout_seconds
        self._on_timeout = on_timeout
        self._handle: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        """Arm the countdown. Must be called from within the event loop."""
        self.touch()

    def touch(self) -> None:
        """Restart the countdown from zero."""
        self.stop()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.timeout_seconds, self._expire)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _expire(self) -> None:
        self._handle = None
        self._task = asyncio.get_running_loop().create_task(self._run_timeout())

    async def _run_timeout(self) -> None:
        try:
            await self._on_timeout()
        except Exception:
            logger.exception("Inactivity timeout handler failed")


class InactivityRegistry:
    """One inactivity monitor per authenticated session id."""

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        self._monitors: dict[str, InactivityMonitor] = {}

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._monitors

    def __len__(self) -> int:
        return len(self._monitors)

    def arm(self, session_id: str, on_timeout: TimeoutCallback) -> InactivityMonitor:
        """Start (or restart) the countdown for a freshly logged-in session."""
        self.disarm(session_id)
        monitor: InactivityMonitor

        async def _expire() -> None:
            if self._monitors.get(session_id) is monitor:
                del self._monitors[session_id]
            logger.info("Admin session %s inactive, logging out", session_id)
            await on_timeout()

        monitor = InactivityMonitor(self.timeout_seconds, _expire)
        self._monitors[session_id] = monitor
        monitor.start()
        return monitor

    def touch(self, session_id: str) -> bool:
        """Register activity. Returns False if no countdown runs for the session."""
        monitor = self._monitors.get(session_id)
        if monitor is None:
            return False
        monitor.touch()
        return True

    def disarm(self, session_id: str) -> None:
        monitor = self._monitors.pop(session_id, None)
        if monitor is not None:
            monitor.stop()

    def close(self) -> None:
        """Cancel every countdown (application teardown)."""
        for monitor in self._monitors.values():
            monitor.stop()
        self._monitors.clear()
