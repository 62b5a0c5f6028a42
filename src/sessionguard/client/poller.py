"""Client-side liveness loop for the local session token."""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

import structlog

from sessionguard.core.modules.session.models import EndReason, SessionStatus

logger = structlog.get_logger(__name__)

StatusCheck = Callable[[], Awaitable[SessionStatus]]
TerminationHandler = Callable[[EndReason | None], Awaitable[None]]


class LivenessPoller:
    """Periodically asks whether the local session is still the active one.

    Checks once on start, then every ``interval`` seconds, and right away when the
    client becomes visible again. A failed check is inconclusive and simply waits
    for the next tick. The first inactive answer stops the loop and calls
    ``on_terminated`` exactly once.
    """

    def __init__(self, check: StatusCheck, on_terminated: TerminationHandler, interval: float = 30.0) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._check = check
        self._on_terminated = on_terminated
        self._interval = interval
        self._wake = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._terminated = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def terminated(self) -> bool:
        return self._terminated

    def start(self) -> None:
        """Start the loop; a no-op if it is running or the session already ended."""
        if self.running or self._terminated:
            return
        self._task = asyncio.create_task(self._run(), name="liveness-poller")

    async def stop(self) -> None:
        """Cancel the loop. Safe to call repeatedly and from the termination handler."""
        task, self._task = self._task, None
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    def on_visibility_regained(self) -> None:
        self._wake.set()

    async def check_now(self) -> SessionStatus | None:
        """Run one check. Returns None when the result is unknown or the session already ended."""
        if self._terminated:
            return None
        try:
            status = await self._check()
        except Exception:
            logger.warning("session_status_check_failed", exc_info=True)
            return None

        if not status.is_active and not self._terminated:
            self._terminated = True
            logger.info("session_terminated", reason=status.ended_reason)
            await self._on_terminated(status.ended_reason)
        return status

    async def _run(self) -> None:
        while not self._terminated:
            self._wake.clear()
            await self.check_now()
            if self._terminated:
                break
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._wake.wait(), timeout=self._interval)
