"""Best-effort session close when the client goes away."""

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from sessionguard.core.modules.session.models import SessionToken

logger = structlog.get_logger(__name__)


class ShutdownNotifier:
    """Fires a single close request for the local session and never waits for it.

    At most once per notifier, no confirmation, no retries: the client is being torn
    down and nobody is left to act on the answer. Losing the request is harmless,
    only a newer login ever displaces a session.
    """

    def __init__(self, send: Callable[[SessionToken], Awaitable[None]]) -> None:
        self._send = send
        self._fired = False
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def fired(self) -> bool:
        return self._fired

    def notify(self, token: SessionToken | None) -> asyncio.Task[None] | None:
        """Schedule the close request. Must be called from a running event loop."""
        if self._fired or not token:
            return None
        self._fired = True
        task = asyncio.create_task(self._deliver(token), name="session-close-notice")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _deliver(self, token: SessionToken) -> None:
        try:
            await self._send(token)
        except Exception:
            logger.debug("session_close_notice_failed", exc_info=True)
