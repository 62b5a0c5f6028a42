"""Client-side owner of the local session.

``SessionGuard`` holds the session token of one client (one browser tab in the web
app), starts it at login, keeps it honest with a ``LivenessPoller`` and tears the
authenticated state down when the server says another device took over.
"""

import asyncio
from dataclasses import dataclass
from enum import StrEnum
from functools import partial
from typing import Protocol

import httpx
import structlog

from sessionguard.client.api import SessionApiClient
from sessionguard.client.config import ClientConfig
from sessionguard.client.messages import MessageKey, message_for, render
from sessionguard.client.poller import LivenessPoller
from sessionguard.client.shutdown import ShutdownNotifier
from sessionguard.core.modules.device.fingerprint import ClientSignals
from sessionguard.core.modules.session.models import EndReason, SessionToken
from sessionguard.errors import AuthenticationError, SessionCreationError

logger = structlog.get_logger(__name__)


class Severity(StrEnum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class IdentityProvider(Protocol):
    """The external sign-in system."""

    def current_user_id(self) -> str | None: ...

    async def sign_out(self) -> None:
        """Drop the local authenticated state right away."""
        ...


class Notifier(Protocol):
    """Generic "show message to user" sink."""

    def show(self, severity: Severity, text: str) -> None: ...


@dataclass(frozen=True)
class LocalSession:
    user_id: str
    token: SessionToken
    device_name: str
    enforced: bool


class SessionGuard:
    def __init__(
        self,
        api: SessionApiClient,
        identity: IdentityProvider,
        notifier: Notifier,
        locale: str = "en",
        poll_interval: float | None = None,
    ) -> None:
        self._api = api
        self._identity = identity
        self._notifier = notifier
        self._locale = locale
        self._poll_interval = poll_interval
        self._session: LocalSession | None = None
        self._poller: LivenessPoller | None = None
        self._shutdown: ShutdownNotifier | None = None

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        identity: IdentityProvider,
        notifier: Notifier,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "SessionGuard":
        api = SessionApiClient.from_config(config, headers=headers, transport=transport)
        return cls(api, identity, notifier, locale=config.locale, poll_interval=config.poll_interval_seconds)

    @property
    def api(self) -> SessionApiClient:
        return self._api

    @property
    def session(self) -> LocalSession | None:
        return self._session

    @property
    def poller(self) -> LivenessPoller | None:
        return self._poller

    async def login(self, signals: ClientSignals) -> LocalSession:
        """Start a server session for the user the identity provider just signed in."""
        user_id = self._identity.current_user_id()
        if user_id is None:
            raise AuthenticationError("Not signed in")

        await self._stop_poller()
        try:
            result = await self._api.start_session(signals)
        except SessionCreationError:
            logger.warning("session_start_failed", user_id=user_id, exc_info=True)
            self._notifier.show(Severity.ERROR, render(MessageKey.RETRY_SIGN_IN, self._locale))
            raise

        session = LocalSession(
            user_id=user_id,
            token=result.session_token,
            device_name=result.device_name,
            enforced=result.enforced,
        )
        self._session = session
        self._shutdown = ShutdownNotifier(self._api.close)

        if result.is_new_device:
            self._notifier.show(Severity.INFO, render(MessageKey.NEW_DEVICE, self._locale, device=result.device_name))

        if result.enforced:
            self._poller = LivenessPoller(
                check=partial(self._api.get_status, session.token),
                on_terminated=partial(self._handle_terminated, session.token),
                interval=self._poll_interval or result.poll_interval_seconds,
            )
            self._poller.start()

        logger.info("session_started", user_id=user_id, enforced=result.enforced)
        return session

    async def logout(self) -> None:
        """Voluntary sign out. The poller stops first so no late termination notice fires."""
        await self._stop_poller()
        session, self._session = self._session, None
        if session is not None:
            try:
                await self._api.logout(session.token)
            except httpx.HTTPError:
                logger.warning("session_logout_failed", user_id=session.user_id, exc_info=True)
        await self._identity.sign_out()

    async def on_identity_cleared(self) -> None:
        """The identity provider dropped the user on its own; stop watching the session."""
        await self._stop_poller()
        self._session = None

    def on_visibility_regained(self) -> None:
        if self._poller is not None:
            self._poller.on_visibility_regained()

    def on_teardown(self) -> asyncio.Task[None] | None:
        """Client is going away: fire the close notice without waiting for it."""
        if self._session is None or self._shutdown is None:
            return None
        return self._shutdown.notify(self._session.token)

    async def _handle_terminated(self, token: SessionToken, reason: EndReason | None) -> None:
        if self._session is None or self._session.token != token:
            return
        self._session = None
        await self._stop_poller()
        await self._identity.sign_out()
        self._notifier.show(Severity.WARNING, message_for(reason, self._locale))

    async def _stop_poller(self) -> None:
        poller, self._poller = self._poller, None
        if poller is not None:
            await poller.stop()
