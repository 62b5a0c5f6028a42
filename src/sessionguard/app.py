from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any
from uuid import UUID

import structlog
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from sessionguard.config import Config
from sessionguard.core.core import Core
from sessionguard.core.modules.device.fingerprint import ClientSignals, resolve_device
from sessionguard.core.modules.device.models import DeviceRegistration, DeviceView
from sessionguard.core.modules.identity.models import Identity
from sessionguard.core.modules.session.models import EndReason, LoginResult, SessionStatus, SessionToken
from sessionguard.errors import AuthenticationError, NotFoundError, SessionCreationError

logger = structlog.get_logger(__name__)


class App:
    """Facade for all session and device operations, checks the caller before delegating to Core."""

    def __init__(self, config: Config, mongo_client: AsyncMongoClient[dict[str, Any]] | None = None) -> None:
        self._config = config
        self._core = Core(config, mongo_client)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    async def login(self, identity: Identity, signals: ClientSignals) -> LoginResult:
        """Register the device and open a session for a freshly authenticated user.

        Device bookkeeping failures are logged and the login goes on without a device.
        A session that cannot be created fails the login.
        """
        device_identity = resolve_device(signals)

        registration: DeviceRegistration | None = None
        try:
            registration = await self._core.services.device.upsert(
                identity.user_id, device_identity.fingerprint, device_identity.display_name, device_identity.browser
            )
        except PyMongoError:
            logger.warning("device_registration_failed", user_id=identity.user_id, exc_info=True)
        device_id = registration.device.id if registration else None

        if identity.role is None:
            # A gateway that stops sending the role header silently exempts everyone
            logger.warning("identity_role_missing", user_id=identity.user_id, role_header=self._config.role_header)
        enforced = identity.is_enforced(self._config.enforced_roles)
        try:
            if enforced:
                token = await self._core.services.session.open_exclusive_session(identity.user_id, device_id)
            else:
                token = await self._core.services.session.create(identity.user_id, device_id)
        except PyMongoError as e:
            logger.exception("session_creation_failed", user_id=identity.user_id)
            raise SessionCreationError from e

        return LoginResult(
            session_token=token,
            device_id=device_id,
            device_name=device_identity.display_name,
            is_new_device=registration.is_new_device_notice if registration else False,
            enforced=enforced,
            poll_interval_seconds=self._config.poll_interval_seconds,
        )

    async def get_session_status(self, session_token: SessionToken) -> SessionStatus:
        """Liveness poll. Unknown tokens are not found."""
        return await self._core.services.session.get_status(session_token)

    async def logout(self, session_token: SessionToken) -> None:
        """End the caller's session with reason logout."""
        try:
            await self._core.services.session.get_session(session_token)
        except NotFoundError as e:
            raise AuthenticationError("Invalid session") from e
        await self._core.services.session.end(session_token, EndReason.LOGOUT)

    async def close_session(self, session_token: SessionToken) -> None:
        """Best-effort end from a closing tab. Unknown or already ended tokens are ignored."""
        await self._core.services.session.end(session_token, EndReason.CLOSED)

    async def get_devices(self, identity: Identity) -> list[DeviceView]:
        devices = await self._core.services.device.list_devices(identity.user_id)
        return [DeviceView.from_domain(device) for device in devices]

    async def remove_device(self, identity: Identity, device_id: UUID) -> None:
        """Remove one of the caller's devices, signing it out first."""
        await self._core.services.device.remove_device(identity.user_id, device_id)
