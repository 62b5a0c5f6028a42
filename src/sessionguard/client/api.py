"""HTTP transport to the session service."""

from types import TracebackType
from typing import Self

import httpx

from sessionguard.client.config import ClientConfig
from sessionguard.core.modules.device.fingerprint import ClientSignals
from sessionguard.core.modules.session.models import LoginResult, SessionStatus, SessionToken
from sessionguard.errors import SessionCreationError

API_PREFIX = "/api/v1"


class SessionApiClient:
    """Thin async wrapper over the session endpoints.

    Identity headers (or whatever credential the gateway turns into them) are
    passed in ``headers`` by the embedder.
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout, transport=transport)

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> Self:
        return cls(config.base_url, headers=headers, timeout=config.timeout_seconds, transport=transport)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: TracebackType | None
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def start_session(self, signals: ClientSignals) -> LoginResult:
        """Start a session. Any failure means the user has to sign in again."""
        try:
            response = await self._client.post(f"{API_PREFIX}/sessions", json={"signals": signals.model_dump()})
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise SessionCreationError from e
        return LoginResult.model_validate(response.json())

    async def get_status(self, token: SessionToken) -> SessionStatus:
        """Ask whether the session is still active.

        A 404 means the server no longer knows the token (ended sessions are purged
        after a retention period), so it is reported as ended with no reason. Raises
        httpx.HTTPError on transport failures and other non-2xx answers.
        """
        response = await self._client.get(f"{API_PREFIX}/session/status", headers=_bearer(token))
        if response.status_code == httpx.codes.NOT_FOUND:
            return SessionStatus(is_active=False, ended_reason=None)
        response.raise_for_status()
        return SessionStatus.model_validate(response.json())

    async def logout(self, token: SessionToken) -> None:
        response = await self._client.post(f"{API_PREFIX}/session/logout", headers=_bearer(token))
        response.raise_for_status()

    async def close(self, token: SessionToken) -> None:
        """Teardown notice; the answer carries nothing and is not checked."""
        await self._client.post(f"{API_PREFIX}/session/close", json={"session_token": token})


def _bearer(token: SessionToken) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
