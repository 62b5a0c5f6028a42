"""End-to-end: two client guards against the real HTTP app and the in-memory database."""

import asyncio

import httpx
import pytest

from sessionguard.client.api import SessionApiClient
from sessionguard.client.guard import SessionGuard, Severity
from sessionguard.client.messages import MESSAGES, MessageKey
from sessionguard.core.modules.session.models import SessionToken
from sessionguard.web.server import create_fastapi_app

STUDENT_HEADERS = {"X-User-Id": "student-1", "X-User-Role": "student"}


class Identity:
    def __init__(self) -> None:
        self.user_id: str | None = "student-1"
        self.signed_out = asyncio.Event()

    def current_user_id(self) -> str | None:
        return self.user_id

    async def sign_out(self) -> None:
        self.user_id = None
        self.signed_out.set()


class Notifier:
    def __init__(self) -> None:
        self.messages: list[tuple[Severity, str]] = []

    def show(self, severity: Severity, text: str) -> None:
        self.messages.append((severity, text))


class Device:
    """One browser tab: its own guard, identity and notification sink."""

    def __init__(self, fastapi_app, headers: dict[str, str] = STUDENT_HEADERS) -> None:
        self.api = SessionApiClient(
            "http://sessionguard.test", headers=headers, transport=httpx.ASGITransport(app=fastapi_app)
        )
        self.identity = Identity()
        self.notifier = Notifier()
        self.guard = SessionGuard(self.api, self.identity, self.notifier)

    async def aclose(self) -> None:
        await self.guard.on_identity_cleared()
        await self.api.aclose()


@pytest.fixture
async def devices(app, config):
    fastapi_app = create_fastapi_app(app, config)
    created: list[Device] = []

    def make(headers: dict[str, str] = STUDENT_HEADERS) -> Device:
        device = Device(fastapi_app, headers)
        created.append(device)
        return device

    yield make
    for device in created:
        await device.aclose()


class TestTwoDevices:
    async def test_device_b_displaces_device_a(self, devices, app, laptop_signals, phone_signals):
        device_a, device_b = devices(), devices()

        session_a = await device_a.guard.login(laptop_signals)
        assert device_a.notifier.messages == []

        session_b = await device_b.guard.login(phone_signals)
        assert device_b.notifier.messages[0][0] == Severity.INFO
        assert "Mobile - Safari" in device_b.notifier.messages[0][1]

        # Device A's next poll, here triggered by the tab regaining focus
        device_a.guard.on_visibility_regained()
        await asyncio.wait_for(device_a.identity.signed_out.wait(), timeout=2)

        assert device_a.guard.session is None
        assert device_a.notifier.messages == [(Severity.WARNING, MESSAGES["en"][MessageKey.SESSION_DISPLACED])]
        assert device_b.guard.session == session_b
        assert not device_b.identity.signed_out.is_set()
        assert (await app.get_session_status(session_a.token)).ended_reason == "new_login"
        assert (await app.get_session_status(session_b.token)).is_active

    async def test_logout_on_one_device_does_not_touch_the_other_user(self, devices, app, laptop_signals):
        student = devices()
        other = devices({"X-User-Id": "student-2", "X-User-Role": "student"})
        own = await student.guard.login(laptop_signals)
        theirs = await other.guard.login(laptop_signals)

        await student.guard.logout()

        assert (await app.get_session_status(own.token)).ended_reason == "logout"
        assert (await app.get_session_status(theirs.token)).is_active

    async def test_teardown_closes_session(self, devices, app, laptop_signals):
        device = devices()
        session = await device.guard.login(laptop_signals)
        task = device.guard.on_teardown()
        assert task is not None
        await task
        assert (await app.get_session_status(SessionToken(session.token))).ended_reason == "closed"

    async def test_purged_session_still_signs_out(self, devices, sessions_collection, laptop_signals):
        """Expiry of an ended session's record must not leave its tab signed in."""
        device = devices()
        session = await device.guard.login(laptop_signals)
        sessions_collection.docs = [doc for doc in sessions_collection.docs if doc["session_token"] != session.token]

        device.guard.on_visibility_regained()
        await asyncio.wait_for(device.identity.signed_out.wait(), timeout=2)

        assert device.guard.session is None
        assert device.notifier.messages == [(Severity.WARNING, MESSAGES["en"][MessageKey.SESSION_ENDED])]
