"""Tests for the login flow through the App facade."""

import pytest
from structlog.testing import capture_logs

from sessionguard.core.modules.device.fingerprint import ClientSignals
from sessionguard.core.modules.identity.models import Identity
from sessionguard.core.modules.session.models import EndReason, SessionToken
from sessionguard.errors import AuthenticationError, NotFoundError, SessionCreationError

STUDENT = Identity(user_id="student-1", role="student")
ASSISTANT = Identity(user_id="assistant-1", role="assistant")


class TestLoginScenario:
    """User U logs in on device A, then on device B."""

    async def test_device_b_displaces_device_a(self, app, laptop_signals, phone_signals):
        login_a = await app.login(STUDENT, laptop_signals)
        assert login_a.enforced
        assert not login_a.is_new_device
        assert login_a.device_name == "Desktop - Chrome"
        assert (await app.get_session_status(login_a.session_token)).is_active

        login_b = await app.login(STUDENT, phone_signals)
        assert login_b.is_new_device
        assert login_b.device_id != login_a.device_id
        assert (await app.get_session_status(login_b.session_token)).is_active

        status_a = await app.get_session_status(login_a.session_token)
        assert not status_a.is_active
        assert status_a.ended_reason == EndReason.NEW_LOGIN

        devices = {device.id: device for device in await app.get_devices(STUDENT)}
        assert devices[login_a.device_id].is_primary
        assert not devices[login_b.device_id].is_primary

    async def test_same_device_login_reuses_device_without_notice(self, app, laptop_signals):
        first = await app.login(STUDENT, laptop_signals)
        second = await app.login(STUDENT, laptop_signals)
        assert second.device_id == first.device_id
        assert not second.is_new_device
        assert not (await app.get_session_status(first.session_token)).is_active

    async def test_poll_interval_advertised(self, app, laptop_signals):
        result = await app.login(STUDENT, laptop_signals)
        assert result.poll_interval_seconds == 30.0

    async def test_login_without_signals(self, app):
        result = await app.login(STUDENT, ClientSignals())
        assert result.device_name == "Unknown Device"
        assert result.device_id is not None


class TestRoleExemption:
    """Enforcement applies to the configured roles only."""

    async def test_exempt_role_keeps_parallel_sessions(self, app, laptop_signals, phone_signals):
        first = await app.login(ASSISTANT, laptop_signals)
        second = await app.login(ASSISTANT, phone_signals)

        assert not first.enforced
        assert (await app.get_session_status(first.session_token)).is_active
        assert (await app.get_session_status(second.session_token)).is_active

    async def test_missing_role_is_exempt_and_logged(self, app, laptop_signals):
        with capture_logs() as logs:
            result = await app.login(Identity(user_id="someone"), laptop_signals)

        assert not result.enforced
        warnings = [log for log in logs if log["event"] == "identity_role_missing"]
        assert warnings == [
            {"event": "identity_role_missing", "log_level": "warning", "user_id": "someone", "role_header": "X-User-Role"}
        ]

    async def test_present_role_is_not_logged(self, app, laptop_signals):
        with capture_logs() as logs:
            await app.login(ASSISTANT, laptop_signals)
        assert not any(log["event"] == "identity_role_missing" for log in logs)


class TestLoginFailures:
    """Device bookkeeping failures are tolerated, session failures are not."""

    async def test_device_failure_does_not_block_login(self, app, devices_collection, laptop_signals):
        devices_collection.fail_on.add("find_one_and_update")

        result = await app.login(STUDENT, laptop_signals)

        assert result.device_id is None
        assert not result.is_new_device
        assert (await app.get_session_status(result.session_token)).is_active

    async def test_session_failure_fails_login(self, app, sessions_collection, laptop_signals):
        sessions_collection.fail_on.add("insert_one")
        with pytest.raises(SessionCreationError, match="retry sign-in"):
            await app.login(STUDENT, laptop_signals)

    async def test_session_failure_keeps_previous_session(self, app, sessions_collection, laptop_signals, phone_signals):
        first = await app.login(STUDENT, laptop_signals)
        sessions_collection.fail_on.add("insert_one")
        with pytest.raises(SessionCreationError):
            await app.login(STUDENT, phone_signals)
        sessions_collection.fail_on.clear()
        assert (await app.get_session_status(first.session_token)).is_active


class TestLogoutAndClose:
    """Tests for explicit logout and the best-effort close."""

    async def test_logout(self, app, laptop_signals):
        result = await app.login(STUDENT, laptop_signals)
        await app.logout(result.session_token)
        status = await app.get_session_status(result.session_token)
        assert status.ended_reason == EndReason.LOGOUT

    async def test_logout_unknown_token(self, app):
        with pytest.raises(AuthenticationError):
            await app.logout(SessionToken("missing"))

    async def test_close(self, app, laptop_signals):
        result = await app.login(STUDENT, laptop_signals)
        await app.close_session(result.session_token)
        status = await app.get_session_status(result.session_token)
        assert status.ended_reason == EndReason.CLOSED

    async def test_close_after_displacement_keeps_reason(self, app, laptop_signals, phone_signals):
        first = await app.login(STUDENT, laptop_signals)
        await app.login(STUDENT, phone_signals)
        await app.close_session(first.session_token)
        assert (await app.get_session_status(first.session_token)).ended_reason == EndReason.NEW_LOGIN

    async def test_close_unknown_token_is_ignored(self, app):
        await app.close_session(SessionToken("missing"))


class TestDevices:
    """Tests for device listing and removal through the facade."""

    async def test_remove_device_signs_it_out(self, app, laptop_signals):
        result = await app.login(STUDENT, laptop_signals)
        assert result.device_id is not None
        await app.remove_device(STUDENT, result.device_id)

        assert await app.get_devices(STUDENT) == []
        status = await app.get_session_status(result.session_token)
        assert status.ended_reason == EndReason.DEVICE_REMOVED

    async def test_remove_other_users_device(self, app, laptop_signals):
        result = await app.login(STUDENT, laptop_signals)
        assert result.device_id is not None
        with pytest.raises(NotFoundError):
            await app.remove_device(ASSISTANT, result.device_id)

    async def test_login_after_removing_only_device_gets_notice(self, app, laptop_signals, phone_signals):
        first = await app.login(STUDENT, laptop_signals)
        assert first.device_id is not None
        await app.remove_device(STUDENT, first.device_id)

        second = await app.login(STUDENT, phone_signals)

        assert second.is_new_device
        devices = await app.get_devices(STUDENT)
        assert [device.is_primary for device in devices] == [False]
