"""Session registry models."""

from datetime import datetime
from enum import StrEnum
from typing import NewType
from uuid import UUID

from pydantic import BaseModel, Field

from sessionguard.core.db import MongoModel
from sessionguard.utils import now

SessionToken = NewType("SessionToken", str)


class EndReason(StrEnum):
    """Why a session stopped being active.

    - NEW_LOGIN: the account signed in somewhere else (displacement)
    - LOGOUT: explicit sign out
    - CLOSED: best-effort notice from a closing tab
    - DEVICE_REMOVED: the owner removed the device the session ran on
    """

    NEW_LOGIN = "new_login"
    LOGOUT = "logout"
    CLOSED = "closed"
    DEVICE_REMOVED = "device_removed"


class Session(MongoModel):
    """One login instance.

    Indexed on session_token - unique, (user_id, is_active), ended_at (TTL).
    Goes from active to inactive exactly once and is never reactivated.
    """

    session_token: str
    user_id: str
    device_id: UUID | None = None
    is_active: bool = True
    started_at: datetime = Field(default_factory=now)
    ended_at: datetime | None = None
    ended_reason: EndReason | None = None


class SessionStatus(BaseModel):
    """Answer to a liveness poll."""

    is_active: bool = Field(..., description="Whether the session is still the active one")
    ended_reason: EndReason | None = Field(None, description="Why the session ended, absent while active")

    @classmethod
    def from_domain(cls, session: Session) -> "SessionStatus":
        return cls(is_active=session.is_active, ended_reason=session.ended_reason)


class LoginResult(BaseModel):
    """Outcome of a login: the new token plus what the client needs to react to it."""

    session_token: SessionToken = Field(..., description="Token for status polls, logout and close")
    device_id: UUID | None = Field(None, description="Registered device, absent if device bookkeeping failed")
    device_name: str = Field(..., description="Label of the device the login came from")
    is_new_device: bool = Field(False, description="Whether to show the 'new device' notice")
    enforced: bool = Field(..., description="Whether single-session enforcement applies to this account")
    poll_interval_seconds: float = Field(..., description="How often the client should poll its status")
