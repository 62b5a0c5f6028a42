"""Device registry models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from sessionguard.core.db import MongoModel
from sessionguard.utils import now


class Device(MongoModel):
    """A device a user has signed in from.

    Indexed on (user_id, fingerprint) - unique, (user_id, last_seen_at).
    Removal only sets removed_at, so the record keeps counting towards is_primary.
    """

    user_id: str
    fingerprint: str
    display_name: str
    browser: str = "Unknown"
    is_primary: bool = False  # first device ever seen for the user, set once
    first_seen_at: datetime = Field(default_factory=now)
    last_seen_at: datetime = Field(default_factory=now)
    removed_at: datetime | None = None


class DeviceRegistration(BaseModel):
    """Outcome of a device upsert during login."""

    device: Device
    is_new: bool

    @property
    def is_new_device_notice(self) -> bool:
        """Whether the user should be told about a newly seen device."""
        return self.is_new and not self.device.is_primary


class DeviceView(BaseModel):
    """Registered device (API representation)."""

    id: UUID = Field(..., description="Device ID")
    display_name: str = Field(..., description="Human readable label, e.g. 'Mobile - Chrome'")
    browser: str = Field(..., description="Browser family")
    is_primary: bool = Field(..., description="Whether this is the first device registered for the account")
    first_seen_at: datetime = Field(..., description="When the device was first seen")
    last_seen_at: datetime = Field(..., description="When the device last signed in")

    @classmethod
    def from_domain(cls, device: Device) -> "DeviceView":
        """Create view model from domain model."""
        return cls(
            id=device.id,
            display_name=device.display_name,
            browser=device.browser,
            is_primary=device.is_primary,
            first_seen_at=device.first_seen_at,
            last_seen_at=device.last_seen_at,
        )
