"""Soft device fingerprinting from low-entropy client signals.

The fingerprint only labels a device for the account owner. Two physical
devices may collide and one device may drift to a new fingerprint after an OS
update; neither case is ever used to deny access.
"""

import hashlib
import json
from enum import StrEnum

from pydantic import BaseModel, Field

UNKNOWN_DEVICE = "Unknown Device"


class BrowserFamily(StrEnum):
    EDGE = "Edge"
    FIREFOX = "Firefox"
    CHROME = "Chrome"
    SAFARI = "Safari"
    UNKNOWN = "Unknown"


class DeviceClass(StrEnum):
    MOBILE = "Mobile"
    TABLET = "Tablet"
    DESKTOP = "Desktop"


# Checked in order: Edge and Chrome user agents also mention the browsers after them
BROWSER_MARKERS: list[tuple[BrowserFamily, tuple[str, ...]]] = [
    (BrowserFamily.EDGE, ("Edg/", "Edge/", "EdgA/", "EdgiOS/")),
    (BrowserFamily.FIREFOX, ("Firefox/", "FxiOS/")),
    (BrowserFamily.CHROME, ("Chrome/", "CriOS/", "Chromium/")),
    (BrowserFamily.SAFARI, ("Safari/",)),
]

TABLET_MARKERS = ("iPad", "Tablet", "PlayBook", "Silk/")
MOBILE_MARKERS = ("Mobi", "iPhone", "iPod", "Android", "Windows Phone")


class ClientSignals(BaseModel):
    """Ambient client environment signals, all optional."""

    screen_width: int | None = Field(None, ge=0, description="Screen width in CSS pixels")
    screen_height: int | None = Field(None, ge=0, description="Screen height in CSS pixels")
    color_depth: int | None = Field(None, ge=0, description="Screen color depth in bits")
    timezone: str | None = Field(None, description="IANA timezone name, e.g. Africa/Cairo")
    locale: str | None = Field(None, description="Preferred locale, e.g. ar-EG")
    platform: str | None = Field(None, description="Platform string, e.g. Win32")
    user_agent: str | None = Field(None, description="User-Agent header value")

    def is_empty(self) -> bool:
        return all(value in (None, "") for value in self.model_dump().values())


class DeviceIdentity(BaseModel):
    fingerprint: str
    display_name: str
    browser: BrowserFamily
    device_class: DeviceClass


def compute_fingerprint(signals: ClientSignals) -> str:
    """SHA-256 over screen geometry, timezone, locale and platform.

    The user agent is left out, it changes with every browser update.
    """
    parts = {
        "screen": f"{signals.screen_width or 0}x{signals.screen_height or 0}x{signals.color_depth or 0}",
        "timezone": signals.timezone or "",
        "locale": (signals.locale or "").lower(),
        "platform": signals.platform or "",
    }
    payload = json.dumps(parts, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def detect_browser(user_agent: str | None) -> BrowserFamily:
    if not user_agent:
        return BrowserFamily.UNKNOWN
    for family, markers in BROWSER_MARKERS:
        if any(marker in user_agent for marker in markers):
            return family
    return BrowserFamily.UNKNOWN


def detect_device_class(user_agent: str | None) -> DeviceClass:
    if not user_agent:
        return DeviceClass.DESKTOP
    if any(marker in user_agent for marker in TABLET_MARKERS):
        return DeviceClass.TABLET
    # Android tablets drop the "Mobile" token
    if "Android" in user_agent and "Mobile" not in user_agent:
        return DeviceClass.TABLET
    if any(marker in user_agent for marker in MOBILE_MARKERS):
        return DeviceClass.MOBILE
    return DeviceClass.DESKTOP


def resolve_device(signals: ClientSignals) -> DeviceIdentity:
    """Derive the fingerprint and a human label such as "Mobile - Chrome". Never raises."""
    browser = detect_browser(signals.user_agent)
    device_class = detect_device_class(signals.user_agent)
    if signals.is_empty():
        display_name = UNKNOWN_DEVICE
    else:
        display_name = f"{device_class} - {browser}"
    return DeviceIdentity(
        fingerprint=compute_fingerprint(signals),
        display_name=display_name,
        browser=browser,
        device_class=device_class,
    )
