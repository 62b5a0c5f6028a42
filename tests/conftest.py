"""Shared pytest fixtures."""

import pytest

from sessionguard.app import App
from sessionguard.config import Config
from sessionguard.core.core import Core
from sessionguard.core.modules.device.fingerprint import ClientSignals

from fakes import FakeCollection, FakeMongoClient
from samples import CHROME_DESKTOP_UA, SAFARI_IPHONE_UA

DATABASE_NAME = "sessionguard_test"


@pytest.fixture
def config():
    return Config(
        database_url=f"mongodb://localhost:27017/{DATABASE_NAME}",
        poll_interval_seconds=30.0,
        enforced_roles=["student"],
    )


@pytest.fixture
def mongo():
    return FakeMongoClient()


@pytest.fixture
def sessions_collection(mongo) -> FakeCollection:
    return mongo.get_database(DATABASE_NAME).get_collection("sessions")


@pytest.fixture
def devices_collection(mongo) -> FakeCollection:
    return mongo.get_database(DATABASE_NAME).get_collection("devices")


@pytest.fixture
async def core(config, mongo):
    """Core wired to the in-memory database, started."""
    core = Core(config, mongo)
    async with core.lifespan():
        yield core


@pytest.fixture
async def app(config, mongo):
    """App facade wired to the in-memory database, started."""
    app = App(config, mongo)
    async with app.lifespan():
        yield app


@pytest.fixture
def laptop_signals():
    """Device A: a Windows laptop."""
    return ClientSignals(
        screen_width=1920,
        screen_height=1080,
        color_depth=24,
        timezone="Africa/Cairo",
        locale="ar-EG",
        platform="Win32",
        user_agent=CHROME_DESKTOP_UA,
    )


@pytest.fixture
def phone_signals():
    """Device B: an iPhone."""
    return ClientSignals(
        screen_width=390,
        screen_height=844,
        color_depth=32,
        timezone="Africa/Cairo",
        locale="ar-EG",
        platform="iPhone",
        user_agent=SAFARI_IPHONE_UA,
    )
