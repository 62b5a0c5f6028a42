from typing import Any
from uuid import UUID

import structlog
from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from sessionguard.core.core import Service
from sessionguard.core.locks import KeyedLock
from sessionguard.core.modules.device.models import Device, DeviceRegistration
from sessionguard.core.modules.session.models import EndReason
from sessionguard.errors import NotFoundError
from sessionguard.utils import now

logger = structlog.get_logger(__name__)


class DeviceService(Service):
    """Registry of every device a user has signed in from."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("devices")
        self._locks = KeyedLock()

    async def on_start(self) -> None:
        """Create indexes on startup."""
        await self._collection.create_index([("user_id", 1), ("fingerprint", 1)], unique=True)
        await self._collection.create_index([("user_id", 1), ("last_seen_at", -1)])
        logger.debug("device_service_started")

    async def upsert(self, user_id: str, fingerprint: str, display_name: str, browser: str = "Unknown") -> DeviceRegistration:
        """Touch a known device or register a new one.

        The first device ever registered for a user becomes primary; later ones never
        do, and a known device keeps whatever is_primary it was created with. Removed
        devices still count, and one that signs in again is restored and reported as new.
        """
        async with self._locks.hold(user_id):
            seen_at = now()
            previous = await self._collection.find_one_and_update(
                {"user_id": user_id, "fingerprint": fingerprint},
                {"$set": {"last_seen_at": seen_at, "removed_at": None}},
                return_document=ReturnDocument.BEFORE,
            )
            if previous is not None:
                device = Device.model_validate({**previous, "last_seen_at": seen_at, "removed_at": None})
                restored = previous.get("removed_at") is not None
                if restored:
                    logger.info("device_restored", user_id=user_id, device_id=device.id)
                return DeviceRegistration(device=device, is_new=restored)

            is_primary = await self._collection.count_documents({"user_id": user_id}) == 0
            device = Device(
                user_id=user_id,
                fingerprint=fingerprint,
                display_name=display_name,
                browser=browser,
                is_primary=is_primary,
                first_seen_at=seen_at,
                last_seen_at=seen_at,
            )
            try:
                await self._collection.insert_one(device.to_mongo())
            except DuplicateKeyError:
                # Another process registered this fingerprint first
                doc = await self._collection.find_one({"user_id": user_id, "fingerprint": fingerprint})
                if doc is None:
                    raise
                return DeviceRegistration(device=Device.model_validate(doc), is_new=False)

        logger.info("device_registered", user_id=user_id, device_id=device.id, is_primary=is_primary)
        return DeviceRegistration(device=device, is_new=True)

    async def get_device(self, device_id: UUID) -> Device:
        device = Device.from_mongo(await self._collection.find_one({"_id": device_id, "removed_at": None}))
        if device is None:
            raise NotFoundError(f"Device '{device_id}' not found")
        return device

    async def list_devices(self, user_id: str) -> list[Device]:
        """Get the user's devices, most recently seen first."""
        return await Device.list_cursor(self._collection.find({"user_id": user_id, "removed_at": None}).sort("last_seen_at", -1))

    async def count_devices(self, user_id: str) -> int:
        """Count the devices the user has not removed."""
        return await self._collection.count_documents({"user_id": user_id, "removed_at": None})

    async def remove_device(self, user_id: str, device_id: UUID) -> None:
        """End every active session on the device, then mark it removed."""
        device = await self.get_device(device_id)
        if device.user_id != user_id:
            # Same answer as a missing device, ids of other users stay opaque
            raise NotFoundError(f"Device '{device_id}' not found")

        ended = await self.core.services.session.end_device_sessions(device_id, EndReason.DEVICE_REMOVED)
        await self._collection.update_one({"_id": device_id}, {"$set": {"removed_at": now()}})
        logger.info("device_removed", user_id=user_id, device_id=device_id, ended_sessions=ended)
