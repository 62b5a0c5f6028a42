import secrets
from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.client_session import AsyncClientSession
from pymongo.asynchronous.database import AsyncDatabase

from sessionguard.core.core import Service
from sessionguard.core.locks import KeyedLock
from sessionguard.core.modules.session.models import EndReason, Session, SessionStatus, SessionToken
from sessionguard.errors import NotFoundError
from sessionguard.utils import now

logger = structlog.get_logger(__name__)


class SessionService(Service):
    """Authoritative registry of login sessions.

    Sessions are only mutated through the methods below so that a user never has
    more than one active session.
    """

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("sessions")
        self._lock_collection = database.get_collection("session_locks")
        self._user_locks = KeyedLock()

    async def on_start(self) -> None:
        """Create indexes on startup."""
        await self._collection.create_index([("session_token", 1)], unique=True)
        await self._collection.create_index([("user_id", 1), ("is_active", 1)])
        await self._collection.create_index([("device_id", 1)])
        # Active sessions keep ended_at null and are never expired
        retention = self.core.config.ended_session_retention_days * 24 * 60 * 60
        await self._collection.create_index([("ended_at", 1)], expireAfterSeconds=retention)

    async def create(
        self, user_id: str, device_id: UUID | None, *, session: AsyncClientSession | None = None
    ) -> SessionToken:
        """Insert a new active session and return its token."""
        token = SessionToken(secrets.token_urlsafe(32))
        new_session = Session(session_token=token, user_id=user_id, device_id=device_id)
        await self._collection.insert_one(new_session.to_mongo(), session=session)
        return token

    async def invalidate_all_except(
        self,
        user_id: str,
        keep_token: SessionToken,
        reason: EndReason,
        *,
        session: AsyncClientSession | None = None,
    ) -> int:
        """End every active session of the user other than keep_token. Returns how many were ended."""
        result = await self._collection.update_many(
            {"user_id": user_id, "session_token": {"$ne": keep_token}, "is_active": True},
            {"$set": {"is_active": False, "ended_at": now(), "ended_reason": reason}},
            session=session,
        )
        return result.modified_count

    async def get_session(self, session_token: SessionToken) -> Session:
        session = Session.from_mongo(await self._collection.find_one({"session_token": session_token}))
        if session is None:
            raise NotFoundError("Session not found")
        return session

    async def get_status(self, session_token: SessionToken) -> SessionStatus:
        """Point read used by liveness polls."""
        return SessionStatus.from_domain(await self.get_session(session_token))

    async def end(self, session_token: SessionToken, reason: EndReason) -> bool:
        """End one session. Returns False if it was already ended or never existed."""
        result = await self._collection.update_one(
            {"session_token": session_token, "is_active": True},
            {"$set": {"is_active": False, "ended_at": now(), "ended_reason": reason}},
        )
        if result.modified_count:
            logger.info("session_ended", reason=reason)
        return result.modified_count == 1

    async def end_device_sessions(self, device_id: UUID, reason: EndReason) -> int:
        result = await self._collection.update_many(
            {"device_id": device_id, "is_active": True},
            {"$set": {"is_active": False, "ended_at": now(), "ended_reason": reason}},
        )
        return result.modified_count

    async def count_active(self, user_id: str) -> int:
        return await self._collection.count_documents({"user_id": user_id, "is_active": True})

    async def open_exclusive_session(self, user_id: str, device_id: UUID | None) -> SessionToken:
        """Start a session that displaces every other session of the user.

        The new session is created before the old ones are ended, and both writes
        commit in one transaction, so readers never see the user with zero active
        sessions. Bumping the user's lock document makes concurrent logins for the
        same user conflict, and the transaction retry runs the loser again after the
        winner has committed. The most recently committed login wins.
        """

        async def displace(mongo_session: AsyncClientSession) -> tuple[SessionToken, int]:
            await self._lock_collection.find_one_and_update(
                {"_id": user_id}, {"$inc": {"seq": 1}}, upsert=True, session=mongo_session
            )
            token = await self.create(user_id, device_id, session=mongo_session)
            displaced = await self.invalidate_all_except(user_id, token, EndReason.NEW_LOGIN, session=mongo_session)
            return token, displaced

        async with self._user_locks.hold(user_id):
            async with self.database.client.start_session() as mongo_session:
                token, displaced = await mongo_session.with_transaction(displace)

        logger.info("session_opened", user_id=user_id, device_id=device_id, displaced=displaced)
        return token
