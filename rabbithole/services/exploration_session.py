"""
Exploration session management.

Sole writer of session turn lists. Appends to one session are serialized so
sequence indexes are assigned without races; different sessions never wait
on each other.
"""

import asyncio
import logging
import uuid
import weakref
from typing import Optional

from rabbithole.core.exceptions import SessionNotFound
from rabbithole.persistence.database import DatabaseService
from rabbithole.persistence.models import (
    ClientInfo,
    ExplorationMode,
    ExplorationSession,
    StructuredAnswer,
    Turn,
)

logger = logging.getLogger(__name__)


class ExplorationSessions:
    """
    Append-only store of exploration sessions.

    Wraps the persistence service with per-session append locks. A lock lives
    only as long as some coroutine holds a reference to it.
    """

    def __init__(self, db: DatabaseService):
        self.db = db
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    async def start_session(
        self,
        query: str,
        answer: StructuredAnswer,
        mode: ExplorationMode,
        concept: Optional[str] = None,
        client: Optional[ClientInfo] = None,
    ) -> ExplorationSession:
        """Create a new session whose turn 0 is (query, answer)."""
        session = ExplorationSession(
            id=uuid.uuid4().hex,
            root_query=query,
            mode=mode,
            status="success",
            concept=concept,
            turns=[Turn(query=query, answer=answer, sequence_index=0)],
            client=client or ClientInfo(),
        )
        created = await self.db.create(session)
        logger.info(f"Started session {created.id} for '{query}'")
        return created

    async def append_turn(
        self,
        session_id: str,
        query: str,
        answer: StructuredAnswer,
    ) -> ExplorationSession:
        """
        Append (query, answer) as the session's next turn.

        The turn's sequence index is the current turn count.

        Raises:
            SessionNotFound: If the id is unknown or names an error record
        """
        lock = self._lock_for(session_id)
        async with lock:
            session = await self.db.find_by_id(session_id)
            if session is None or session.status != "success":
                raise SessionNotFound(session_id)

            turn = Turn(query=query, answer=answer, sequence_index=len(session.turns))
            updated = await self.db.append_to_history(session_id, turn)

        logger.info(f"Appended turn {turn.sequence_index} to session {session_id}")
        return updated

    async def record_failure(
        self,
        query: str,
        error: str,
        mode: Optional[ExplorationMode] = None,
        concept: Optional[str] = None,
        client: Optional[ClientInfo] = None,
    ) -> ExplorationSession:
        """Write a terminal error record with no turns. Not resumable."""
        record = ExplorationSession(
            id=uuid.uuid4().hex,
            root_query=query,
            mode=mode,
            status="error",
            concept=concept,
            error=error,
            client=client or ClientInfo(),
        )
        created = await self.db.create(record)
        logger.info(f"Recorded failed search {created.id} for '{query}'")
        return created

    async def get(self, session_id: str) -> ExplorationSession:
        """Get a session by id. Raises SessionNotFound."""
        session = await self.db.find_by_id(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    async def recent_successful(self, limit: int) -> list[ExplorationSession]:
        """Newest successful sessions first."""
        return await self.db.find_recent_successful(limit)
