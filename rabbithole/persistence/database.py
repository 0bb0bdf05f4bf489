"""
Async SQLite database service.

Stores exploration sessions as an append-only log:
- Sessions (root query, mode, status, audit metadata)
- Turns (one row per sequence index; answer serialized as JSON)

Turns are only ever inserted. The (session_id, sequence_index) primary key
rejects a second writer that computed the same index.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import List, Optional

import aiosqlite

from rabbithole.core.config import config
from rabbithole.core.exceptions import DatabaseError, SessionNotFound
from rabbithole.persistence.models import (
    ClientInfo,
    ExplorationSession,
    StructuredAnswer,
    Turn,
)

logger = logging.getLogger(__name__)


class DatabaseService:
    """
    Async database service for exploration sessions.

    Uses aiosqlite for async SQLite operations with WAL mode.
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or config.database.app_db_path
        self._initialized = False

    @asynccontextmanager
    async def get_connection(self):
        """Async context manager for database connection."""
        conn = await aiosqlite.connect(self.db_path, timeout=30)
        await conn.execute("PRAGMA journal_mode=WAL;")
        await conn.execute("PRAGMA foreign_keys=ON;")
        conn.row_factory = aiosqlite.Row
        try:
            yield conn
        finally:
            await conn.close()

    async def init_db(self) -> None:
        """Initialize database schema."""
        if self._initialized:
            return

        # Ensure directory exists
        db_dir = os.path.dirname(self.db_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)

        logger.info(f"Initializing database at: {self.db_path}")

        async with self.get_connection() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS sessions (
                    id TEXT PRIMARY KEY,
                    query TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'success',
                    mode TEXT,
                    concept TEXT,
                    error TEXT,
                    ip_hash TEXT,
                    user_agent TEXT,
                    client_session_id TEXT,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS turns (
                    session_id TEXT NOT NULL,
                    sequence_index INTEGER NOT NULL,
                    query TEXT NOT NULL,
                    answer TEXT NOT NULL,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (session_id, sequence_index),
                    FOREIGN KEY(session_id) REFERENCES sessions(id)
                )
            """)

            await conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_sessions_created_at ON sessions(created_at DESC)"
            )
            await conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_sessions_status ON sessions(status)"
            )
            await conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_sessions_ip_hash ON sessions(ip_hash)"
            )

            await conn.commit()

        self._initialized = True
        logger.info("Database initialized successfully")

    # --- Session Operations ---

    async def create(self, session: ExplorationSession) -> ExplorationSession:
        """Insert a session record together with any turns it already holds."""
        try:
            async with self.get_connection() as conn:
                await conn.execute(
                    """
                    INSERT INTO sessions
                        (id, query, status, mode, concept, error, ip_hash, user_agent, client_session_id)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        session.id,
                        session.root_query,
                        session.status,
                        session.mode,
                        session.concept,
                        session.error,
                        session.client.ip_hash,
                        session.client.user_agent,
                        session.client.session_id,
                    ),
                )
                for turn in session.turns:
                    await self._insert_turn(conn, session.id, turn)
                await conn.commit()
        except aiosqlite.IntegrityError as e:
            raise DatabaseError(f"Could not create session {session.id}: {e}") from e

        created = await self.find_by_id(session.id)
        assert created is not None
        return created

    async def append_to_history(self, session_id: str, turn: Turn) -> ExplorationSession:
        """
        Append a turn to a session's history.

        Raises:
            SessionNotFound: If the session does not exist
            DatabaseError: If the turn's sequence index is already taken
        """
        async with self.get_connection() as conn:
            async with conn.execute(
                "SELECT id FROM sessions WHERE id = ?", (session_id,)
            ) as cursor:
                if await cursor.fetchone() is None:
                    raise SessionNotFound(session_id)

            try:
                await self._insert_turn(conn, session_id, turn)
                await conn.commit()
            except aiosqlite.IntegrityError as e:
                raise DatabaseError(
                    f"Turn {turn.sequence_index} already exists for session {session_id}"
                ) from e

        updated = await self.find_by_id(session_id)
        if updated is None:
            raise SessionNotFound(session_id)
        return updated

    async def find_by_id(self, session_id: str) -> Optional[ExplorationSession]:
        """Get a session with its turns, or None."""
        async with self.get_connection() as conn:
            async with conn.execute(
                "SELECT * FROM sessions WHERE id = ?", (session_id,)
            ) as cursor:
                row = await cursor.fetchone()
            if not row:
                return None
            turns = await self._load_turns(conn, session_id)

        return _row_to_session(row, turns)

    async def find_recent_successful(self, limit: int = 5) -> List[ExplorationSession]:
        """Get the newest successful sessions, newest first."""
        async with self.get_connection() as conn:
            async with conn.execute(
                """
                SELECT * FROM sessions
                WHERE status = 'success'
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
                """,
                (limit,),
            ) as cursor:
                rows = await cursor.fetchall()

            sessions = []
            for row in rows:
                turns = await self._load_turns(conn, row["id"])
                sessions.append(_row_to_session(row, turns))

        return sessions

    # --- Helpers ---

    async def _insert_turn(self, conn: aiosqlite.Connection, session_id: str, turn: Turn) -> None:
        await conn.execute(
            "INSERT INTO turns (session_id, sequence_index, query, answer) VALUES (?, ?, ?, ?)",
            (
                session_id,
                turn.sequence_index,
                turn.query,
                turn.answer.model_dump_json(by_alias=True),
            ),
        )

    async def _load_turns(self, conn: aiosqlite.Connection, session_id: str) -> List[Turn]:
        async with conn.execute(
            "SELECT * FROM turns WHERE session_id = ? ORDER BY sequence_index",
            (session_id,),
        ) as cursor:
            rows = await cursor.fetchall()

        return [
            Turn(
                query=row["query"],
                answer=StructuredAnswer.model_validate_json(row["answer"]),
                sequence_index=row["sequence_index"],
                created_at=row["created_at"],
            )
            for row in rows
        ]


def _row_to_session(row: aiosqlite.Row, turns: List[Turn]) -> ExplorationSession:
    return ExplorationSession(
        id=row["id"],
        root_query=row["query"],
        mode=row["mode"],
        status=row["status"],
        concept=row["concept"],
        error=row["error"],
        turns=turns,
        client=ClientInfo(
            ip_hash=row["ip_hash"],
            user_agent=row["user_agent"],
            session_id=row["client_session_id"],
        ),
        created_at=row["created_at"],
    )


# Global instance
_db_service: Optional[DatabaseService] = None


async def get_db_service() -> DatabaseService:
    """Get the global database service instance."""
    global _db_service

    if _db_service is None:
        _db_service = DatabaseService()
        await _db_service.init_db()

    return _db_service
