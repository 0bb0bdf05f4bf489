"""
Rabbit hole service: search-and-append orchestration.

Ties the answer synthesizer to the exploration session store, writes error
records for failed searches, and renders session graphs.
"""

import asyncio
import logging
from typing import List, Optional

from rabbithole.agents.synthesizer import AnswerSynthesizer, get_synthesizer
from rabbithole.core.config import config
from rabbithole.core.exceptions import GraphNodeNotFound, SessionNotFound
from rabbithole.persistence.database import get_db_service
from rabbithole.persistence.models import (
    ClientInfo,
    ExplorationMode,
    ExplorationSession,
    PriorTurn,
)
from rabbithole.services.exploration_session import ExplorationSessions
from rabbithole.visualization.builder import build_graph
from rabbithole.visualization.layout import layout
from rabbithole.visualization.models import PositionedGraph

logger = logging.getLogger(__name__)


class RabbitHoleService:
    """
    Service boundary for exploring topics.

    One search is one logical unit of work. It suspends only on the search
    and model calls; once the resulting turn is being committed, cancelling
    the caller no longer affects it.
    """

    def __init__(
        self,
        sessions: ExplorationSessions,
        synthesizer: AnswerSynthesizer,
    ):
        self.sessions = sessions
        self.synthesizer = synthesizer

    async def search(
        self,
        query: str,
        prior_turns: Optional[List[PriorTurn]] = None,
        concept: Optional[str] = None,
        mode: Optional[ExplorationMode] = None,
        parent_search_id: Optional[str] = None,
        client: Optional[ClientInfo] = None,
    ) -> ExplorationSession:
        """
        Answer a query and record it as a turn.

        Starts a new session, or appends to ``parent_search_id`` when given.
        Prior context defaults to the parent session's stored turns. An
        existing session keeps the mode it was started with.

        Any failure is recorded as an error record and re-raised.

        Returns:
            The session including the new turn
        """
        try:
            parent = None
            if parent_search_id:
                parent = await self.sessions.get(parent_search_id)
                # Error records are terminal audit rows, never continued
                if parent.status != "success":
                    raise SessionNotFound(parent_search_id)
                mode = parent.mode or mode
                if prior_turns is None:
                    prior_turns = parent.prior_turns()

            mode = mode or config.exploration.default_mode

            answer = await self.synthesizer.synthesize(
                query,
                prior_turns=prior_turns or [],
                concept=concept,
                mode=mode,
            )

            if parent is not None:
                commit = self.sessions.append_turn(parent.id, query, answer)
            else:
                commit = self.sessions.start_session(
                    query, answer, mode=mode, concept=concept, client=client
                )
            return await asyncio.shield(commit)

        except Exception as e:
            logger.exception(f"Error in rabbit hole search for '{query}': {e}")
            if query:
                await self._record_failure(query, e, mode, concept, client)
            raise

    async def explore_question(
        self,
        session_id: str,
        node_id: str,
        client: Optional[ClientInfo] = None,
    ) -> ExplorationSession:
        """
        Follow a question node: its text becomes the next turn of the session.

        Raises:
            SessionNotFound: If the session does not exist
            GraphNodeNotFound: If node_id is not a question node of the session
        """
        session = await self.sessions.get(session_id)
        node = build_graph(session).node(node_id)
        if node is None or node.kind != "question":
            raise GraphNodeNotFound(session_id, node_id)

        logger.info(f"Exploring question node {node_id} of session {session_id}")
        return await self.search(
            query=node.payload,
            parent_search_id=session_id,
            client=client,
        )

    async def get_session(self, session_id: str) -> ExplorationSession:
        """Get a session by id. Raises SessionNotFound."""
        return await self.sessions.get(session_id)

    async def get_graph(self, session_id: str) -> PositionedGraph:
        """Build and lay out the session's exploration graph."""
        session = await self.sessions.get(session_id)
        graph = build_graph(session)
        return layout(graph.nodes, graph.edges)

    async def recent_searches(self, limit: Optional[int] = None) -> List[ExplorationSession]:
        """Newest successful sessions."""
        return await self.sessions.recent_successful(
            limit or config.exploration.recent_searches_limit
        )

    async def _record_failure(
        self,
        query: str,
        error: Exception,
        mode: Optional[ExplorationMode],
        concept: Optional[str],
        client: Optional[ClientInfo],
    ) -> None:
        try:
            await self.sessions.record_failure(
                query, str(error), mode=mode, concept=concept, client=client
            )
        except Exception as db_error:
            logger.error(f"Error saving failed search: {db_error}")


# Global service instance
_service: Optional[RabbitHoleService] = None


async def get_rabbithole_service() -> RabbitHoleService:
    """Get the global rabbit hole service instance."""
    global _service

    if _service is None:
        db = await get_db_service()
        _service = RabbitHoleService(
            sessions=ExplorationSessions(db),
            synthesizer=get_synthesizer(),
        )

    return _service
