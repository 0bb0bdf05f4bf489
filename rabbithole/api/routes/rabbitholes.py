"""
Rabbit hole routes.

Search (start or continue a session), follow a question node, and read
sessions and their laid-out graphs.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import Field, ValidationError

from rabbithole.api.dependencies import get_client_info
from rabbithole.core.exceptions import (
    GraphNodeNotFound,
    SessionNotFound,
    UpstreamModelError,
)
from rabbithole.persistence.models import (
    CamelModel,
    ClientInfo,
    ExplorationMode,
    ExplorationSession,
    PriorTurn,
    StructuredAnswer,
    Turn,
)
from rabbithole.services.rabbithole_service import RabbitHoleService, get_rabbithole_service
from rabbithole.visualization.models import PositionedGraph

logger = logging.getLogger(__name__)

router = APIRouter()


class ConversationMessage(CamelModel):
    """One exchange of client-held conversation context."""

    user: Optional[str] = None
    assistant: Optional[str] = None


class RabbitHoleSearchRequest(CamelModel):
    """Request to start or continue an exploration."""

    query: str = Field(..., min_length=1)
    previous_conversation: Optional[List[ConversationMessage]] = None
    concept: Optional[str] = None
    follow_up_mode: Optional[ExplorationMode] = None
    parent_search_id: Optional[str] = None

    def prior_turns(self) -> Optional[List[PriorTurn]]:
        if self.previous_conversation is None:
            return None
        return [
            PriorTurn(query=msg.user or "", answer_summary=msg.assistant or "")
            for msg in self.previous_conversation
        ]


class ExploreRequest(CamelModel):
    """Request to follow a question node."""

    node_id: str = Field(..., min_length=1)


class SearchResponse(StructuredAnswer):
    """The new answer plus the session it now belongs to."""

    search_id: str
    conversation_history: List[Turn]


def _search_response(session: ExplorationSession) -> SearchResponse:
    latest = session.turns[-1]
    return SearchResponse(
        main_text=latest.answer.main_text,
        follow_up_questions=latest.answer.follow_up_questions,
        sources=latest.answer.sources,
        images=latest.answer.images,
        contextual_query=latest.answer.contextual_query,
        search_id=session.id,
        conversation_history=session.turns,
    )


def _search_error_response(error: Exception) -> JSONResponse:
    """Map a failed search to the client-facing error payload."""
    if isinstance(error, UpstreamModelError) and error.retryable:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "error": "Service is temporarily busy. Please try again in a few seconds.",
                "retryAfter": "5 seconds",
            },
        )
    if isinstance(error, (SessionNotFound, GraphNodeNotFound)):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "Search not found", "details": str(error)},
        )
    # Blank queries only; a model validation failure is an internal error
    if isinstance(error, ValueError) and not isinstance(error, ValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid search request", "details": str(error)},
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Failed to process search request", "details": str(error)},
    )


@router.post("/search", response_model=SearchResponse)
async def search(
    request: RabbitHoleSearchRequest,
    client: ClientInfo = Depends(get_client_info),
    service: RabbitHoleService = Depends(get_rabbithole_service),
):
    """
    Answer a query.

    Starts a new session, or appends a turn when parentSearchId is given.
    """
    logger.info(f"Search request: '{request.query[:50]}' (parent={request.parent_search_id})")
    try:
        session = await service.search(
            query=request.query,
            prior_turns=request.prior_turns(),
            concept=request.concept,
            mode=request.follow_up_mode,
            parent_search_id=request.parent_search_id,
            client=client,
        )
    except Exception as e:
        return _search_error_response(e)

    return _search_response(session)


@router.get("/recent-searches", response_model=List[ExplorationSession])
async def recent_searches(
    service: RabbitHoleService = Depends(get_rabbithole_service),
):
    """
    List the most recent successful sessions.
    """
    try:
        return await service.recent_searches()
    except Exception as e:
        logger.exception(f"Error fetching recent searches: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch recent searches: {e}",
        )


@router.get("/search/{search_id}", response_model=ExplorationSession)
async def get_search(
    search_id: str,
    service: RabbitHoleService = Depends(get_rabbithole_service),
):
    """
    Get a session with its full conversation history.
    """
    try:
        return await service.get_session(search_id)
    except SessionNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Search not found",
        )


@router.get("/search/{search_id}/graph", response_model=PositionedGraph)
async def get_search_graph(
    search_id: str,
    service: RabbitHoleService = Depends(get_rabbithole_service),
):
    """
    Get the session's exploration graph with node positions and edge styles.
    """
    try:
        return await service.get_graph(search_id)
    except SessionNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Search not found",
        )


@router.post("/search/{search_id}/explore", response_model=SearchResponse)
async def explore_question(
    search_id: str,
    request: ExploreRequest,
    client: ClientInfo = Depends(get_client_info),
    service: RabbitHoleService = Depends(get_rabbithole_service),
):
    """
    Follow a question node: its text is answered as the session's next turn.
    """
    try:
        session = await service.explore_question(search_id, request.node_id, client=client)
    except Exception as e:
        return _search_error_response(e)

    return _search_response(session)
