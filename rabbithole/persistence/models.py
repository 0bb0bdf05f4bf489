"""
Pydantic models for the persistence layer.

These models define structured answers, turns, and exploration sessions.
Field names serialize in camelCase (``mainText``, ``followUpQuestions``,
``sequenceIndex`` ...) so stored JSON and API payloads share one shape.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ExplorationMode = Literal["expansive", "focused"]
SessionStatus = Literal["success", "error"]

MAX_FOLLOW_UP_QUESTIONS = 3


class CamelModel(BaseModel):
    """Base model serializing field names in camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# --- Answer Models ---

class Source(CamelModel):
    """A search result cited by an answer. Missing fields are empty strings."""

    title: str = ""
    url: str = ""
    author: str = ""
    preview_image: str = ""


class AnswerImage(CamelModel):
    """An image surfaced by the search provider."""

    url: str = ""
    thumbnail_url: str = ""
    description: str = ""


class StructuredAnswer(CamelModel):
    """Parsed model output for one query."""

    main_text: str = ""
    follow_up_questions: List[str] = Field(default_factory=list, max_length=MAX_FOLLOW_UP_QUESTIONS)
    sources: List[Source] = Field(default_factory=list)
    images: List[AnswerImage] = Field(default_factory=list)
    contextual_query: str = ""


class PriorTurn(CamelModel):
    """Conversational context handed to the synthesizer."""

    query: str
    answer_summary: str = ""


# --- Session Models ---

class Turn(CamelModel):
    """One query/answer exchange. Immutable once appended."""

    query: str
    answer: StructuredAnswer
    sequence_index: int = Field(..., ge=0)
    created_at: Optional[datetime] = None


class ClientInfo(CamelModel):
    """Audit metadata about the client that created a session."""

    ip_hash: Optional[str] = None
    user_agent: Optional[str] = None
    session_id: Optional[str] = None


class ExplorationSession(CamelModel):
    """
    Append-only branching history of turns.

    Error records carry ``status="error"``, the failure message and no turns.
    """

    id: str
    root_query: str
    mode: Optional[ExplorationMode] = None
    status: SessionStatus = "success"
    concept: Optional[str] = None
    error: Optional[str] = None
    turns: List[Turn] = Field(default_factory=list)
    client: ClientInfo = Field(default_factory=ClientInfo)
    created_at: Optional[datetime] = None

    def prior_turns(self) -> List[PriorTurn]:
        """Context pairs for the next synthesis, oldest first."""
        return [
            PriorTurn(query=t.query, answer_summary=t.answer.main_text)
            for t in self.turns
        ]
