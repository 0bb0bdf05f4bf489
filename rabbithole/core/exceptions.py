"""
Custom exception hierarchy for the rabbit hole explorer.

Provides structured exceptions for better error handling and debugging.
"""

from typing import Optional


class RabbitHoleError(Exception):
    """Base exception for all rabbit hole errors."""

    pass


class ConfigurationError(RabbitHoleError):
    """Raised when configuration validation fails or required config is missing."""

    pass


class UpstreamSearchError(RabbitHoleError):
    """Raised when the search provider fails. Never retried by the synthesizer."""

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        source: Optional[str] = None,
    ):
        super().__init__(message)
        self.query = query
        self.source = source

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.query:
            parts.append(f"Query: {self.query}")
        if self.source:
            parts.append(f"Source: {self.source}")
        return " | ".join(parts)


class UpstreamModelError(RabbitHoleError):
    """
    Raised when the language model fails.

    ``retryable`` is True only for rate-limit failures; callers translate it
    into a "retry shortly" signal instead of a generic failure.
    """

    def __init__(
        self,
        message: str,
        retryable: bool = False,
        model: Optional[str] = None,
    ):
        super().__init__(message)
        self.retryable = retryable
        self.model = model

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.model:
            parts.append(f"Model: {self.model}")
        if self.retryable:
            parts.append("Retryable: yes")
        return " | ".join(parts)


class SessionNotFound(RabbitHoleError):
    """Raised when a session id does not resolve to a stored session."""

    def __init__(self, session_id: str):
        super().__init__("Session not found")
        self.session_id = session_id

    def __str__(self) -> str:
        return f"{super().__str__()} | Session: {self.session_id}"


class GraphNodeNotFound(RabbitHoleError):
    """Raised when a node id is not an explorable question of the session graph."""

    def __init__(self, session_id: str, node_id: str):
        super().__init__("Question node not found")
        self.session_id = session_id
        self.node_id = node_id

    def __str__(self) -> str:
        return f"{super().__str__()} | Session: {self.session_id} | Node: {self.node_id}"


class MalformedResponse(RabbitHoleError):
    """
    Reserved for model output that cannot be parsed even partially.

    Parsing currently degrades to empty fields instead of raising this.
    """

    pass


class DatabaseError(RabbitHoleError):
    """Raised when database operations fail."""

    pass
