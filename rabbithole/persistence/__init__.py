"""
Persistence package for database operations.

Holds the typed session records and the append-only session store.
"""

from rabbithole.persistence.database import DatabaseService, get_db_service
from rabbithole.persistence.models import (
    AnswerImage,
    ClientInfo,
    ExplorationMode,
    ExplorationSession,
    PriorTurn,
    Source,
    StructuredAnswer,
    Turn,
)

__all__ = [
    "DatabaseService",
    "get_db_service",
    "AnswerImage",
    "ClientInfo",
    "ExplorationMode",
    "ExplorationSession",
    "PriorTurn",
    "Source",
    "StructuredAnswer",
    "Turn",
]
