"""
Services package: exploration sessions and the search-and-append boundary.
"""

from rabbithole.services.exploration_session import ExplorationSessions
from rabbithole.services.rabbithole_service import RabbitHoleService, get_rabbithole_service

__all__ = [
    "ExplorationSessions",
    "RabbitHoleService",
    "get_rabbithole_service",
]
