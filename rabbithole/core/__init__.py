"""
Core infrastructure package.

Provides configuration, LLM setup, logging, and exception handling.
"""

from rabbithole.core.config import config, Settings
from rabbithole.core.exceptions import (
    RabbitHoleError,
    ConfigurationError,
    UpstreamSearchError,
    UpstreamModelError,
    SessionNotFound,
    GraphNodeNotFound,
    MalformedResponse,
    DatabaseError,
)

__all__ = [
    "config",
    "Settings",
    "RabbitHoleError",
    "ConfigurationError",
    "UpstreamSearchError",
    "UpstreamModelError",
    "SessionNotFound",
    "GraphNodeNotFound",
    "MalformedResponse",
    "DatabaseError",
]
