"""
FastAPI dependencies for client metadata and service access.
"""

import hashlib
import logging

from fastapi import Request

from rabbithole.persistence.models import ClientInfo

logger = logging.getLogger(__name__)


def hash_ip(ip: str) -> str:
    """SHA-256 hex digest of a client IP; raw addresses are never stored."""
    return hashlib.sha256(ip.encode("utf-8")).hexdigest()


def get_client_info(request: Request) -> ClientInfo:
    """
    Collect audit metadata for the calling client.

    Uses the socket peer address, falling back to X-Forwarded-For.
    """
    client_ip = (
        (request.client.host if request.client else None)
        or request.headers.get("x-forwarded-for")
        or "unknown"
    )

    return ClientInfo(
        ip_hash=hash_ip(client_ip),
        user_agent=request.headers.get("user-agent") or "unknown",
        session_id=request.headers.get("x-session-id"),
    )
