"""
Web search client backed by the Tavily search API.

Returns raw results plus image hits in the shape the answer synthesizer
consumes:

    {"results": [{title, url, author, image, content}], "images": [{url, description}]}

Failures are raised as-is; wrapping them is the synthesizer's job.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from rabbithole.core.config import config
from rabbithole.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class TavilySearchClient:
    """Thin async client for Tavily's ``/search`` endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else config.search.api_key
        self.base_url = (base_url or config.search.base_url).rstrip("/")
        self.timeout = timeout or config.search.timeout
        self.transport = transport

    async def search(
        self,
        query: str,
        max_results: Optional[int] = None,
        include_images: Optional[bool] = None,
    ) -> Dict[str, List[Dict[str, Any]]]:
        """
        Run a web search.

        Args:
            query: Search query
            max_results: Max results (default from config)
            include_images: Whether to request image hits (default from config)

        Returns:
            Dict with ``results`` and ``images`` lists

        Raises:
            ConfigurationError: If no API key is configured
            httpx.HTTPError: On transport failures and non-2xx responses
        """
        if not self.api_key:
            raise ConfigurationError("TAVILY_API_KEY is not set")

        max_results = max_results or config.search.max_results
        if include_images is None:
            include_images = config.search.include_images

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "query": query,
            "search_depth": config.search.search_depth,
            "max_results": max_results,
            "include_images": include_images,
            "include_image_descriptions": include_images,
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post(f"{self.base_url}/search", json=payload, headers=headers)

        resp.raise_for_status()
        data = resp.json()

        results = data.get("results") or []
        images = [_normalize_image(img) for img in data.get("images") or []]

        logger.info(f"Search '{query}' returned {len(results)} results, {len(images)} images")

        return {"results": results, "images": images}


def _normalize_image(image: Any) -> Dict[str, Any]:
    # Tavily returns bare URLs unless image descriptions are requested
    if isinstance(image, str):
        return {"url": image, "description": ""}
    return {"url": image.get("url", ""), "description": image.get("description") or ""}


# Global client instance
_search_client: Optional[TavilySearchClient] = None


def get_search_client() -> TavilySearchClient:
    """Get the global search client instance."""
    global _search_client
    if _search_client is None:
        _search_client = TavilySearchClient()
    return _search_client
