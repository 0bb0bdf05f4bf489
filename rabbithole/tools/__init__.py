"""
External tool clients.
"""

from rabbithole.tools.search import TavilySearchClient, get_search_client

__all__ = ["TavilySearchClient", "get_search_client"]
