"""
Answer synthesizer.

Runs the synthesis graph for one query. Pure apart from its two upstream
calls; persisting the result is the caller's job.
"""

import logging
from typing import Optional, Sequence

from rabbithole.agents.graph import CompletionClient, SearchClient, create_synthesis_graph
from rabbithole.agents.state import create_initial_state
from rabbithole.core.llm import get_llm_provider
from rabbithole.persistence.models import ExplorationMode, PriorTurn, StructuredAnswer
from rabbithole.tools.search import get_search_client

logger = logging.getLogger(__name__)


class AnswerSynthesizer:
    """
    Turns a query plus prior context into a StructuredAnswer.

    Usage:
        synthesizer = AnswerSynthesizer()
        answer = await synthesizer.synthesize("Why is the sky blue?")
    """

    def __init__(
        self,
        search_client: Optional[SearchClient] = None,
        llm: Optional[CompletionClient] = None,
        model_hint: Optional[str] = None,
    ):
        self.search_client = search_client or get_search_client()
        self.llm = llm or get_llm_provider()
        self._graph = create_synthesis_graph(self.search_client, self.llm, model_hint)

    async def synthesize(
        self,
        query: str,
        prior_turns: Sequence[PriorTurn] = (),
        concept: Optional[str] = None,
        mode: ExplorationMode = "expansive",
    ) -> StructuredAnswer:
        """
        Produce a structured answer for ``query``.

        Args:
            query: Non-empty query text
            prior_turns: Earlier (query, answer summary) pairs, oldest first
            concept: Optional subject to cover instead of the literal query
            mode: "expansive" for breadth, "focused" for depth

        Raises:
            ValueError: If the query is blank
            UpstreamSearchError: If the search provider fails
            UpstreamModelError: If the language model fails
        """
        if not query or not query.strip():
            raise ValueError("query must be non-empty")

        logger.info(f"Synthesizing answer for '{query}' (mode={mode}, prior_turns={len(prior_turns)})")

        state = create_initial_state(
            query=query,
            prior_turns=list(prior_turns),
            concept=concept,
            mode=mode,
        )
        result = await self._graph.ainvoke(state)
        return result["answer"]


# Global synthesizer instance
_synthesizer: Optional[AnswerSynthesizer] = None


def get_synthesizer() -> AnswerSynthesizer:
    """Get the global synthesizer instance."""
    global _synthesizer
    if _synthesizer is None:
        _synthesizer = AnswerSynthesizer()
    return _synthesizer
