"""
Answer synthesis graph assembly.

Defines the StateGraph that turns a query into a StructuredAnswer.
"""

import logging
from typing import Any, Optional, Protocol, Sequence

from langchain_core.messages import BaseMessage
from langgraph.graph import END, START, StateGraph

from rabbithole.agents.parsing import build_answer
from rabbithole.agents.prompts import build_messages
from rabbithole.agents.state import SynthesisState
from rabbithole.core.config import config
from rabbithole.core.exceptions import UpstreamModelError, UpstreamSearchError
from rabbithole.core.llm import is_rate_limit_error

logger = logging.getLogger(__name__)


class SearchClient(Protocol):
    async def search(
        self,
        query: str,
        max_results: Optional[int] = None,
        include_images: Optional[bool] = None,
    ) -> dict[str, Any]: ...


class CompletionClient(Protocol):
    async def complete(
        self,
        messages: Sequence[BaseMessage],
        model_hint: Optional[str] = None,
    ) -> str: ...


def build_synthesis_graph(
    search_client: SearchClient,
    llm: CompletionClient,
    model_hint: Optional[str] = None,
) -> StateGraph:
    """
    Build the synthesis StateGraph.

    Graph structure:
        START -> search -> generate -> parse -> END

    search and generate are the only suspension points. Their failures are
    wrapped as UpstreamSearchError / UpstreamModelError and are not retried.
    """
    logger.info("Building synthesis StateGraph")

    async def search_node(state: SynthesisState) -> dict:
        query = state["query"]
        logger.info(f"Searching for '{query}'")
        try:
            results = await search_client.search(
                query,
                max_results=config.search.max_results,
                include_images=True,
            )
        except Exception as e:
            logger.error(f"Search failed for '{query}': {e}")
            raise UpstreamSearchError(
                f"Search service error: {e}", query=query, source="tavily"
            ) from e

        return {"search_results": results}

    async def generate_node(state: SynthesisState) -> dict:
        messages = build_messages(
            query=state["query"],
            search_results=state["search_results"],
            prior_turns=state.get("prior_turns", []),
            concept=state.get("concept"),
            mode=state.get("mode", "expansive"),
        )
        model = model_hint or config.llm.model
        try:
            raw = await llm.complete(messages, model_hint)
        except Exception as e:
            retryable = is_rate_limit_error(e)
            logger.error(f"Model call failed (model={model}, rate_limited={retryable}): {e}")
            raise UpstreamModelError(str(e), retryable=retryable, model=model) from e

        logger.debug(f"Model returned {len(raw or '')} chars")
        return {"raw_response": raw or ""}

    async def parse_node(state: SynthesisState) -> dict:
        answer = build_answer(
            state.get("raw_response"),
            state.get("search_results") or {},
            state["query"],
        )
        logger.info(
            f"Parsed answer for '{state['query']}': {len(answer.main_text)} chars, "
            f"{len(answer.follow_up_questions)} follow-ups, {len(answer.sources)} sources"
        )
        return {"answer": answer}

    builder = StateGraph(SynthesisState)

    # --- Add Nodes ---
    builder.add_node("search", search_node)
    builder.add_node("generate", generate_node)
    builder.add_node("parse", parse_node)

    # --- Add Edges ---
    builder.add_edge(START, "search")
    builder.add_edge("search", "generate")
    builder.add_edge("generate", "parse")
    builder.add_edge("parse", END)

    return builder


def create_synthesis_graph(
    search_client: SearchClient,
    llm: CompletionClient,
    model_hint: Optional[str] = None,
):
    """Create and compile the synthesis graph (no checkpointer: runs are one-shot)."""
    return build_synthesis_graph(search_client, llm, model_hint).compile()
