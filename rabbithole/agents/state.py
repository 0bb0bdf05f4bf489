"""
LangGraph state schema for answer synthesis.

Defines the SynthesisState TypedDict that flows through the synthesis graph.
"""

from typing import Any, Optional, TypedDict

from rabbithole.persistence.models import ExplorationMode, PriorTurn, StructuredAnswer


class SynthesisState(TypedDict, total=False):
    """
    State for one synthesis run.

    Inputs are set by the caller; each node fills in the next field.
    """

    # --- Inputs ---
    query: str
    prior_turns: list[PriorTurn]
    concept: Optional[str]
    mode: ExplorationMode

    # --- Filled by nodes ---
    search_results: dict[str, Any]  # search node
    raw_response: str  # generate node
    answer: StructuredAnswer  # parse node


def create_initial_state(
    query: str,
    prior_turns: Optional[list[PriorTurn]] = None,
    concept: Optional[str] = None,
    mode: ExplorationMode = "expansive",
) -> SynthesisState:
    """Create the input state for a synthesis run."""
    return SynthesisState(
        query=query,
        prior_turns=list(prior_turns or []),
        concept=concept,
        mode=mode,
    )
