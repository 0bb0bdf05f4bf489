"""
Prompt templates for answer synthesis.

The system prompt fixes the output format; the user prompt carries the
conversation so far, the raw search results and the subject to cover.
"""

import json
from typing import Any, Optional, Sequence

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from rabbithole.persistence.models import ExplorationMode, PriorTurn

FOLLOW_UP_MARKER = "Follow-up Questions:"

SYSTEM_PROMPT = f"""You are an AI assistant that helps users explore topics in depth. Format your responses using markdown with headers (####).

Your goal is to provide comprehensive, accurate information while maintaining engagement.
Base your response on the search results provided, and structure it clearly with relevant sections.

After your main response, include a "{FOLLOW_UP_MARKER}" section with 3 concise questions that would help users explore the topic further.
One of the questions should be a question that is related to the search results, and the other two should be either thought provoking questions or devil's advocate/conspiracy questions.
"""

USER_PROMPT = """Previous conversation:
{conversation}

Search results about "{query}":
{search_results}

Please provide a comprehensive response about {subject}. Include relevant facts, context, and relationships to other topics. Format the response in markdown with #### headers. The response should be {framing}."""

MODE_FRAMING = {
    "expansive": "broad and exploratory",
    "focused": "focused and specific",
}


def format_conversation(prior_turns: Sequence[PriorTurn]) -> str:
    """Render prior turns as a User/Assistant transcript."""
    blocks = []
    for turn in prior_turns:
        block = ""
        if turn.query:
            block += f"User: {turn.query}\n"
        if turn.answer_summary:
            block += f"Assistant: {turn.answer_summary}\n"
        blocks.append(block)
    return "\n".join(blocks)


def build_messages(
    query: str,
    search_results: dict[str, Any],
    prior_turns: Sequence[PriorTurn] = (),
    concept: Optional[str] = None,
    mode: ExplorationMode = "expansive",
) -> list[BaseMessage]:
    """
    Build the two-part synthesis prompt.

    Deterministic for equal inputs.
    """
    user_prompt = USER_PROMPT.format(
        conversation=format_conversation(prior_turns),
        query=query,
        search_results=json.dumps(search_results, ensure_ascii=False),
        subject=concept or query,
        framing=MODE_FRAMING[mode],
    )
    return [
        SystemMessage(content=SYSTEM_PROMPT),
        HumanMessage(content=user_prompt),
    ]
