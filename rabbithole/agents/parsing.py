"""
Parsing of raw model output into a StructuredAnswer.

Never raises on odd model output: a missing marker yields no follow-up
questions, empty output yields an empty main text.
"""

import logging
import re
from typing import Any, Optional

from rabbithole.agents.prompts import FOLLOW_UP_MARKER
from rabbithole.persistence.models import (
    MAX_FOLLOW_UP_QUESTIONS,
    AnswerImage,
    Source,
    StructuredAnswer,
)

logger = logging.getLogger(__name__)

# "1. ", "2) ", "- ", "* "
_LIST_MARKER = re.compile(r"^(?:\d+[.)]|[-*])\s+")


def parse_model_response(content: Optional[str]) -> tuple[str, list[str]]:
    """
    Split model output into main text and follow-up questions.

    Everything before the first marker is the main text. The section after it
    is read line by line: list markers are stripped, blank lines and lines
    without a question mark are dropped, and at most three questions are kept.

    Returns:
        Tuple of (main_text, follow_up_questions)
    """
    content = content or ""
    parts = content.split(FOLLOW_UP_MARKER)
    main_text = parts[0].strip()

    if len(parts) < 2:
        return main_text, []

    questions = []
    for line in parts[1].strip().split("\n"):
        line = _LIST_MARKER.sub("", line.strip()).strip()
        if not line or "?" not in line:
            continue
        questions.append(line)
        if len(questions) == MAX_FOLLOW_UP_QUESTIONS:
            break

    return main_text, questions


def _text(entry: dict[str, Any], key: str) -> str:
    value = entry.get(key)
    return "" if value is None else str(value)


def map_sources(results: list[Any]) -> list[Source]:
    """Map raw search results to sources; missing fields become '' and non-dict entries are skipped."""
    return [
        Source(
            title=_text(result, "title"),
            url=_text(result, "url"),
            author=_text(result, "author"),
            preview_image=_text(result, "image"),
        )
        for result in results
        if isinstance(result, dict)
    ]


def map_images(images: list[Any]) -> list[AnswerImage]:
    """Map raw image hits to answer images; the URL doubles as thumbnail."""
    mapped = []
    for image in images:
        if not isinstance(image, dict):
            continue
        url = _text(image, "url")
        mapped.append(
            AnswerImage(
                url=url,
                thumbnail_url=url,
                description=_text(image, "description"),
            )
        )
    return mapped


def build_answer(
    raw_response: Optional[str],
    search_results: dict[str, Any],
    query: str,
) -> StructuredAnswer:
    """Combine parsed model output with search results into an answer."""
    main_text, questions = parse_model_response(raw_response)
    if not main_text:
        logger.warning(f"Model returned no main text for '{query}'")

    return StructuredAnswer(
        main_text=main_text,
        follow_up_questions=questions,
        sources=map_sources(search_results.get("results") or []),
        images=map_images(search_results.get("images") or []),
        contextual_query=query,
    )
