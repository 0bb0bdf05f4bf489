"""
Answer synthesis agent: search, generate, parse.
"""

from rabbithole.agents.parsing import parse_model_response
from rabbithole.agents.prompts import FOLLOW_UP_MARKER
from rabbithole.agents.synthesizer import AnswerSynthesizer, get_synthesizer

__all__ = [
    "AnswerSynthesizer",
    "get_synthesizer",
    "parse_model_response",
    "FOLLOW_UP_MARKER",
]
