"""
LLM provider setup with ChatOpenAI.

Provides configured ChatOpenAI instances and a plain-text completion call
used by the answer synthesizer. Works against any OpenAI-compatible endpoint.
"""

import logging
import re
from typing import Any, Optional, Sequence

import openai
from langchain_core.messages import BaseMessage
from langchain_openai import ChatOpenAI

from rabbithole.core.config import config

logger = logging.getLogger(__name__)

# "Error code: 429", "HTTP 429", but not "4290 tokens"
_STATUS_429 = re.compile(r"\b429\b")


class LLMProvider:
    """
    LLM provider with per-model instance caching.

    Wraps ChatOpenAI with configuration from settings.
    """

    def __init__(self):
        self._llms: dict[str, ChatOpenAI] = {}

    def get_llm(self, model_hint: Optional[str] = None) -> ChatOpenAI:
        """
        Get a configured ChatOpenAI instance.

        Args:
            model_hint: Model name overriding the configured default

        Returns:
            Configured ChatOpenAI instance
        """
        model = model_hint or config.llm.model
        if model not in self._llms:
            logger.debug(f"Creating ChatOpenAI client for model {model}")
            self._llms[model] = ChatOpenAI(
                api_key=config.llm.api_key,
                base_url=config.llm.base_url,
                model=model,
                temperature=config.llm.temperature,
                max_tokens=config.llm.max_tokens,
                # Retries are the caller's policy
                max_retries=0,
            )
        return self._llms[model]

    async def complete(
        self,
        messages: Sequence[BaseMessage],
        model_hint: Optional[str] = None,
    ) -> str:
        """
        Send prompt messages and return the raw text of the reply.

        Provider exceptions propagate unchanged.
        """
        llm = self.get_llm(model_hint)
        response = await llm.ainvoke(list(messages))

        input_tokens, output_tokens = extract_tokens_from_response(response)
        if input_tokens or output_tokens:
            logger.debug(f"LLM usage ({llm.model_name}): {input_tokens} in, {output_tokens} out")

        return message_text(response)


def message_text(response: Any) -> str:
    """Flatten an AIMessage's content (string or content blocks) to text."""
    content = getattr(response, "content", response)
    if content is None:
        return ""
    if isinstance(content, str):
        return content

    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def extract_tokens_from_response(response: Any) -> tuple[int, int]:
    """
    Extract token usage from an AIMessage or similar response object.

    Modern langchain returns tokens in usage_metadata attribute.

    Returns:
        Tuple of (input_tokens, output_tokens)
    """
    input_tokens = 0
    output_tokens = 0

    # Method 1: usage_metadata (modern langchain, a TypedDict)
    usage = getattr(response, "usage_metadata", None)
    if usage:
        input_tokens = usage.get("input_tokens", 0) or 0
        output_tokens = usage.get("output_tokens", 0) or 0

    # Method 2: response_metadata.token_usage (OpenAI format)
    if input_tokens == 0 and output_tokens == 0:
        metadata = getattr(response, "response_metadata", None)
        if metadata:
            token_usage = metadata.get("token_usage") or {}
            input_tokens = token_usage.get("prompt_tokens", 0) or 0
            output_tokens = token_usage.get("completion_tokens", 0) or 0

    return input_tokens, output_tokens


def is_rate_limit_error(error: BaseException) -> bool:
    """True if the provider rejected the call for rate limiting (HTTP 429)."""
    if isinstance(error, openai.RateLimitError):
        return True
    if getattr(error, "status_code", None) == 429:
        return True
    return _STATUS_429.search(str(error)) is not None


# Global provider instance
_provider: Optional[LLMProvider] = None


def get_llm_provider() -> LLMProvider:
    """Get the global LLM provider instance."""
    global _provider
    if _provider is None:
        _provider = LLMProvider()
    return _provider
