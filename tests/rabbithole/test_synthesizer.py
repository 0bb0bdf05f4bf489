"""Tests for the answer synthesizer."""

import httpx
import openai
import pytest
from langchain_core.messages import HumanMessage, SystemMessage

from rabbithole.agents.prompts import FOLLOW_UP_MARKER
from rabbithole.agents.synthesizer import AnswerSynthesizer
from rabbithole.core.config import config
from rabbithole.core.exceptions import UpstreamModelError, UpstreamSearchError
from rabbithole.persistence.models import PriorTurn


def _rate_limit_error() -> openai.RateLimitError:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(429, request=request)
    return openai.RateLimitError("Rate limit reached", response=response, body=None)


class TestSynthesize:
    """Tests for the happy path."""

    @pytest.mark.asyncio
    async def test_structured_answer(self, synthesizer):
        """Test that the answer combines parsed text and search results."""
        answer = await synthesizer.synthesize("Why is the sky blue?")

        assert answer.main_text == "#### Intro\nSome text."
        assert answer.follow_up_questions == ["What about X?", "Is Y true?", "Could Z happen?"]
        assert [s.url for s in answer.sources] == [
            "https://example.com/rayleigh",
            "https://example.com/sky",
        ]
        assert answer.images[0].description == "Blue sky"
        assert answer.contextual_query == "Why is the sky blue?"

    @pytest.mark.asyncio
    async def test_search_request(self, synthesizer, fake_search):
        """Test that search is bounded and asks for images."""
        await synthesizer.synthesize("Why is the sky blue?")

        assert fake_search.calls == [
            {
                "query": "Why is the sky blue?",
                "max_results": config.search.max_results,
                "include_images": True,
            }
        ]

    @pytest.mark.asyncio
    async def test_prompt_contents(self, synthesizer, fake_llm):
        """Test the two-part prompt embeds context, results, subject and framing."""
        prior = [PriorTurn(query="What is light?", answer_summary="Light is a wave.")]
        await synthesizer.synthesize(
            "Why is the sky blue?",
            prior_turns=prior,
            concept="Rayleigh scattering",
            mode="expansive",
        )

        system, user = fake_llm.calls[0]
        assert isinstance(system, SystemMessage)
        assert isinstance(user, HumanMessage)
        assert FOLLOW_UP_MARKER in system.content
        assert "Previous conversation:\nUser: What is light?\nAssistant: Light is a wave.\n" in user.content
        assert 'Search results about "Why is the sky blue?"' in user.content
        assert "https://example.com/rayleigh" in user.content
        assert "comprehensive response about Rayleigh scattering" in user.content
        assert "broad and exploratory" in user.content

    @pytest.mark.asyncio
    async def test_focused_mode(self, synthesizer, fake_llm):
        """Test focused mode framing."""
        await synthesizer.synthesize("Why is the sky blue?", mode="focused")

        _, user = fake_llm.calls[0]
        assert "focused and specific" in user.content
        assert "comprehensive response about Why is the sky blue?" in user.content

    @pytest.mark.asyncio
    async def test_prompt_is_deterministic(self, synthesizer, fake_llm):
        """Test that equal inputs render equal prompts."""
        await synthesizer.synthesize("Same query")
        await synthesizer.synthesize("Same query")

        first, second = fake_llm.calls
        assert [m.content for m in first] == [m.content for m in second]

    @pytest.mark.asyncio
    async def test_without_marker(self, fake_search, fake_llm):
        """Test that a reply without the marker has no follow-ups."""
        fake_llm.text = "#### Heading\nJust prose."
        synthesizer = AnswerSynthesizer(search_client=fake_search, llm=fake_llm)

        answer = await synthesizer.synthesize("q")

        assert answer.main_text == "#### Heading\nJust prose."
        assert answer.follow_up_questions == []

    @pytest.mark.asyncio
    async def test_empty_model_content(self, fake_search, fake_llm):
        """Test that empty model output is an empty answer, not an error."""
        fake_llm.text = ""
        synthesizer = AnswerSynthesizer(search_client=fake_search, llm=fake_llm)

        answer = await synthesizer.synthesize("q")

        assert answer.main_text == ""
        assert answer.follow_up_questions == []
        assert len(answer.sources) == 2

    @pytest.mark.asyncio
    async def test_blank_query_rejected(self, synthesizer, fake_search):
        """Test that a blank query never reaches the search provider."""
        with pytest.raises(ValueError):
            await synthesizer.synthesize("   ")
        assert fake_search.calls == []


class TestUpstreamErrors:
    """Tests for upstream failure wrapping."""

    @pytest.mark.asyncio
    async def test_search_failure(self, fake_search, fake_llm):
        """Test that a search failure surfaces as UpstreamSearchError without calling the model."""
        fake_search.error = httpx.ConnectError("connection refused")
        synthesizer = AnswerSynthesizer(search_client=fake_search, llm=fake_llm)

        with pytest.raises(UpstreamSearchError) as exc_info:
            await synthesizer.synthesize("Why is the sky blue?")

        assert exc_info.value.query == "Why is the sky blue?"
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert fake_llm.calls == []
        assert len(fake_search.calls) == 1  # not retried

    @pytest.mark.asyncio
    async def test_rate_limit_is_retryable(self, fake_search, fake_llm):
        """Test that a provider rate limit is marked retryable."""
        fake_llm.error = _rate_limit_error()
        synthesizer = AnswerSynthesizer(search_client=fake_search, llm=fake_llm)

        with pytest.raises(UpstreamModelError) as exc_info:
            await synthesizer.synthesize("q")

        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_429_message_is_retryable(self, fake_search, fake_llm):
        """Test that a 429 reported only in the message is marked retryable."""
        fake_llm.error = RuntimeError("Error code: 429 - quota exceeded")
        synthesizer = AnswerSynthesizer(search_client=fake_search, llm=fake_llm)

        with pytest.raises(UpstreamModelError) as exc_info:
            await synthesizer.synthesize("q")

        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_generic_model_failure(self, fake_search, fake_llm):
        """Test that other model failures are not retryable."""
        fake_llm.error = RuntimeError("model exploded")
        synthesizer = AnswerSynthesizer(search_client=fake_search, llm=fake_llm)

        with pytest.raises(UpstreamModelError) as exc_info:
            await synthesizer.synthesize("q")

        assert exc_info.value.retryable is False
        assert "model exploded" in str(exc_info.value)
        assert len(fake_llm.calls) == 1

    @pytest.mark.asyncio
    async def test_429_inside_number_not_retryable(self, fake_search, fake_llm):
        """Test that a message merely containing the digits 429 is not a rate limit."""
        fake_llm.error = RuntimeError("maximum context length is 4290 tokens")
        synthesizer = AnswerSynthesizer(search_client=fake_search, llm=fake_llm)

        with pytest.raises(UpstreamModelError) as exc_info:
            await synthesizer.synthesize("q")

        assert exc_info.value.retryable is False
