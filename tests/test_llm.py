"""Tests for the provider-facing LLM client."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from audit_agent.exceptions import ConfigurationError
from audit_agent.models import GeoLocation, StepRequest
from audit_agent.settings import settings
from audit_agent.utils.llm import LLMClient, extract_grounding_chunks


def make_request(**overrides) -> StepRequest:
    params = {
        "step_id": 1,
        "model": "gemini-3-flash-preview",
        "system_instruction": "You are a senior auditor.",
        "user_content": "Summarise.\n\nAUDIT REPORT:\ncontrast issues",
    }
    params.update(overrides)
    return StepRequest(**params)


def gemini_response(text="Findings", chunks=None):
    metadata = SimpleNamespace(grounding_chunks=chunks or [])
    return SimpleNamespace(
        text=text,
        candidates=[SimpleNamespace(grounding_metadata=metadata)],
        usage_metadata=SimpleNamespace(prompt_token_count=11, candidates_token_count=7),
    )


class TestExtractGroundingChunks:

    def test_collects_web_and_maps_sources(self) -> None:
        response = gemini_response(chunks=[
            SimpleNamespace(web=SimpleNamespace(uri="https://www.w3.org/WAI/", title="W3C WAI"), maps=None),
            SimpleNamespace(web=None, maps=SimpleNamespace(uri="https://maps.google.com/x", title=None)),
            SimpleNamespace(web=SimpleNamespace(uri="", title="no uri"), maps=None),
        ])

        chunks = extract_grounding_chunks(response)

        assert len(chunks) == 2
        assert chunks[0].web.title == "W3C WAI"
        assert chunks[1].maps.uri == "https://maps.google.com/x"
        assert chunks[1].maps.title == ""

    def test_no_candidates(self) -> None:
        assert extract_grounding_chunks(SimpleNamespace(candidates=None)) == []

    def test_no_grounding_metadata(self) -> None:
        response = SimpleNamespace(candidates=[SimpleNamespace(grounding_metadata=None)])
        assert extract_grounding_chunks(response) == []


class TestLLMClientConfiguration:

    def test_missing_gemini_key(self) -> None:
        with pytest.raises(ConfigurationError, match="Please set API_KEY"):
            LLMClient(provider="gemini", api_key="")

    def test_missing_openai_key(self) -> None:
        with pytest.raises(ConfigurationError, match="Please set OPENAI_API_KEY"):
            LLMClient(provider="openai", api_key="")

    def test_unknown_provider(self) -> None:
        with pytest.raises(ConfigurationError, match="Unsupported LLM provider"):
            LLMClient(provider="mystery", api_key="key")


class TestGeminiConfig:

    @pytest.fixture
    def client(self) -> LLMClient:
        return LLMClient(provider="gemini", api_key="test-key")

    def test_search_step_gets_google_search_and_location(self, client) -> None:
        request = make_request(use_search=True, location=GeoLocation(latitude=48.85, longitude=2.35))

        config = client.build_gemini_config(request)

        assert config.system_instruction == "You are a senior auditor."
        assert config.tools[0].google_search is not None
        assert config.tool_config.retrieval_config.lat_lng.latitude == 48.85
        assert config.thinking_config is None

    def test_search_without_location_has_no_tool_config(self, client) -> None:
        config = client.build_gemini_config(make_request(use_search=True))

        assert config.tools
        assert config.tool_config is None

    def test_thinking_budget(self, client) -> None:
        config = client.build_gemini_config(make_request(step_id=2, thinking_budget=32768))

        assert config.thinking_config.thinking_budget == 32768
        assert not config.tools

    @pytest.mark.asyncio
    async def test_generate_maps_response(self, client) -> None:
        chunks = [SimpleNamespace(web=SimpleNamespace(uri="https://baymard.com", title="Baymard"), maps=None)]
        client._gemini = MagicMock()
        client._gemini.aio.models.generate_content = AsyncMock(return_value=gemini_response("Top 3 issues", chunks))

        result = await client.generate(make_request(use_search=True))

        assert result.text == "Top 3 issues"
        assert result.model == "gemini-3-flash-preview"
        assert result.total_tokens == 18
        assert result.citations[0].web.uri == "https://baymard.com"
        call = client._gemini.aio.models.generate_content.call_args
        assert call.kwargs["model"] == "gemini-3-flash-preview"
        assert call.kwargs["contents"].startswith("Summarise.")

    @pytest.mark.asyncio
    async def test_generate_propagates_provider_errors(self, client) -> None:
        client._gemini = MagicMock()
        client._gemini.aio.models.generate_content = AsyncMock(side_effect=RuntimeError("quota"))

        with pytest.raises(RuntimeError, match="quota"):
            await client.generate(make_request())


class TestOpenAIGeneration:

    @pytest.mark.asyncio
    async def test_generate_uses_chat_completions(self) -> None:
        client = LLMClient(provider="openai", api_key="sk-test")
        response = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="Stories"))],
            usage=SimpleNamespace(prompt_tokens=5, completion_tokens=9),
        )
        client._openai = MagicMock()
        client._openai.chat.completions.create = AsyncMock(return_value=response)

        result = await client.generate(make_request(step_id=3, use_search=True, thinking_budget=100))

        assert result.text == "Stories"
        assert result.citations == []
        assert result.total_tokens == 14
        messages = client._openai.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "You are a senior auditor."}
        assert messages[1]["role"] == "user"


class TestLLMClientLifecycle:

    def test_key_comes_from_settings(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "openai_api_key", "sk-from-env")

        client = LLMClient(provider="openai")

        assert client._openai.api_key == "sk-from-env"

    @pytest.mark.asyncio
    async def test_aclose_closes_openai_transport(self) -> None:
        client = LLMClient(provider="openai", api_key="sk-test")
        client._openai = MagicMock()
        client._openai.close = AsyncMock()

        await client.aclose()

        client._openai.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_aclose_closes_gemini_transport(self) -> None:
        client = LLMClient(provider="gemini", api_key="test-key")
        client._gemini = MagicMock()
        client._gemini.aio.aclose = AsyncMock()

        await client.aclose()

        client._gemini.aio.aclose.assert_awaited_once()
