"""
LLM Utility Module
Provides a unified interface for LLM interactions.
All provider-specific code lives in this file.
"""

import time
from typing import Any, List, Optional

from google import genai
from google.genai import types as genai_types
from openai import AsyncOpenAI

from audit_agent.exceptions import ConfigurationError
from audit_agent.models import GroundingChunk, GroundingSource, StepRequest, StepResult
from audit_agent.settings import settings
from audit_agent.utils.logger import get_logger
from audit_agent.utils.metrics import get_metrics_collector

logger = get_logger(__name__)


def _to_source(raw: Any) -> Optional[GroundingSource]:
    uri = getattr(raw, "uri", None) if raw is not None else None
    if not uri:
        return None
    return GroundingSource(uri=uri, title=getattr(raw, "title", None) or "")


def extract_grounding_chunks(response: Any) -> List[GroundingChunk]:
    """Pull search grounding sources out of a Gemini response."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []

    metadata = getattr(candidates[0], "grounding_metadata", None)
    raw_chunks = getattr(metadata, "grounding_chunks", None) or []

    chunks = []
    for raw in raw_chunks:
        web = _to_source(getattr(raw, "web", None))
        maps = _to_source(getattr(raw, "maps", None))
        if web or maps:
            chunks.append(GroundingChunk(web=web, maps=maps))
    return chunks


class LLMClient:
    """
    Unified LLM client over the Gemini and OpenAI SDKs.
    """

    def __init__(self, provider: Optional[str] = None, api_key: Optional[str] = None):
        """
        Initialize the client for the configured provider.

        The SDK clients pool connections on the event loop that first uses
        them, so create one client per workflow run and `aclose()` it after.

        Raises:
            ConfigurationError: If no API key is configured for the provider
        """
        self.provider = provider or settings.llm_provider
        self.temperature = settings.llm_temperature
        self.timeout = settings.llm_timeout

        if self.provider not in ("gemini", "openai"):
            raise ConfigurationError(f"Unsupported LLM provider: {self.provider}")

        key = api_key if api_key is not None else settings.api_key_for(self.provider)
        if not key:
            raise ConfigurationError(
                f"API Key is missing. Please set {settings.api_key_env_name(self.provider)}."
            )

        if self.provider == "gemini":
            self._gemini = genai.Client(
                api_key=key,
                http_options=genai_types.HttpOptions(timeout=self.timeout * 1000)
            )
            self.model = settings.flash_model
        else:
            self._openai = AsyncOpenAI(api_key=key, timeout=self.timeout)
            self.model = settings.openai_model

        logger.info(
            "Initialized LLM client",
            extra={"provider": self.provider, "timeout": self.timeout}
        )

    async def generate(self, request: StepRequest) -> StepResult:
        """
        Run one step request against the provider.

        Args:
            request: Resolved step request

        Returns:
            Generated text, grounding citations and token usage

        Raises:
            Exception: Whatever the provider SDK raises; callers wrap it
        """
        logger.debug(
            "Generating LLM completion",
            extra={
                "step_id": request.step_id,
                "provider": self.provider,
                "use_search": request.use_search,
                "thinking_budget": request.thinking_budget,
                "prompt_length": len(request.user_content)
            }
        )

        start_time = time.time()
        if self.provider == "gemini":
            result = await self._generate_gemini(request)
        else:
            result = await self._generate_openai(request)

        get_metrics_collector().record_llm_call(result.model, result.total_tokens)
        logger.info(
            "LLM completion generated",
            extra={
                "step_id": request.step_id,
                "model": result.model,
                "prompt_tokens": result.prompt_tokens,
                "completion_tokens": result.completion_tokens,
                "citations": len(result.citations),
                "response_length": len(result.text),
                "elapsed_seconds": round(time.time() - start_time, 2)
            }
        )
        return result

    def build_gemini_config(self, request: StepRequest) -> genai_types.GenerateContentConfig:
        """Translate a step request into a Gemini generation config."""
        config_params = {"system_instruction": request.system_instruction}

        if request.use_search:
            config_params["tools"] = [
                genai_types.Tool(google_search=genai_types.GoogleSearch())
            ]
            if request.location:
                config_params["tool_config"] = genai_types.ToolConfig(
                    retrieval_config=genai_types.RetrievalConfig(
                        lat_lng=genai_types.LatLng(
                            latitude=request.location.latitude,
                            longitude=request.location.longitude
                        )
                    )
                )

        if request.thinking_budget is not None:
            config_params["thinking_config"] = genai_types.ThinkingConfig(
                thinking_budget=request.thinking_budget
            )

        if self.temperature is not None:
            config_params["temperature"] = self.temperature

        return genai_types.GenerateContentConfig(**config_params)

    async def _generate_gemini(self, request: StepRequest) -> StepResult:
        response = await self._gemini.aio.models.generate_content(
            model=request.model,
            contents=request.user_content,
            config=self.build_gemini_config(request)
        )

        usage = getattr(response, "usage_metadata", None)
        return StepResult(
            text=response.text or "",
            citations=extract_grounding_chunks(response),
            model=request.model,
            prompt_tokens=getattr(usage, "prompt_token_count", None) or 0,
            completion_tokens=getattr(usage, "candidates_token_count", None) or 0
        )

    async def _generate_openai(self, request: StepRequest) -> StepResult:
        if request.use_search or request.thinking_budget is not None:
            logger.debug(
                "Search grounding and thinking budget are not available on OpenAI, ignoring",
                extra={"step_id": request.step_id}
            )

        params = {}
        if self.temperature is not None:
            params["temperature"] = self.temperature

        response = await self._openai.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": request.system_instruction},
                {"role": "user", "content": request.user_content}
            ],
            **params
        )

        usage = response.usage
        return StepResult(
            text=response.choices[0].message.content or "",
            model=self.model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0
        )

    async def aclose(self):
        """Close the SDK transport; the client cannot be used afterwards."""
        if self.provider == "gemini":
            await self._gemini.aio.aclose()
        else:
            await self._openai.close()
        logger.debug("Closed LLM client", extra={"provider": self.provider})

