"""OpenRouter-backed completion client: free text and schema-validated JSON."""
from __future__ import annotations

import time
from typing import Any, Optional, Protocol, TypeVar

from loguru import logger
from pydantic import BaseModel

from deepresearch.config import settings
from deepresearch.exceptions import CompletionError, ResearchCancelled
from deepresearch.models.schemas import ParseResult, parse_payload
from deepresearch.services import logger as log_service
from deepresearch.services.cancellation import CancellationToken

T = TypeVar("T", bound=BaseModel)

JSON_ONLY_INSTRUCTION = "Respond ONLY with valid JSON, no markdown or explanation."
JSON_TEMPERATURE = 0.3


class CompletionService(Protocol):
    async def generate(
        self,
        prompt: str,
        *,
        temperature: float = 0.7,
        max_output_tokens: int = 8192,
        caller: str = "completion",
        token: Optional[CancellationToken] = None,
    ) -> str: ...

    async def generate_json(
        self,
        prompt: str,
        schema: type[T],
        *,
        caller: str = "completion",
        token: Optional[CancellationToken] = None,
    ) -> ParseResult[T]: ...


def get_client() -> Any:
    """Get an OpenRouter client via the OpenAI-compatible SDK."""
    from openai import AsyncOpenAI

    base_url = settings.openrouter_base_url.strip() or "https://openrouter.ai/api/v1"
    return AsyncOpenAI(
        api_key=settings.openrouter_api_key,
        base_url=base_url,
    )


def get_model() -> str:
    """Get the active OpenRouter model id."""
    if settings.openrouter_model:
        return settings.openrouter_model
    return settings.default_model


def _temperature_for_model(model: str, requested: float) -> float:
    # Some OpenAI GPT-5-compatible gateways only accept the default temperature.
    if "gpt-5" in (model or "").lower():
        return 1
    return requested


def _response_text(response: Any) -> str:
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    return (getattr(message, "content", None) or "").strip()


class CompletionClient:
    def __init__(self, model: str | None = None, client: Any = None):
        self.model = model or get_model()
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = get_client()
        return self._client

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float = 0.7,
        max_output_tokens: int = 8192,
        caller: str = "completion",
        token: Optional[CancellationToken] = None,
    ) -> str:
        request = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=_temperature_for_model(self.model, temperature),
            max_tokens=max_output_tokens,
        )

        t0 = time.monotonic()
        try:
            response = await (token.run(request) if token else request)
        except ResearchCancelled:
            raise
        except Exception as e:
            log_service.log_llm_call(
                model=self.model,
                caller=caller,
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="error",
                error=str(e),
            )
            raise CompletionError(f"Completion request failed: {e}") from e
        elapsed_ms = int((time.monotonic() - t0) * 1000)

        usage = getattr(response, "usage", None)
        log_service.log_llm_call(
            model=self.model,
            caller=caller,
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            duration_ms=elapsed_ms,
        )
        return _response_text(response)

    async def generate_json(
        self,
        prompt: str,
        schema: type[T],
        *,
        caller: str = "completion",
        token: Optional[CancellationToken] = None,
    ) -> ParseResult[T]:
        text = await self.generate(
            f"{prompt}\n\n{JSON_ONLY_INSTRUCTION}",
            temperature=JSON_TEMPERATURE,
            caller=caller,
            token=token,
        )
        result = parse_payload(text, schema)
        if not result.ok:
            logger.warning(f"{caller}: unparseable {schema.__name__} response ({result.reason})")
            logger.debug(f"{caller}: raw response: {text[:500]}")
        return result


_client: CompletionClient | None = None


def client() -> CompletionClient:
    """Get or create the shared completion client."""
    global _client
    if _client is None:
        _client = CompletionClient()
    return _client
