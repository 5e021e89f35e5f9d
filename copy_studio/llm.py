"""Provider clients and response decoding for LLM calls."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Generic, Optional, Protocol, Type, TypeVar

import structlog
from anthropic import APIError as AnthropicAPIError
from anthropic import AsyncAnthropic
from openai import APIError as OpenAIAPIError
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from .config import Settings
from .exceptions import ConfigurationError, ProviderCallFailure
from .prompts import PromptSpec

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class CompletionClient(Protocol):
    """Black-box text completion service."""

    provider: str

    async def complete(self, spec: PromptSpec) -> str:
        ...


class OpenAICompletionClient:
    provider = "openai"

    def __init__(self, api_key: str, model: str, timeout: float) -> None:
        self.model = model
        self._client = AsyncOpenAI(api_key=api_key, timeout=timeout)

    async def complete(self, spec: PromptSpec) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": spec.system_prompt.strip()},
                    {"role": "user", "content": spec.user_prompt.strip()},
                ],
                temperature=spec.temperature,
                max_tokens=spec.max_tokens,
            )
        except OpenAIAPIError as exc:
            raise ProviderCallFailure(f"OpenAI call failed for {spec.task}: {exc}") from exc

        message = response.choices[0].message.content if response.choices else None
        if not message:
            raise ProviderCallFailure(f"No text response from OpenAI for {spec.task}")
        return message


class AnthropicCompletionClient:
    provider = "anthropic"

    def __init__(self, api_key: str, model: str, timeout: float) -> None:
        self.model = model
        self._client = AsyncAnthropic(api_key=api_key, timeout=timeout)

    async def complete(self, spec: PromptSpec) -> str:
        try:
            response = await self._client.messages.create(
                model=self.model,
                system=spec.system_prompt.strip(),
                messages=[{"role": "user", "content": spec.user_prompt.strip()}],
                temperature=spec.temperature,
                max_tokens=spec.max_tokens,
            )
        except AnthropicAPIError as exc:
            raise ProviderCallFailure(f"Anthropic call failed for {spec.task}: {exc}") from exc

        for block in response.content:
            if getattr(block, "type", None) == "text" and block.text:
                return block.text
        raise ProviderCallFailure(f"No text response from Anthropic for {spec.task}")


def build_completion_client(settings: Settings) -> CompletionClient:
    """Return a client for the primary configured provider.

    Raises:
        ConfigurationError: when no provider credential is configured.
    """

    provider = settings.primary_provider
    api_key = settings.get_api_key(provider)
    if provider is None or not api_key:
        raise ConfigurationError("LLM provider API key not configured")

    model = settings.model_for(provider)
    logger.info(
        "completion_client_ready",
        provider=provider,
        model=model,
        credential_source=settings.credential_sources.get(f"{provider.upper()}_API_KEY"),
    )
    if provider == "openai":
        return OpenAICompletionClient(api_key, model, settings.call_timeout_seconds)
    return AnthropicCompletionClient(api_key, model, settings.call_timeout_seconds)


# ---------------------------------------------------------------------------
# Response decoding
# ---------------------------------------------------------------------------


def _balanced_end(text: str, start: int) -> Optional[int]:
    """Return the index of the brace closing the object opened at *start*."""

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None


def extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced top-level JSON object embedded in *text*.

    Models often wrap the object in commentary or code fences; braces inside
    string literals are ignored while scanning.
    """

    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end is not None:
            candidate = text[start : end + 1]
            try:
                if isinstance(json.loads(candidate), dict):
                    return candidate
            except json.JSONDecodeError:
                pass
        start = text.find("{", start + 1)
    return None


@dataclass(frozen=True)
class Decoded(Generic[ModelT]):
    """Tagged decode result: exactly one of ``value`` or ``error`` is set."""

    value: Optional[ModelT] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def decode_response(text: str, model: Type[ModelT]) -> Decoded[ModelT]:
    """Validate the JSON object inside a model reply against *model*."""

    raw = extract_json_object(text or "")
    if raw is None:
        return Decoded(error="No JSON object found in response")
    try:
        return Decoded(value=model.model_validate_json(raw))
    except ValidationError as exc:
        return Decoded(error=f"Response did not match {model.__name__}: {exc.error_count()} error(s)")


class LLMTask(Generic[ModelT]):
    """One unit of work: complete a prompt and decode it into ``model``.

    A reply that cannot be decoded raises :class:`ProviderCallFailure` so the
    retry layer treats it like any other failed attempt.
    """

    def __init__(self, client: CompletionClient, spec: PromptSpec, model: Type[ModelT]) -> None:
        self.client = client
        self.spec = spec
        self.model = model

    async def __call__(self) -> ModelT:
        text = await self.client.complete(self.spec)
        decoded = decode_response(text, self.model)
        if not decoded.ok:
            raise ProviderCallFailure(f"{self.spec.task}: {decoded.error}")
        return decoded.value
