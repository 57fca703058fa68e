"""
Generation Oracle Client with Provider Fallback

Attempts providers in order: Anthropic → Grok → GenerationError.
Model text is parsed as JSON and validated against the requested schema.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from behaviorplan.core.exceptions import GenerationError

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)

STRUCTURED_OUTPUT_SYSTEM = (
    "You are an expert behavior analyst. Respond with a single JSON object that "
    "conforms to this JSON schema. Do not add commentary or markdown fences.\n\n"
    "JSON schema:\n{schema}"
)


class GenerationOracle(Protocol):
    """External structured-output generator."""

    async def generate(self, prompt: str, output_schema: type[SchemaT]) -> SchemaT:
        """Return an instance of output_schema or raise GenerationError."""
        ...


def extract_json_object(text: str) -> dict[str, Any]:
    """Pull the first JSON object out of model text.

    Raises:
        GenerationError: If no JSON object can be decoded
    """
    cleaned = _CODE_FENCE.sub("", text.strip())

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        raise GenerationError("Model response did not contain a JSON object")

    try:
        data = json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError as e:
        raise GenerationError(f"Model response was not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise GenerationError("Model response JSON was not an object")

    return data


class AIClient:
    """Unified AI client that tries multiple providers in order."""

    def __init__(
        self,
        *,
        anthropic_api_key: str | None = None,
        grok_api_key: str | None = None,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 4096,
        temperature: float = 0.4,
    ):
        """Initialize AI client with available API keys.

        Args:
            anthropic_api_key: Anthropic Claude API key (priority 1)
            grok_api_key: xAI Grok API key (priority 2)
            model: Anthropic model identifier
            max_tokens: Maximum response tokens
            temperature: Sampling temperature
        """
        self.anthropic_api_key = anthropic_api_key
        self.grok_api_key = grok_api_key
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def generate(self, prompt: str, output_schema: type[SchemaT]) -> SchemaT:
        """Generate a structured object matching output_schema.

        Args:
            prompt: Fully rendered user prompt
            output_schema: Pydantic model the response must satisfy

        Returns:
            Validated output_schema instance

        Raises:
            GenerationError: Transport failure on every provider, or
                unparseable/off-schema output
        """
        system = STRUCTURED_OUTPUT_SYSTEM.format(
            schema=json.dumps(output_schema.model_json_schema(), indent=2)
        )

        text = await asyncio.to_thread(
            self.generate_completion,
            model=self.model,
            system=system,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )

        if text is None:
            raise GenerationError("All AI providers failed or are unavailable")

        data = extract_json_object(text)

        try:
            return output_schema.model_validate(data)
        except SchemaValidationError as e:
            logger.warning(f"Model output failed {output_schema.__name__} validation: {e}")
            raise GenerationError(
                f"Model output did not match {output_schema.__name__}: {e.error_count()} error(s)"
            ) from e

    def generate_completion(
        self,
        *,
        model: str,
        system: str,
        messages: Sequence[dict[str, str]],
        max_tokens: int = 2048,
        temperature: float = 0.7,
    ) -> str | None:
        """Generate completion using available AI provider.

        Tries providers in order:
        1. Anthropic Claude API (if key available)
        2. xAI Grok API (if key available)
        3. Returns None

        Args:
            model: Model identifier (will be adapted per provider)
            system: System prompt
            messages: Conversation messages
            max_tokens: Maximum response tokens
            temperature: Sampling temperature

        Returns:
            Generated text response, or None if all providers failed
        """
        # Try Anthropic first
        if self.anthropic_api_key:
            result = self._try_anthropic(
                model=model,
                system=system,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
            if result is not None:
                logger.info("AI completion successful via Anthropic")
                return result

        # Fallback to Grok
        if self.grok_api_key:
            result = self._try_grok(
                system=system,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
            if result is not None:
                logger.info("AI completion successful via Grok (fallback)")
                return result

        logger.warning("All AI providers failed or unavailable")
        return None

    def _try_anthropic(
        self,
        *,
        model: str,
        system: str,
        messages: Sequence[dict[str, str]],
        max_tokens: int,
        temperature: float,
    ) -> str | None:
        """Try Anthropic Claude API.

        Returns:
            Generated text or None on error
        """
        try:
            from anthropic import Anthropic

            client = Anthropic(api_key=self.anthropic_api_key)

            response = client.messages.create(
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system,
                messages=list(messages),  # type: ignore[arg-type]
            )

            if response.content and len(response.content) > 0:
                content_block = response.content[0]
                if hasattr(content_block, "text"):
                    return content_block.text

            logger.warning("Anthropic response had no text content")
            return None

        except Exception as e:
            logger.warning(f"Anthropic API error: {e}")
            return None

    def _try_grok(
        self,
        *,
        system: str,
        messages: Sequence[dict[str, str]],
        max_tokens: int,
        temperature: float,
    ) -> str | None:
        """Try xAI Grok API (OpenAI-compatible).

        Returns:
            Generated text or None on error
        """
        try:
            from openai import OpenAI

            client = OpenAI(
                api_key=self.grok_api_key,
                base_url="https://api.x.ai/v1",
            )

            openai_messages: list[dict[str, Any]] = [{"role": "system", "content": system}]
            openai_messages.extend(messages)

            response = client.chat.completions.create(
                model="grok-3",
                messages=openai_messages,  # type: ignore[arg-type]
                max_tokens=max_tokens,
                temperature=temperature,
                response_format={"type": "json_object"},
            )

            if response.choices and len(response.choices) > 0:
                return response.choices[0].message.content

            logger.warning("Grok response had no content")
            return None

        except Exception as e:
            logger.warning(f"Grok API error: {e}")
            return None


def get_ai_client() -> AIClient:
    """Get configured AI client instance.

    Returns:
        AIClient with available API keys from settings
    """
    from behaviorplan.config import settings

    return AIClient(
        anthropic_api_key=settings.ANTHROPIC_API_KEY or None,
        grok_api_key=settings.GROK_API_KEY or None,
        model=settings.AI_MODEL,
        max_tokens=settings.AI_MAX_TOKENS,
        temperature=settings.AI_TEMPERATURE,
    )
