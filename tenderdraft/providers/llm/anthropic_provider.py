"""Anthropic Claude adapter for answer drafting.

The Messages API takes the system prompt as its own parameter and returns a
list of content blocks; only ``text`` blocks make up the drafted answer.  A
reply cut off by ``max_tokens`` is still returned, with a warning logged,
since a truncated draft is more useful to the bid writer than none.
"""

from __future__ import annotations

import anthropic
import structlog

from tenderdraft.config.settings import Settings
from tenderdraft.interfaces.llm_provider import ILLMProvider
from tenderdraft.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)


class AnthropicLLMProvider(ILLMProvider):
    """LLM provider backed by the Anthropic Claude API."""

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.anthropic_api_key
        self._timeout = settings.external_call_timeout
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key, timeout=self._timeout)
        self._model = settings.anthropic_model

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 1500,
    ) -> str:
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
                temperature=temperature,
            )
        except anthropic.APITimeoutError as exc:
            raise LLMError(
                message=f"Anthropic timed out after {self._timeout:g}s",
                provider_name=self.get_provider_name(),
            ) from exc
        except anthropic.APIError as exc:
            raise LLMError(
                message=f"Anthropic API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        text = "\n".join(block.text for block in response.content if block.type == "text")
        if not text:
            raise LLMError(
                message="Anthropic returned no text content",
                provider_name=self.get_provider_name(),
            )
        if response.stop_reason == "max_tokens":
            logger.warning("draft_truncated", provider="anthropic", max_tokens=max_tokens)

        logger.info(
            "llm_completion",
            provider="anthropic",
            model=self._model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        return text

    def is_available(self) -> bool:
        return bool(self._api_key)

    def get_provider_name(self) -> str:
        return "anthropic"
