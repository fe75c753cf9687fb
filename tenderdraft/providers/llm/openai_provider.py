"""OpenAI-compatible chat completions adapter for answer drafting.

Works against OpenAI itself or any gateway exposing the same API
(``openai_base_url``: TogetherAI, Groq, a local proxy...).  The provider
label reflects which one is in use so logs and error messages say where a
draft came from.
"""

from __future__ import annotations

import openai
import structlog

from tenderdraft.config.settings import Settings
from tenderdraft.interfaces.llm_provider import ILLMProvider
from tenderdraft.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "gpt-4o-mini"
_CONNECT_TIMEOUT = 5.0


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible chat completions API."""

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key
        self._timeout = settings.external_call_timeout
        self._model = settings.openai_text_model or _DEFAULT_MODEL
        self._label = "openai-compatible" if settings.openai_base_url else "openai"

        self._client = openai.AsyncOpenAI(
            api_key=self._api_key,
            base_url=settings.openai_base_url or None,
            timeout=openai.Timeout(self._timeout, connect=_CONNECT_TIMEOUT),
        )

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 1500,
    ) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APITimeoutError as exc:
            raise LLMError(
                message=f"{self._label} timed out after {self._timeout:g}s",
                provider_name=self._label,
            ) from exc
        except openai.APIError as exc:
            raise LLMError(message=f"{self._label} API error: {exc}", provider_name=self._label) from exc

        choice = response.choices[0]
        if not choice.message.content:
            raise LLMError(message=f"{self._label} returned empty response", provider_name=self._label)
        if choice.finish_reason == "length":
            logger.warning("draft_truncated", provider=self._label, max_tokens=max_tokens)

        logger.info(
            "llm_completion",
            provider=self._label,
            model=self._model,
            total_tokens=response.usage.total_tokens if response.usage else None,
        )
        return choice.message.content

    def is_available(self) -> bool:
        return bool(self._api_key)

    def get_provider_name(self) -> str:
        return self._label
