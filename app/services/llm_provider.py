"""
Text-generation providers.

Every provider exposes ``complete(prompt) -> str`` and translates its SDK's
failures into :mod:`app.services.llm_errors`. The active provider is chosen
once per process from settings; ``None`` means keyword analysis only.
"""
from __future__ import annotations

import abc
import logging
from functools import lru_cache

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from openai import (
    APIConnectionError,
    APIStatusError,
    AsyncOpenAI,
    OpenAIError,
    RateLimitError,
)

from app.config import Settings, get_settings
from app.services.llm_errors import (
    ProviderBlocked,
    ProviderError,
    ProviderRateLimited,
    ProviderResponseError,
    ProviderTransientError,
    ProviderUnavailable,
)
from app.services.retry_handler import LLM_MAX_ATTEMPTS, retry_llm_api

logger = logging.getLogger(__name__)


class TextGenerationProvider(abc.ABC):
    name = "provider"

    def __init__(self, max_attempts: int = LLM_MAX_ATTEMPTS) -> None:
        self.max_attempts = max_attempts

    async def complete(self, prompt: str, *, system: str | None = None, json_object: bool = False) -> str:
        """Send ``prompt`` and return the raw response text, retrying rate limits."""
        call = retry_llm_api(self._complete, max_attempts=self.max_attempts)
        return await call(prompt, system=system, json_object=json_object)

    @abc.abstractmethod
    async def _complete(self, prompt: str, *, system: str | None, json_object: bool) -> str: ...


class OpenAIProvider(TextGenerationProvider):
    name = "openai"

    def __init__(
        self,
        api_key: str | None,
        model: str = "gpt-4o",
        max_attempts: int = LLM_MAX_ATTEMPTS,
        client: AsyncOpenAI | None = None,
    ) -> None:
        super().__init__(max_attempts)
        if not api_key and client is None:
            raise ProviderUnavailable("OPENAI_API_KEY is not set")
        self.model = model
        self.client = client or AsyncOpenAI(api_key=api_key)

    async def _complete(self, prompt, *, system, json_object):
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        kwargs = {}
        if json_object:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                **kwargs,
            )
        except RateLimitError as exc:
            raise ProviderRateLimited(str(exc)) from exc
        except APIConnectionError as exc:
            raise ProviderTransientError(str(exc)) from exc
        except APIStatusError as exc:
            if exc.status_code >= 500:
                raise ProviderTransientError(str(exc)) from exc
            raise ProviderError(f"OpenAI returned {exc.status_code}: {exc}") from exc
        except OpenAIError as exc:
            raise ProviderError(str(exc)) from exc

        if not response.choices:
            raise ProviderResponseError("OpenAI returned no choices")
        choice = response.choices[0]
        if choice.finish_reason == "content_filter":
            raise ProviderBlocked("OpenAI content filter blocked the response")
        content = choice.message.content
        if not content:
            raise ProviderResponseError("OpenAI returned an empty message")
        return content


class GeminiProvider(TextGenerationProvider):
    name = "gemini"

    def __init__(
        self,
        api_key: str | None,
        model: str = "gemini-1.5-flash",
        max_attempts: int = LLM_MAX_ATTEMPTS,
        client: genai.GenerativeModel | None = None,
    ) -> None:
        super().__init__(max_attempts)
        if not api_key and client is None:
            raise ProviderUnavailable("GEMINI_API_KEY is not set")
        if client is None:
            genai.configure(api_key=api_key)
            client = genai.GenerativeModel(model)
        self.model = client

    async def _complete(self, prompt, *, system, json_object):
        contents = f"{system}\n\n{prompt}" if system else prompt
        generation_config = {"temperature": 0.4}
        if json_object:
            generation_config["response_mime_type"] = "application/json"

        try:
            response = await self.model.generate_content_async(
                contents,
                generation_config=generation_config,
            )
        except google_exceptions.ResourceExhausted as exc:
            raise ProviderRateLimited(str(exc)) from exc
        except (
            google_exceptions.ServiceUnavailable,
            google_exceptions.InternalServerError,
            google_exceptions.DeadlineExceeded,
        ) as exc:
            raise ProviderTransientError(str(exc)) from exc
        except google_exceptions.GoogleAPIError as exc:
            raise ProviderError(str(exc)) from exc

        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and getattr(feedback, "block_reason", None):
            raise ProviderBlocked(f"Gemini blocked the prompt: {feedback.block_reason}")
        try:
            text = response.text
        except ValueError as exc:
            # raised when the candidate was stopped by the safety filter
            raise ProviderBlocked(f"Gemini returned no text: {exc}") from exc
        if not text:
            raise ProviderResponseError("Gemini returned an empty response")
        return text


def build_provider(settings: Settings) -> TextGenerationProvider | None:
    choice = settings.analysis_provider.lower()
    if choice == "keyword":
        return None
    if choice == "auto":
        if settings.openai_api_key:
            choice = "openai"
        elif settings.gemini_api_key:
            choice = "gemini"
        else:
            logger.warning("No text-generation API key configured, using keyword analysis only")
            return None

    try:
        if choice == "openai":
            provider = OpenAIProvider(settings.openai_api_key, settings.openai_model, settings.llm_max_attempts)
        elif choice == "gemini":
            provider = GeminiProvider(settings.gemini_api_key, settings.gemini_model, settings.llm_max_attempts)
        else:
            raise ValueError(f"Unknown analysis provider: {settings.analysis_provider!r}")
    except ProviderUnavailable as exc:
        logger.warning("%s, using keyword analysis only", exc)
        return None

    logger.info("Text analysis provider: %s", provider.name)
    return provider


@lru_cache
def get_text_provider() -> TextGenerationProvider | None:
    return build_provider(get_settings())
