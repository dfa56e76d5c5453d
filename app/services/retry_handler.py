"""
Retry policy for text-generation provider calls.

Rate limits and transient network/server failures are retried with
exponential backoff (tenacity); everything else surfaces immediately.
"""
import logging
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from app.services.llm_errors import ProviderRateLimited, ProviderTransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")

LLM_MAX_ATTEMPTS = 3
LLM_WAIT_MIN = 1  # seconds
LLM_WAIT_MAX = 30  # seconds
LLM_MULTIPLIER = 2


def retry_llm_api(
    func: Callable[..., Awaitable[T]],
    max_attempts: int = LLM_MAX_ATTEMPTS,
) -> Callable[..., Awaitable[T]]:
    """
    Wrap a coroutine function calling an LLM provider.

    Retries on:
    - ProviderRateLimited (HTTP 429 / quota)
    - ProviderTransientError (connection errors, timeouts, 5xx)

    Usage:
        call = retry_llm_api(provider._complete, max_attempts=3)
        text = await call(prompt)
    """
    return retry(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait_exponential(
            multiplier=LLM_MULTIPLIER,
            min=LLM_WAIT_MIN,
            max=LLM_WAIT_MAX,
        ),
        retry=retry_if_exception_type((ProviderRateLimited, ProviderTransientError)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )(func)
