"""Shared HTTP plumbing for the award-search and FPDS clients."""

import logging

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


class RetryableStatusError(Exception):
    """Raised on 429 / 5xx so tenacity retries."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


# Transport failures and unparseable bodies are worth another attempt;
# any other 4xx is the request's fault and fails at once.
RETRYABLE_ERRORS = (RetryableStatusError, httpx.TransportError, ValueError)
REQUEST_ERRORS = RETRYABLE_ERRORS + (httpx.HTTPStatusError,)


class UpstreamError(Exception):
    """An upstream search API could not be reached or kept failing."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


def check_status(response: httpx.Response) -> None:
    """Raise RetryableStatusError on 429/5xx, httpx.HTTPStatusError on other 4xx."""
    if response.status_code == 429 or response.status_code >= 500:
        raise RetryableStatusError(
            response.status_code,
            f"{response.request.url} returned {response.status_code}: {response.text[:200]}",
        )
    response.raise_for_status()


def build_timeout(seconds: float) -> httpx.Timeout:
    return httpx.Timeout(seconds, connect=min(seconds, 10.0))


def search_retrying(attempts: int, wait=None) -> AsyncRetrying:
    """Retry policy for one search request: ``attempts`` tries, exponential backoff."""
    return AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait if wait is not None else wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
