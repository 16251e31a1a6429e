"""Retry utilities for webhook delivery."""

from __future__ import annotations

import logging
from typing import Callable

import requests
from tenacity import (
    after_log,
    before_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

MAX_ATTEMPTS = 3


def _has_server_error_status(exception: BaseException) -> bool:
    """Return True when an exception carries a 5xx response."""
    response = getattr(exception, "response", None)
    code = getattr(response, "status_code", None)
    return bool(code and code >= 500)


def _should_retry(exception: BaseException) -> bool:
    """Determine whether a given exception warrants a retry."""
    if isinstance(exception, TimeoutError):
        return True

    if isinstance(
        exception,
        (
            requests.exceptions.Timeout,
            requests.exceptions.ConnectionError,
            requests.exceptions.ChunkedEncodingError,
        ),
    ):
        return True

    # HTTPError carries the status on its response
    return _has_server_error_status(exception)


def _build_retry_decorator(name: str) -> Callable:
    """Create a configured tenacity retry decorator."""
    retry_logger = logging.getLogger(f"{__name__}.{name.lower()}")
    return retry(
        reraise=True,
        stop=stop_after_attempt(MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception(_should_retry),
        before=before_log(retry_logger, logging.DEBUG),
        after=after_log(retry_logger, logging.WARNING),
    )


def webhook_retry() -> Callable:
    """Retry decorator for chat webhook calls."""
    return _build_retry_decorator("Webhook")
