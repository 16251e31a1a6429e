"""Shared HTTP plumbing for chat webhook publishers."""

import logging
from typing import Any, Dict, Optional

import requests

from .retry import webhook_retry

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}
REQUEST_TIMEOUT = 30


class WebhookDeliveryError(RuntimeError):
    """Raised when a webhook message could not be delivered"""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


@webhook_retry()
def post_json(
    url: str,
    body: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
    honour_retry_after: bool = False,
) -> requests.Response:
    """POST a JSON body to a webhook

    Server errors and transport failures are raised so that the retry
    decorator can try again. Any other response is returned to the caller.

    Args:
        url: Webhook URL
        body: JSON-serializable request body
        headers: Request headers (defaults to JSON_HEADERS)
        honour_retry_after: Return server errors carrying a Retry-After
            header instead of raising, the caller schedules the resend

    Returns:
        The HTTP response
    """
    response = requests.post(
        url,
        headers=headers or JSON_HEADERS,
        json=body,
        timeout=REQUEST_TIMEOUT
    )
    if response.status_code >= 500:
        logger.warning(f"Webhook answered with status {response.status_code}")
        if not (honour_retry_after and "Retry-After" in response.headers):
            response.raise_for_status()
    return response


def delivery_failure(message: str, response: Optional[requests.Response], fail_on_error: bool) -> bool:
    """Report a failed delivery

    Raises WebhookDeliveryError when fail_on_error is set, otherwise logs the
    failure and returns False.
    """
    status_code = response.status_code if response is not None else None
    body = response.text if response is not None else None
    if fail_on_error:
        raise WebhookDeliveryError(message, status_code=status_code, body=body)
    logger.error(message)
    return False
