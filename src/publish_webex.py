"""Webex publishing module"""

import logging
import re
import time
from typing import Any, Mapping, Optional

import requests

from .compose import compose_quoted_message
from .utils.webhook import delivery_failure, post_json

logger = logging.getLogger(__name__)

WEBEX_HOOK_URL_RE = re.compile(
    r"https://(api\.ciscospark\.com|webexapis\.com)/v1/webhooks/incoming/\w+"
)
DEFAULT_MAX_RETRIES = 3
_RETRY_AFTER_SECONDS_RE = re.compile(r"\s*(\d+)")


def _retry_after_seconds(value: str) -> int:
    """Leading whole seconds of a Retry-After value, 0 when there are none"""
    match = _RETRY_AFTER_SECONDS_RE.match(value)
    return int(match.group(1)) if match else 0


class WebexPublisher:
    """Incoming webhook client for Webex spaces"""

    def __init__(self, hook_url: str, max_retries: int = DEFAULT_MAX_RETRIES, fail_on_error: bool = False):
        """Initialize Webex publisher

        Args:
            hook_url: Incoming webhook URL
            max_retries: How many times a rate-limited message is resent
            fail_on_error: Raise WebhookDeliveryError instead of logging failures
        """
        if not hook_url or not WEBEX_HOOK_URL_RE.match(hook_url):
            raise ValueError("Invalid Webex hook URL")
        if max_retries < 0:
            raise ValueError("max_retries must not be negative")

        self.hook_url = hook_url
        self.max_retries = max_retries
        self.fail_on_error = fail_on_error

    def send(self, markdown: str) -> bool:
        """Post a Markdown message, honouring Retry-After on rejected requests

        Args:
            markdown: Markdown text (Webex renders Markdown natively)

        Returns:
            True when the message was accepted
        """
        for attempt in range(self.max_retries + 1):
            try:
                response = post_json(self.hook_url, {"markdown": markdown}, honour_retry_after=True)
            except requests.exceptions.RequestException as e:
                return delivery_failure(
                    f"An exception happened while sending the Webex message:\n{e}",
                    getattr(e, "response", None),
                    self.fail_on_error,
                )

            if response.ok:
                logger.info("Webex message has been sent successfully!")
                return True

            retry_after = response.headers.get("Retry-After")
            if retry_after is None:
                message = (
                    "Error sending Webex message. Review that the hook URL is OK and try again later.\n"
                    f"Error code: {response.status_code}\n"
                    f"Response body: {response.text}"
                )
                return delivery_failure(message, response, self.fail_on_error)

            if attempt == self.max_retries:
                break

            seconds = _retry_after_seconds(retry_after)
            logger.warning(f"Retrying Webex message sending after {seconds} seconds…")
            time.sleep(seconds)

        return delivery_failure(
            "Max retries reached, the message could not be sent",
            response,
            self.fail_on_error,
        )


def publish_to_webex(
    message: str,
    hook_url: str,
    payload: Optional[Mapping[str, Any]] = None,
    success: Optional[bool] = None,
    max_retries: int = DEFAULT_MAX_RETRIES,
    fail_on_error: bool = False,
) -> bool:
    """Send a build notification to Webex

    Args:
        message: Markdown message
        hook_url: Incoming webhook URL
        payload: Label/value pairs appended to the message as quotes
        success: Build status, None to omit the status heading
        max_retries: Retries for rate-limited requests
        fail_on_error: Raise on delivery failures instead of logging them

    Returns:
        True when the message was delivered
    """
    publisher = WebexPublisher(hook_url, max_retries=max_retries, fail_on_error=fail_on_error)
    return publisher.send(compose_quoted_message(message, payload=payload, success=success))
