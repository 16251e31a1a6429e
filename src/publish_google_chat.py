"""Google Chat publishing module"""

import logging
import re
from typing import Any, Mapping, Optional

import requests

from .compose import compose_message
from .utils.mrkdwn import render_mrkdwn
from .utils.webhook import JSON_HEADERS, delivery_failure, post_json

logger = logging.getLogger(__name__)

GOOGLE_CHAT_HOOK_URL_RE = re.compile(
    r"https://chat\.googleapis\.com/v1/spaces/\w+/messages\?key=[\w%-]+&token=[\w%-]+"
)


class GoogleChatPublisher:
    """Incoming webhook client for Google Chat spaces"""

    def __init__(self, hook_url: str, fail_on_error: bool = False):
        """Initialize Google Chat publisher

        Args:
            hook_url: Incoming webhook URL of the space
            fail_on_error: Raise WebhookDeliveryError instead of logging failures
        """
        if not hook_url or not GOOGLE_CHAT_HOOK_URL_RE.match(hook_url):
            raise ValueError("Invalid Google Chat hook URL")

        self.hook_url = hook_url
        self.fail_on_error = fail_on_error
        self.headers = {**JSON_HEADERS, "charset": "UTF-8"}

    def send(self, text: str) -> bool:
        """Post an already formatted mrkdwn message

        Args:
            text: mrkdwn text

        Returns:
            True when the message was accepted
        """
        try:
            logger.info("Sending Google Chat message")
            response = post_json(self.hook_url, {"text": text}, headers=self.headers)
        except requests.exceptions.RequestException as e:
            response = getattr(e, "response", None)
            return delivery_failure(
                f"An exception happened while sending the Google Chat message:\n{e}",
                response,
                self.fail_on_error,
            )

        if response.ok:
            logger.info("Google Chat message has been sent successfully!")
            return True

        message = (
            "Error sending Google Chat message. Review that the hook URL is OK and try again later.\n"
            f"Error code: {response.status_code}\n"
            f"Response body: {response.text}"
        )
        return delivery_failure(message, response, self.fail_on_error)


def format_message(
    message: str,
    payload: Optional[Mapping[str, Any]] = None,
    success: Optional[bool] = None,
) -> str:
    """Compose a notification and render it as mrkdwn"""
    return render_mrkdwn(compose_message(message, payload=payload, success=success))


def publish_to_google_chat(
    message: str,
    hook_url: str,
    payload: Optional[Mapping[str, Any]] = None,
    success: Optional[bool] = None,
    fail_on_error: bool = False,
) -> bool:
    """Send a build notification to Google Chat

    Args:
        message: Markdown message
        hook_url: Incoming webhook URL
        payload: Label/value pairs appended to the message
        success: Build status, None to omit the status heading
        fail_on_error: Raise on delivery failures instead of logging them

    Returns:
        True when the message was delivered
    """
    publisher = GoogleChatPublisher(hook_url, fail_on_error=fail_on_error)
    return publisher.send(format_message(message, payload=payload, success=success))
