"""buildnotify - CI build notifications for chat webhooks

Main entry point for the buildnotify application.
"""

import json
import logging
import os
import sys
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from src.publish_google_chat import publish_to_google_chat
from src.publish_webex import DEFAULT_MAX_RETRIES, publish_to_webex
from src.utils.webhook import WebhookDeliveryError

logger = logging.getLogger(__name__)

TARGETS = ("google_chat", "webex")

ENV_NAMES = {
    "google_chat": {
        "url": "FL_GOOGLE_CHAT_URL",
        "message": "FL_GOOGLE_CHAT_MESSAGE",
        "payload": "FL_GOOGLE_CHAT_PAYLOAD",
        "success": "FL_GOOGLE_CHAT_SUCCESS",
        "fail_on_error": "FL_GOOGLE_CHAT_FAIL_ON_ERROR",
    },
    "webex": {
        "url": "FL_WEBEX_URL",
        "message": "FL_WEBEX_MESSAGE",
        "payload": "FL_WEBEX_PAYLOAD",
        "success": "FL_WEBEX_SUCCESS",
        "fail_on_error": "WEBEX_FAIL_ON_ERROR",
        "max_retries": "FL_WEBEX_MESSAGE_MAX_RETRIES",
    },
}

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


def configure_logging():
    """Log to stderr and to buildnotify.log"""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler('buildnotify.log', encoding='utf-8')
        ]
    )


def _parse_optional_bool(env_name: str) -> Optional[bool]:
    """Return True/False for boolean env values, None when unset or empty."""
    value = os.getenv(env_name)
    if value is None or not value.strip():
        return None
    value = value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{env_name} must be true or false")


def _parse_non_negative_int(env_name: str, default: int) -> int:
    value = os.getenv(env_name)
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value.strip())
    except ValueError as exc:
        raise ValueError(f"{env_name} must be a non-negative integer") from exc
    if parsed < 0:
        raise ValueError(f"{env_name} must be a non-negative integer")
    return parsed


def _parse_payload(env_name: str) -> Dict[str, Any]:
    value = os.getenv(env_name)
    if value is None or not value.strip():
        return {}
    try:
        payload = json.loads(value)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{env_name} must be a JSON object") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"{env_name} must be a JSON object")
    return payload


def load_config():
    """Load configuration from environment variables

    Returns:
        Dictionary with configuration values
    """
    load_dotenv()

    target = os.getenv('NOTIFY_TARGET', 'google_chat').strip().lower()
    if target not in TARGETS:
        logger.error(f"Invalid NOTIFY_TARGET: {target}")
        raise ValueError("NOTIFY_TARGET must be 'google_chat' or 'webex'")

    names = ENV_NAMES[target]
    config = {
        'target': target,
        'url': os.getenv(names['url']),
        'message': os.getenv(names['message']),
        'payload': _parse_payload(names['payload']),
        'success': _parse_optional_bool(names['success']),
        'fail_on_error': bool(_parse_optional_bool(names['fail_on_error'])),
        'max_retries': DEFAULT_MAX_RETRIES,
    }
    if 'max_retries' in names:
        config['max_retries'] = _parse_non_negative_int(names['max_retries'], DEFAULT_MAX_RETRIES)

    # Validate required fields
    if not config['url']:
        logger.error(f"{names['url']} not set")
        raise ValueError(f"{names['url']} is required")

    if not config['message']:
        logger.error(f"{names['message']} not set")
        raise ValueError(f"{names['message']} is required")

    logger.info(f"Configuration loaded: target={target}, "
                f"payload entries={len(config['payload'])}, "
                f"success={config['success']}")

    return config


def main():
    """Main execution flow"""
    try:
        config = load_config()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    try:
        if config['target'] == 'webex':
            delivered = publish_to_webex(
                config['message'],
                hook_url=config['url'],
                payload=config['payload'],
                success=config['success'],
                max_retries=config['max_retries'],
                fail_on_error=config['fail_on_error'],
            )
        else:
            delivered = publish_to_google_chat(
                config['message'],
                hook_url=config['url'],
                payload=config['payload'],
                success=config['success'],
                fail_on_error=config['fail_on_error'],
            )
    except (ValueError, WebhookDeliveryError) as e:
        logger.error(f"Fatal error: {e}")
        return 1

    if not delivered:
        logger.warning("Notification was not delivered")
    return 0


if __name__ == "__main__":
    configure_logging()
    sys.exit(main())
