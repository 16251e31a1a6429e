"""Notification message composition - builds Markdown from build results"""

import logging
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

SUCCESS_PREFIX = "## ✅ "
FAILURE_PREFIX = "## 🛑 "
HARD_BREAK = "  \n"


def status_prefix(success: Optional[bool]) -> str:
    """Return the heading prefix for a build status (empty when unknown)"""
    if success is None:
        return ""
    return SUCCESS_PREFIX if success else FAILURE_PREFIX


def compose_message(
    message: str,
    payload: Optional[Mapping[str, Any]] = None,
    success: Optional[bool] = None,
) -> str:
    """Compose a Markdown notification message

    Args:
        message: Free-text message (Markdown)
        payload: Ordered mapping of label to value appended below the message
        success: Build status, None to omit the status heading

    Returns:
        Markdown text where each payload entry is a bold label followed by
        its value, separated by hard line breaks
    """
    markdown = f"{status_prefix(success)}{message}"

    if payload:
        markdown += "\n\n"
        for label, value in payload.items():
            value_text = str(value).replace("\n", HARD_BREAK)
            markdown += f"**{label}**{HARD_BREAK}{value_text}{HARD_BREAK}"

    logger.debug(f"Composed message with {len(payload or {})} payload entries")
    return markdown


def compose_quoted_message(
    message: str,
    payload: Optional[Mapping[str, Any]] = None,
    success: Optional[bool] = None,
) -> str:
    """Compose a Markdown message with the payload rendered as block quotes

    Used for targets that accept Markdown directly instead of mrkdwn.
    """
    markdown = f"{status_prefix(success)}{message}"

    if payload:
        markdown += "\n\n"
        for label, value in payload.items():
            value_text = str(value).replace("\n", f"{HARD_BREAK}>")
            markdown += f">**{label}**{HARD_BREAK}>{value_text}{HARD_BREAK}"

    return markdown
