"""Tests for Webex publishing module"""

import json
import time

import pytest
import requests
import responses
from unittest.mock import patch

from src.publish_webex import WebexPublisher, _retry_after_seconds, publish_to_webex
from src.utils.webhook import WebhookDeliveryError

HOOK_URL = "https://webexapis.com/v1/webhooks/incoming/Y2lzY29zcGFyazovL3Vz"


@pytest.fixture
def sleeps(monkeypatch):
    """Record sleeps instead of waiting"""
    calls = []
    monkeypatch.setattr(time, "sleep", calls.append)
    return calls


def test_publisher_initialization():
    """Test WebexPublisher initialization"""
    publisher = WebexPublisher(HOOK_URL)
    assert publisher.hook_url == HOOK_URL
    assert publisher.max_retries == 3
    assert publisher.fail_on_error is False


def test_publisher_accepts_legacy_host():
    """Test that api.ciscospark.com hooks are still accepted"""
    publisher = WebexPublisher("https://api.ciscospark.com/v1/webhooks/incoming/abc123")
    assert publisher.hook_url.startswith("https://api.ciscospark.com")


def test_publisher_rejects_invalid_url():
    with pytest.raises(ValueError, match="Invalid Webex hook URL"):
        WebexPublisher("https://example.com/v1/webhooks/incoming/abc")


def test_publisher_rejects_negative_retries():
    with pytest.raises(ValueError):
        WebexPublisher(HOOK_URL, max_retries=-1)


@responses.activate
def test_send_posts_markdown_body():
    """Test the request sent to the webhook"""
    responses.add(responses.POST, HOOK_URL, status=204)

    assert WebexPublisher(HOOK_URL).send("**hello**") is True

    body = json.loads(responses.calls[0].request.body)
    assert body == {"markdown": "**hello**"}


@responses.activate
def test_send_honours_retry_after(sleeps):
    """Test that rate-limited requests are resent after Retry-After seconds"""
    responses.add(responses.POST, HOOK_URL, status=429, headers={"Retry-After": "2"})
    responses.add(responses.POST, HOOK_URL, status=204)

    assert WebexPublisher(HOOK_URL).send("hello") is True
    assert sleeps == [2]
    assert len(responses.calls) == 2


@responses.activate
def test_send_honours_retry_after_on_server_errors(sleeps):
    """Test that a server error with Retry-After waits the requested time"""
    responses.add(responses.POST, HOOK_URL, status=503, headers={"Retry-After": "7"})
    responses.add(responses.POST, HOOK_URL, status=204)

    assert WebexPublisher(HOOK_URL).send("hello") is True
    assert sleeps == [7]
    assert len(responses.calls) == 2


@responses.activate
def test_send_retries_server_errors_without_retry_after(sleeps, caplog):
    """Test that plain server errors fall back to transport retries"""
    responses.add(responses.POST, HOOK_URL, body="unavailable", status=503)

    assert WebexPublisher(HOOK_URL).send("hello") is False
    assert len(responses.calls) == 3
    assert len(sleeps) == 2
    assert "An exception happened while sending the Webex message" in caplog.text


@pytest.mark.parametrize("value, seconds", [
    ("2", 2),
    (" 10 ", 10),
    ("1.5", 1),
    ("soon", 0),
    ("", 0),
])
def test_retry_after_seconds(value, seconds):
    assert _retry_after_seconds(value) == seconds


@responses.activate
def test_send_stops_after_max_retries(sleeps):
    """Test that Retry-After retries are bounded"""
    responses.add(responses.POST, HOOK_URL, status=429, headers={"Retry-After": "1"})
    publisher = WebexPublisher(HOOK_URL, max_retries=2, fail_on_error=True)

    with pytest.raises(WebhookDeliveryError, match="Max retries reached"):
        publisher.send("hello")

    assert len(responses.calls) == 3
    assert sleeps == [1, 1]


@responses.activate
def test_send_without_retry_after_fails_immediately(caplog):
    """Test that errors without Retry-After are not retried"""
    responses.add(responses.POST, HOOK_URL, body="invalid", status=400)

    assert WebexPublisher(HOOK_URL).send("hello") is False
    assert len(responses.calls) == 1
    assert "Error code: 400" in caplog.text


@responses.activate
def test_send_handles_connection_errors(sleeps, caplog):
    """Test that transport errors are retried and then reported"""
    responses.add(responses.POST, HOOK_URL, body=requests.exceptions.ConnectionError("refused"))

    assert WebexPublisher(HOOK_URL).send("hello") is False
    assert len(responses.calls) == 3
    assert "An exception happened while sending the Webex message" in caplog.text


def test_publish_to_webex_sends_quoted_markdown():
    """Test that publish_to_webex sends raw Markdown with quoted payload"""
    with patch("src.publish_webex.WebexPublisher.send") as mock_send:
        mock_send.return_value = True

        publish_to_webex(
            "Build done",
            hook_url=HOOK_URL,
            payload={"Version": "1.0"},
            success=True,
        )

    mock_send.assert_called_once_with("## ✅ Build done\n\n>**Version**  \n>1.0  \n")
