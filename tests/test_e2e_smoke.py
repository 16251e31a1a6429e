"""End-to-end smoke test covering configuration through delivery."""

import json

import responses

import main

HOOK_URL = "https://chat.googleapis.com/v1/spaces/AAAA1234/messages?key=abc&token=xyz"


@responses.activate
def test_e2e_smoke_flow(monkeypatch):
    """Run a smoke test that exercises the primary pipeline surfaces."""
    monkeypatch.setattr(main, "load_dotenv", lambda: None)
    monkeypatch.delenv("NOTIFY_TARGET", raising=False)
    monkeypatch.delenv("FL_GOOGLE_CHAT_FAIL_ON_ERROR", raising=False)
    monkeypatch.setenv("FL_GOOGLE_CHAT_URL", HOOK_URL)
    monkeypatch.setenv(
        "FL_GOOGLE_CHAT_MESSAGE",
        "Release *2.4.0* is out\n\n"
        "- Fixes\n"
        "  1. crash on start\n"
        "  2. login <loop>\n"
        "- Thanks <@U024BE7LH>\n\n"
        "See [notes](https://example.com/notes)",
    )
    monkeypatch.setenv("FL_GOOGLE_CHAT_PAYLOAD", '{"Build": "1234", "Branch": "release/2.4"}')
    monkeypatch.setenv("FL_GOOGLE_CHAT_SUCCESS", "true")

    responses.add(responses.POST, HOOK_URL, json={"name": "spaces/AAAA1234/messages/1"}, status=200)

    assert main.main() == 0

    recorded = json.loads(responses.calls[0].request.body)
    assert recorded["text"] == (
        "*✅ Release _2.4.0_ is out*\n"
        "- Fixes\n"
        "   1. crash on start\n"
        "   2. login &lt;loop&gt;\n"
        "- Thanks <@U024BE7LH>\n"
        "\n"
        "See <https://example.com/notes|notes>\n"
        "\n"
        "*Build*\n1234\n*Branch*\nrelease/2.4"
    )
