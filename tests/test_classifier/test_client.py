"""Tests for the chat-completions classifier client."""

import json

import httpx
import pytest

from activity_analytics.classifier.client import ClassifierClient
from activity_analytics.exceptions import (
    ClassificationError,
    ClassifierResponseMalformedError,
    ClassifierTimeoutError,
    ClassifierUnavailableError,
    ConfigurationError,
)


def _client(handler):
    return ClassifierClient(
        api_key="sk-test",
        base_url="https://classifier.test/v1/",
        model="test-model",
        transport=httpx.MockTransport(handler),
    )


def _reply(content):
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


def test_init_requires_api_key():
    with pytest.raises(ConfigurationError, match="API key is required"):
        ClassifierClient(api_key="")


def test_endpoint_strips_trailing_slash():
    client = _client(lambda request: _reply("ok"))
    assert client.endpoint == "https://classifier.test/v1/chat/completions"


def test_complete_sends_messages_and_returns_content():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return _reply("  [] \n")

    content = _client(handler).complete("system text", "user text", temperature=0.2)

    assert content == "[]"
    assert seen["url"] == "https://classifier.test/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["model"] == "test-model"
    assert seen["body"]["temperature"] == 0.2
    assert seen["body"]["messages"] == [
        {"role": "system", "content": "system text"},
        {"role": "user", "content": "user text"},
    ]


def test_timeout_maps_to_timeout_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(ClassifierTimeoutError):
        _client(handler).complete("s", "u")


def test_connect_error_maps_to_unavailable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ClassifierUnavailableError, match="unreachable"):
        _client(handler).complete("s", "u")


@pytest.mark.parametrize("status", [429, 500, 503])
def test_server_errors_map_to_unavailable(status):
    with pytest.raises(ClassifierUnavailableError, match=str(status)):
        _client(lambda request: httpx.Response(status)).complete("s", "u")


def test_client_error_maps_to_classification_error():
    client = _client(lambda request: httpx.Response(400, text="bad request"))
    with pytest.raises(ClassificationError, match="HTTP 400") as exc_info:
        client.complete("s", "u")
    assert not isinstance(exc_info.value, ClassifierUnavailableError)


def test_missing_choices_is_malformed():
    client = _client(lambda request: httpx.Response(200, json={"choices": []}))
    with pytest.raises(ClassifierResponseMalformedError, match="no choices"):
        client.complete("s", "u")


def test_blank_content_is_malformed():
    with pytest.raises(ClassifierResponseMalformedError, match="empty"):
        _client(lambda request: _reply("   ")).complete("s", "u")


def test_non_json_body_is_malformed():
    client = _client(lambda request: httpx.Response(200, text="<html>oops</html>"))
    with pytest.raises(ClassifierResponseMalformedError, match="not JSON"):
        client.complete("s", "u")
