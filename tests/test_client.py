import json

import httpx
import pytest

from article_refresher.errors import ExhaustedRetries
from article_refresher.ir import RewriteRequest, Span
from article_refresher.llm.client import LLMConfig, RewriteClient, delay


def _ok(content):
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


def _client(handler, **config):
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return RewriteClient(LLMConfig(api_key="secret", **config), http_client=http)


def _rewrite(client, text="x", role="opening", title="t", platform="java"):
    span = Span(0, len(text), text, role)
    return client.rewrite(RewriteRequest(span=span, title=title, platform=platform)).rewritten


def test_request_shape_and_stripped_response(sleeps):
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return _ok("  A sharper opening.  \n")

    client = _client(handler)
    out = _rewrite(client, "Old opening.", title="Convert DOCX")

    assert out == "A sharper opening."
    assert seen["auth"] == "Bearer secret"
    assert seen["url"] == "https://llm.professionalize.com/v1/chat/completions"
    body = seen["body"]
    assert body["model"] == "gpt-oss"
    assert body["temperature"] == 0.7
    assert body["max_tokens"] == 1000
    assert [m["role"] for m in body["messages"]] == ["system", "user"]
    assert "Old opening." in body["messages"][1]["content"]
    assert "java tutorial" in body["messages"][1]["content"]
    assert sleeps == []


def test_closing_prompt_mentions_conclusion(sleeps):
    prompts = []

    def handler(request):
        prompts.append(json.loads(request.content)["messages"][1]["content"])
        return _ok("Done.")

    _rewrite(_client(handler), "Bye.", role="closing", title="T", platform="net")
    assert "closing paragraph" in prompts[0]


def test_always_failing_service_exhausts_retries(sleeps):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503, text="overloaded")

    client = _client(handler)
    with pytest.raises(ExhaustedRetries) as exc:
        _rewrite(client)

    assert len(calls) == 3
    assert sleeps == [2, 4]
    assert exc.value.attempts == 3
    assert "HTTP 503" in str(exc.value)


def test_retry_ceiling_follows_config(sleeps):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    with pytest.raises(ExhaustedRetries):
        _rewrite(_client(handler, max_retries=5))
    assert len(calls) == 5
    assert sleeps == [2, 4, 8, 16]


def test_single_attempt_does_not_sleep(sleeps):
    with pytest.raises(ExhaustedRetries):
        _rewrite(_client(lambda r: httpx.Response(500), max_retries=1))
    assert sleeps == []


def test_malformed_body_is_retried(sleeps):
    responses = iter([
        httpx.Response(200, json={"choices": []}),
        httpx.Response(200, text="not json"),
        _ok("Recovered."),
    ])
    out = _rewrite(_client(lambda r: next(responses)), role="closing")
    assert out == "Recovered."
    assert sleeps == [2, 4]


def test_non_text_content_is_a_failure(sleeps):
    def handler(request):
        return httpx.Response(200, json={"choices": [{"message": {"content": None}}]})

    with pytest.raises(ExhaustedRetries) as exc:
        _rewrite(_client(handler))
    assert "not text" in exc.value.last_error


def test_transport_errors_are_retried(sleeps):
    state = {"n": 0}

    def handler(request):
        state["n"] += 1
        if state["n"] == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return _ok("Fine.")

    assert _rewrite(_client(handler)) == "Fine."
    assert sleeps == [2]


def test_delay_skips_non_positive(sleeps):
    delay(0)
    delay(2.0)
    assert sleeps == [2.0]


def test_unparsable_url_is_a_retryable_failure(sleeps):
    calls = []

    def handler(request):
        calls.append(request)
        return _ok("unreachable")

    with pytest.raises(ExhaustedRetries) as exc:
        _rewrite(_client(handler, api_url="http://[::1"))
    assert calls == []
    assert exc.value.attempts == 3
    assert "InvalidURL" in exc.value.last_error
