"""Tests for rd.platform.http helpers and MockHttpClient."""

from __future__ import annotations

from rd.core.result import Err, Ok
from rd.platform.http import HttpError, HttpResponse, MockHttpClient, parse_json


def test_mock_returns_queued_responses_in_order() -> None:
    client = MockHttpClient()
    url = "https://example.test/a"
    client.add_error("GET", url, status=503, message="Service Unavailable")
    client.add_json("GET", url, {"ok": True})

    first = client.request("GET", url)
    second = client.request("get", url)

    assert isinstance(first, Err)
    assert first.error.status == 503
    assert isinstance(second, Ok)
    assert second.value.body == '{"ok": true}'
    assert client.methods() == ["GET", "GET"]


def test_mock_unscripted_request_is_404() -> None:
    client = MockHttpClient()
    result = client.request("POST", "https://example.test/x", json_body={"a": 1})
    assert isinstance(result, Err)
    assert result.error.status == 404
    assert client.calls[0].json_body == {"a": 1}


def test_mock_records_headers() -> None:
    client = MockHttpClient()
    client.request("GET", "https://example.test", headers={"Authorization": "Bearer t"})
    assert client.calls[0].headers == {"Authorization": "Bearer t"}


def test_parse_json_ok() -> None:
    result = parse_json(HttpResponse(status=200, body='{"id": 5}'), url="u")
    assert result == Ok({"id": 5})


def test_parse_json_invalid() -> None:
    result = parse_json(HttpResponse(status=200, body="<html>"), url="u")
    assert isinstance(result, Err)
    assert result.error.url == "u"


def test_http_error_str() -> None:
    error = HttpError(url="https://x", status=500, message="Server Error")
    assert str(error) == "HTTP 500: Server Error (https://x)"
