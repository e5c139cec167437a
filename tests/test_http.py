"""Tests for the shared HTTP client."""

from unittest import mock

import pytest
import requests

from catalog_automation.libs.http import HttpClient


def _response(status, body=None, text=""):
    resp = mock.Mock(spec=requests.Response)
    resp.status_code = status
    resp.text = text
    if body is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = body
    return resp


@pytest.fixture
def no_sleep(monkeypatch):
    monkeypatch.setattr("catalog_automation.libs.http.time.sleep", lambda _: None)


class TestHttpClient:

    def test_url_for(self):
        client = HttpClient(base_url="https://api.example.com/v1/")
        assert client.url_for("/tools") == "https://api.example.com/v1/tools"
        assert client.url_for("https://other.example.com/x") == "https://other.example.com/x"

    def test_post_sends_json_and_auth(self):
        client = HttpClient(bearer_token="secret")
        with mock.patch("catalog_automation.libs.http.requests.request",
                        return_value=_response(200, {"ok": True})) as request:
            assert client.post("https://hooks.example.com", json_body={"a": 1}) == {"ok": True}

        args, kwargs = request.call_args
        assert args == ("POST", "https://hooks.example.com")
        assert kwargs["json"] == {"a": 1}
        assert kwargs["headers"]["Authorization"] == "Bearer secret"

    def test_retries_retryable_status(self, no_sleep):
        client = HttpClient(max_retries=2)
        responses = [_response(503), _response(200, [{"name": "A"}])]
        with mock.patch("catalog_automation.libs.http.requests.request", side_effect=responses) as request:
            assert client.get("https://feed.example.com") == [{"name": "A"}]
        assert request.call_count == 2

    def test_gives_up_after_retries(self, no_sleep):
        client = HttpClient(max_retries=1)
        with mock.patch("catalog_automation.libs.http.requests.request",
                        side_effect=requests.ConnectionError("refused")) as request:
            with pytest.raises(requests.ConnectionError):
                client.get("https://feed.example.com")
        assert request.call_count == 2

    def test_client_error_not_retried(self, no_sleep):
        client = HttpClient(max_retries=3)
        with mock.patch("catalog_automation.libs.http.requests.request",
                        return_value=_response(401, {"error": "bad key"})) as request:
            with pytest.raises(requests.HTTPError, match="bad key"):
                client.get("https://feed.example.com")
        assert request.call_count == 1

    def test_non_json_body(self):
        with mock.patch("catalog_automation.libs.http.requests.request",
                        return_value=_response(200, text="OK")):
            assert HttpClient().post("https://hooks.example.com") == {"raw": "OK"}
