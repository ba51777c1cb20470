"""Tests for the HTTP API client's error mapping."""
import pytest
import requests

from nyumba_connect.client import api as api_module
from nyumba_connect.client.api import APIClient
from nyumba_connect.client.errors import APIError, TransportError


class FakeResponse:
    def __init__(self, status_code=200, body=None, invalid_json=False):
        self.status_code = status_code
        self._body = body
        self._invalid_json = invalid_json
        self.url = "http://testserver/messages"

    def json(self):
        if self._invalid_json:
            raise ValueError("Expecting value")
        return self._body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


@pytest.fixture
def client():
    return APIClient("http://testserver/", token="tok")


def test_fetch_sends_watermark_and_token(client, monkeypatch):
    captured = {}

    def fake_get(url, params=None, headers=None, timeout=None):
        captured.update(url=url, params=params, headers=headers, timeout=timeout)
        return FakeResponse(body={"success": True, "messages": []})

    monkeypatch.setattr(api_module.requests, "get", fake_get)
    assert client.fetch_messages(7, last_message_id=12) == {"success": True, "messages": []}
    assert captured["url"] == "http://testserver/messages/fetch_messages.php"
    assert captured["params"] == {"mentorship_id": 7, "last_message_id": 12}
    assert captured["headers"]["Authorization"] == "Bearer tok"


def test_fetch_non_200_is_transport_error(client, monkeypatch):
    monkeypatch.setattr(api_module.requests, "get", lambda *a, **kw: FakeResponse(status_code=500, body={}))
    with pytest.raises(TransportError):
        client.fetch_messages(7)


def test_fetch_malformed_json_is_transport_error(client, monkeypatch):
    monkeypatch.setattr(api_module.requests, "get", lambda *a, **kw: FakeResponse(invalid_json=True))
    with pytest.raises(TransportError):
        client.fetch_messages(7)


def test_fetch_connection_error_is_transport_error(client, monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(api_module.requests, "get", boom)
    with pytest.raises(TransportError):
        client.fetch_messages(7)


def test_send_returns_error_body_on_error_status(client, monkeypatch):
    captured = {}

    def fake_post(url, data=None, headers=None, timeout=None):
        captured.update(url=url, data=data)
        return FakeResponse(status_code=403, body={"success": False, "error": "Invalid security token"})

    monkeypatch.setattr(api_module.requests, "post", fake_post)
    body = client.send_message(7, "hello", "csrf")
    assert body == {"success": False, "error": "Invalid security token"}
    assert captured["data"] == {"mentorship_id": 7, "message_text": "hello", "csrf_token": "csrf"}


def test_send_non_json_is_transport_error(client, monkeypatch):
    monkeypatch.setattr(api_module.requests, "post", lambda *a, **kw: FakeResponse(502, invalid_json=True))
    with pytest.raises(TransportError):
        client.send_message(7, "hello", "csrf")


def test_delete_rejection_carries_server_error(client, monkeypatch):
    monkeypatch.setattr(
        api_module.requests,
        "post",
        lambda *a, **kw: FakeResponse(status_code=403, body={"success": False, "error": "Invalid security token"}),
    )
    with pytest.raises(APIError) as excinfo:
        client.delete_resource(3, "forged")
    assert excinfo.value.message == "Invalid security token"
    assert excinfo.value.status_code == 403


def test_http_exception_detail_is_surfaced(client, monkeypatch):
    monkeypatch.setattr(
        api_module.requests, "get", lambda *a, **kw: FakeResponse(status_code=401, body={"detail": "Token expired"})
    )
    with pytest.raises(APIError, match="Token expired"):
        client.list_conversations()


def test_success_false_with_200_is_an_error(client, monkeypatch):
    body = {"success": False, "error": "Please select a valid response."}
    monkeypatch.setattr(api_module.requests, "post", lambda *a, **kw: FakeResponse(body=body))
    with pytest.raises(APIError, match="valid response"):
        client.respond_mentorship_request(4, "maybe", "csrf")


def test_list_resources_passes_filters(client, monkeypatch):
    captured = {}

    def fake_get(url, params=None, headers=None, timeout=None):
        captured.update(url=url, params=params)
        return FakeResponse(body={"success": True, "resources": [], "total_pages": 0})

    monkeypatch.setattr(api_module.requests, "get", fake_get)
    assert client.list_resources(page=2, search="cv", sort="title", order="ASC")["resources"] == []
    assert captured["url"] == "http://testserver/resources/list.php"
    assert captured["params"] == {"page": 2, "search": "cv", "sort": "title", "order": "ASC"}


def test_mentorship_request_posts_form(client, monkeypatch):
    captured = {}

    def fake_post(url, data=None, headers=None, timeout=None):
        captured.update(url=url, data=data)
        return FakeResponse(body={"success": True, "request": {"request_id": 9, "status": "pending"}})

    monkeypatch.setattr(api_module.requests, "post", fake_post)
    assert client.send_mentorship_request(2, "please mentor me", "csrf") == {"request_id": 9, "status": "pending"}
    assert captured["url"] == "http://testserver/mentorship/send_request.php"
    assert captured["data"] == {"alumni_id": 2, "message": "please mentor me", "csrf_token": "csrf"}


def test_list_connection_error_is_transport_error(client, monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(api_module.requests, "get", boom)
    with pytest.raises(TransportError):
        client.list_alumni()
