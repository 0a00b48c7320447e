"""Tests for seedsoil.remote: GitHub Gist client."""

import json
from unittest.mock import MagicMock, patch

import httpx
import pytest

from seedsoil.errors import RemoteStoreError
from seedsoil.remote import GistRemote


class FakeResponse:
    """Minimal httpx.Response stand-in."""

    def __init__(self, status_code=200, json_data=None, text=""):
        self.status_code = status_code
        self._json = json_data or {}
        self.text = text

    def json(self):
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise httpx.HTTPStatusError(
                f"{self.status_code}",
                request=httpx.Request("GET", "http://test"),
                response=self,
            )


@pytest.fixture
def mock_client():
    """GistRemote with a mocked httpx.Client."""
    with patch("seedsoil.remote.httpx.Client") as MockClient:
        client_instance = MagicMock()
        MockClient.return_value = client_instance
        remote = GistRemote("abc123", "tok", filename="data.json")
        yield remote, client_instance, MockClient


class TestConstruction:
    def test_auth_header(self, mock_client):
        _, _, MockClient = mock_client
        kwargs = MockClient.call_args.kwargs
        assert kwargs["base_url"] == "https://api.github.com"
        assert kwargs["headers"]["Authorization"] == "Bearer tok"

    def test_allows_localhost(self):
        with patch("seedsoil.remote.httpx.Client"):
            GistRemote("id", "tok", api_url="http://localhost:9000")

    def test_rejects_plain_http(self):
        with pytest.raises(ValueError, match="must use HTTPS"):
            GistRemote("id", "tok", api_url="http://gists.example.com")

    def test_requires_gist_id(self):
        with pytest.raises(ValueError):
            GistRemote("", "tok")


class TestGet:
    def test_returns_file_content(self, mock_client):
        remote, http, _ = mock_client
        http.get.return_value = FakeResponse(json_data={
            "files": {"data.json": {"content": '{"items": []}', "truncated": False}},
        })
        assert remote.get() == '{"items": []}'
        http.get.assert_called_once_with("/gists/abc123")

    def test_follows_raw_url_when_truncated(self, mock_client):
        remote, http, _ = mock_client
        http.get.side_effect = [
            FakeResponse(json_data={"files": {"data.json": {
                "content": '{"ite', "truncated": True,
                "raw_url": "https://gist.githubusercontent.com/raw/data.json",
            }}}),
            FakeResponse(text='{"items": [], "gaps": []}'),
        ]
        assert remote.get() == '{"items": [], "gaps": []}'
        assert http.get.call_args_list[1].args == ("https://gist.githubusercontent.com/raw/data.json",)

    def test_404_is_absent(self, mock_client):
        remote, http, _ = mock_client
        http.get.return_value = FakeResponse(status_code=404)
        assert remote.get() is None

    def test_missing_file_is_absent(self, mock_client):
        remote, http, _ = mock_client
        http.get.return_value = FakeResponse(json_data={"files": {"other.md": {"content": "x"}}})
        assert remote.get() is None

    def test_server_error_raises(self, mock_client):
        remote, http, _ = mock_client
        http.get.return_value = FakeResponse(status_code=502, text="bad gateway")
        with pytest.raises(RemoteStoreError) as info:
            remote.get()
        assert info.value.status_code == 502

    def test_network_error_raises(self, mock_client):
        remote, http, _ = mock_client
        http.get.side_effect = httpx.ConnectError("offline")
        with pytest.raises(RemoteStoreError, match="offline") as info:
            remote.get()
        assert info.value.status_code is None


class TestPut:
    def test_patch_replaces_file(self, mock_client):
        remote, http, _ = mock_client
        http.patch.return_value = FakeResponse()
        remote.put('{"items": []}')
        http.patch.assert_called_once_with(
            "/gists/abc123",
            json={"files": {"data.json": {"content": '{"items": []}'}}},
        )

    def test_rejected_write_raises(self, mock_client):
        remote, http, _ = mock_client
        http.patch.return_value = FakeResponse(status_code=403, text="forbidden")
        with pytest.raises(RemoteStoreError) as info:
            remote.put("{}")
        assert info.value.status_code == 403

    def test_timeout_raises(self, mock_client):
        remote, http, _ = mock_client
        http.patch.side_effect = httpx.ReadTimeout("slow")
        with pytest.raises(RemoteStoreError):
            remote.put("{}")


class TestWithTransport:
    def test_round_trip_over_mock_transport(self):
        stored = {"content": None}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "PATCH":
                body = json.loads(request.content)
                stored["content"] = body["files"]["seed_soil_data.json"]["content"]
                return httpx.Response(200, json={})
            if stored["content"] is None:
                return httpx.Response(404)
            return httpx.Response(200, json={"files": {
                "seed_soil_data.json": {"content": stored["content"], "truncated": False},
            }})

        with GistRemote("g1", "tok", transport=httpx.MockTransport(handler)) as remote:
            assert remote.get() is None
            remote.put('{"items": [], "gaps": ["x"]}')
            assert remote.get() == '{"items": [], "gaps": ["x"]}'
