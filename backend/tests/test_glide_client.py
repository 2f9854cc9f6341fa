"""
Unit tests for the Glide API client.

HTTP traffic is served by httpx.MockTransport; no network calls are made.
"""

import json

import httpx
import pytest
from unittest.mock import patch

from app.config import GlideSettings
from app.errors import SdkFailure
from app.services.glide_client import PREPARE_PATH, PROCESS_PATH, GlideClient

API_BASE = "https://api.test.glide"
AUTH_URL = "https://auth.test.glide/oauth2/token"


class _FakeGlide:
    """Records requests and answers token / prepare / process calls."""

    def __init__(self, token_status=200, token_body=None, api_status=200, api_body=None):
        self.requests: list[httpx.Request] = []
        self.token_status = token_status
        self.token_body = token_body if token_body is not None else {
            "access_token": "token-abc",
            "expires_in": 3600,
        }
        self.api_status = api_status
        self.api_body = api_body if api_body is not None else {"ok": True}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if str(request.url) == AUTH_URL:
            return httpx.Response(self.token_status, json=self.token_body)
        if isinstance(self.api_body, (bytes, str)):
            return httpx.Response(self.api_status, content=self.api_body)
        return httpx.Response(self.api_status, json=self.api_body)

    def api_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) != AUTH_URL]

    def token_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == AUTH_URL]


def _make_client(fake: _FakeGlide) -> GlideClient:
    return GlideClient(
        client_id="client-id",
        client_secret="client-secret",
        api_base_url=API_BASE,
        auth_url=AUTH_URL,
        transport=httpx.MockTransport(fake),
    )


class TestGlideClientConstruction:

    def test_missing_credentials_rejected(self):
        with pytest.raises(ValueError):
            GlideClient(client_id="", client_secret="secret", api_base_url=API_BASE, auth_url=AUTH_URL)

    def test_from_settings_uses_configured_urls(self):
        fake = _FakeGlide()
        settings = GlideSettings(
            client_id="client-id",
            client_secret="client-secret",
            api_base_url=API_BASE,
            auth_url=AUTH_URL,
        )
        client = GlideClient.from_settings(settings, transport=httpx.MockTransport(fake))

        client.magic_auth.prepare({"use_case": "GET_PHONE_NUMBER"})

        assert str(fake.api_requests()[0].url) == API_BASE + PREPARE_PATH


class TestMagicAuthCalls:
    """Tests for prepare / process_credential requests."""

    def test_prepare_posts_json_with_bearer_token(self):
        fake = _FakeGlide(api_body={"protocol": "openid4vp", "data": {"x": 1}})
        client = _make_client(fake)

        result = client.magic_auth.prepare({"use_case": "GET_PHONE_NUMBER"})

        assert result == {"protocol": "openid4vp", "data": {"x": 1}}
        request = fake.api_requests()[0]
        assert request.method == "POST"
        assert request.url.path == PREPARE_PATH
        assert request.headers["Authorization"] == "Bearer token-abc"
        assert json.loads(request.content) == {"use_case": "GET_PHONE_NUMBER"}

    def test_process_credential_posts_to_process_path(self):
        fake = _FakeGlide(api_body={"success": True})
        client = _make_client(fake)

        result = client.magic_auth.process_credential({"session": {"session_key": "s"}})

        assert result == {"success": True}
        assert fake.api_requests()[0].url.path == PROCESS_PATH

    def test_token_request_uses_client_credentials(self):
        fake = _FakeGlide()
        client = _make_client(fake)

        client.magic_auth.prepare({})

        token_request = fake.token_requests()[0]
        assert token_request.method == "POST"
        assert b"grant_type=client_credentials" in token_request.content
        assert token_request.headers["Authorization"].startswith("Basic ")

    def test_token_cached_between_calls(self):
        fake = _FakeGlide()
        client = _make_client(fake)

        client.magic_auth.prepare({})
        client.magic_auth.process_credential({})

        assert len(fake.token_requests()) == 1
        assert len(fake.api_requests()) == 2

    def test_expired_token_refreshed(self):
        fake = _FakeGlide()
        client = _make_client(fake)

        with patch("app.services.glide_client.time.monotonic", return_value=1000.0):
            client.magic_auth.prepare({})
        with patch("app.services.glide_client.time.monotonic", return_value=1000.0 + 7200):
            client.magic_auth.prepare({})

        assert len(fake.token_requests()) == 2


class TestGlideClientErrors:
    """Every failure surfaces as SdkFailure."""

    def test_api_error_status_raises_with_message(self):
        fake = _FakeGlide(api_status=400, api_body={"message": "Invalid phone number"})
        client = _make_client(fake)

        with pytest.raises(SdkFailure) as exc_info:
            client.magic_auth.prepare({})

        assert exc_info.value.message == "Invalid phone number"
        assert exc_info.value.upstream_status == 400

    def test_api_server_error_raises(self):
        fake = _FakeGlide(api_status=500, api_body=b"boom")
        client = _make_client(fake)

        with pytest.raises(SdkFailure) as exc_info:
            client.magic_auth.process_credential({})

        assert exc_info.value.upstream_status == 500

    def test_non_json_body_raises(self):
        fake = _FakeGlide(api_body=b"<html>not json</html>")
        client = _make_client(fake)

        with pytest.raises(SdkFailure) as exc_info:
            client.magic_auth.prepare({})

        assert "non-JSON" in exc_info.value.message

    def test_non_object_body_raises(self):
        fake = _FakeGlide(api_body=[1, 2, 3])
        client = _make_client(fake)

        with pytest.raises(SdkFailure):
            client.magic_auth.prepare({})

    def test_token_rejected_raises(self):
        fake = _FakeGlide(token_status=401, token_body={"error_description": "bad client"})
        client = _make_client(fake)

        with pytest.raises(SdkFailure) as exc_info:
            client.magic_auth.prepare({})

        assert "bad client" in exc_info.value.message
        assert exc_info.value.upstream_status == 401
        assert fake.api_requests() == []

    def test_token_missing_access_token_raises(self):
        fake = _FakeGlide(token_body={"token_type": "bearer"})
        client = _make_client(fake)

        with pytest.raises(SdkFailure) as exc_info:
            client.magic_auth.prepare({})

        assert "access_token" in exc_info.value.message

    def test_non_numeric_expires_in_raises(self):
        fake = _FakeGlide(token_body={"access_token": "token-abc", "expires_in": "soon"})
        client = _make_client(fake)

        with pytest.raises(SdkFailure) as exc_info:
            client.magic_auth.prepare({})

        assert "expires_in" in exc_info.value.message
        assert fake.api_requests() == []

    def test_transport_error_raises(self):
        def _refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = GlideClient(
            client_id="client-id",
            client_secret="client-secret",
            api_base_url=API_BASE,
            auth_url=AUTH_URL,
            transport=httpx.MockTransport(_refuse),
        )

        with pytest.raises(SdkFailure) as exc_info:
            client.magic_auth.prepare({})

        assert "connection refused" in exc_info.value.message
