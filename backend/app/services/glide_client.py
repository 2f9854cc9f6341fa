"""
Glide magic-auth API client.

A thin httpx wrapper exposing the two calls the relay needs:

    client.magic_auth.prepare(payload)
    client.magic_auth.process_credential(payload)

Access tokens are obtained with the OAuth2 client-credentials grant and cached
until shortly before they expire. There is no retry logic; every failure is
raised as SdkFailure.
"""

import logging
import threading
import time
from typing import Any, Dict, Optional

import httpx

from app.config import GlideSettings
from app.errors import SdkFailure

logger = logging.getLogger(__name__)

PREPARE_PATH = "/magic-auth/v2/auth/prepare"
PROCESS_PATH = "/magic-auth/v2/auth/process"

# Refresh the token this many seconds before Glide says it expires
_TOKEN_EXPIRY_MARGIN = 30
_DEFAULT_TOKEN_TTL = 300


def _error_message(response: httpx.Response) -> str:
    """Pull a human-readable message out of a Glide error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("message", "error_description", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return response.reason_phrase


class MagicAuthService:
    """The magic-auth endpoints, bound to a GlideClient."""

    def __init__(self, client: "GlideClient"):
        self._client = client

    def prepare(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.post(PREPARE_PATH, payload)

    def process_credential(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._client.post(PROCESS_PATH, payload)


class GlideClient:
    """
    Authenticated client for the Glide API.

    Safe to share between request threads: the underlying httpx.Client is
    thread-safe and the token cache is guarded by a lock.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        api_base_url: str,
        auth_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not client_id or not client_secret:
            raise ValueError("client_id and client_secret are required")

        self._client_id = client_id
        self._client_secret = client_secret
        self._auth_url = auth_url
        self._http = httpx.Client(
            base_url=api_base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()
        self.magic_auth = MagicAuthService(self)

    @classmethod
    def from_settings(
        cls,
        settings: GlideSettings,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "GlideClient":
        return cls(
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            api_base_url=settings.api_base_url,
            auth_url=settings.auth_url,
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def _get_access_token(self) -> str:
        with self._token_lock:
            if self._token and time.monotonic() < self._token_expires_at:
                return self._token

            try:
                response = self._http.post(
                    self._auth_url,
                    data={"grant_type": "client_credentials"},
                    auth=(self._client_id, self._client_secret),
                )
            except httpx.HTTPError as exc:
                raise SdkFailure(f"Glide token request failed: {exc}")

            if response.status_code != 200:
                raise SdkFailure(
                    f"Glide token request failed: {_error_message(response)}",
                    upstream_status=response.status_code,
                )

            try:
                body = response.json()
            except ValueError:
                raise SdkFailure("Glide token response was not valid JSON")

            token = body.get("access_token") if isinstance(body, dict) else None
            if not token:
                raise SdkFailure("Glide token response did not include an access_token")

            ttl = body.get("expires_in") or _DEFAULT_TOKEN_TTL
            try:
                ttl = float(ttl)
            except (TypeError, ValueError):
                raise SdkFailure(f"Glide token response had an invalid expires_in: {ttl!r}")

            self._token = token
            self._token_expires_at = time.monotonic() + max(ttl - _TOKEN_EXPIRY_MARGIN, 0)
            logger.debug("Obtained Glide access token (expires in %ss)", ttl)
            return token

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a JSON payload to a Glide endpoint and return the decoded body.

        Raises:
            SdkFailure: on transport errors, non-2xx statuses or a body that
                is not a JSON object
        """
        token = self._get_access_token()

        try:
            response = self._http.post(
                path,
                json=payload,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise SdkFailure(f"Glide request to {path} failed: {exc}")

        if response.is_error:
            logger.warning("Glide %s returned HTTP %s", path, response.status_code)
            raise SdkFailure(
                _error_message(response),
                upstream_status=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            raise SdkFailure(f"Glide {path} returned a non-JSON response")

        if not isinstance(body, dict):
            raise SdkFailure(f"Glide {path} returned an unexpected response type")

        return body
