"""
Glide client configuration.

Credentials and endpoints are read once from the environment (a local .env
file is loaded first). The resulting GlideSettings value is immutable and is
passed explicitly to whatever needs it.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

load_dotenv()

# Default endpoints per Glide environment
_ENVIRONMENT_URLS = {
    "sandbox": {
        "api": "https://api.sandbox.glideidentity.app",
        "auth": "https://oidc.sandbox.glideidentity.app/oauth2/token",
    },
    "production": {
        "api": "https://api.glideidentity.app",
        "auth": "https://oidc.glideidentity.app/oauth2/token",
    },
}

DEFAULT_ENVIRONMENT = "sandbox"
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class GlideSettings:
    """Process-wide Glide configuration, built once at startup."""

    client_id: Optional[str]
    client_secret: Optional[str]
    environment: str = DEFAULT_ENVIRONMENT
    api_base_url: str = _ENVIRONMENT_URLS[DEFAULT_ENVIRONMENT]["api"]
    auth_url: str = _ENVIRONMENT_URLS[DEFAULT_ENVIRONMENT]["auth"]
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @property
    def has_client_id(self) -> bool:
        return bool(self.client_id)

    @property
    def has_client_secret(self) -> bool:
        return bool(self.client_secret)

    @property
    def has_credentials(self) -> bool:
        """True when both credentials needed to build a client are present."""
        return self.has_client_id and self.has_client_secret


def _parse_timeout(raw: Optional[str]) -> float:
    if not raw or not raw.strip():
        return DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"GLIDE_TIMEOUT_SECONDS must be a number, got {raw!r}")
    if value <= 0:
        raise ValueError(f"GLIDE_TIMEOUT_SECONDS must be positive, got {raw!r}")
    return value


def load_settings(environ: Optional[Mapping[str, str]] = None) -> GlideSettings:
    """
    Build GlideSettings from environment variables.

    Variables:
        GLIDE_CLIENT_ID, GLIDE_CLIENT_SECRET   credentials (may be absent)
        GLIDE_ENVIRONMENT                      "sandbox" (default) or "production"
        GLIDE_API_BASE_URL, GLIDE_AUTH_URL     optional endpoint overrides
        GLIDE_TIMEOUT_SECONDS                  HTTP timeout (default 30)

    Missing credentials are not an error here; the service degrades to a
    not-initialized state instead.

    Raises:
        ValueError: for an unknown environment name or a bad timeout value
    """
    env = os.environ if environ is None else environ

    environment = (env.get("GLIDE_ENVIRONMENT") or DEFAULT_ENVIRONMENT).strip().lower()
    urls = _ENVIRONMENT_URLS.get(environment)
    if urls is None:
        raise ValueError(
            f"Unknown GLIDE_ENVIRONMENT {environment!r}. "
            f"Supported environments: {sorted(_ENVIRONMENT_URLS)}"
        )

    api_base_url = (env.get("GLIDE_API_BASE_URL") or "").strip() or urls["api"]
    auth_url = (env.get("GLIDE_AUTH_URL") or "").strip() or urls["auth"]

    return GlideSettings(
        client_id=(env.get("GLIDE_CLIENT_ID") or "").strip() or None,
        client_secret=(env.get("GLIDE_CLIENT_SECRET") or "").strip() or None,
        environment=environment,
        api_base_url=api_base_url.rstrip("/"),
        auth_url=auth_url,
        timeout_seconds=_parse_timeout(env.get("GLIDE_TIMEOUT_SECONDS")),
    )
