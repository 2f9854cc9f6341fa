"""
Error types raised by the phone-auth services.

Each error carries a stable ``code`` and the HTTP status the router should
answer with. Nothing here is retried or recovered locally.
"""

from typing import Any, Dict, Optional


class PhoneAuthError(Exception):
    """Base class for all phone-auth failures."""

    code = "PHONE_AUTH_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_detail(self) -> Dict[str, Any]:
        """Body used as the HTTPException detail."""
        detail: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details is not None:
            detail["details"] = self.details
        return detail


class NotInitialized(PhoneAuthError):
    """Glide credentials were missing at startup, so no client exists."""

    code = "NOT_INITIALIZED"
    status_code = 503


class InvalidUseCase(PhoneAuthError):
    code = "INVALID_USE_CASE"
    status_code = 400


class MalformedPayload(PhoneAuthError):
    """The opaque credential response or session could not be converted."""

    code = "MALFORMED_PAYLOAD"
    status_code = 422


class SdkFailure(PhoneAuthError):
    """The Glide API call failed or returned something unusable."""

    code = "SDK_FAILURE"
    status_code = 502

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        upstream_status: Optional[int] = None,
    ):
        super().__init__(message, details)
        self.upstream_status = upstream_status


class CarrierNotSupported(SdkFailure):
    """Glide reported the carrier as not eligible for phone auth."""

    code = "CARRIER_NOT_SUPPORTED"
    status_code = 400
