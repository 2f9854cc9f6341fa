"""
Phone authentication service.

Maps frontend requests onto the Glide magic-auth call format and forwards
them through a GlideClient:

  - prepare:             use case + phone number / carrier + consent
  - process_credential:  credential response + session + optional phone number

When Glide credentials were missing at startup the service is created without
a client and every call raises NotInitialized.
"""

import json
import logging
import re
from typing import Any, Dict, Optional, Protocol

from pydantic import ValidationError

from app.config import GlideSettings
from app.errors import (
    CarrierNotSupported,
    InvalidUseCase,
    MalformedPayload,
    NotInitialized,
    SdkFailure,
)
from app.models.phone_auth import (
    ConsentPayload,
    DigitalCredentialResponse,
    PlmnPayload,
    PrepareRequest,
    PreparePayload,
    ProcessCredentialPayload,
    ProcessRequest,
    SessionPayload,
    UseCase,
)
from app.services.glide_client import GlideClient

logger = logging.getLogger(__name__)

# T-Mobile USA, used when the request names neither a phone number nor a carrier
DEFAULT_PLMN = PlmnPayload(mcc="310", mnc="160")

# Protocol reported for legacy auth_request responses that omit one
_LEGACY_PROTOCOL = "secure-auth-v1"

_CASE_BOUNDARY_RE = re.compile(r"([a-z])([A-Z])")


class MagicAuthApi(Protocol):
    def prepare(self, payload: Dict[str, Any]) -> Dict[str, Any]: ...

    def process_credential(self, payload: Dict[str, Any]) -> Dict[str, Any]: ...


# ---------------------------------------------------------------------------
# Request normalization
# ---------------------------------------------------------------------------

def format_use_case(value: str) -> str:
    """
    Convert a mixed-case use case tag to upper snake case.

    Examples:
        "GetPhoneNumber"     -> "GET_PHONE_NUMBER"
        "verifyPhoneNumber"  -> "VERIFY_PHONE_NUMBER"
        "GET_PHONE_NUMBER"   -> "GET_PHONE_NUMBER"
    """
    return _CASE_BOUNDARY_RE.sub(r"\1_\2", value).upper()


def resolve_use_case(value: Optional[str]) -> UseCase:
    """
    Map a frontend use case tag onto the UseCase enum.

    Raises:
        InvalidUseCase: if the formatted tag matches no UseCase member
    """
    formatted = format_use_case(value or "")
    try:
        return UseCase(formatted)
    except ValueError:
        raise InvalidUseCase(
            f"Unknown use case {value!r}. "
            f"Supported use cases: {[member.value for member in UseCase]}"
        )


def mask_phone_number(phone_number: Optional[str]) -> Optional[str]:
    """Hide the last four digits of a phone number for logging."""
    if not phone_number:
        return phone_number
    if len(phone_number) <= 4:
        return "*" * len(phone_number)
    return f"{phone_number[:-4]}****"


def build_prepare_payload(request: PrepareRequest) -> PreparePayload:
    """
    Build the Glide prepare payload for a frontend request.

    Phone number and carrier are resolved independently:
      - a phone number, when present, is always passed through
      - a carrier with both mcc and mnc is passed through, even alongside a
        phone number (Glide decides which one wins)
      - only when neither is present is DEFAULT_PLMN used

    Consent data is copied verbatim when present and omitted otherwise.
    """
    use_case = resolve_use_case(request.use_case)

    phone_number = request.phone_number or None

    plmn: Optional[PlmnPayload] = None
    if request.plmn and request.plmn.mcc and request.plmn.mnc:
        plmn = PlmnPayload(mcc=request.plmn.mcc, mnc=request.plmn.mnc)
    elif phone_number is None:
        logger.info(
            "No phone_number or PLMN provided, using default PLMN %s/%s",
            DEFAULT_PLMN.mcc,
            DEFAULT_PLMN.mnc,
        )
        plmn = DEFAULT_PLMN.model_copy()

    consent = None
    if request.consent_data is not None:
        consent = ConsentPayload(
            consent_text=request.consent_data.consent_text,
            policy_link=request.consent_data.policy_link,
            policy_text=request.consent_data.policy_text,
        )

    return PreparePayload(
        use_case=use_case,
        phone_number=phone_number,
        plmn=plmn,
        consent_data=consent,
    )


# ---------------------------------------------------------------------------
# Credential processing
# ---------------------------------------------------------------------------

def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "value"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


def _decode_session(session: Any) -> Any:
    """Sessions may arrive JSON-encoded; decode them before conversion."""
    if isinstance(session, str):
        try:
            return json.loads(session)
        except ValueError:
            raise MalformedPayload("session is a string but not valid JSON")
    return session


def build_process_payload(request: ProcessRequest) -> ProcessCredentialPayload:
    """
    Convert the opaque response/session values into Glide's schemas.

    Raises:
        MalformedPayload: if either value is missing required fields or has
            the wrong type
    """
    if request.response is None:
        raise MalformedPayload("response is required")
    if request.session is None:
        raise MalformedPayload("session is required")

    try:
        credential_response = DigitalCredentialResponse.model_validate(request.response)
    except ValidationError as exc:
        raise MalformedPayload(
            f"Invalid credential response: {_describe_validation_error(exc)}"
        )

    try:
        session = SessionPayload.model_validate(_decode_session(request.session))
    except ValidationError as exc:
        raise MalformedPayload(f"Invalid session: {_describe_validation_error(exc)}")

    fields = {"credential_response": credential_response, "session": session}
    if request.phone_number is not None:
        fields["phone_number"] = request.phone_number
    return ProcessCredentialPayload(**fields)


# ---------------------------------------------------------------------------
# Prepare response handling
# ---------------------------------------------------------------------------

def normalize_prepare_response(response: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check a Glide prepare response and return it in the current format.

      - eligible == False      -> CarrierNotSupported
      - {protocol, data, ...}  -> returned unchanged
      - {auth_request: {...}}  -> reshaped to {protocol, data, session}

    Raises:
        CarrierNotSupported: Glide rejected the carrier
        SdkFailure: the response matches neither known format
    """
    if response.get("eligible") is False:
        reason = response.get("reason")
        raise CarrierNotSupported(
            reason or "This carrier is not supported",
            details={
                "eligible": False,
                "carrier_name": response.get("carrier_name"),
                "reason": reason,
            },
        )

    if response.get("protocol") and response.get("data"):
        return response

    auth_request = response.get("auth_request")
    if isinstance(auth_request, dict):
        logger.info("Transforming legacy auth_request prepare response")
        return {
            "protocol": auth_request.get("protocol") or _LEGACY_PROTOCOL,
            "data": auth_request.get("request"),
            "session": auth_request.get("session"),
        }

    raise SdkFailure("Unexpected response format from Glide prepare")


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class PhoneAuthService:
    """
    Relays phone-auth requests to Glide.

    ``magic_auth`` is None when credentials were missing at startup; the
    service then refuses every call with NotInitialized.
    """

    def __init__(
        self,
        magic_auth: Optional[MagicAuthApi] = None,
        client: Optional[GlideClient] = None,
    ):
        self.magic_auth = magic_auth
        self._client = client

    def close(self) -> None:
        """Release the Glide HTTP connection pool, if a client was built."""
        if self._client is not None:
            self._client.close()

    @property
    def initialized(self) -> bool:
        return self.magic_auth is not None

    def _require_client(self) -> MagicAuthApi:
        if self.magic_auth is None:
            raise NotInitialized("Glide client not initialized. Check your credentials.")
        return self.magic_auth

    def prepare(self, request: PrepareRequest) -> Dict[str, Any]:
        magic_auth = self._require_client()
        payload = build_prepare_payload(request)

        logger.info(
            "Calling Glide prepare: use_case=%s phone_number=%s plmn=%s consent=%s",
            payload.use_case.value,
            mask_phone_number(payload.phone_number),
            payload.plmn.model_dump() if payload.plmn else None,
            payload.consent_data is not None,
        )
        response = magic_auth.prepare(payload.to_api())
        return normalize_prepare_response(response)

    def process_credential(self, request: ProcessRequest) -> Dict[str, Any]:
        magic_auth = self._require_client()
        payload = build_process_payload(request)

        logger.info(
            "Calling Glide process_credential: phone_number=%s",
            mask_phone_number(payload.phone_number),
        )
        result = magic_auth.process_credential(payload.to_api())
        logger.info("Glide process_credential finished")
        return result


def create_phone_auth_service(settings: GlideSettings) -> PhoneAuthService:
    """
    Build the process-wide PhoneAuthService.

    The Glide client is only constructed when both credentials are present.
    """
    if not settings.has_credentials:
        logger.warning("Missing Glide credentials. Client not initialized.")
        return PhoneAuthService(magic_auth=None)

    logger.info("Initializing Glide client (%s environment)", settings.environment)
    client = GlideClient.from_settings(settings)
    return PhoneAuthService(magic_auth=client.magic_auth, client=client)
