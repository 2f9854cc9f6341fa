"""
Pydantic models for phone authentication.

Inbound models describe what the frontend posts. The *Payload models are the
shapes the Glide magic-auth API expects; the services convert one into the
other field by field.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class UseCase(str, Enum):
    GET_PHONE_NUMBER = "GET_PHONE_NUMBER"
    VERIFY_PHONE_NUMBER = "VERIFY_PHONE_NUMBER"


# ---------------------------------------------------------------------------
# Inbound request models
# ---------------------------------------------------------------------------

class Plmn(BaseModel):
    """Carrier identifier as sent by the frontend. Either part may be missing."""
    mcc: Optional[str] = None  # mobile country code, e.g. "310"
    mnc: Optional[str] = None  # mobile network code, e.g. "160"


class ConsentData(BaseModel):
    """
    Consent text shown to the user.

    Accepts snake_case (consent_text) and the camelCase keys (consentText)
    sent by the React frontend.
    """
    consent_text: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("consent_text", "consentText")
    )
    policy_link: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("policy_link", "policyLink")
    )
    policy_text: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("policy_text", "policyText")
    )


class PrepareRequest(BaseModel):
    """Request body for POST /api/phone-auth/prepare."""
    use_case: str
    phone_number: Optional[str] = None
    plmn: Optional[Plmn] = None
    consent_data: Optional[ConsentData] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "use_case": "GetPhoneNumber",
                "plmn": {"mcc": "310", "mnc": "160"},
            }
        }
    )


class ProcessRequest(BaseModel):
    """
    Request body for POST /api/phone-auth/process.

    ``response`` and ``session`` are opaque here; the credential processor
    converts them into DigitalCredentialResponse / SessionPayload.
    """
    response: Any = None
    session: Any = None
    phone_number: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("phoneNumber", "phone_number")
    )


# ---------------------------------------------------------------------------
# Glide API payloads
# ---------------------------------------------------------------------------

class PlmnPayload(BaseModel):
    mcc: str
    mnc: str


class ConsentPayload(BaseModel):
    consent_text: Optional[str] = None
    policy_link: Optional[str] = None
    policy_text: Optional[str] = None


class PreparePayload(BaseModel):
    """Body of the Glide prepare call. Serialize with exclude_none=True."""
    use_case: UseCase
    phone_number: Optional[str] = None
    plmn: Optional[PlmnPayload] = None
    consent_data: Optional[ConsentPayload] = None

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class DigitalCredentialResponse(BaseModel):
    """
    Browser Digital Credentials API result (navigator.credentials.get).

    ``data`` is required and may not be null; anything else the browser
    adds is kept.
    """
    model_config = ConfigDict(extra="allow")

    protocol: Optional[str] = None
    data: Any = Field(...)

    @field_validator("data")
    @classmethod
    def data_not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("data must not be null")
        return value


class SessionPayload(BaseModel):
    """Session object returned by prepare and echoed back on process."""
    model_config = ConfigDict(extra="allow")

    session_key: str
    nonce: Optional[str] = None
    enc_key: Optional[str] = None


class ProcessCredentialPayload(BaseModel):
    credential_response: DigitalCredentialResponse
    session: SessionPayload
    phone_number: Optional[str] = None

    def to_api(self) -> Dict[str, Any]:
        # Only fields actually received are sent, nulls included
        return self.model_dump(mode="json", exclude_unset=True)
