"""
Phone authentication API endpoints.

  POST /prepare  build a Glide auth request for the browser
  POST /process  verify the credential the browser returned

Handlers are sync so FastAPI runs the blocking Glide call in its threadpool.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import get_phone_auth_service
from app.errors import PhoneAuthError
from app.models.phone_auth import PrepareRequest, ProcessRequest
from app.services.phone_auth import PhoneAuthService

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_http_exception(exc: PhoneAuthError) -> HTTPException:
    if exc.status_code >= 500:
        logger.error("Phone auth request failed: [%s] %s", exc.code, exc.message)
    else:
        logger.warning("Phone auth request rejected: [%s] %s", exc.code, exc.message)
    return HTTPException(status_code=exc.status_code, detail=exc.to_detail())


@router.post(
    "/prepare",
    responses={
        200: {
            "description": "Auth request to hand to the browser Digital Credentials API",
            "content": {
                "application/json": {
                    "example": {
                        "protocol": "openid4vp",
                        "data": {"request": "eyJhbGciOi..."},
                        "session": {"session_key": "sess-123"},
                    }
                }
            },
        },
        400: {"description": "Unknown use case, or carrier not supported"},
        502: {"description": "Glide API call failed"},
        503: {"description": "Glide credentials not configured"},
    },
)
def prepare(
    request: PrepareRequest,
    service: PhoneAuthService = Depends(get_phone_auth_service),
) -> Dict[str, Any]:
    """
    Prepare a phone authentication request.

    Accepts a use case ("GetPhoneNumber" or "VerifyPhoneNumber") and either a
    phone number or a carrier PLMN. With neither, the default carrier
    (310/160) is used. Consent data is forwarded when present.
    """
    logger.info("POST /api/phone-auth/prepare use_case=%s", request.use_case)
    try:
        return service.prepare(request)
    except PhoneAuthError as exc:
        raise _to_http_exception(exc)


@router.post(
    "/process",
    responses={
        200: {"description": "Glide authentication result, returned unmodified"},
        422: {"description": "Credential response or session is malformed"},
        502: {"description": "Glide API call failed"},
        503: {"description": "Glide credentials not configured"},
    },
)
def process(
    request: ProcessRequest,
    service: PhoneAuthService = Depends(get_phone_auth_service),
) -> Dict[str, Any]:
    """
    Process the credential returned by the browser.

    The response and session objects are validated against Glide's schemas
    and forwarded together with the optional phone number. Glide's result,
    including its success indicator, is returned as-is.
    """
    logger.info("POST /api/phone-auth/process")
    try:
        return service.process_credential(request)
    except PhoneAuthError as exc:
        raise _to_http_exception(exc)
