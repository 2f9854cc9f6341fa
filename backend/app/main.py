"""
Phone Auth Relay API
FastAPI application relaying phone authentication requests to Glide.
"""

import logging
import os

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import GlideSettings
from app.dependencies import get_phone_auth_service, get_settings
from app.routers import phone_auth
from app.services.phone_auth import PhoneAuthService

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

app = FastAPI(
    title="Phone Auth Relay API",
    description="Relays phone-number authentication requests to the Glide magic-auth API",
    version=VERSION,
)

# The frontend may be served from anywhere; allow every origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(phone_auth.router, prefix="/api/phone-auth", tags=["phone-auth"])


@app.on_event("startup")
def initialize_glide() -> None:
    """
    Build the Glide client once and log where the API is listening.

    Missing credentials only produce a warning; the phone-auth endpoints then
    answer 503 until the process is restarted with credentials.
    """
    settings = get_settings()
    service = get_phone_auth_service()

    host_port = os.getenv("HOST_PORT", "3001")
    logger.info("Phone Auth Relay running at http://localhost:%s", host_port)
    if service.initialized:
        logger.info("Glide credentials loaded (%s environment)", settings.environment)
    else:
        logger.warning(
            "Missing Glide credentials. Set GLIDE_CLIENT_ID and GLIDE_CLIENT_SECRET "
            "in your environment or .env file."
        )


@app.on_event("shutdown")
def close_glide() -> None:
    """Close the Glide client's connection pool when the process stops."""
    get_phone_auth_service().close()


@app.get("/")
async def root():
    return {"message": "Phone Auth Relay API", "version": VERSION}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/health")
def glide_health(
    settings: GlideSettings = Depends(get_settings),
    service: PhoneAuthService = Depends(get_phone_auth_service),
):
    """
    Report whether the Glide client was initialized.

    Only the presence of each credential is reported, never its value.
    """
    return {
        "status": "ok",
        "glideInitialized": service.initialized,
        "glideProperties": ["magicAuth", "initialized"] if service.initialized else [],
        "env": {
            "hasClientId": settings.has_client_id,
            "hasClientSecret": settings.has_client_secret,
        },
    }
