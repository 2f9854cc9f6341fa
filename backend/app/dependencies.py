"""
Process-wide objects shared by the routers.

Settings and the PhoneAuthService are built once, the first time they are
requested, and never rebuilt. Tests replace them through
``app.dependency_overrides``.
"""

from functools import lru_cache

from app.config import GlideSettings, load_settings
from app.services.phone_auth import PhoneAuthService, create_phone_auth_service


@lru_cache
def get_settings() -> GlideSettings:
    return load_settings()


@lru_cache
def get_phone_auth_service() -> PhoneAuthService:
    return create_phone_auth_service(get_settings())
