"""
FastAPI dependencies for the registration service and admin authentication.
"""
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..service.registration import RegistrationService
from .auth_service import ADMIN_ROLE, decode_access_token
from .config import Settings

# Security scheme for JWT bearer token
security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was built with."""
    return request.app.state.settings


def get_registration_service(request: Request) -> RegistrationService:
    """
    Registration service dependency.

    Usage:
        @router.get("/pending")
        def list_pending(service: RegistrationService = Depends(get_registration_service)):
            return service.list_pending()
    """
    return request.app.state.service


async def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    """
    Require a valid admin JWT.

    Returns:
        Decoded token claims

    Raises:
        HTTPException: 401 if the token is missing or invalid, 403 if the
        token does not carry the admin role
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Access token is required" if credentials is None else "Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    payload = decode_access_token(credentials.credentials, settings)
    if payload is None:
        raise credentials_exception

    if payload.get("role") != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )
    return payload
