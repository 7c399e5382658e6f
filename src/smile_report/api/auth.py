"""JWT authentication for the report API."""

from __future__ import annotations

import time

import jwt
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from smile_report.api.dependencies import get_settings
from smile_report.config.settings import Settings
from smile_report.observability.logger import get_logger

logger = get_logger("auth")

router = APIRouter(prefix="/auth", tags=["auth"])
security = HTTPBearer()


class TokenRequest(BaseModel):
    api_key: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


def configured_keys(settings: Settings) -> list[str]:
    return [k.strip() for k in settings.api_keys.split(",") if k.strip()]


@router.post("/token", response_model=TokenResponse)
async def create_token(body: TokenRequest, settings: Settings = Depends(get_settings)) -> TokenResponse:
    """Exchange an API key for a short-lived JWT."""
    keys = configured_keys(settings)
    if not keys:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Authentication not configured")
    if body.api_key not in keys:
        logger.warning("invalid_api_key_attempt")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")

    now = int(time.time())
    expires_in = settings.jwt_expiry_minutes * 60
    # The subject is a key index so raw keys never travel inside tokens.
    payload = {"sub": f"client-{keys.index(body.api_key)}", "iat": now, "exp": now + expires_in}
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    logger.info("token_issued", subject=payload["sub"], expiry_minutes=settings.jwt_expiry_minutes)
    return TokenResponse(access_token=token, expires_in=expires_in)


async def verify_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    settings: Settings = request.app.state.settings
    try:
        return jwt.decode(credentials.credentials, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
