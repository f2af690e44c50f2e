"""
Auth dependencies for protected FastAPI routes.

- bearer token (JWT, HMAC-signed) for the sponsorship endpoint
- HTTP basic auth for the dataset upload pages
"""

from __future__ import annotations

import logging

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from core.config import Settings, get_settings

from . import security

logger = logging.getLogger(__name__)

_basic = HTTPBasic(auto_error=False)


def _extract_bearer_token(authorization: str | None, legacy_token: str | None) -> str:
    raw = (authorization or "").strip()
    if not raw:
        # Older clients send the bare JWT in a "Token" header.
        legacy = (legacy_token or "").strip()
        if legacy:
            return legacy
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not Authorized",
        )

    parts = raw.split(" ", 1)
    if len(parts) != 2:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header format.",
        )

    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization must be: Bearer <token>.",
        )
    return token


async def get_bearer_token(
    authorization: str | None = Header(default=None),
    token: str | None = Header(default=None),
) -> str:
    return _extract_bearer_token(authorization, token)


async def require_token(
    access_token: str = Depends(get_bearer_token),
    settings: Settings = Depends(get_settings),
) -> dict:
    try:
        return security.decode_token(access_token, signing_key=settings.signing_key)
    except security.AuthSecurityError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


async def require_basic_auth(
    credentials: HTTPBasicCredentials | None = Depends(_basic),
    settings: Settings = Depends(get_settings),
) -> str:
    ok = credentials is not None and security.verify_basic_credentials(
        credentials.username,
        credentials.password,
        expected_username=settings.basic_username,
        expected_password=settings.basic_password,
    )
    if not ok:
        if credentials is not None:
            logger.warning("basic_auth_rejected username=%s", credentials.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized.",
            headers={"WWW-Authenticate": f'Basic realm="{settings.realm}"'},
        )
    return credentials.username
