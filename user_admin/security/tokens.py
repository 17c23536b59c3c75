"""Utilities for issuing and validating session JWTs."""

from __future__ import annotations

import secrets
import time
from typing import Any

import jwt

from ..config import get_settings
from ..domain.account import Account


def issue_session_token(account: Account) -> tuple[str, int]:
    """Create a signed JWT representing an authenticated account.

    Parameters
    ----------
    account:
        Account whose identifier, email and name are embedded as claims.

    Returns
    -------
    tuple[str, int]
        A tuple containing the encoded JWT string and its TTL (in seconds).
    """

    settings = get_settings()
    now = int(time.time())
    expires_in = settings.jwt_ttl_seconds
    payload: dict[str, Any] = {
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "sub": str(account.id),
        "email": account.email,
        "name": account.name,
        "iat": now,
        "exp": now + expires_in,
    }

    token = jwt.encode(payload, settings.jwt_secret, algorithm="HS256")
    return token, expires_in


def decode_session_token(token: str) -> dict[str, Any]:
    """Decode and verify a session JWT returning its payload.

    Raises
    ------
    jwt.PyJWTError
        Propagated when the token is invalid, expired, or minted for another
        issuer or audience.
    """

    settings = get_settings()
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=["HS256"],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
        options={"require": ["exp", "sub"]},
    )


def generate_verification_token() -> str:
    """Return an unguessable single-use email verification token."""
    return secrets.token_urlsafe(32)
