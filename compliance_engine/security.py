"""
Bearer token verification.
Tokens are HS256 JWTs issued by the identity provider; `sub` is the user id.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from compliance_engine.config import settings


class TokenError(Exception):
    """Token missing, malformed, expired or signed with the wrong key."""


def decode_access_token(token: str) -> dict:
    """Verify the signature and standard claims, returning the payload."""
    audience = settings.AUTH_JWT_AUDIENCE
    try:
        claims = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            audience=audience,
            options={"verify_aud": audience is not None, "require": ["sub", "exp"]},
        )
    except jwt.PyJWTError as exc:
        raise TokenError(str(exc)) from exc
    return claims


def subject_user_id(claims: dict) -> uuid.UUID:
    try:
        return uuid.UUID(str(claims["sub"]))
    except (KeyError, ValueError) as exc:
        raise TokenError("Token subject is not a user id") from exc


def create_access_token(
    user_id: uuid.UUID,
    email: Optional[str] = None,
    expires_in: Optional[timedelta] = None,
) -> str:
    """Mint a token the way the identity provider does. Used by tests and local tooling."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + (expires_in or timedelta(minutes=settings.AUTH_TOKEN_TTL_MINUTES)),
    }
    if email:
        payload["email"] = email
    if settings.AUTH_JWT_AUDIENCE:
        payload["aud"] = settings.AUTH_JWT_AUDIENCE
    return jwt.encode(payload, settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM)
