"""
DAO Core - Caller Tokens

Signed JWTs carrying the caller identity in ``sub``. The HTTP layer
trusts no caller identity that did not come from a token verified here.

Security properties:
- Algorithm pinned to the configured HMAC algorithm (no ``none``, no RS/HS confusion)
- Issuer and audience checked on every decode
- ``exp``, ``iat`` and ``nbf`` required, with a small clock skew leeway
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import jwt as pyjwt
import structlog
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError
from pydantic import BaseModel, Field

from daocore.config import Settings

logger = structlog.get_logger(__name__)

ALLOWED_JWT_ALGORITHMS = ("HS256", "HS384", "HS512")
MAX_TOKEN_SIZE = 8192


class TokenError(Exception):
    """Base class for caller token failures."""
    pass


class TokenExpiredError(TokenError):
    pass


class TokenInvalidError(TokenError):
    pass


class TokenPayload(BaseModel):
    """Verified claims of a caller token."""
    sub: str = Field(min_length=1)
    exp: int
    iat: int
    jti: str


def _signing_config(settings: Settings) -> tuple[str, str]:
    if not settings.jwt_secret_key:
        raise TokenInvalidError("Caller tokens are not configured (DAO_JWT_SECRET_KEY)")
    if settings.jwt_algorithm not in ALLOWED_JWT_ALGORITHMS:
        raise TokenInvalidError(f"Disallowed algorithm: {settings.jwt_algorithm}")
    return settings.jwt_secret_key, settings.jwt_algorithm


def create_access_token(
    caller: str,
    settings: Settings,
    expires_minutes: int | None = None,
    additional_claims: dict[str, Any] | None = None,
) -> str:
    """
    Issue a caller token.

    Args:
        caller: Identity the token vouches for (``sub``)
        settings: Settings holding the signing key and claims
        expires_minutes: Lifetime override
        additional_claims: Extra claims to include

    Returns:
        Encoded JWT
    """
    if not caller:
        raise ValueError("caller identity is required")
    secret, algorithm = _signing_config(settings)

    now = datetime.now(UTC)
    lifetime = expires_minutes or settings.jwt_access_token_expire_minutes
    payload: dict[str, Any] = {
        "sub": caller,
        "iat": now,
        "nbf": now,
        "exp": now + timedelta(minutes=lifetime),
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "jti": str(uuid4()),
    }
    if additional_claims:
        payload.update(additional_claims)

    encoded: str = pyjwt.encode(payload, secret, algorithm=algorithm)
    return encoded


def decode_access_token(token: str, settings: Settings) -> TokenPayload:
    """
    Verify a caller token.

    Raises:
        TokenExpiredError: If the token has expired
        TokenInvalidError: If the signature, claims or format are wrong
    """
    if len(token) > MAX_TOKEN_SIZE:
        raise TokenInvalidError("Token exceeds maximum size")
    secret, algorithm = _signing_config(settings)

    try:
        claims = pyjwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            leeway=settings.jwt_clock_skew_seconds,
            options={"require": ["exp", "iat", "nbf", "sub", "jti"]},
        )
    except ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except InvalidTokenError as e:
        logger.info("caller_token_rejected", reason=type(e).__name__)
        raise TokenInvalidError(f"Invalid token: {e}")

    if not isinstance(claims.get("sub"), str) or not claims["sub"]:
        raise TokenInvalidError("Token subject must be a non-empty string")

    return TokenPayload(
        sub=claims["sub"],
        exp=claims["exp"],
        iat=claims["iat"],
        jti=claims["jti"],
    )
