"""
Caller authentication for the HTTP layer.
"""

from daocore.security.tokens import (
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    TokenPayload,
    create_access_token,
    decode_access_token,
)

__all__ = [
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenPayload",
    "create_access_token",
    "decode_access_token",
]
