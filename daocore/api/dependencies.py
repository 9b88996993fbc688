"""
DAO Core - FastAPI Dependencies
Dependency injection for API routes.

Provides:
- Settings, governance store and clock access
- Caller authentication from a Bearer token
- Per-request call context (verified caller + current height)
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from daocore.config import Settings
from daocore.core.collaborators import Clock
from daocore.core.context import CallContext
from daocore.core.governance import GovernanceStore
from daocore.monitoring.logging import bind_context
from daocore.security.tokens import TokenExpiredError, TokenInvalidError, decode_access_token

# Security scheme
security = HTTPBearer(auto_error=False)


# =============================================================================
# Application State
# =============================================================================

def get_app_settings(request: Request) -> Settings:
    """Get the settings the app was created with."""
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Settings not initialized",
        )
    return settings


def get_store(request: Request) -> GovernanceStore:
    """Get the governance store from app state."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Governance store not initialized",
        )
    return store


def get_clock(request: Request) -> Clock:
    """Get the chain height clock from app state."""
    clock = getattr(request.app.state, "clock", None)
    if clock is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Clock not initialized",
        )
    return clock


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
StoreDep = Annotated[GovernanceStore, Depends(get_store)]
ClockDep = Annotated[Clock, Depends(get_clock)]


# =============================================================================
# Authentication
# =============================================================================

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_verified_caller(
    settings: SettingsDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    """
    Resolve the caller identity from a signed Bearer token.

    Raises 401 when the token is missing, expired or fails verification.
    Runs on the event loop so the bound caller reaches the route logs.
    """
    if credentials is None:
        raise _unauthorized("Missing Bearer token")

    try:
        payload = decode_access_token(credentials.credentials, settings)
    except TokenExpiredError:
        raise _unauthorized("Token has expired")
    except TokenInvalidError:
        raise _unauthorized("Invalid token")

    bind_context(caller=payload.sub)
    return payload.sub


CallerDep = Annotated[str, Depends(get_verified_caller)]


# =============================================================================
# Call Context
# =============================================================================

def get_call_context(
    caller: CallerDep,
    clock: ClockDep,
    x_correlation_id: Annotated[str | None, Header()] = None,
) -> CallContext:
    """
    Build the call context for a state-changing request.

    The height is read from the clock exactly once per request.
    """
    height = clock.current_height()
    if x_correlation_id:
        return CallContext(caller=caller, height=height, correlation_id=x_correlation_id)
    return CallContext(caller=caller, height=height)


CallContextDep = Annotated[CallContext, Depends(get_call_context)]
