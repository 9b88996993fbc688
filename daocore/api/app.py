"""
DAO Core - FastAPI Application Factory

Creates and configures the governance API with:
- Governance routes
- Logging context middleware
- Error handlers rendering the result envelope
- Bearer token caller authentication
- Optional snapshot persistence as part of every committed change
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from daocore import __version__
from daocore.api.routes import governance
from daocore.config import Settings, get_settings
from daocore.core.collaborators import BalanceLookup, BlockTimeClock, Clock, StaticBalances
from daocore.core.governance import GovernanceStore
from daocore.errors import ErrorCode, GovernanceError, PersistenceError
from daocore.monitoring.logging import LoggingContextMiddleware
from daocore.repositories.snapshot_repository import JsonSnapshotRepository

logger = structlog.get_logger(__name__)

ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.NOT_AUTHORIZED: 403,
    ErrorCode.NOT_TOKEN_HOLDER: 403,
    ErrorCode.INSUFFICIENT_BALANCE: 403,
    ErrorCode.PROPOSAL_NOT_FOUND: 404,
    ErrorCode.PROPOSAL_ALREADY_EXISTS: 409,
    ErrorCode.VOTING_CLOSED: 409,
    ErrorCode.ALREADY_VOTED: 409,
    ErrorCode.QUORUM_NOT_REACHED: 409,
    ErrorCode.PROPOSAL_EXECUTED: 409,
    ErrorCode.AUTHORITY_NOT_SET: 409,
    ErrorCode.MAX_PROPOSALS_EXCEEDED: 409,
    ErrorCode.INVALID_PROPOSAL_DURATION: 422,
    ErrorCode.INVALID_QUORUM_THRESHOLD: 422,
    ErrorCode.INVALID_PROPOSAL_TYPE: 422,
    ErrorCode.INVALID_DESCRIPTION: 422,
    ErrorCode.INVALID_RULE_CHANGE: 422,
    ErrorCode.INVALID_REWARD_AMOUNT: 422,
    ErrorCode.INVALID_ZONE: 422,
}


def status_for(code: ErrorCode) -> int:
    """HTTP status for a governance error kind."""
    return ERROR_STATUS.get(code, 400)


def _build_store(
    settings: Settings,
    balances: BalanceLookup,
    repository: JsonSnapshotRepository | None,
) -> GovernanceStore:
    if repository is not None:
        snapshot = repository.load()
        if snapshot is not None:
            return GovernanceStore.from_snapshot(snapshot, balances)
    return GovernanceStore.from_settings(settings, balances)


def create_app(
    store: GovernanceStore | None = None,
    clock: Clock | None = None,
    settings: Settings | None = None,
    balances: BalanceLookup | None = None,
    repository: JsonSnapshotRepository | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        store: Governance store to serve (built from settings when omitted)
        clock: Height source (block-time clock from settings when omitted)
        settings: Application settings (cached settings when omitted)
        balances: Balance lookup for a store built here
        repository: Snapshot repository (from ``snapshot_path`` when omitted)

    Returns:
        Configured FastAPI application

    Raises:
        ValueError: If no caller token key is configured
    """
    settings = settings or get_settings()
    if not settings.jwt_secret_key:
        raise ValueError(
            "DAO_JWT_SECRET_KEY must be set; the API only accepts signed caller tokens"
        )

    if repository is None and settings.snapshot_path:
        repository = JsonSnapshotRepository(settings.snapshot_path)

    if store is None:
        if balances is None:
            balances = (
                StaticBalances.from_file(settings.balances_path)
                if settings.balances_path
                else StaticBalances()
            )
        store = _build_store(settings, balances, repository)

    if clock is None:
        clock = BlockTimeClock(
            genesis=settings.genesis_timestamp or datetime.now(UTC),
            block_seconds=settings.block_time_seconds,
        )

    if repository is not None:
        store.attach_persister(repository.save)

    docs_url = None if settings.app_env == "production" else "/docs"
    app = FastAPI(
        title="DAO Core",
        description="Token-weighted governance proposals",
        version=__version__,
        docs_url=docs_url,
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.clock = clock
    app.state.repository = repository

    app.add_middleware(LoggingContextMiddleware)

    # =========================================================================
    # Error Handlers
    # =========================================================================

    @app.exception_handler(GovernanceError)
    async def governance_error_handler(request: Request, exc: GovernanceError) -> JSONResponse:
        return JSONResponse(
            status_code=status_for(exc.code),
            content={
                "ok": False,
                "error": {
                    "code": int(exc.code),
                    "kind": exc.kind,
                    "message": exc.message,
                },
            },
        )

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
        # The change was rolled back; the caller may retry
        return JSONResponse(
            status_code=503,
            content={
                "ok": False,
                "error": {
                    "code": None,
                    "kind": "PersistenceFailed",
                    "message": "Change could not be persisted and was not applied",
                },
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
            content={
                "ok": False,
                "error": {"code": None, "kind": "HTTPError", "message": exc.detail},
                "path": str(request.url.path),
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # Only return location and error type, not the submitted values
        details = [
            {
                "loc": error.get("loc", []),
                "type": error.get("type", "unknown"),
                "msg": error.get("msg", "Validation failed"),
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content={
                "ok": False,
                "error": {"code": None, "kind": "RequestValidation", "message": "Validation error"},
                "details": details,
            },
        )

    # =========================================================================
    # Routes
    # =========================================================================

    app.include_router(governance.router, prefix="/api/v1/governance", tags=["governance"])

    @app.get("/health")
    def health() -> dict[str, Any]:
        count = store.get_proposal_count().unwrap()
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": __version__,
            "height": clock.current_height(),
            "proposals": count,
            "persistent": repository is not None,
        }

    logger.info(
        "governance_api_created",
        app_env=settings.app_env,
        admin=store.admin,
        persistent=repository is not None,
    )
    return app


def run_server(settings: Settings | None = None) -> None:
    """
    Run the governance API.

    For development use:
        python -m daocore
    """
    import uvicorn

    from daocore.monitoring.logging import configure_logging

    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_output=settings.log_json)

    uvicorn.run(
        create_app(settings=settings),
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )
