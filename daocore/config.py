"""
DAO Core Configuration Management

Centralized configuration using Pydantic Settings for type-safe environment
variable loading with validation. Every variable is read with the ``DAO_``
prefix, e.g. ``DAO_QUORUM_THRESHOLD=60``.
"""

import logging
from datetime import datetime
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

MIN_PROPOSAL_DURATION = 1
MAX_PROPOSAL_DURATION = 10080
MIN_QUORUM_THRESHOLD = 1
MAX_QUORUM_THRESHOLD = 100


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DAO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ═══════════════════════════════════════════════════════════════
    # APPLICATION
    # ═══════════════════════════════════════════════════════════════
    app_name: str = Field(default="dao-core", description="Application name")
    app_env: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_json: bool = Field(default=False, description="Render logs as JSON")

    # API Server
    api_host: str = Field(default="127.0.0.1", description="API host")
    api_port: int = Field(default=8000, ge=1, le=65535, description="API port")

    # ═══════════════════════════════════════════════════════════════
    # GOVERNANCE
    # ═══════════════════════════════════════════════════════════════
    admin_principal: str = Field(
        default="deployer",
        min_length=1,
        description="Identity allowed to change governance configuration",
    )
    max_proposals: int = Field(
        default=1000, ge=0, description="Hard cap on proposals ever created"
    )
    proposal_duration: int = Field(
        default=144,
        ge=MIN_PROPOSAL_DURATION,
        le=MAX_PROPOSAL_DURATION,
        description="Voting window length in blocks",
    )
    quorum_threshold: int = Field(
        default=51,
        ge=MIN_QUORUM_THRESHOLD,
        le=MAX_QUORUM_THRESHOLD,
        description="Percent of turnout that must vote yes",
    )
    governance_token_reference: str = Field(
        default="SP000000000000000000002Q6VF78",
        description="Identity of the token whose balances weight votes",
    )
    executor_reference: str | None = Field(
        default=None, description="Identity of the proposal executor"
    )

    # ═══════════════════════════════════════════════════════════════
    # COLLABORATORS
    # ═══════════════════════════════════════════════════════════════
    balances_path: str | None = Field(
        default=None,
        description="JSON object of identity -> token balance served to the API",
    )
    genesis_timestamp: datetime | None = Field(
        default=None,
        description="Wall time of height 0 (defaults to API start time)",
    )
    block_time_seconds: int = Field(
        default=600, ge=1, description="Seconds per block for the API clock"
    )

    # ═══════════════════════════════════════════════════════════════
    # SECURITY
    # ═══════════════════════════════════════════════════════════════
    jwt_secret_key: str | None = Field(
        default=None,
        description="HMAC key for caller tokens; required to serve the API",
    )
    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = Field(
        default="HS256", description="JWT signing algorithm"
    )
    jwt_issuer: str = Field(default="dao-core", description="Expected token issuer")
    jwt_audience: str = Field(default="dao-core-api", description="Expected token audience")
    jwt_access_token_expire_minutes: int = Field(
        default=30, ge=1, le=1440, description="Caller token lifetime"
    )
    jwt_clock_skew_seconds: int = Field(
        default=30, ge=0, le=300, description="Leeway for exp/nbf checks"
    )

    # ═══════════════════════════════════════════════════════════════
    # PERSISTENCE
    # ═══════════════════════════════════════════════════════════════
    snapshot_path: str | None = Field(
        default=None,
        description="JSON file the API persists governance state to",
    )

    @field_validator("executor_reference", "snapshot_path", "balances_path", mode="before")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        if len(v) < 32:
            raise ValueError("JWT secret key must be at least 32 characters")
        if len(set(v)) < 10:
            raise ValueError("JWT secret key must have at least 10 unique characters")
        return v

    @field_validator("admin_principal")
    @classmethod
    def validate_admin_principal(cls, v: str) -> str:
        if v == "deployer":
            logger.warning(
                "admin_principal_default: governance admin is the placeholder "
                "'deployer' identity; set DAO_ADMIN_PRINCIPAL"
            )
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
