"""
Event Models

Events emitted by the governance store after a change is committed.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from daocore.models.base import DAOModel, utc_now


class GovernanceEventType(str, Enum):
    """Types of governance events."""

    PROPOSAL_CREATED = "governance.proposal_created"
    VOTE_CAST = "governance.vote_cast"
    PROPOSAL_EXECUTED = "governance.proposal_executed"
    CONFIG_UPDATED = "governance.config_updated"


class GovernanceEvent(DAOModel):
    """A committed governance change."""

    type: GovernanceEventType
    actor: str = Field(description="Caller that triggered the change")
    height: int = Field(description="Chain height the change was applied at")
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)
