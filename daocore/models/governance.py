"""
Governance Models

Records held by the governance store: configuration, proposals,
vote records, tally views and persisted snapshots.
"""

from datetime import datetime
from typing import Any

from pydantic import Field, model_validator

from daocore.config import (
    MAX_PROPOSAL_DURATION,
    MAX_QUORUM_THRESHOLD,
    MIN_PROPOSAL_DURATION,
    MIN_QUORUM_THRESHOLD,
)
from daocore.models.base import DAOModel, ProposalStatus, ProposalType, utc_now

MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
MAX_RULE_CHANGE_LENGTH = 200
MAX_ZONE_LENGTH = 50


class GovernanceConfig(DAOModel):
    """Process-wide governance configuration owned by a store."""

    next_proposal_id: int = Field(default=0, ge=0)
    max_proposals: int = Field(default=1000, ge=0)
    proposal_duration: int = Field(
        default=144, ge=MIN_PROPOSAL_DURATION, le=MAX_PROPOSAL_DURATION
    )
    quorum_threshold: int = Field(
        default=51, ge=MIN_QUORUM_THRESHOLD, le=MAX_QUORUM_THRESHOLD
    )
    governance_token_reference: str = "SP000000000000000000002Q6VF78"
    executor_reference: str | None = None

    @model_validator(mode="after")
    def counter_within_cap(self) -> "GovernanceConfig":
        if self.next_proposal_id > self.max_proposals:
            raise ValueError(
                f"next_proposal_id {self.next_proposal_id} exceeds "
                f"max_proposals {self.max_proposals}"
            )
        return self


class Proposal(DAOModel):
    """A governance proposal and its running tally."""

    id: int = Field(ge=0)
    title: str
    description: str
    proposer: str
    start_height: int = Field(ge=0)
    end_height: int
    proposal_type: ProposalType

    # Payload, only meaningful for the matching type
    rule_change: str | None = None
    reward_amount: int | None = None
    zone: str | None = None

    # Weighted tally
    yes_votes: int = Field(default=0, ge=0)
    no_votes: int = Field(default=0, ge=0)

    executed: bool = False
    status: ProposalStatus = Field(default=ProposalStatus.ACTIVE, validate_default=True)

    @model_validator(mode="after")
    def window_is_positive(self) -> "Proposal":
        if self.end_height <= self.start_height:
            raise ValueError("end_height must be greater than start_height")
        return self

    @property
    def total_votes(self) -> int:
        """Total voting weight cast."""
        return self.yes_votes + self.no_votes

    def is_voting_open(self, height: int) -> bool:
        """Voting is open through ``end_height`` inclusive and until executed."""
        return not self.executed and height <= self.end_height


class VoteRecord(DAOModel):
    """One holder's vote on one proposal. Written once, never changed."""

    proposal_id: int = Field(ge=0)
    voter: str
    choice: bool
    weight: int = Field(gt=0)
    height: int = Field(ge=0)

    @property
    def key(self) -> tuple[int, str]:
        return (self.proposal_id, self.voter)


class TallyResult(DAOModel):
    """Quorum view of a proposal at a given height."""

    proposal_id: int
    height: int
    yes_votes: int
    no_votes: int
    total_votes: int
    quorum_threshold: int
    quorum_required: int
    quorum_met: bool
    voting_open: bool
    executed: bool
    executable: bool


class GovernanceStats(DAOModel):
    """Aggregate governance statistics."""

    total_proposals: int = 0
    total_votes: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    by_type: dict[str, int] = Field(default_factory=dict)


class GovernanceSnapshot(DAOModel):
    """Full store state for persistence."""

    version: int = 1
    admin: str
    config: GovernanceConfig
    proposals: list[Proposal] = Field(default_factory=list)
    votes: list[VoteRecord] = Field(default_factory=list)
    titles: dict[str, int] = Field(default_factory=dict)
    taken_at: datetime = Field(default_factory=utc_now)

    def summary(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "proposals": len(self.proposals),
            "votes": len(self.votes),
            "next_proposal_id": self.config.next_proposal_id,
        }
