"""
DAO Core - Governance Routes
Endpoints for proposals, voting, execution and configuration.

Every response uses the result envelope:
    {"ok": true, "value": ...}
    {"ok": false, "error": {"code": ..., "kind": ..., "message": ...}}

Handlers are plain functions run in the threadpool, since the store blocks
on its lock and on snapshot writes.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from daocore.api.dependencies import CallContextDep, ClockDep, StoreDep
from daocore.errors import ErrorCode, GovernanceError
from daocore.models.base import ProposalStatus, ProposalType
from daocore.models.results import OperationResult

router = APIRouter()


# =============================================================================
# Request Models
# =============================================================================
# Field limits (title length, proposal type, reward sign) are enforced by the
# store so rejections carry the governance error kind, not a 422 schema error.

class CreateProposalRequest(BaseModel):
    """Request to create a new proposal."""
    title: str
    description: str
    proposal_type: str = Field(description="rule-change, reward-dist or zone-update")
    rule_change: str | None = None
    reward_amount: int | None = None
    zone: str | None = None


class VoteRequest(BaseModel):
    """Request to cast a vote."""
    choice: bool = Field(description="True for yes, False for no")


class ExecutorRequest(BaseModel):
    executor_reference: str = Field(min_length=1)


class DurationRequest(BaseModel):
    proposal_duration: int


class QuorumRequest(BaseModel):
    quorum_threshold: int


def _envelope(result: OperationResult[Any]) -> dict[str, Any]:
    """Return the success envelope or raise the failure for the app handler."""
    value = result.unwrap()
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    return {"ok": True, "value": value}


# =============================================================================
# Configuration
# =============================================================================

@router.get("/config")
def get_config(store: StoreDep) -> dict[str, Any]:
    """Current governance configuration."""
    config = store.get_config()
    return {"ok": True, "value": {**config.model_dump(mode="json"), "admin": store.admin}}


@router.put("/config/executor")
def set_executor_reference(
    request: ExecutorRequest, store: StoreDep, ctx: CallContextDep
) -> dict[str, Any]:
    return _envelope(store.set_executor_reference(ctx, request.executor_reference))


@router.put("/config/duration")
def set_proposal_duration(
    request: DurationRequest, store: StoreDep, ctx: CallContextDep
) -> dict[str, Any]:
    return _envelope(store.set_proposal_duration(ctx, request.proposal_duration))


@router.put("/config/quorum")
def set_quorum_threshold(
    request: QuorumRequest, store: StoreDep, ctx: CallContextDep
) -> dict[str, Any]:
    return _envelope(store.set_quorum_threshold(ctx, request.quorum_threshold))


# =============================================================================
# Proposals
# =============================================================================

@router.post("/proposals", status_code=status.HTTP_201_CREATED)
def create_proposal(
    request: CreateProposalRequest, store: StoreDep, ctx: CallContextDep
) -> dict[str, Any]:
    """
    Create a new governance proposal.

    The voting window starts at the current height and lasts for the
    configured proposal duration.
    """
    result = store.create_proposal(
        ctx,
        title=request.title,
        description=request.description,
        proposal_type=request.proposal_type,
        rule_change=request.rule_change,
        reward_amount=request.reward_amount,
        zone=request.zone,
    )
    return _envelope(result)


@router.get("/proposals")
def list_proposals(
    store: StoreDep,
    status_filter: ProposalStatus | None = Query(default=None, alias="status"),
    proposal_type: ProposalType | None = None,
    proposer: str | None = None,
) -> dict[str, Any]:
    proposals = store.list_proposals(
        status=status_filter, proposal_type=proposal_type, proposer=proposer
    )
    return {"ok": True, "value": [p.model_dump(mode="json") for p in proposals]}


@router.get("/proposals/count")
def get_proposal_count(store: StoreDep) -> dict[str, Any]:
    return _envelope(store.get_proposal_count())


@router.get("/proposals/exists")
def check_proposal_existence(
    store: StoreDep, title: str = Query(min_length=1)
) -> dict[str, Any]:
    return _envelope(store.check_proposal_existence(title))


@router.get("/proposals/{proposal_id}")
def get_proposal(proposal_id: int, store: StoreDep) -> dict[str, Any]:
    proposal = store.get_proposal(proposal_id)
    if proposal is None:
        raise GovernanceError(ErrorCode.PROPOSAL_NOT_FOUND)
    return {"ok": True, "value": proposal.model_dump(mode="json")}


@router.get("/proposals/{proposal_id}/tally")
def get_tally(
    proposal_id: int, store: StoreDep, clock: ClockDep
) -> dict[str, Any]:
    """Quorum view of a proposal at the current height."""
    return _envelope(store.quorum_status(proposal_id, clock.current_height()))


@router.get("/proposals/{proposal_id}/votes/{voter}")
def get_vote(proposal_id: int, voter: str, store: StoreDep) -> dict[str, Any]:
    vote = store.get_vote(proposal_id, voter)
    return {"ok": True, "value": vote.model_dump(mode="json") if vote else None}


# =============================================================================
# Voting and Execution
# =============================================================================

@router.post("/proposals/{proposal_id}/vote")
def vote_on_proposal(
    proposal_id: int, request: VoteRequest, store: StoreDep, ctx: CallContextDep
) -> dict[str, Any]:
    """Cast the caller's token-weighted vote."""
    return _envelope(store.vote_on_proposal(ctx, proposal_id, request.choice))


@router.post("/proposals/{proposal_id}/execute")
def execute_proposal(
    proposal_id: int, store: StoreDep, ctx: CallContextDep
) -> dict[str, Any]:
    """Mark a proposal executed once its window has closed and quorum is met."""
    return _envelope(store.execute_proposal(ctx, proposal_id))


@router.get("/stats")
def get_stats(store: StoreDep) -> dict[str, Any]:
    return {"ok": True, "value": store.get_stats().model_dump(mode="json")}
