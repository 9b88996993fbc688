"""
Governance Store for DAO Core

The governance proposal state machine: configuration, proposal
lifecycle, token-weighted voting and the execution gate, all operating
on one shared record set.

Responsibilities:
- Configuration admin (executor reference, duration, quorum)
- Proposal creation, validation and title indexing
- One-vote-per-holder recording and weighted tallies
- End-of-window quorum check and one-shot execution marking

Every public operation is an atomic transaction. Validation runs before
any mutation, commits replace whole records, and a single re-entrant
lock serializes callers. Rejections come back as OperationResult values.
When a persister is attached, each change is saved before the call
returns; a failed save restores the previous state and raises
PersistenceError.
"""

import threading
from collections.abc import Callable
from typing import Any, TypeVar

import structlog

from daocore.config import (
    MAX_PROPOSAL_DURATION,
    MAX_QUORUM_THRESHOLD,
    MIN_PROPOSAL_DURATION,
    MIN_QUORUM_THRESHOLD,
    Settings,
)
from daocore.core.collaborators import BalanceLookup
from daocore.core.context import CallContext
from daocore.errors import (
    ErrorCode,
    GovernanceError,
    PersistenceError,
    SnapshotIntegrityError,
)
from daocore.models.base import ProposalStatus, ProposalType
from daocore.models.events import GovernanceEvent, GovernanceEventType
from daocore.models.governance import (
    MAX_DESCRIPTION_LENGTH,
    MAX_RULE_CHANGE_LENGTH,
    MAX_TITLE_LENGTH,
    MAX_ZONE_LENGTH,
    GovernanceConfig,
    GovernanceSnapshot,
    GovernanceStats,
    Proposal,
    TallyResult,
    VoteRecord,
)
from daocore.models.results import OperationResult

logger = structlog.get_logger(__name__)

T = TypeVar("T")
EventListener = Callable[[GovernanceEvent], None]
Persister = Callable[[GovernanceSnapshot], None]

# An operation body returns its value and the event to emit once committed.
_Outcome = tuple[Any, GovernanceEvent | None]
_State = tuple[
    GovernanceConfig,
    dict[int, Proposal],
    dict[tuple[int, str], VoteRecord],
    dict[str, int],
]


def required_quorum(total_votes: int, quorum_threshold: int) -> int:
    """Yes weight needed to pass, truncated to an integer."""
    return (total_votes * quorum_threshold) // 100


class GovernanceStore:
    """
    Token-weighted governance state machine.

    Holds the configuration plus the proposal, vote and title tables.
    Balances and chain height come from the environment: balances through
    the injected BalanceLookup, height through the CallContext of each call.
    """

    def __init__(
        self,
        admin: str,
        balances: BalanceLookup,
        config: GovernanceConfig | None = None,
        listeners: list[EventListener] | None = None,
        persister: Persister | None = None,
    ):
        """
        Initialize the store.

        Args:
            admin: Identity allowed to run the configuration operations
            balances: Token balance source used for eligibility and weight
            config: Starting configuration (defaults when omitted)
            listeners: Callables notified after each committed change
            persister: Saves a snapshot as part of every change
        """
        if not admin:
            raise ValueError("admin identity is required")

        self._admin = admin
        self._balances = balances
        self._config = config.model_copy() if config else GovernanceConfig()

        self._proposals: dict[int, Proposal] = {}
        self._votes: dict[tuple[int, str], VoteRecord] = {}
        self._titles: dict[str, int] = {}

        self._listeners: list[EventListener] = list(listeners or [])
        self._persister = persister
        self._lock = threading.RLock()
        self._logger = logger.bind(component="governance_store")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        balances: BalanceLookup,
        listeners: list[EventListener] | None = None,
        persister: Persister | None = None,
    ) -> "GovernanceStore":
        """Build an empty store configured from application settings."""
        config = GovernanceConfig(
            max_proposals=settings.max_proposals,
            proposal_duration=settings.proposal_duration,
            quorum_threshold=settings.quorum_threshold,
            governance_token_reference=settings.governance_token_reference,
            executor_reference=settings.executor_reference,
        )
        return cls(
            admin=settings.admin_principal,
            balances=balances,
            config=config,
            listeners=listeners,
            persister=persister,
        )

    # =========================================================================
    # Snapshots
    # =========================================================================

    @classmethod
    def from_snapshot(
        cls,
        snapshot: GovernanceSnapshot,
        balances: BalanceLookup,
        listeners: list[EventListener] | None = None,
        persister: Persister | None = None,
    ) -> "GovernanceStore":
        """
        Restore a store from a snapshot.

        Raises:
            SnapshotIntegrityError: If the tables disagree with each other
        """
        store = cls(
            admin=snapshot.admin,
            balances=balances,
            config=snapshot.config,
            listeners=listeners,
            persister=persister,
        )

        proposals = {p.id: p for p in snapshot.proposals}
        if len(proposals) != len(snapshot.proposals):
            raise SnapshotIntegrityError("duplicate proposal ids in snapshot")

        expected_ids = set(range(snapshot.config.next_proposal_id))
        if set(proposals) != expected_ids:
            raise SnapshotIntegrityError(
                "proposal ids must be exactly 0..next_proposal_id-1"
            )

        # The title index is derived from the proposals and must match exactly
        titles = {p.title: p.id for p in proposals.values()}
        if len(titles) != len(proposals):
            raise SnapshotIntegrityError("duplicate proposal titles in snapshot")
        if titles != snapshot.titles:
            raise SnapshotIntegrityError("title index does not match proposals")

        votes: dict[tuple[int, str], VoteRecord] = {}
        for vote in snapshot.votes:
            if vote.proposal_id not in proposals:
                raise SnapshotIntegrityError(
                    f"vote references unknown proposal {vote.proposal_id}"
                )
            if vote.key in votes:
                raise SnapshotIntegrityError(f"duplicate vote key {vote.key}")
            votes[vote.key] = vote

        # Tallies must equal the recorded vote weights per choice
        yes_weight = {pid: 0 for pid in proposals}
        no_weight = {pid: 0 for pid in proposals}
        for vote in votes.values():
            tally = yes_weight if vote.choice else no_weight
            tally[vote.proposal_id] += vote.weight
        for pid, proposal in proposals.items():
            if (proposal.yes_votes, proposal.no_votes) != (yes_weight[pid], no_weight[pid]):
                raise SnapshotIntegrityError(
                    f"tally of proposal {pid} does not match its vote records"
                )

        store._proposals = proposals
        store._titles = titles
        store._votes = votes

        store._logger.info("governance_store_restored", **snapshot.summary())
        return store

    def snapshot(self) -> GovernanceSnapshot:
        """Capture the full store state."""
        with self._lock:
            return GovernanceSnapshot(
                admin=self._admin,
                config=self._config.model_copy(),
                proposals=[self._proposals[i].model_copy() for i in sorted(self._proposals)],
                votes=[v.model_copy() for _, v in sorted(self._votes.items())],
                titles=dict(self._titles),
            )

    # =========================================================================
    # Listeners
    # =========================================================================

    def subscribe(self, listener: EventListener) -> None:
        """Register a callable notified after each committed change."""
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> bool:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                return False
            return True

    def attach_persister(self, persister: Persister | None) -> None:
        """Save a snapshot as part of every change from now on (None detaches)."""
        with self._lock:
            self._persister = persister

    def _capture(self) -> _State:
        # Records are replaced, never mutated, so shallow table copies suffice
        return (
            self._config,
            dict(self._proposals),
            dict(self._votes),
            dict(self._titles),
        )

    def _restore(self, state: _State) -> None:
        self._config, self._proposals, self._votes, self._titles = state

    def _emit(self, event: GovernanceEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                # The change is already committed; a listener cannot undo it.
                self._logger.error(
                    "governance_listener_failed",
                    event_type=event.type,
                    error=str(e),
                )

    # =========================================================================
    # Transaction boundary
    # =========================================================================

    def _run(
        self,
        operation: str,
        ctx: CallContext,
        body: Callable[..., _Outcome],
        *args: Any,
    ) -> OperationResult[Any]:
        """
        Run one operation atomically and convert rejections to results.

        Raises:
            PersistenceError: If the attached persister fails; the store is
                left as it was before the call
        """
        with self._lock:
            before = self._capture()
            try:
                value, event = body(ctx, *args)
            except GovernanceError as e:
                self._logger.info(
                    "governance_operation_rejected",
                    operation=operation,
                    caller=ctx.caller,
                    height=ctx.height,
                    error=e.kind,
                    code=int(e.code),
                    correlation_id=ctx.correlation_id,
                )
                return OperationResult.from_error(e)

            if self._persister is not None:
                try:
                    self._persister(self.snapshot())
                except Exception as e:
                    self._restore(before)
                    self._logger.error(
                        "governance_persist_failed",
                        operation=operation,
                        caller=ctx.caller,
                        error=str(e),
                        correlation_id=ctx.correlation_id,
                    )
                    raise PersistenceError(operation, str(e)) from e

            if event is not None:
                self._emit(event)
            return OperationResult.ok(value)

    def _event(
        self,
        event_type: GovernanceEventType,
        ctx: CallContext,
        **payload: Any,
    ) -> GovernanceEvent:
        return GovernanceEvent(
            type=event_type,
            actor=ctx.caller,
            height=ctx.height,
            payload=payload,
        )

    def _require_admin(self, ctx: CallContext) -> None:
        if ctx.caller != self._admin:
            raise GovernanceError(ErrorCode.NOT_AUTHORIZED)

    def _get_or_raise(self, proposal_id: int) -> Proposal:
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise GovernanceError(ErrorCode.PROPOSAL_NOT_FOUND)
        return proposal

    # =========================================================================
    # Configuration admin
    # =========================================================================

    def set_executor_reference(
        self, ctx: CallContext, reference: str
    ) -> OperationResult[bool]:
        """Store the executor identity. Admin only."""
        return self._run("set_executor_reference", ctx, self._set_executor_reference, reference)

    def _set_executor_reference(self, ctx: CallContext, reference: str) -> _Outcome:
        self._require_admin(ctx)
        return self._update_config(ctx, executor_reference=reference)

    def set_proposal_duration(
        self, ctx: CallContext, duration: int
    ) -> OperationResult[bool]:
        """Set the voting window length for proposals created from now on. Admin only."""
        return self._run("set_proposal_duration", ctx, self._set_proposal_duration, duration)

    def _set_proposal_duration(self, ctx: CallContext, duration: int) -> _Outcome:
        self._require_admin(ctx)
        if not MIN_PROPOSAL_DURATION <= duration <= MAX_PROPOSAL_DURATION:
            raise GovernanceError(ErrorCode.INVALID_PROPOSAL_DURATION)
        return self._update_config(ctx, proposal_duration=duration)

    def set_quorum_threshold(
        self, ctx: CallContext, threshold: int
    ) -> OperationResult[bool]:
        """Set the quorum percentage. Admin only."""
        return self._run("set_quorum_threshold", ctx, self._set_quorum_threshold, threshold)

    def _set_quorum_threshold(self, ctx: CallContext, threshold: int) -> _Outcome:
        self._require_admin(ctx)
        if not MIN_QUORUM_THRESHOLD <= threshold <= MAX_QUORUM_THRESHOLD:
            raise GovernanceError(ErrorCode.INVALID_QUORUM_THRESHOLD)
        return self._update_config(ctx, quorum_threshold=threshold)

    def _update_config(self, ctx: CallContext, **changes: Any) -> _Outcome:
        self._config = self._config.model_copy(update=changes)
        self._logger.info("governance_config_updated", caller=ctx.caller, **changes)
        return True, self._event(GovernanceEventType.CONFIG_UPDATED, ctx, **changes)

    # =========================================================================
    # Proposal lifecycle
    # =========================================================================

    def create_proposal(
        self,
        ctx: CallContext,
        title: str,
        description: str,
        proposal_type: ProposalType | str,
        rule_change: str | None = None,
        reward_amount: int | None = None,
        zone: str | None = None,
    ) -> OperationResult[int]:
        """
        Create a proposal and return its id.

        Checks run in a fixed order and the first failure wins: capacity,
        title, description, type, payload fields, caller balance, title
        uniqueness.
        """
        return self._run(
            "create_proposal",
            ctx,
            self._create_proposal,
            title,
            description,
            proposal_type,
            rule_change,
            reward_amount,
            zone,
        )

    def _create_proposal(
        self,
        ctx: CallContext,
        title: str,
        description: str,
        proposal_type: ProposalType | str,
        rule_change: str | None,
        reward_amount: int | None,
        zone: str | None,
    ) -> _Outcome:
        config = self._config

        if config.next_proposal_id >= config.max_proposals:
            raise GovernanceError(ErrorCode.MAX_PROPOSALS_EXCEEDED)
        if not title or len(title) > MAX_TITLE_LENGTH:
            raise GovernanceError(
                ErrorCode.INVALID_DESCRIPTION, "Title must be 1-100 characters"
            )
        if not description or len(description) > MAX_DESCRIPTION_LENGTH:
            raise GovernanceError(
                ErrorCode.INVALID_DESCRIPTION, "Description must be 1-500 characters"
            )

        ptype = ProposalType.parse(proposal_type)
        if ptype is None:
            raise GovernanceError(ErrorCode.INVALID_PROPOSAL_TYPE)

        if rule_change is not None and len(rule_change) > MAX_RULE_CHANGE_LENGTH:
            raise GovernanceError(ErrorCode.INVALID_RULE_CHANGE)
        if reward_amount is not None and reward_amount <= 0:
            raise GovernanceError(ErrorCode.INVALID_REWARD_AMOUNT)
        if zone is not None and len(zone) > MAX_ZONE_LENGTH:
            raise GovernanceError(ErrorCode.INVALID_ZONE)

        if self._balances.get_balance(ctx.caller) <= 0:
            raise GovernanceError(ErrorCode.NOT_TOKEN_HOLDER)
        if title in self._titles:
            raise GovernanceError(ErrorCode.PROPOSAL_ALREADY_EXISTS)

        proposal_id = config.next_proposal_id
        proposal = Proposal(
            id=proposal_id,
            title=title,
            description=description,
            proposer=ctx.caller,
            start_height=ctx.height,
            end_height=ctx.height + config.proposal_duration,
            proposal_type=ptype,
            rule_change=rule_change,
            reward_amount=reward_amount,
            zone=zone,
        )
        next_config = config.model_copy(update={"next_proposal_id": proposal_id + 1})

        # Commit: proposal, title index and counter move together
        self._proposals[proposal_id] = proposal
        self._titles[title] = proposal_id
        self._config = next_config

        self._logger.info(
            "proposal_created",
            proposal_id=proposal_id,
            proposer=ctx.caller,
            proposal_type=proposal.proposal_type,
            start_height=proposal.start_height,
            end_height=proposal.end_height,
        )
        event = self._event(
            GovernanceEventType.PROPOSAL_CREATED,
            ctx,
            proposal_id=proposal_id,
            title=title,
            proposal_type=proposal.proposal_type,
            end_height=proposal.end_height,
        )
        return proposal_id, event

    # =========================================================================
    # Voting engine
    # =========================================================================

    def vote_on_proposal(
        self, ctx: CallContext, proposal_id: int, choice: bool
    ) -> OperationResult[bool]:
        """
        Cast the caller's vote, weighted by their current balance.

        The weight is fixed at vote time. Callers re-read the proposal
        for the new tally.
        """
        return self._run("vote_on_proposal", ctx, self._vote_on_proposal, proposal_id, choice)

    def _vote_on_proposal(self, ctx: CallContext, proposal_id: int, choice: bool) -> _Outcome:
        proposal = self._get_or_raise(proposal_id)

        if not proposal.is_voting_open(ctx.height):
            raise GovernanceError(ErrorCode.VOTING_CLOSED)

        key = (proposal_id, ctx.caller)
        if key in self._votes:
            raise GovernanceError(ErrorCode.ALREADY_VOTED)

        weight = self._balances.get_balance(ctx.caller)
        if weight <= 0:
            raise GovernanceError(ErrorCode.NOT_TOKEN_HOLDER)

        record = VoteRecord(
            proposal_id=proposal_id,
            voter=ctx.caller,
            choice=bool(choice),
            weight=weight,
            height=ctx.height,
        )
        if record.choice:
            tally = {"yes_votes": proposal.yes_votes + weight}
        else:
            tally = {"no_votes": proposal.no_votes + weight}
        updated = proposal.model_copy(update=tally)

        self._votes[key] = record
        self._proposals[proposal_id] = updated

        self._logger.info(
            "vote_cast",
            proposal_id=proposal_id,
            voter=ctx.caller,
            choice=record.choice,
            weight=weight,
            yes_votes=updated.yes_votes,
            no_votes=updated.no_votes,
        )
        event = self._event(
            GovernanceEventType.VOTE_CAST,
            ctx,
            proposal_id=proposal_id,
            choice=record.choice,
            weight=weight,
        )
        return True, event

    # =========================================================================
    # Execution gate
    # =========================================================================

    def execute_proposal(self, ctx: CallContext, proposal_id: int) -> OperationResult[bool]:
        """
        Mark a proposal executed once its window has closed and quorum is met.

        The substantive action belongs to the external executor; this only
        flips the proposal's status, exactly once.
        """
        return self._run("execute_proposal", ctx, self._execute_proposal, proposal_id)

    def _execute_proposal(self, ctx: CallContext, proposal_id: int) -> _Outcome:
        proposal = self._get_or_raise(proposal_id)

        if ctx.height <= proposal.end_height:
            raise GovernanceError(
                ErrorCode.VOTING_CLOSED, "Voting window has not ended yet"
            )
        if proposal.executed:
            raise GovernanceError(ErrorCode.PROPOSAL_EXECUTED)

        quorum = required_quorum(proposal.total_votes, self._config.quorum_threshold)
        if proposal.yes_votes < quorum:
            raise GovernanceError(ErrorCode.QUORUM_NOT_REACHED)

        if not self._config.executor_reference:
            raise GovernanceError(ErrorCode.AUTHORITY_NOT_SET)

        self._proposals[proposal_id] = proposal.model_copy(
            update={"executed": True, "status": ProposalStatus.EXECUTED.value}
        )

        self._logger.info(
            "proposal_executed",
            proposal_id=proposal_id,
            caller=ctx.caller,
            yes_votes=proposal.yes_votes,
            no_votes=proposal.no_votes,
            quorum_required=quorum,
            executor=self._config.executor_reference,
        )
        event = self._event(
            GovernanceEventType.PROPOSAL_EXECUTED,
            ctx,
            proposal_id=proposal_id,
            executor=self._config.executor_reference,
        )
        return True, event

    # =========================================================================
    # Queries
    # =========================================================================

    def get_proposal_count(self) -> OperationResult[int]:
        """Number of proposals ever created."""
        with self._lock:
            return OperationResult.ok(self._config.next_proposal_id)

    def check_proposal_existence(self, title: str) -> OperationResult[bool]:
        """Whether any proposal, executed or not, ever used ``title``."""
        with self._lock:
            return OperationResult.ok(title in self._titles)

    @property
    def admin(self) -> str:
        return self._admin

    def get_config(self) -> GovernanceConfig:
        with self._lock:
            return self._config.model_copy()

    def get_proposal(self, proposal_id: int) -> Proposal | None:
        """Get a copy of a proposal by id."""
        with self._lock:
            proposal = self._proposals.get(proposal_id)
            return proposal.model_copy() if proposal else None

    def get_proposal_by_title(self, title: str) -> Proposal | None:
        with self._lock:
            proposal_id = self._titles.get(title)
            if proposal_id is None:
                return None
            return self._proposals[proposal_id].model_copy()

    def get_vote(self, proposal_id: int, voter: str) -> VoteRecord | None:
        """Get a holder's vote on a proposal."""
        with self._lock:
            record = self._votes.get((proposal_id, voter))
            return record.model_copy() if record else None

    def list_proposals(
        self,
        status: ProposalStatus | None = None,
        proposal_type: ProposalType | None = None,
        proposer: str | None = None,
    ) -> list[Proposal]:
        """List proposals ordered by id with optional filters."""
        with self._lock:
            proposals = [self._proposals[i] for i in sorted(self._proposals)]

        if status:
            proposals = [p for p in proposals if p.status == status]
        if proposal_type:
            proposals = [p for p in proposals if p.proposal_type == proposal_type]
        if proposer:
            proposals = [p for p in proposals if p.proposer == proposer]

        return [p.model_copy() for p in proposals]

    def quorum_status(self, proposal_id: int, height: int) -> OperationResult[TallyResult]:
        """Quorum view of a proposal as it would be judged at ``height``."""
        with self._lock:
            proposal = self._proposals.get(proposal_id)
            if proposal is None:
                return OperationResult.fail(ErrorCode.PROPOSAL_NOT_FOUND)
            threshold = self._config.quorum_threshold
            executor_set = bool(self._config.executor_reference)

        quorum = required_quorum(proposal.total_votes, threshold)
        quorum_met = proposal.yes_votes >= quorum
        window_closed = height > proposal.end_height

        return OperationResult.ok(TallyResult(
            proposal_id=proposal.id,
            height=height,
            yes_votes=proposal.yes_votes,
            no_votes=proposal.no_votes,
            total_votes=proposal.total_votes,
            quorum_threshold=threshold,
            quorum_required=quorum,
            quorum_met=quorum_met,
            voting_open=proposal.is_voting_open(height),
            executed=proposal.executed,
            executable=(
                window_closed and not proposal.executed and quorum_met and executor_set
            ),
        ))

    def get_stats(self) -> GovernanceStats:
        """Get governance statistics."""
        with self._lock:
            proposals = list(self._proposals.values())
            total_votes = len(self._votes)

        by_status: dict[str, int] = {}
        by_type: dict[str, int] = {}
        for proposal in proposals:
            by_status[proposal.status] = by_status.get(proposal.status, 0) + 1
            by_type[proposal.proposal_type] = by_type.get(proposal.proposal_type, 0) + 1

        return GovernanceStats(
            total_proposals=len(proposals),
            total_votes=total_votes,
            by_status=by_status,
            by_type=by_type,
        )
