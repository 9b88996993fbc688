"""
Governance Errors

Stable error taxonomy for the governance state machine. Each kind has a
numeric code that callers and the HTTP layer can rely on.
"""

from enum import IntEnum


class ErrorCode(IntEnum):
    """Failure kinds returned by governance operations."""

    NOT_AUTHORIZED = 100
    PROPOSAL_ALREADY_EXISTS = 101
    PROPOSAL_NOT_FOUND = 102
    VOTING_CLOSED = 103
    ALREADY_VOTED = 104
    QUORUM_NOT_REACHED = 105
    INVALID_PROPOSAL_DURATION = 106
    INVALID_QUORUM_THRESHOLD = 107
    INVALID_PROPOSAL_TYPE = 108
    INVALID_DESCRIPTION = 109
    INVALID_VOTE = 110              # Reserved, no code path raises it
    NOT_TOKEN_HOLDER = 111
    INSUFFICIENT_BALANCE = 112      # Reserved, shadowed by NOT_TOKEN_HOLDER
    PROPOSAL_EXECUTED = 113
    AUTHORITY_NOT_SET = 114
    INVALID_TIMESTAMP = 115         # Reserved, no code path raises it
    MAX_PROPOSALS_EXCEEDED = 116
    INVALID_RULE_CHANGE = 117
    INVALID_REWARD_AMOUNT = 118
    INVALID_ZONE = 119
    INVALID_STATUS = 120            # Reserved, no code path raises it

    @property
    def kind(self) -> str:
        """CamelCase name, e.g. ``ProposalNotFound``."""
        return "".join(part.capitalize() for part in self.name.split("_"))

    @property
    def reserved(self) -> bool:
        """True for kinds kept for interface compatibility only."""
        return self in RESERVED_CODES

    @classmethod
    def from_kind(cls, kind: str) -> "ErrorCode":
        for code in cls:
            if code.kind == kind:
                return code
        raise ValueError(f"Unknown error kind '{kind}'")


RESERVED_CODES = frozenset({
    ErrorCode.INVALID_VOTE,
    ErrorCode.INSUFFICIENT_BALANCE,
    ErrorCode.INVALID_TIMESTAMP,
    ErrorCode.INVALID_STATUS,
})

DEFAULT_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.NOT_AUTHORIZED: "Caller is not the governance administrator",
    ErrorCode.PROPOSAL_ALREADY_EXISTS: "A proposal with this title already exists",
    ErrorCode.PROPOSAL_NOT_FOUND: "Proposal not found",
    ErrorCode.VOTING_CLOSED: "Voting window does not allow this operation",
    ErrorCode.ALREADY_VOTED: "Caller already voted on this proposal",
    ErrorCode.QUORUM_NOT_REACHED: "Yes votes are below the quorum threshold",
    ErrorCode.INVALID_PROPOSAL_DURATION: "Proposal duration must be between 1 and 10080",
    ErrorCode.INVALID_QUORUM_THRESHOLD: "Quorum threshold must be between 1 and 100",
    ErrorCode.INVALID_PROPOSAL_TYPE: "Unknown proposal type",
    ErrorCode.INVALID_DESCRIPTION: "Title or description is empty or too long",
    ErrorCode.INVALID_VOTE: "Invalid vote",
    ErrorCode.NOT_TOKEN_HOLDER: "Caller holds no governance tokens",
    ErrorCode.INSUFFICIENT_BALANCE: "Insufficient token balance",
    ErrorCode.PROPOSAL_EXECUTED: "Proposal was already executed",
    ErrorCode.AUTHORITY_NOT_SET: "Executor reference is not configured",
    ErrorCode.INVALID_TIMESTAMP: "Invalid timestamp",
    ErrorCode.MAX_PROPOSALS_EXCEEDED: "Maximum number of proposals reached",
    ErrorCode.INVALID_RULE_CHANGE: "Rule change text is too long",
    ErrorCode.INVALID_REWARD_AMOUNT: "Reward amount must be positive",
    ErrorCode.INVALID_ZONE: "Zone name is too long",
    ErrorCode.INVALID_STATUS: "Invalid status",
}


class GovernanceError(Exception):
    """Governance operation rejected."""

    def __init__(self, code: ErrorCode, message: str | None = None):
        self.code = ErrorCode(code)
        self.message = message or DEFAULT_MESSAGES[self.code]
        super().__init__(f"{self.code.kind} ({int(self.code)}): {self.message}")

    @property
    def kind(self) -> str:
        return self.code.kind


class SnapshotIntegrityError(Exception):
    """Persisted governance state is internally inconsistent."""
    pass


class PersistenceError(Exception):
    """A committed change could not be persisted and was rolled back."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation}: {message}")
