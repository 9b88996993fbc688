"""
Governance data models.
"""

from daocore.models.base import DAOModel, ProposalStatus, ProposalType
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

__all__ = [
    "DAOModel",
    "ProposalStatus",
    "ProposalType",
    "GovernanceEvent",
    "GovernanceEventType",
    "GovernanceConfig",
    "GovernanceSnapshot",
    "GovernanceStats",
    "Proposal",
    "TallyResult",
    "VoteRecord",
    "OperationResult",
    "MAX_TITLE_LENGTH",
    "MAX_DESCRIPTION_LENGTH",
    "MAX_RULE_CHANGE_LENGTH",
    "MAX_ZONE_LENGTH",
]
