"""
DAO Core - Governance Proposal State Machine

Token holders create proposals, vote weighted by token balance, and
execute proposals once the voting window closes and quorum is met.
"""

__version__ = "1.0.0"

from daocore.config import Settings, get_settings
from daocore.core import CallContext, GovernanceStore
from daocore.errors import ErrorCode, GovernanceError
from daocore.models import OperationResult, Proposal, ProposalStatus, ProposalType

__all__ = [
    "__version__",
    "Settings",
    "get_settings",
    "CallContext",
    "GovernanceStore",
    "ErrorCode",
    "GovernanceError",
    "OperationResult",
    "Proposal",
    "ProposalStatus",
    "ProposalType",
]
