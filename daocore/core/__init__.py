"""
Governance core: the proposal state machine and its collaborators.
"""

from daocore.core.collaborators import (
    BalanceLookup,
    BlockTimeClock,
    Clock,
    ManualClock,
    StaticBalances,
)
from daocore.core.context import CallContext
from daocore.core.governance import EventListener, GovernanceStore, required_quorum

__all__ = [
    "BalanceLookup",
    "BlockTimeClock",
    "Clock",
    "ManualClock",
    "StaticBalances",
    "CallContext",
    "EventListener",
    "GovernanceStore",
    "required_quorum",
]
