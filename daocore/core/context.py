"""
Call Context

Per-invocation inputs supplied by the environment: who is calling
and the chain height the call is evaluated at.
"""

from dataclasses import dataclass, field
from uuid import uuid4

from daocore.core.collaborators import Clock


@dataclass(frozen=True)
class CallContext:
    """
    Context provided to every governance operation.

    The height is read once per call and never cached by the store.
    """
    caller: str
    height: int
    correlation_id: str = field(default_factory=lambda: str(uuid4()))

    def __post_init__(self) -> None:
        if not self.caller:
            raise ValueError("caller identity is required")
        if self.height < 0:
            raise ValueError(f"height must be non-negative, got {self.height}")

    @classmethod
    def at(cls, caller: str, clock: Clock) -> "CallContext":
        """Build a context for ``caller`` from the clock's current height."""
        return cls(caller=caller, height=clock.current_height())
