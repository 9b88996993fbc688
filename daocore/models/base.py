"""
Base Models and Common Types

Foundation classes for all governance models including enums
and base model configuration.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(UTC)


class DAOModel(BaseModel):
    """Base model for all governance entities with common configuration."""

    # Titles are index keys, so strings are kept verbatim (no stripping).
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        validate_assignment=True,
        use_enum_values=True,
    )


class ProposalType(str, Enum):
    """Kinds of governance proposals."""

    RULE_CHANGE = "rule-change"    # Change a protocol rule
    REWARD_DIST = "reward-dist"    # Distribute a reward
    ZONE_UPDATE = "zone-update"    # Update a managed zone

    @classmethod
    def parse(cls, value: "ProposalType | str") -> "ProposalType | None":
        """Return the member for ``value`` or None when it is not a known type."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class ProposalStatus(str, Enum):
    """Lifecycle status of a proposal."""

    ACTIVE = "active"        # Created, voting or awaiting execution
    EXECUTED = "executed"    # Marked executed, terminal
