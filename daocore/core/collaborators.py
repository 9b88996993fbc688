"""
External Collaborators

Interfaces the governance core consumes (token balances and chain
height) plus simple in-process implementations of each.
"""

import json
import threading
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class BalanceLookup(Protocol):
    """Token balance source. Must be deterministic for a given height."""

    def get_balance(self, identity: str) -> int:
        ...


@runtime_checkable
class Clock(Protocol):
    """Monotonic chain height source."""

    def current_height(self) -> int:
        ...


class StaticBalances:
    """
    Read-only balance table.

    Identities missing from the table hold zero. Used when balances are
    snapshotted from the token ledger at a known height.
    """

    def __init__(self, balances: Mapping[str, int] | None = None):
        self._balances: dict[str, int] = {}
        for identity, amount in (balances or {}).items():
            if amount < 0:
                raise ValueError(f"balance for {identity} is negative")
            self._balances[identity] = int(amount)

    def get_balance(self, identity: str) -> int:
        return self._balances.get(identity, 0)

    @classmethod
    def from_file(cls, path: str | Path) -> "StaticBalances":
        """Load a ``{"identity": amount}`` JSON table."""
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"balance file {path} must contain a JSON object")
        return cls({str(k): int(v) for k, v in data.items()})

    def replace(self, balances: Mapping[str, int]) -> None:
        """Swap in a new balance table, e.g. after the ledger moves to a new height."""
        fresh = StaticBalances(balances)
        self._balances = fresh._balances

    def __len__(self) -> int:
        return len(self._balances)


class BlockTimeClock:
    """
    Height derived from wall time: one block every ``block_seconds``
    since ``genesis``.
    """

    def __init__(self, genesis: datetime, block_seconds: int = 600):
        if block_seconds <= 0:
            raise ValueError("block_seconds must be positive")
        if genesis.tzinfo is None:
            genesis = genesis.replace(tzinfo=UTC)
        self.genesis = genesis
        self.block_seconds = block_seconds

    def current_height(self) -> int:
        elapsed = (datetime.now(UTC) - self.genesis).total_seconds()
        return max(0, int(elapsed // self.block_seconds))


class ManualClock:
    """Clock advanced explicitly by its owner. Height never decreases."""

    def __init__(self, height: int = 0):
        if height < 0:
            raise ValueError("height must be non-negative")
        self._height = height
        self._lock = threading.Lock()

    def current_height(self) -> int:
        return self._height

    def advance(self, blocks: int = 1) -> int:
        if blocks < 0:
            raise ValueError("clock cannot move backwards")
        with self._lock:
            self._height += blocks
            return self._height

    def set_height(self, height: int) -> int:
        with self._lock:
            if height < self._height:
                raise ValueError(
                    f"clock cannot move backwards ({self._height} -> {height})"
                )
            self._height = height
            return self._height
