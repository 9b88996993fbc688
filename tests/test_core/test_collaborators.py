"""
Tests for the governance collaborators and call context.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

import pytest

from daocore.core.collaborators import (
    BalanceLookup,
    BlockTimeClock,
    Clock,
    ManualClock,
    StaticBalances,
)
from daocore.core.context import CallContext


class TestStaticBalances:
    """Tests for the static balance table."""

    def test_missing_identity_holds_zero(self):
        balances = StaticBalances({"ST1TEST": 1000})

        assert balances.get_balance("ST1TEST") == 1000
        assert balances.get_balance("STUNKNOWN") == 0

    def test_negative_balance_rejected(self):
        with pytest.raises(ValueError):
            StaticBalances({"ST1TEST": -1})

    def test_replace(self):
        balances = StaticBalances({"ST1TEST": 1000})

        balances.replace({"ST1TEST": 500, "ST2": 7})

        assert balances.get_balance("ST1TEST") == 500
        assert len(balances) == 2

    def test_failed_replace_keeps_table(self):
        balances = StaticBalances({"ST1TEST": 1000})

        with pytest.raises(ValueError):
            balances.replace({"ST1TEST": -5})

        assert balances.get_balance("ST1TEST") == 1000

    def test_from_file(self, tmp_path):
        path = tmp_path / "balances.json"
        path.write_text(json.dumps({"ST1TEST": 1000, "ST2": "25"}))

        balances = StaticBalances.from_file(path)

        assert balances.get_balance("ST1TEST") == 1000
        assert balances.get_balance("ST2") == 25

    def test_from_file_requires_object(self, tmp_path):
        path = tmp_path / "balances.json"
        path.write_text(json.dumps([["ST1TEST", 1000]]))

        with pytest.raises(ValueError):
            StaticBalances.from_file(path)

    def test_satisfies_protocol(self):
        assert isinstance(StaticBalances(), BalanceLookup)


class TestManualClock:
    """Tests for the manually advanced clock."""

    def test_advance(self):
        clock = ManualClock(10)

        assert clock.advance() == 11
        assert clock.advance(5) == 16
        assert clock.current_height() == 16

    def test_set_height(self):
        clock = ManualClock()

        assert clock.set_height(145) == 145
        assert clock.set_height(145) == 145

    def test_never_moves_backwards(self):
        clock = ManualClock(100)

        with pytest.raises(ValueError):
            clock.set_height(99)
        with pytest.raises(ValueError):
            clock.advance(-1)
        assert clock.current_height() == 100

    def test_negative_start_rejected(self):
        with pytest.raises(ValueError):
            ManualClock(-1)

    def test_satisfies_protocol(self):
        assert isinstance(ManualClock(), Clock)


class TestBlockTimeClock:
    """Tests for the wall-time derived clock."""

    def test_counts_whole_blocks(self):
        genesis = datetime.now(UTC) - timedelta(seconds=1300)
        clock = BlockTimeClock(genesis, block_seconds=600)

        assert clock.current_height() == 2

    def test_future_genesis_is_height_zero(self):
        genesis = datetime.now(UTC) + timedelta(hours=1)

        assert BlockTimeClock(genesis).current_height() == 0

    def test_naive_genesis_treated_as_utc(self):
        genesis = datetime.now(UTC).replace(tzinfo=None) - timedelta(seconds=650)
        clock = BlockTimeClock(genesis, block_seconds=600)

        assert clock.genesis.tzinfo is UTC
        assert clock.current_height() == 1

    def test_block_seconds_must_be_positive(self):
        with pytest.raises(ValueError):
            BlockTimeClock(datetime.now(UTC), block_seconds=0)


class TestCallContext:
    """Tests for the per-call context."""

    def test_fields(self):
        ctx = CallContext(caller="ST1TEST", height=12)

        assert ctx.caller == "ST1TEST"
        assert ctx.height == 12
        assert ctx.correlation_id

    def test_correlation_ids_are_unique(self):
        a = CallContext(caller="ST1TEST", height=0)
        b = CallContext(caller="ST1TEST", height=0)

        assert a.correlation_id != b.correlation_id

    def test_requires_caller(self):
        with pytest.raises(ValueError):
            CallContext(caller="", height=0)

    def test_rejects_negative_height(self):
        with pytest.raises(ValueError):
            CallContext(caller="ST1TEST", height=-1)

    def test_at_reads_clock_once(self):
        clock = ManualClock(42)

        ctx = CallContext.at("ST1TEST", clock)
        clock.advance()

        assert ctx.height == 42

    def test_is_frozen(self):
        ctx = CallContext(caller="ST1TEST", height=0)

        with pytest.raises(AttributeError):
            ctx.height = 5  # type: ignore[misc]
