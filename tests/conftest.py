"""
DAO Core - Test Fixtures

Shared pytest fixtures for all test modules.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================

os.environ["DAO_APP_ENV"] = "testing"
os.environ.setdefault("DAO_ADMIN_PRINCIPAL", "ST1TEST")
os.environ.setdefault("DAO_JWT_SECRET_KEY", "test-only-caller-token-key-0123456789")

from daocore.api.app import create_app  # noqa: E402
from daocore.config import Settings, get_settings  # noqa: E402
from daocore.core.collaborators import ManualClock, StaticBalances  # noqa: E402
from daocore.core.context import CallContext  # noqa: E402
from daocore.core.governance import GovernanceStore  # noqa: E402
from daocore.models.events import GovernanceEvent  # noqa: E402
from daocore.security.tokens import create_access_token  # noqa: E402

ADMIN = "ST1TEST"
HOLDER = "ST2HOLDER"
SMALL_HOLDER = "ST3HOLDER"
NON_HOLDER = "ST4NOBODY"


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Settings are cached per process; tests that patch env need a fresh read."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings for an in-memory app."""
    return Settings(
        app_env="testing",
        admin_principal=ADMIN,
        snapshot_path=None,
        balances_path=None,
    )


# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture
def balances() -> StaticBalances:
    """Balance table matching the default token holders."""
    return StaticBalances({
        ADMIN: 1000,
        HOLDER: 500,
        SMALL_HOLDER: 490,
    })


@pytest.fixture
def clock() -> ManualClock:
    """Clock starting at height 0."""
    return ManualClock(0)


@pytest.fixture
def ctx() -> Callable[..., CallContext]:
    """Factory for call contexts: ``ctx(caller, height)``."""

    def _make(caller: str = ADMIN, height: int = 0) -> CallContext:
        return CallContext(caller=caller, height=height)

    return _make


# =============================================================================
# Governance Store
# =============================================================================


@pytest.fixture
def events() -> list[GovernanceEvent]:
    """Collects events emitted by the store fixture."""
    return []


@pytest.fixture
def store(balances: StaticBalances, events: list[GovernanceEvent]) -> GovernanceStore:
    """Fresh store administered by ADMIN with default configuration."""
    return GovernanceStore(admin=ADMIN, balances=balances, listeners=[events.append])


@pytest.fixture
def proposal_id(store: GovernanceStore, ctx: Callable[..., CallContext]) -> int:
    """A rule-change proposal created by ADMIN at height 0 (window 0..144)."""
    result = store.create_proposal(
        ctx(ADMIN, 0),
        title="Protect Zone A",
        description="Increase no-take area",
        proposal_type="rule-change",
        rule_change="Update fishing limits",
        zone="Zone A",
    )
    assert result.success, result
    return result.value


# =============================================================================
# API
# =============================================================================


@pytest.fixture
def auth_headers(settings: Settings) -> Callable[[str], dict[str, str]]:
    """Factory for Authorization headers: ``auth_headers(caller)``."""

    def _make(caller: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(caller, settings)}"}

    return _make


@pytest.fixture
def client(
    store: GovernanceStore, clock: ManualClock, settings: Settings
) -> Generator[TestClient, None, None]:
    """Test client over the store fixture and a manual clock."""
    app = create_app(store=store, clock=clock, settings=settings)
    with TestClient(app) as test_client:
        yield test_client
