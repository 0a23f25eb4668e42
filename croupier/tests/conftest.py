"""
Pytest fixtures for Croupier tests.
"""

import pytest

from ..engine_core.codec import CodecRegistry
from ..games import default_registry
from ..session import InMemoryTransport, PlayerStats, Reconciler, SessionRegistry

FIRST_SESSION_ID = 1000


@pytest.fixture
def registry() -> CodecRegistry:
    """Codec registry with every built-in game."""
    return default_registry()


@pytest.fixture
def transport() -> InMemoryTransport:
    """In-memory authority holding a balance of 1000."""
    return InMemoryTransport(balance=1000)


@pytest.fixture
def reconciler(transport: InMemoryTransport, registry: CodecRegistry) -> Reconciler:
    """
    Reconciler with predictable session ids.

    The watchdog window is long enough never to fire on its own; tests
    that need it call on_watchdog_expired directly.
    """
    return Reconciler(
        transport,
        codecs=registry,
        registry=SessionRegistry(id_seed=FIRST_SESSION_ID),
        watchdog_seconds=60,
        stats=PlayerStats(balance=1000),
    )
