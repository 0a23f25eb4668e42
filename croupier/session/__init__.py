"""
Session Module - Keeps the local view in step with the remote authority.

A session represents one game round on the authority:
- Created locally (id generated before anything is submitted)
- Confirmed by a started signal or a watchdog query
- Advanced by every state-changed signal
- Destroyed on completion or abandonment

Sessions are EPHEMERAL:
- No persistence
- At most one active session
- Only the reconciler mutates the registry

The only history kept across sessions is the PnL ledger and the per-game
table history.
"""

from .manager import Session, SessionRegistry
from .autoplay import AutoPlayPlan, AutoPlayPlanner
from .watchdog import Watchdog
from .transport import InMemoryTransport, Modifier, RemoteSession, Transport
from .projection import TableHistory, project
from .reconciler import PlayerStats, Reconciler, SyncResult, SyncState, SyncView

__all__ = [
    "Session",
    "SessionRegistry",
    "AutoPlayPlan",
    "AutoPlayPlanner",
    "Watchdog",
    "InMemoryTransport",
    "Modifier",
    "RemoteSession",
    "Transport",
    "TableHistory",
    "project",
    "PlayerStats",
    "Reconciler",
    "SyncResult",
    "SyncState",
    "SyncView",
]
