"""
Session Registry - The single source of truth for the active session.

LIFECYCLE:
1. Player starts a game -> begin() generates the session id locally,
   before anything is submitted, and snapshots the starting balance
2. Authority confirms the session -> bind() attaches the initial snapshot
3. Every state change -> advance() replaces the snapshot (the previous one
   is kept for one step, for roll-to-roll projections)
4. Completion or abandonment -> end() destroys the session

RULES:
- At most one active session per player
- Only the reconciler mutates the registry
- Sessions are ephemeral: nothing is persisted
"""

from __future__ import annotations
from dataclasses import dataclass, field
import time

from ..engine_core.errors import SessionError
from ..engine_core.state import GameType, Snapshot, Stage, Wager

ID_MASK = (1 << 64) - 1


@dataclass
class Session:
    """
    The active game session.

    Contains:
    - Identity (client-generated id, game type)
    - Balance captured at begin() for balance-delta PnL
    - Latest and previous decoded snapshots
    - Pending-move counter and locally staged wagers
    """
    session_id: int
    game_type: GameType
    created_at: float
    stake: int = 0
    starting_balance: int | None = None

    # Authority view
    confirmed: bool = False
    snapshot: Snapshot | None = None
    previous_snapshot: Snapshot | None = None
    move_number: int = 0
    remote_move: int | None = None

    # Local view
    pending_move_count: int = 0
    staged_wagers: list[Wager] = field(default_factory=list)
    last_tx: str | None = None
    interim_payout: int = 0

    @property
    def stage(self) -> Stage:
        """Derived from the snapshot; betting until one arrives."""
        if self.snapshot is None:
            return Stage.BETTING
        return self.snapshot.stage

    @property
    def is_pending(self) -> bool:
        return self.pending_move_count > 0


class SessionRegistry:
    """
    Holds at most one active session.

    Session ids are 64-bit, seeded from the wall clock in milliseconds and
    incremented for every new session.
    """

    def __init__(self, id_seed: int | None = None):
        seed = id_seed if id_seed is not None else time.time_ns() // 1_000_000
        self._next_id = seed & ID_MASK
        self._session: Session | None = None

    @property
    def current(self) -> Session | None:
        return self._session

    @property
    def is_active(self) -> bool:
        return self._session is not None

    def matches(self, session_id: int | None) -> bool:
        return self._session is not None and self._session.session_id == session_id

    def _generate_id(self) -> int:
        session_id = self._next_id
        self._next_id = (self._next_id + 1) & ID_MASK
        return session_id

    def begin(
        self,
        game_type: GameType,
        starting_balance: int | None = None,
        stake: int = 0,
    ) -> int:
        """
        Create a provisional session and return its id.

        Raises:
            SessionError: If a session is already active
        """
        if self._session is not None:
            raise SessionError(
                f"Session {self._session.session_id} is still active"
            )
        session_id = self._generate_id()
        self._session = Session(
            session_id=session_id,
            game_type=GameType(game_type),
            created_at=time.time(),
            stake=stake,
            starting_balance=starting_balance,
        )
        return session_id

    def adopt(self, session: Session):
        """Install an already-confirmed session (used when restoring)."""
        if self._session is not None:
            raise SessionError(
                f"Session {self._session.session_id} is still active"
            )
        self._session = session

    def bind(self, session_id: int, snapshot: Snapshot | None):
        """Confirm the provisional session with its initial snapshot."""
        session = self._require(session_id)
        session.confirmed = True
        session.previous_snapshot = None
        session.snapshot = snapshot

    def advance(self, snapshot: Snapshot):
        """Replace the snapshot after a state change."""
        session = self._require()
        session.previous_snapshot = session.snapshot
        session.snapshot = snapshot
        session.move_number += 1

    def end(self) -> Session | None:
        """Destroy the active session and return it."""
        session, self._session = self._session, None
        return session

    def _require(self, session_id: int | None = None) -> Session:
        if self._session is None:
            raise SessionError("No active session")
        if session_id is not None and self._session.session_id != session_id:
            raise SessionError(
                f"Session {session_id} does not match active session "
                f"{self._session.session_id}"
            )
        return self._session
