"""
Transport - The narrow interface to the remote authority.

Outbound submissions return an opaque transaction handle. Direct queries
are used by the watchdog, session restore and balance refresh. Signing,
key handling and broadcasting live behind this interface.

Any exception raised by a transport is treated as a transport failure.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
import itertools

from ..engine_core.errors import TransportError
from ..engine_core.state import GameType


class Modifier(Enum):
    """Player modifiers toggled ahead of a session."""
    SHIELD = "shield"
    DOUBLE = "double"


@dataclass
class RemoteSession:
    """A session as reported by a direct query."""
    session_id: int
    game_type: GameType
    state: bytes
    is_complete: bool = False
    stake: int = 0
    move_count: int = 0


class Transport(ABC):
    """Abstract remote authority."""

    @abstractmethod
    async def submit_start(self, game_type: GameType, stake: int, session_id: int) -> str:
        """Submit a session start. Returns a transaction handle."""

    @abstractmethod
    async def submit_command(self, session_id: int, payload: bytes) -> str:
        """Submit one encoded command. Returns a transaction handle."""

    @abstractmethod
    async def fetch_session(self, session_id: int) -> RemoteSession | None:
        """Fetch a session directly, None if the authority has no record."""

    @abstractmethod
    async def fetch_balance(self, account_id: str) -> int:
        """Fetch the account's current balance."""

    async def submit_modifier(self, modifier: Modifier, enabled: bool) -> str:
        raise TransportError(f"{type(self).__name__} does not support modifiers")


@dataclass
class Submission:
    """One recorded outbound submission."""
    kind: str  # "start", "command" or "modifier"
    tx_handle: str
    session_id: int | None = None
    game_type: GameType | None = None
    stake: int = 0
    payload: bytes = b""
    modifier: Modifier | None = None
    enabled: bool = False


@dataclass
class InMemoryTransport(Transport):
    """
    Transport that records submissions and answers queries from memory.

    Push signals are not generated; callers feed them to the reconciler.
    fail_next makes the next submission raise TransportError.
    """
    balance: int = 0
    sessions: dict[int, RemoteSession] = field(default_factory=dict)
    submissions: list[Submission] = field(default_factory=list)
    fail_next: str | None = None
    fail_queries: bool = False
    _counter: itertools.count = field(default_factory=lambda: itertools.count(1), init=False, repr=False)

    def _next_handle(self) -> str:
        return f"tx-{next(self._counter):06d}"

    def _check_failure(self):
        if self.fail_next is not None:
            message, self.fail_next = self.fail_next, None
            raise TransportError(message)

    @property
    def commands(self) -> list[Submission]:
        return [s for s in self.submissions if s.kind == "command"]

    @property
    def starts(self) -> list[Submission]:
        return [s for s in self.submissions if s.kind == "start"]

    def put_session(self, session: RemoteSession):
        self.sessions[session.session_id] = session

    async def submit_start(self, game_type: GameType, stake: int, session_id: int) -> str:
        self._check_failure()
        handle = self._next_handle()
        self.submissions.append(Submission(
            kind="start",
            tx_handle=handle,
            session_id=session_id,
            game_type=GameType(game_type),
            stake=stake,
        ))
        return handle

    async def submit_command(self, session_id: int, payload: bytes) -> str:
        self._check_failure()
        handle = self._next_handle()
        self.submissions.append(Submission(
            kind="command",
            tx_handle=handle,
            session_id=session_id,
            payload=bytes(payload),
        ))
        return handle

    async def submit_modifier(self, modifier: Modifier, enabled: bool) -> str:
        self._check_failure()
        handle = self._next_handle()
        self.submissions.append(Submission(
            kind="modifier",
            tx_handle=handle,
            modifier=modifier,
            enabled=enabled,
        ))
        return handle

    async def fetch_session(self, session_id: int) -> RemoteSession | None:
        if self.fail_queries:
            raise TransportError("query failed")
        return self.sessions.get(session_id)

    async def fetch_balance(self, account_id: str) -> int:
        if self.fail_queries:
            raise TransportError("query failed")
        return self.balance
