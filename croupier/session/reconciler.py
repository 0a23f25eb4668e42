"""
Reconciler - The session lifecycle and event-reconciliation state machine.

States:
    IDLE -> AWAITING_START -> IN_PLAY <-> AWAITING_COMPLETION -> IDLE

The reconciler is the only writer of the session registry. It reacts to:
1. Player requests (start, submit commands, stage wagers, modifiers)
2. Push signals from the authority (started, moved, completed, error)
3. Watchdog expiry, which replaces a lost push signal with one direct query

Failure handling:
- Decode errors keep the last good snapshot and surface a message
- Transport errors roll back the tentative local change
- A silent authority escalates from a direct query to abandonment
- Authority errors abandon the matching session

Nothing here raises into the caller: every request returns a SyncResult
carrying a display message.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable
import logging

from ..engine_core.action import Command, CommandKind, CommandResult
from ..engine_core.codec import CodecRegistry
from ..engine_core.errors import DecodeError, EncodeError, SessionError
from ..engine_core.events import (
    CompletionFlags,
    SessionCompleted,
    SessionMoved,
    SessionStarted,
)
from ..engine_core.state import GameType, Snapshot, Stage, Wager, merge_wagers
from ..ledger.pnl import LedgerEntry, PnLLedger, compute_net_pnl
from .autoplay import AutoPlayPlan, AutoPlayPlanner
from .manager import Session, SessionRegistry
from .projection import TableHistory, project
from .transport import Modifier, Transport
from .watchdog import DEFAULT_TIMEOUT, Watchdog

logger = logging.getLogger(__name__)

STARTING_SHIELDS = 3
STARTING_DOUBLES = 3


class SyncState(Enum):
    """Reconciliation state."""
    IDLE = "idle"
    AWAITING_START = "awaiting_start"  # start submitted, no confirmation yet
    IN_PLAY = "in_play"  # confirmed, accepting commands
    AWAITING_COMPLETION = "awaiting_completion"  # commands in flight


AWAITING_STATES = (SyncState.AWAITING_START, SyncState.AWAITING_COMPLETION)


@dataclass
class SyncResult:
    """
    Result of a player request.

    Contains whether it was accepted, the state afterwards and a message to
    show the player.
    """
    accepted: bool
    state: SyncState
    message: str | None = None
    tx_handle: str | None = None
    session_id: int | None = None

    @classmethod
    def rejected(cls, state: SyncState, message: str) -> SyncResult:
        return cls(accepted=False, state=state, message=message)


@dataclass
class PlayerStats:
    """Player-level figures that outlive sessions."""
    balance: int | None = None
    shields: int = STARTING_SHIELDS
    doubles: int = STARTING_DOUBLES
    shield_active: bool = False
    double_active: bool = False

    def is_active(self, modifier: Modifier) -> bool:
        return self.shield_active if modifier == Modifier.SHIELD else self.double_active

    def remaining(self, modifier: Modifier) -> int:
        return self.shields if modifier == Modifier.SHIELD else self.doubles

    def set_active(self, modifier: Modifier, active: bool):
        if modifier == Modifier.SHIELD:
            self.shield_active = active
        else:
            self.double_active = active


@dataclass
class TentativePatch:
    """A local change applied before the authority has accepted it."""
    description: str
    revert: Callable[[], None]

    def rollback(self):
        logger.debug("Rolling back: %s", self.description)
        self.revert()


@dataclass
class SyncView:
    """Read-only projection for the UI."""
    state: SyncState
    message: str | None
    stats: PlayerStats
    session_id: int | None = None
    game_type: GameType | None = None
    stage: Stage | None = None
    confirmed: bool = False
    pending_move_count: int = 0
    last_tx: str | None = None
    snapshot: Snapshot | None = None
    wagers: list[Wager] = field(default_factory=list)
    staged: list[Wager] = field(default_factory=list)
    table: TableHistory | None = None


class Reconciler:
    """
    Drives one player's sessions against the remote authority.

    Usage:
        reconciler = Reconciler(transport, codecs=default_registry())
        await reconciler.start_game(GameType.ROULETTE, 0, wagers=[...], advance=True)
        # push signals
        await reconciler.on_session_started(session_id, GameType.ROULETTE, blob)
        await reconciler.on_session_moved(session_id, blob)
        await reconciler.on_session_completed(session_id, final_balance, payout)
    """

    def __init__(
        self,
        transport: Transport,
        codecs: CodecRegistry,
        registry: SessionRegistry | None = None,
        ledger: PnLLedger | None = None,
        planner: AutoPlayPlanner | None = None,
        account_id: str = "local",
        watchdog_seconds: float = DEFAULT_TIMEOUT,
        stats: PlayerStats | None = None,
    ):
        self.transport = transport
        self.codecs = codecs
        self.registry = registry or SessionRegistry()
        self.ledger = ledger or PnLLedger()
        self.planner = planner or AutoPlayPlanner()
        self.account_id = account_id
        self.watchdog = Watchdog(watchdog_seconds, self.on_watchdog_expired)
        self.stats = stats or PlayerStats()

        self.state = SyncState.IDLE
        self.message: str | None = None
        self.tables: dict[GameType, TableHistory] = {}
        self.listeners: list[Callable[[], None]] = []

        # Wagers staged while no session is running
        self._idle_staged: list[Wager] = []
        self._idle_game: GameType | None = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def session(self) -> Session | None:
        return self.registry.current

    def _notify(self):
        for listener in list(self.listeners):
            listener()

    def _result(self, accepted: bool = True, message: str | None = None, **kwargs) -> SyncResult:
        if message is not None:
            self.message = message
        self._notify()
        return SyncResult(accepted=accepted, state=self.state, message=message, **kwargs)

    def _reject(self, message: str) -> SyncResult:
        logger.info("Rejected: %s", message)
        return self._result(accepted=False, message=message)

    def table_for(self, game_type: GameType) -> TableHistory:
        game_type = GameType(game_type)
        if game_type not in self.tables:
            self.tables[game_type] = TableHistory(game_type=game_type)
        return self.tables[game_type]

    def _decode(self, game_type: GameType, data: bytes) -> Snapshot | None:
        try:
            return self.codecs.decode_state(game_type, data)
        except DecodeError as e:
            logger.warning("Decode failed, keeping last snapshot: %s", e)
            self.message = f"Could not read table state ({e})"
            return None

    def _progress_marker(self) -> tuple:
        session = self.session
        if session is None:
            return (self.state, None)
        return (
            self.state,
            session.session_id,
            session.confirmed,
            session.move_number,
            session.pending_move_count,
        )

    def _ignore(self, signal: str, session_id: int | None):
        current = self.session.session_id if self.session else None
        logger.debug("Ignoring %s for session %s (current: %s)", signal, session_id, current)

    # ------------------------------------------------------------------
    # Player requests
    # ------------------------------------------------------------------

    async def start_game(
        self,
        game_type: GameType | int,
        stake: int = 0,
        wagers: Iterable[Wager] | None = None,
        advance: bool = False,
        replace: bool = False,
    ) -> SyncResult:
        """
        Begin a session and submit the start.

        wagers/advance queue an auto-play plan that runs as soon as the
        session is confirmed. When wagers is None, wagers staged while idle
        for the same game are used. replace abandons a running session
        first; otherwise starting while a session is active is rejected.
        """
        try:
            game_type = GameType(game_type)
        except ValueError:
            return self._reject(f"Unknown game type {game_type}")
        if game_type not in self.codecs:
            return self._reject(f"No codec for {game_type.display_name}")

        if self.registry.is_active:
            if not replace:
                return self._reject("A game is already in progress")
            self.abandon("Replaced by a new game")

        if wagers is None:
            wagers = self._idle_staged if self._idle_game == game_type else []
        wagers = [w.as_confirmed() for w in wagers]
        self._idle_staged = []
        self._idle_game = None

        try:
            session_id = self.registry.begin(game_type, self.stats.balance, stake)
        except SessionError as e:
            return self._reject(str(e))

        session = self.registry.current
        session.staged_wagers = [w.as_staged() for w in wagers]
        self.state = SyncState.AWAITING_START
        self.message = None
        if wagers or advance:
            self.planner.discard()
            self.planner.queue(
                AutoPlayPlan(session_id, game_type, tuple(wagers), advance),
                confirmed=session.confirmed,
            )
        self.watchdog.arm(session_id)
        logger.info("Starting %s session %s (stake %d)", game_type.display_name, session_id, stake)

        patch = TentativePatch(
            description=f"start of session {session_id}",
            revert=lambda: self._drop_session(session_id),
        )
        try:
            tx_handle = await self.transport.submit_start(game_type, stake, session_id)
        except Exception as e:
            logger.warning("Start submission for session %s failed: %s", session_id, e)
            patch.rollback()
            return self._reject(f"Could not start game: {e}")

        if self.registry.matches(session_id):
            self.registry.current.last_tx = tx_handle
        return self._result(tx_handle=tx_handle, session_id=session_id)

    def _drop_session(self, session_id: int):
        if not self.registry.matches(session_id):
            return
        self.watchdog.disarm()
        self.planner.discard(session_id)
        self.registry.end()
        self.state = SyncState.IDLE

    async def submit(self, commands: list[Command]) -> SyncResult:
        """Encode and submit a batch of player commands."""
        session = self.session
        if session is None:
            return self._reject("No active game")
        if self.state == SyncState.AWAITING_START:
            return self._reject("Waiting for the game to start")
        if session.pending_move_count > 0:
            return self._reject("Previous move still pending")
        if not commands:
            return self._reject("Nothing to submit")

        try:
            codec = self.codecs.get(session.game_type)
            payloads = [codec.encode(command) for command in commands]
        except EncodeError as e:
            return self._reject(str(e))

        result = await self._submit_payloads(payloads)
        if not result.success:
            return self._reject(f"Move failed: {result.error}")
        return self._result(tx_handle=result.last_tx, session_id=session.session_id)

    async def _submit_payloads(self, payloads: list[bytes]) -> CommandResult:
        """
        Submit encoded payloads for the active session.

        The pending counter is set to the batch size before the first
        submission; moved signals count it back down.
        """
        session = self.session
        if session is None:
            return CommandResult.failure("No active game")
        if not payloads:
            return CommandResult.ok([])

        session_id = session.session_id
        session.pending_move_count = len(payloads)
        self.state = SyncState.AWAITING_COMPLETION
        self.watchdog.arm(session_id)

        def revert():
            if not self.registry.matches(session_id):
                return
            session.pending_move_count = 0
            self.watchdog.disarm()
            self.state = SyncState.IN_PLAY

        patch = TentativePatch(description=f"{len(payloads)} move(s) on session {session_id}", revert=revert)
        handles: list[str] = []
        for payload in payloads:
            try:
                handles.append(await self.transport.submit_command(session_id, payload))
            except Exception as e:
                logger.warning("Command submission for session %s failed: %s", session_id, e)
                patch.rollback()
                self.message = f"Move failed: {e}"
                return CommandResult.failure(str(e), submitted=len(handles), tx_handles=handles)

        if self.registry.matches(session_id):
            session.last_tx = handles[-1]
        return CommandResult.ok(handles)

    def stage_wager(self, game_type: GameType | int, wager: Wager) -> SyncResult:
        """Stage a wager locally (not submitted until submit_staged)."""
        game_type = GameType(game_type)
        session = self.session
        if session is not None:
            if session.game_type != game_type:
                return self._reject(f"A {session.game_type.display_name} game is running")
            session.staged_wagers.append(wager.as_staged())
            return self._result(session_id=session.session_id)

        if self._idle_game != game_type:
            self._idle_staged = []
            self._idle_game = game_type
        self._idle_staged.append(wager.as_staged())
        return self._result()

    def clear_staged(self) -> SyncResult:
        if self.session is not None:
            self.session.staged_wagers = []
        self._idle_staged = []
        self._idle_game = None
        return self._result(message="Cleared staged wagers")

    async def submit_staged(self, advance: bool = False) -> SyncResult:
        """
        Submit staged wagers (and optionally advance the round).

        While idle this starts a game carrying the staged wagers as its
        auto-play plan.
        """
        session = self.session
        if session is None:
            if self._idle_game is None or not self._idle_staged:
                return self._reject("No staged wagers")
            return await self.start_game(self._idle_game, 0, None, advance)

        commands = [Command.place(w.as_confirmed()) for w in session.staged_wagers]
        if advance:
            commands.append(Command.advance())
        return await self.submit(commands)

    async def toggle_modifier(self, modifier: Modifier | str) -> SyncResult:
        """
        Toggle shield or double.

        The flag flips locally first and flips back if the submission
        fails.
        """
        try:
            modifier = Modifier(modifier)
        except ValueError:
            return self._reject(f"Unknown modifier {modifier}")
        if self.session is not None and self.session.is_pending:
            return self._reject("Previous move still pending")

        was_active = self.stats.is_active(modifier)
        if not was_active and self.stats.remaining(modifier) <= 0:
            return self._reject(f"No {modifier.value}s left")

        self.stats.set_active(modifier, not was_active)
        patch = TentativePatch(
            description=f"{modifier.value} toggle",
            revert=lambda: self.stats.set_active(modifier, was_active),
        )
        try:
            tx_handle = await self.transport.submit_modifier(modifier, not was_active)
        except Exception as e:
            logger.warning("Modifier %s submission failed: %s", modifier.value, e)
            patch.rollback()
            return self._reject(f"Could not toggle {modifier.value}: {e}")

        state = "on" if not was_active else "off"
        return self._result(message=f"{modifier.value.title()} {state}", tx_handle=tx_handle)

    def abandon(self, message: str = "Game abandoned") -> SyncResult:
        """Drop the current session locally and return to IDLE."""
        self.watchdog.disarm()
        session = self.registry.end()
        if session is not None:
            self.planner.discard(session.session_id)
            logger.info("Abandoned session %s: %s", session.session_id, message)
        self.state = SyncState.IDLE
        return self._result(message=message, session_id=session.session_id if session else None)

    async def refresh_balance(self) -> int | None:
        """Reconcile the cached balance with the authority."""
        try:
            balance = await self.transport.fetch_balance(self.account_id)
        except Exception as e:
            logger.warning("Balance refresh failed: %s", e)
            self.message = f"Could not refresh balance: {e}"
            self._notify()
            return None
        self.stats.balance = balance
        self._notify()
        return balance

    async def restore_session(self, session_id: int) -> SyncResult:
        """Rebind to a session that is still live on the authority."""
        if self.registry.is_active:
            return self._reject("A game is already in progress")
        try:
            remote = await self.transport.fetch_session(session_id)
        except Exception as e:
            logger.warning("Restore of session %s failed: %s", session_id, e)
            return self._reject(f"Could not restore session: {e}")

        if remote is None or remote.is_complete:
            return self._reject(f"Session {session_id} is not active")
        if self.registry.is_active:
            return self._reject("A game is already in progress")

        snapshot = self._decode(remote.game_type, remote.state)
        self.registry.adopt(Session(
            session_id=remote.session_id,
            game_type=GameType(remote.game_type),
            created_at=0.0,
            stake=remote.stake,
            confirmed=True,
            snapshot=snapshot,
            move_number=remote.move_count,
            remote_move=remote.move_count,
        ))
        if snapshot is not None:
            project(self.table_for(remote.game_type), None, snapshot)
        self.state = SyncState.IN_PLAY
        logger.info("Restored %s session %s", GameType(remote.game_type).display_name, session_id)
        return self._result(message="Game restored", session_id=session_id)

    # ------------------------------------------------------------------
    # Push signals
    # ------------------------------------------------------------------

    async def on_session_started(
        self,
        session_id: int,
        game_type: GameType | int,
        initial_state: bytes,
    ) -> bool:
        """Handle a started signal. Returns False when it was ignored."""
        session = self.session
        if not self.registry.matches(session_id):
            self._ignore("started", session_id)
            return False
        if session.confirmed:
            self._ignore("duplicate started", session_id)
            return False
        if GameType(game_type) != session.game_type:
            logger.warning(
                "Started signal for session %s reports %s, expected %s",
                session_id,
                GameType(game_type).display_name,
                session.game_type.display_name,
            )
            return False
        await self._confirm(session, initial_state)
        return True

    async def _confirm(self, session: Session, state: bytes):
        """AWAITING_START -> IN_PLAY, then run any queued auto-play plan."""
        self.watchdog.disarm()
        session.pending_move_count = 0
        snapshot = self._decode(session.game_type, state)
        self.registry.bind(session.session_id, snapshot)
        self.state = SyncState.IN_PLAY
        if snapshot is not None:
            project(self.table_for(session.game_type), None, snapshot)
            self._merge_staged(session, snapshot)
        logger.info("Session %s confirmed", session.session_id)

        codec = self.codecs.get(session.game_type)
        result = await self.planner.consume(
            session.session_id,
            session.game_type,
            codec,
            self._submit_payloads,
        )
        if result is None and self._needs_war_confirmation(session, snapshot):
            result = await self._submit_payloads([codec.encode(Command.move(CommandKind.PLAY))])
        if result is not None and not result.success:
            self.message = f"Auto-play failed: {result.error}"
        self._notify()

    @staticmethod
    def _needs_war_confirmation(session: Session, snapshot: Snapshot | None) -> bool:
        return (
            session.game_type == GameType.CASINO_WAR
            and snapshot is not None
            and snapshot.needs_confirmation
        )

    def _advance(self, session: Session, snapshot: Snapshot, move_number: int | None):
        """Install a decoded snapshot; a new move counts as a roll even when the dice repeat."""
        previous = session.snapshot
        if move_number is not None and session.remote_move is not None:
            new_move = move_number > session.remote_move
        else:
            new_move = snapshot != previous
        if move_number is not None:
            session.remote_move = max(move_number, session.remote_move or 0)
        self.registry.advance(snapshot)
        project(self.table_for(session.game_type), previous, snapshot, new_move=new_move)
        self._merge_staged(session, snapshot)

    @staticmethod
    def _merge_staged(session: Session, snapshot: Snapshot):
        _, session.staged_wagers = merge_wagers(session.staged_wagers, snapshot.wagers)

    async def on_session_moved(
        self,
        session_id: int,
        new_state: bytes,
        payout: int = 0,
        move_number: int | None = None,
    ) -> bool:
        """
        Handle a state-changed signal.

        payout carries mid-session credits that the completion payout will
        not include. move_number is the authority's move counter when the
        signal carries one; a move already seen is ignored.
        """
        session = self.session
        if not self.registry.matches(session_id):
            self._ignore("moved", session_id)
            return False
        if move_number is not None and session.remote_move is not None and move_number <= session.remote_move:
            self._ignore(f"repeated move {move_number}", session_id)
            return False
        if not session.confirmed:
            # The started signal was lost; this proves the session is live
            session.remote_move = move_number
            await self._confirm(session, new_state)
            return True

        self._apply_move(session, new_state, payout, move_number)
        self._notify()
        return True

    def _apply_move(self, session: Session, state: bytes, payout: int = 0, move_number: int | None = None):
        session.interim_payout += payout
        snapshot = self._decode(session.game_type, state)
        if snapshot is not None:
            self._advance(session, snapshot, move_number)

        if session.pending_move_count > 0:
            session.pending_move_count -= 1
        if session.pending_move_count == 0 and self.state == SyncState.AWAITING_COMPLETION:
            self.watchdog.disarm()
            self.state = SyncState.IN_PLAY

    async def on_session_completed(
        self,
        session_id: int,
        final_balance: int,
        payout: int,
        flags: CompletionFlags = CompletionFlags(),
    ) -> LedgerEntry | None:
        """Record the result, update the player and return to IDLE."""
        if not self.registry.matches(session_id):
            self._ignore("completed", session_id)
            return None

        self.watchdog.disarm()
        session = self.registry.end()
        self.planner.discard(session_id)

        net = compute_net_pnl(session.starting_balance, final_balance, payout, session.interim_payout)
        entry = self.ledger.record(
            session_id=session_id,
            game_type=session.game_type,
            net=net,
            snapshot=session.snapshot,
            previous=session.previous_snapshot,
            stake=session.stake,
            final_balance=final_balance,
        )
        self.stats.balance = final_balance
        if flags.shielded:
            self.stats.shields = max(0, self.stats.shields - 1)
            self.stats.shield_active = False
        if flags.doubled:
            self.stats.doubles = max(0, self.stats.doubles - 1)
            self.stats.double_active = False

        self.state = SyncState.IDLE
        self.message = entry.headline
        logger.info("Session %s completed: %s", session_id, entry.headline)
        self._notify()
        return entry

    async def on_session_error(self, session_id: int | None, message: str) -> bool:
        """
        Handle an authority error.

        Errors without a session id are shown but change nothing.
        """
        if session_id is None:
            logger.warning("Authority error: %s", message)
            self.message = message
            self._notify()
            return False
        if not self.registry.matches(session_id):
            self._ignore("error", session_id)
            return False
        logger.warning("Authority error for session %s: %s", session_id, message)
        self.abandon(f"Game error: {message}")
        return True

    async def dispatch(self, event: SessionStarted | SessionMoved | SessionCompleted):
        """Route a decoded event frame to its handler."""
        if isinstance(event, SessionStarted):
            return await self.on_session_started(event.session_id, event.game_type, event.state)
        if isinstance(event, SessionMoved):
            return await self.on_session_moved(event.session_id, event.state, move_number=event.move_number)
        return await self.on_session_completed(
            event.session_id,
            event.final_balance,
            event.payout,
            event.flags,
        )

    # ------------------------------------------------------------------
    # Watchdog
    # ------------------------------------------------------------------

    async def on_watchdog_expired(self, session_id: int):
        """Replace a lost push signal with one direct query."""
        if not self.registry.matches(session_id) or self.state not in AWAITING_STATES:
            return
        marker = self._progress_marker()

        try:
            remote = await self.transport.fetch_session(session_id)
            reason = "not found" if remote is None else None
        except Exception as e:
            remote, reason = None, f"query failed: {e}"

        # A push signal may have been handled while the query was in flight
        if self._progress_marker() != marker:
            logger.debug("Watchdog result for session %s superseded", session_id)
            if (
                self.registry.matches(session_id)
                and self.state in AWAITING_STATES
                and not self.watchdog.is_armed
            ):
                self.watchdog.arm(session_id)
            return

        session = self.session
        if remote is not None:
            if remote.is_complete:
                reason = "already completed"
            elif remote.session_id != session_id or GameType(remote.game_type) != session.game_type:
                reason = "does not match"

        if reason is not None:
            logger.warning("Watchdog: session %s %s, abandoning", session_id, reason)
            self.abandon(f"Game lost: session {session_id} {reason}")
            return

        logger.info("Watchdog: session %s is live, resuming", session_id)
        if self.state == SyncState.AWAITING_START:
            await self._confirm(session, remote.state)
            return

        snapshot = self._decode(session.game_type, remote.state)
        if snapshot is not None:
            self._advance(session, snapshot, remote.move_count)
        self.watchdog.disarm()
        session.pending_move_count = 0
        self.state = SyncState.IN_PLAY
        self._notify()

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    def view(self) -> SyncView:
        session = self.session
        if session is None:
            return SyncView(
                state=self.state,
                message=self.message,
                stats=self.stats,
                game_type=self._idle_game,
                staged=list(self._idle_staged),
                table=self.tables.get(self._idle_game) if self._idle_game is not None else None,
            )

        confirmed = session.snapshot.wagers if session.snapshot is not None else []
        merged, _ = merge_wagers(session.staged_wagers, confirmed)
        return SyncView(
            state=self.state,
            message=self.message,
            stats=self.stats,
            session_id=session.session_id,
            game_type=session.game_type,
            stage=session.stage,
            confirmed=session.confirmed,
            pending_move_count=session.pending_move_count,
            last_tx=session.last_tx,
            snapshot=session.snapshot,
            wagers=merged,
            staged=list(session.staged_wagers),
            table=self.tables.get(session.game_type),
        )

    def snapshot_fields(self) -> dict[str, Any]:
        snapshot = self.session.snapshot if self.session else None
        return snapshot.display_fields() if snapshot is not None else {}
