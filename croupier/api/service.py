"""
API Service - Business logic layer between the HTTP surface and the engine.

The service:
1. Parses request models into engine types (games, wagers, commands, hex)
2. Forwards player requests and push signals to the reconciler
3. Converts the reconciler's view and ledger into response models

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.).
Failures are raised as ServiceError carrying an ErrorCode and a status.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional
import logging

from .schemas import (
    # Requests
    CommandBatchRequest,
    CommandRequest,
    CompletedSignal,
    DecodeRequest,
    ErrorSignal,
    FrameRequest,
    MovedSignal,
    StageWagerRequest,
    StartGameRequest,
    StartedSignal,
    SubmitStagedRequest,
    WagerRequest,
    # Responses
    BalanceResponse,
    DecodeResponse,
    GamesResponse,
    LedgerResponse,
    SignalResponse,
    SyncResponse,
    # Shared
    GameInfo,
    LedgerEntryInfo,
    PlayerStatsInfo,
    SessionView,
    SnapshotInfo,
    WagerInfo,
    # Enums
    ErrorCode,
)
from ..config import SyncConfig
from ..engine_core.action import Command, CommandKind
from ..engine_core.errors import CroupierError, DecodeError, EncodeError
from ..engine_core.events import (
    CompletionFlags,
    SessionCompleted,
    decode_event_frame,
)
from ..engine_core.state import GameType, Snapshot, Wager
from ..games import default_registry
from ..ledger.pnl import LedgerEntry, format_net
from ..session import InMemoryTransport, Modifier, PlayerStats, Reconciler, SyncResult, SyncView, Transport

logger = logging.getLogger(__name__)


class ServiceError(CroupierError):
    """A request the service cannot fulfil."""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details


# =============================================================================
# Conversion helpers
# =============================================================================

def wager_info(wager: Wager) -> WagerInfo:
    return WagerInfo(
        kind=wager.kind,
        amount=wager.amount,
        target=wager.target,
        secondary_amount=wager.secondary_amount,
        origin=wager.origin.value,
    )


def snapshot_info(snapshot: Snapshot) -> SnapshotInfo:
    game_type = GameType(snapshot.game_type)
    return SnapshotInfo(
        game_type=int(game_type),
        game_name=game_type.display_name,
        stage=snapshot.stage.value,
        version=snapshot.version,
        wagers=[wager_info(w) for w in snapshot.wagers],
        dice=list(snapshot.dice),
        cards={name: [str(c) for c in cards] for name, cards in snapshot.card_groups().items()},
        fields=snapshot.display_fields(),
        total_wagered=snapshot.total_wagered,
    )


def view_info(view: SyncView) -> SessionView:
    """Convert the reconciler's view into its response model."""
    return SessionView(
        state=view.state.value,
        message=view.message,
        session_id=view.session_id,
        game_type=int(view.game_type) if view.game_type is not None else None,
        game_name=view.game_type.display_name if view.game_type is not None else None,
        stage=view.stage.value if view.stage is not None else None,
        confirmed=view.confirmed,
        pending_move_count=view.pending_move_count,
        last_tx=view.last_tx,
        snapshot=snapshot_info(view.snapshot) if view.snapshot is not None else None,
        wagers=[wager_info(w) for w in view.wagers],
        staged=[wager_info(w) for w in view.staged],
        table=view.table.to_dict() if view.table is not None else {},
        stats=PlayerStatsInfo.model_validate(view.stats),
    )


def entry_info(entry: LedgerEntry) -> LedgerEntryInfo:
    return LedgerEntryInfo(
        session_id=entry.session_id,
        game_type=int(entry.game_type),
        game_name=entry.game_type.display_name,
        net=entry.net,
        net_display=format_net(entry.net),
        headline=entry.headline,
        details=list(entry.details),
        final_balance=entry.final_balance,
        recorded_at=entry.recorded_at.isoformat(),
    )


def parse_hex(text: str, name: str = "state") -> bytes:
    """Parse a hex field, allowing a 0x prefix and whitespace."""
    cleaned = "".join(text.split())
    if cleaned[:2].lower() == "0x":
        cleaned = cleaned[2:]
    try:
        return bytes.fromhex(cleaned)
    except ValueError:
        raise ServiceError(ErrorCode.INVALID_HEX, f"{name} is not valid hex") from None


def to_wager(request: WagerRequest) -> Wager:
    return Wager(
        kind=request.kind,
        amount=request.amount,
        target=request.target,
        secondary_amount=request.secondary_amount,
    )


def to_command(request: CommandRequest) -> Command:
    try:
        kind = CommandKind.parse(request.kind)
    except ValueError as e:
        raise ServiceError(ErrorCode.UNKNOWN_COMMAND, str(e)) from None
    if kind == CommandKind.PLACE_WAGER:
        if request.wager is None:
            raise ServiceError(ErrorCode.VALIDATION_ERROR, "place_wager needs a wager")
        return Command.place(to_wager(request.wager))
    return Command(kind=kind, amount=request.amount, value=request.value)


# =============================================================================
# Service
# =============================================================================

@dataclass
class SyncService:
    """
    Sync engine service for a table UI.

    Usage:
        service = SyncService.create()

        # Start a roulette round with one wager and spin
        response = await service.start_game(StartGameRequest(
            game_type="roulette", wagers=[WagerRequest(kind=0, target=17, amount=10)], advance=True,
        ))

        # Push signals from the transport collaborator
        await service.signal_started(StartedSignal(session_id=..., game_type=6, state="..."))
    """
    reconciler: Reconciler
    config: SyncConfig = field(default_factory=SyncConfig)

    @classmethod
    def create(
        cls,
        config: Optional[SyncConfig] = None,
        transport: Optional[Transport] = None,
    ) -> SyncService:
        """Build a service with the built-in codecs and an in-memory transport by default."""
        config = config or SyncConfig.from_env()
        if transport is None:
            transport = InMemoryTransport(balance=config.initial_balance or 0)
        reconciler = Reconciler(
            transport,
            codecs=default_registry(),
            account_id=config.account_id,
            watchdog_seconds=config.watchdog_seconds,
            stats=PlayerStats(balance=config.initial_balance),
        )
        return cls(reconciler=reconciler, config=config)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def parse_game(self, value) -> GameType:
        try:
            game_type = GameType.parse(value)
        except ValueError as e:
            raise ServiceError(ErrorCode.UNKNOWN_GAME, str(e)) from None
        if game_type not in self.reconciler.codecs:
            raise ServiceError(ErrorCode.UNKNOWN_GAME, f"No codec for {game_type.display_name}")
        return game_type

    def _require_session(self):
        if self.reconciler.session is None:
            raise ServiceError(ErrorCode.NO_ACTIVE_SESSION, "No active game", status_code=409)

    def _respond(self, result: SyncResult) -> SyncResponse:
        if not result.accepted:
            raise ServiceError(
                ErrorCode.REQUEST_REJECTED,
                result.message or "Request rejected",
                status_code=409,
                details={"state": result.state.value},
            )
        return SyncResponse(
            accepted=True,
            state=result.state.value,
            message=result.message,
            tx_handle=result.tx_handle,
            session_id=result.session_id,
            view=self.view(),
        )

    def _signal(self, kind: str, handled: bool, entry: Optional[LedgerEntry] = None) -> SignalResponse:
        return SignalResponse(
            handled=handled,
            kind=kind,
            entry=entry_info(entry) if entry is not None else None,
            view=self.view(),
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def view(self) -> SessionView:
        return view_info(self.reconciler.view())

    def games(self) -> GamesResponse:
        games = []
        for game_type in self.reconciler.codecs.game_types:
            codec = self.reconciler.codecs.get(game_type)
            games.append(GameInfo(
                game_type=int(game_type),
                name=game_type.display_name,
                commands=[kind.value for kind in codec.supported_commands()],
            ))
        return GamesResponse(games=games, count=len(games))

    def ledger(self, limit: Optional[int] = None) -> LedgerResponse:
        ledger = self.reconciler.ledger
        return LedgerResponse(
            entries=[entry_info(e) for e in ledger.history(limit)],
            count=len(ledger),
            total=ledger.total,
            pnl_by_game={game.display_name: net for game, net in ledger.pnl_by_game.items()},
            pnl_history=ledger.pnl_history,
        )

    def decode(self, request: DecodeRequest) -> DecodeResponse:
        game_type = self.parse_game(request.game_type)
        data = parse_hex(request.state)
        try:
            snapshot = self.reconciler.codecs.decode_state(game_type, data)
        except DecodeError as e:
            raise ServiceError(ErrorCode.DECODE_FAILED, str(e), status_code=422) from None
        return DecodeResponse(snapshot=snapshot_info(snapshot))

    # -------------------------------------------------------------------------
    # Player requests
    # -------------------------------------------------------------------------

    async def start_game(self, request: StartGameRequest) -> SyncResponse:
        game_type = self.parse_game(request.game_type)
        wagers = [to_wager(w) for w in request.wagers] if request.wagers is not None else None
        result = await self.reconciler.start_game(
            game_type,
            stake=request.stake,
            wagers=wagers,
            advance=request.advance,
            replace=request.replace,
        )
        return self._respond(result)

    def abandon(self) -> SyncResponse:
        self._require_session()
        return self._respond(self.reconciler.abandon())

    def stage_wager(self, request: StageWagerRequest) -> SyncResponse:
        game_type = self.parse_game(request.game_type)
        return self._respond(self.reconciler.stage_wager(game_type, to_wager(request.wager)))

    def clear_staged(self) -> SyncResponse:
        return self._respond(self.reconciler.clear_staged())

    async def submit_commands(self, request: CommandBatchRequest) -> SyncResponse:
        self._require_session()
        commands = [to_command(c) for c in request.commands]
        codec = self.reconciler.codecs.get(self.reconciler.session.game_type)
        for command in commands:
            try:
                codec.encode(command)
            except EncodeError as e:
                raise ServiceError(ErrorCode.ENCODE_FAILED, str(e)) from None
        return self._respond(await self.reconciler.submit(commands))

    async def submit_staged(self, request: SubmitStagedRequest) -> SyncResponse:
        return self._respond(await self.reconciler.submit_staged(advance=request.advance))

    async def toggle_modifier(self, name: str) -> SyncResponse:
        try:
            modifier = Modifier(name.lower())
        except ValueError:
            raise ServiceError(ErrorCode.VALIDATION_ERROR, f"Unknown modifier {name}") from None
        return self._respond(await self.reconciler.toggle_modifier(modifier))

    async def restore_session(self, session_id: int) -> SyncResponse:
        return self._respond(await self.reconciler.restore_session(session_id))

    async def refresh_balance(self) -> BalanceResponse:
        balance = await self.reconciler.refresh_balance()
        if balance is None:
            return BalanceResponse(
                balance=self.reconciler.stats.balance,
                refreshed=False,
                message=self.reconciler.message,
            )
        return BalanceResponse(balance=balance, refreshed=True)

    # -------------------------------------------------------------------------
    # Push signals
    # -------------------------------------------------------------------------

    async def signal_started(self, signal: StartedSignal) -> SignalResponse:
        game_type = self.parse_game(signal.game_type)
        handled = await self.reconciler.on_session_started(
            signal.session_id,
            game_type,
            parse_hex(signal.state),
        )
        return self._signal("started", handled)

    async def signal_moved(self, signal: MovedSignal) -> SignalResponse:
        handled = await self.reconciler.on_session_moved(
            signal.session_id,
            parse_hex(signal.state),
            signal.payout,
            signal.move_number,
        )
        return self._signal("moved", handled)

    async def signal_completed(self, signal: CompletedSignal) -> SignalResponse:
        entry = await self.reconciler.on_session_completed(
            signal.session_id,
            signal.final_balance,
            signal.payout,
            CompletionFlags(shielded=signal.shielded, doubled=signal.doubled),
        )
        return self._signal("completed", entry is not None, entry)

    async def signal_error(self, signal: ErrorSignal) -> SignalResponse:
        handled = await self.reconciler.on_session_error(signal.session_id, signal.message)
        return self._signal("error", handled)

    async def signal_frame(self, request: FrameRequest) -> SignalResponse:
        """Decode a binary event frame and route it."""
        data = parse_hex(request.frame, "frame")
        try:
            event = decode_event_frame(data)
        except DecodeError as e:
            logger.warning("Dropping undecodable event frame: %s", e)
            raise ServiceError(ErrorCode.DECODE_FAILED, str(e), status_code=422) from None

        outcome = await self.reconciler.dispatch(event)
        kind = type(event).__name__.removeprefix("Session").lower()
        if isinstance(event, SessionCompleted):
            return self._signal(kind, outcome is not None, outcome)
        return self._signal(kind, bool(outcome))
