"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between a table UI (or the transport
collaborator delivering push signals) and the sync engine. Binary blobs
travel as hex strings.

Error Codes:
- NO_ACTIVE_SESSION: The request needs a running game
- REQUEST_REJECTED: The engine refused the request in its current state
- UNKNOWN_GAME: Game type not recognized or no codec registered
- UNKNOWN_COMMAND: Command kind not recognized
- ENCODE_FAILED: Command not encodable for the game
- DECODE_FAILED: State blob or event frame could not be decoded
- INVALID_HEX: A hex field was malformed
"""

from enum import Enum
from typing import Optional, Any, Union
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class SyncStateName(str, Enum):
    """Reconciliation state values."""
    IDLE = "idle"
    AWAITING_START = "awaiting_start"
    IN_PLAY = "in_play"
    AWAITING_COMPLETION = "awaiting_completion"


class StageName(str, Enum):
    """Coarse stage of a game round."""
    BETTING = "betting"
    PLAYING = "playing"
    RESULT = "result"


class ErrorCode(str, Enum):
    """Structured error codes."""
    NO_ACTIVE_SESSION = "NO_ACTIVE_SESSION"
    REQUEST_REJECTED = "REQUEST_REJECTED"
    UNKNOWN_GAME = "UNKNOWN_GAME"
    UNKNOWN_COMMAND = "UNKNOWN_COMMAND"
    ENCODE_FAILED = "ENCODE_FAILED"
    DECODE_FAILED = "DECODE_FAILED"
    INVALID_HEX = "INVALID_HEX"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class WagerInfo(BaseModel):
    """A wager as shown on the table."""
    kind: int = Field(..., ge=0, le=255, description="Game-specific wager kind")
    amount: int = Field(..., ge=0)
    target: int = Field(0, ge=0, le=255, description="Pocket, point or number the wager targets")
    secondary_amount: int = Field(0, ge=0, description="Odds or similar amount riding on the wager")
    origin: str = Field("confirmed", description="staged or confirmed")

    model_config = {"from_attributes": True}


class SnapshotInfo(BaseModel):
    """A decoded state blob."""
    game_type: int
    game_name: str
    stage: StageName
    version: Optional[int] = None
    wagers: list[WagerInfo] = Field(default_factory=list)
    dice: list[int] = Field(default_factory=list)
    cards: dict[str, list[str]] = Field(default_factory=dict, description="Card groups, hidden cards as ??")
    fields: dict[str, Any] = Field(default_factory=dict)
    total_wagered: int = 0


class PlayerStatsInfo(BaseModel):
    """Player figures that outlive sessions."""
    balance: Optional[int] = None
    shields: int = 0
    doubles: int = 0
    shield_active: bool = False
    double_active: bool = False

    model_config = {"from_attributes": True}


class SessionView(BaseModel):
    """The UI projection of the engine."""
    state: SyncStateName
    message: Optional[str] = None
    session_id: Optional[int] = None
    game_type: Optional[int] = None
    game_name: Optional[str] = None
    stage: Optional[StageName] = None
    confirmed: bool = False
    pending_move_count: int = 0
    last_tx: Optional[str] = None
    snapshot: Optional[SnapshotInfo] = None
    wagers: list[WagerInfo] = Field(default_factory=list, description="Confirmed then staged")
    staged: list[WagerInfo] = Field(default_factory=list)
    table: dict[str, Any] = Field(default_factory=dict, description="Derived per-game history")
    stats: PlayerStatsInfo
    api_version: str = "v1"


class LedgerEntryInfo(BaseModel):
    """One completed session."""
    session_id: int
    game_type: int
    game_name: str
    net: int
    net_display: str
    headline: str
    details: list[str] = Field(default_factory=list)
    final_balance: Optional[int] = None
    recorded_at: str


class GameInfo(BaseModel):
    """A supported game."""
    game_type: int
    name: str
    commands: list[str] = Field(default_factory=list)


# =============================================================================
# Request Models
# =============================================================================

class WagerRequest(BaseModel):
    """A wager to place or stage."""
    kind: int = Field(..., ge=0, le=255)
    amount: int = Field(..., gt=0)
    target: int = Field(0, ge=0, le=255)
    secondary_amount: int = Field(0, ge=0)


class StartGameRequest(BaseModel):
    """Request to start a game, optionally with an auto-play plan."""
    game_type: Union[int, str] = Field(..., description="Wire id or name, e.g. 6 or roulette")
    stake: int = Field(0, ge=0)
    wagers: Optional[list[WagerRequest]] = Field(
        None,
        description="Wagers to place once confirmed. Omit to use wagers staged while idle.",
    )
    advance: bool = Field(False, description="Advance the round after placing the wagers")
    replace: bool = Field(False, description="Abandon a running game first")


class StageWagerRequest(BaseModel):
    """Request to stage a wager locally."""
    game_type: Union[int, str]
    wager: WagerRequest


class CommandRequest(BaseModel):
    """One player command."""
    kind: str = Field(..., description="place_wager, advance, hit, stand, hold, ...")
    wager: Optional[WagerRequest] = None
    amount: int = Field(0, ge=0, description="Side-wager or odds amount")
    value: int = Field(0, ge=0, description="Hold mask, bet multiplier, rule id or side slot")


class CommandBatchRequest(BaseModel):
    """A batch of commands submitted together."""
    commands: list[CommandRequest] = Field(..., min_length=1)


class SubmitStagedRequest(BaseModel):
    """Place staged wagers."""
    advance: bool = False


class StartedSignal(BaseModel):
    """Push signal: the authority created a session."""
    session_id: int = Field(..., ge=0)
    game_type: Union[int, str]
    state: str = Field("", description="Initial state blob (hex)")


class MovedSignal(BaseModel):
    """Push signal: a session's state changed."""
    session_id: int = Field(..., ge=0)
    state: str = Field(..., description="New state blob (hex)")
    payout: int = Field(0, description="Mid-session credit not included in the final payout")
    move_number: Optional[int] = Field(None, ge=0, description="Authority move counter; repeats are ignored")


class CompletedSignal(BaseModel):
    """Push signal: a session ended."""
    session_id: int = Field(..., ge=0)
    final_balance: int = Field(..., ge=0)
    payout: int = 0
    shielded: bool = False
    doubled: bool = False


class ErrorSignal(BaseModel):
    """Push signal: the authority reported an error."""
    session_id: Optional[int] = None
    message: str


class FrameRequest(BaseModel):
    """A binary event frame (hex)."""
    frame: str


class DecodeRequest(BaseModel):
    """Decode an arbitrary state blob."""
    game_type: Union[int, str]
    state: str = Field(..., description="State blob (hex)")


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standardized error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class SyncResponse(BaseModel):
    """Outcome of a player request."""
    accepted: bool
    state: SyncStateName
    message: Optional[str] = None
    tx_handle: Optional[str] = None
    session_id: Optional[int] = None
    view: SessionView
    api_version: str = "v1"


class SignalResponse(BaseModel):
    """Outcome of a push signal."""
    handled: bool
    kind: str
    entry: Optional[LedgerEntryInfo] = None
    view: SessionView
    api_version: str = "v1"


class BalanceResponse(BaseModel):
    """Result of a balance refresh."""
    balance: Optional[int] = None
    refreshed: bool
    message: Optional[str] = None
    api_version: str = "v1"


class LedgerResponse(BaseModel):
    """Ledger history, newest first."""
    entries: list[LedgerEntryInfo] = Field(default_factory=list)
    count: int = 0
    total: int = 0
    pnl_by_game: dict[str, int] = Field(default_factory=dict)
    pnl_history: list[int] = Field(default_factory=list, description="Running total after each session")
    api_version: str = "v1"


class DecodeResponse(BaseModel):
    """A decoded state blob."""
    snapshot: SnapshotInfo
    api_version: str = "v1"


class GamesResponse(BaseModel):
    """Supported games."""
    games: list[GameInfo] = Field(default_factory=list)
    count: int = 0
    api_version: str = "v1"


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    service: str = "croupier"
    version: str = "1.0.0"
    env: str = "development"
