"""
Event Frames - Binary push signals emitted by the remote authority.

Frame layouts (big-endian, first byte is the tag):
- 21 started:   [session:u64][player:32][game:u8][bet:u64][len:varint][state]
- 22 moved:     [session:u64][move:u32][len:varint][state]
- 23 completed: [session:u64][player:32][game:u8][payout:i64][final:u64][shielded:u8][doubled:u8]

The state blob inside a frame is left encoded; the game codec decodes it.
"""

from __future__ import annotations
from dataclasses import dataclass

from .errors import DecodeError
from .state import GameType
from .wire import ByteReader, pack_i64, pack_u32, pack_u64, pack_u8, pack_varint

TAG_STARTED = 21
TAG_MOVED = 22
TAG_COMPLETED = 23

PLAYER_KEY_LENGTH = 32


@dataclass(frozen=True)
class CompletionFlags:
    """Modifiers the authority reports as consumed when a session ends."""
    shielded: bool = False
    doubled: bool = False


@dataclass(frozen=True)
class SessionStarted:
    session_id: int
    game_type: GameType
    state: bytes
    player: bytes = bytes(PLAYER_KEY_LENGTH)
    bet: int = 0


@dataclass(frozen=True)
class SessionMoved:
    session_id: int
    state: bytes
    move_number: int = 0


@dataclass(frozen=True)
class SessionCompleted:
    session_id: int
    final_balance: int
    payout: int
    flags: CompletionFlags = CompletionFlags()
    player: bytes = bytes(PLAYER_KEY_LENGTH)
    game_type: GameType | None = None


SessionEvent = SessionStarted | SessionMoved | SessionCompleted


def _game_type(reader: ByteReader) -> GameType:
    raw = reader.u8("game type")
    try:
        return GameType(raw)
    except ValueError:
        raise reader.error(f"unknown game type {raw}") from None


def decode_event_frame(data: bytes) -> SessionEvent:
    """Decode one tagged event frame. Raises DecodeError on malformed input."""
    reader = ByteReader(data)
    tag = reader.u8("event tag")

    if tag == TAG_STARTED:
        session_id = reader.u64("session id")
        player = reader.take(PLAYER_KEY_LENGTH, "player key")
        game_type = _game_type(reader)
        bet = reader.u64("bet")
        state = reader.take(reader.varint("state length"), "state")
        return SessionStarted(
            session_id=session_id,
            game_type=game_type,
            state=state,
            player=player,
            bet=bet,
        )

    if tag == TAG_MOVED:
        session_id = reader.u64("session id")
        move_number = reader.u32("move number")
        state = reader.take(reader.varint("state length"), "state")
        return SessionMoved(session_id=session_id, state=state, move_number=move_number)

    if tag == TAG_COMPLETED:
        session_id = reader.u64("session id")
        player = reader.take(PLAYER_KEY_LENGTH, "player key")
        game_type = _game_type(reader)
        payout = reader.i64("payout")
        final_balance = reader.u64("final balance")
        shielded = reader.u8("shielded flag") != 0
        doubled = reader.u8("doubled flag") != 0
        return SessionCompleted(
            session_id=session_id,
            final_balance=final_balance,
            payout=payout,
            flags=CompletionFlags(shielded=shielded, doubled=doubled),
            player=player,
            game_type=game_type,
        )

    raise DecodeError(f"unknown event tag {tag}")


def encode_event_frame(event: SessionEvent) -> bytes:
    """Encode an event into its tagged frame (used by transports and tests)."""
    if isinstance(event, SessionStarted):
        return b"".join([
            pack_u8(TAG_STARTED),
            pack_u64(event.session_id),
            _player(event.player),
            pack_u8(int(event.game_type)),
            pack_u64(event.bet),
            pack_varint(len(event.state)),
            bytes(event.state),
        ])
    if isinstance(event, SessionMoved):
        return b"".join([
            pack_u8(TAG_MOVED),
            pack_u64(event.session_id),
            pack_u32(event.move_number),
            pack_varint(len(event.state)),
            bytes(event.state),
        ])
    game = event.game_type if event.game_type is not None else 0
    return b"".join([
        pack_u8(TAG_COMPLETED),
        pack_u64(event.session_id),
        _player(event.player),
        pack_u8(int(game)),
        pack_i64(event.payout),
        pack_u64(event.final_balance),
        pack_u8(1 if event.flags.shielded else 0),
        pack_u8(1 if event.flags.doubled else 0),
    ])


def _player(player: bytes) -> bytes:
    if len(player) != PLAYER_KEY_LENGTH:
        raise ValueError(f"player key must be {PLAYER_KEY_LENGTH} bytes")
    return bytes(player)
