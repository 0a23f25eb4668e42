"""
Engine Core - Typed state, commands and the binary codec layer.

The engine core is the pure part of the sync engine:
1. Decodes remote state blobs into typed snapshots
2. Encodes player commands into compact binary payloads
3. Decodes tagged event frames pushed by the authority

Nothing here performs I/O or holds session state.
"""

from .state import (
    Card,
    GameType,
    Snapshot,
    Stage,
    Wager,
    WagerOrigin,
    merge_wagers,
)
from .action import Command, CommandKind, CommandResult
from .codec import CodecRegistry, GameCodec
from .errors import CroupierError, DecodeError, EncodeError, SessionError, TransportError
from .events import (
    CompletionFlags,
    SessionCompleted,
    SessionMoved,
    SessionStarted,
    decode_event_frame,
    encode_event_frame,
)

__all__ = [
    "Card",
    "GameType",
    "Snapshot",
    "Stage",
    "Wager",
    "WagerOrigin",
    "merge_wagers",
    "Command",
    "CommandKind",
    "CommandResult",
    "CodecRegistry",
    "GameCodec",
    "CroupierError",
    "DecodeError",
    "EncodeError",
    "SessionError",
    "TransportError",
    "CompletionFlags",
    "SessionCompleted",
    "SessionMoved",
    "SessionStarted",
    "decode_event_frame",
    "encode_event_frame",
]
