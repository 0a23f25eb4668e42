"""
Tests for event frames pushed by the authority.
"""

import pytest

from ..engine_core.errors import DecodeError
from ..engine_core.events import (
    TAG_COMPLETED,
    TAG_MOVED,
    TAG_STARTED,
    CompletionFlags,
    SessionCompleted,
    SessionMoved,
    SessionStarted,
    decode_event_frame,
    encode_event_frame,
)
from ..engine_core.state import GameType
from ..engine_core.wire import pack_varint
from .factories import roulette_state, u64


class TestEventFrames:
    """Tests for decoding tagged frames."""

    def test_started_frame_layout(self):
        """started: tag, session, player key, game, bet, varint length, state."""
        state = roulette_state(bets=[(0, 17, 10)])
        frame = (
            bytes([TAG_STARTED]) + u64(1000) + bytes(range(32)) + bytes([6]) + u64(10)
            + pack_varint(len(state)) + state
        )

        event = decode_event_frame(frame)

        assert isinstance(event, SessionStarted)
        assert event.session_id == 1000
        assert event.game_type == GameType.ROULETTE
        assert event.bet == 10
        assert event.state == state
        assert event.player == bytes(range(32))

    def test_moved_frame(self):
        event = SessionMoved(session_id=7, state=b"\x01\x02", move_number=3)

        frame = encode_event_frame(event)

        assert frame[0] == TAG_MOVED
        assert decode_event_frame(frame) == event

    def test_completed_frame_carries_flags(self):
        event = SessionCompleted(
            session_id=9,
            final_balance=1350,
            payout=-25,
            flags=CompletionFlags(shielded=True),
            game_type=GameType.CRAPS,
        )

        decoded = decode_event_frame(encode_event_frame(event))

        assert decoded.payout == -25
        assert decoded.flags.shielded
        assert not decoded.flags.doubled
        assert decoded.game_type == GameType.CRAPS

    def test_long_state_uses_multibyte_length(self):
        """State blobs over 127 bytes need a two-byte varint."""
        state = bytes(200)
        frame = encode_event_frame(SessionMoved(session_id=1, state=state))

        assert frame[13:15] == pack_varint(200)
        assert decode_event_frame(frame).state == state

    def test_unknown_tag(self):
        with pytest.raises(DecodeError, match="unknown event tag 99"):
            decode_event_frame(bytes([99]))

    def test_truncated_frame(self):
        frame = encode_event_frame(SessionStarted(session_id=1, game_type=GameType.HILO, state=bytes(9)))

        with pytest.raises(DecodeError):
            decode_event_frame(frame[:-1])

    def test_unknown_game_type(self):
        frame = bytearray(encode_event_frame(SessionCompleted(session_id=1, final_balance=0, payout=0)))
        frame[41] = 42

        with pytest.raises(DecodeError, match="unknown game type"):
            decode_event_frame(bytes(frame))

    def test_empty_frame(self):
        with pytest.raises(DecodeError):
            decode_event_frame(b"")

    def test_player_key_length_enforced(self):
        with pytest.raises(ValueError):
            encode_event_frame(SessionStarted(session_id=1, game_type=GameType.HILO, state=b"", player=b"short"))

    def test_completed_tag(self):
        frame = encode_event_frame(SessionCompleted(session_id=1, final_balance=5, payout=5))
        assert frame[0] == TAG_COMPLETED
