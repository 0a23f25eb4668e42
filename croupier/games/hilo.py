"""
HiLo codec.

State:   [card][accumulator:i64]
Commands: higher [0]  lower [1]  cash out [2]

The accumulator is the running multiplier in basis points, signed on the
wire.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from ..engine_core.action import Command, CommandKind
from ..engine_core.codec import GameCodec
from ..engine_core.state import Card, GameType, Snapshot, Stage
from ..engine_core.wire import pack_u8

STATE_LENGTH = 9
BASIS_POINTS = 10_000


@dataclass
class HiLoSnapshot(Snapshot):
    game_type: GameType = GameType.HILO
    stage: Stage = Stage.PLAYING
    card: Card = Card.hidden_card()
    accumulator: int = 0

    @property
    def multiplier(self) -> float:
        return self.accumulator / BASIS_POINTS

    def card_groups(self) -> dict[str, list[Card]]:
        return {"current": [self.card]}

    def display_fields(self) -> dict[str, Any]:
        return {"multiplier": round(self.multiplier, 4)}


class HiLoCodec(GameCodec):
    game_type = GameType.HILO

    _moves = {
        CommandKind.HIGHER: 0,
        CommandKind.LOWER: 1,
        CommandKind.CASHOUT: 2,
    }

    def decode(self, data: bytes) -> HiLoSnapshot:
        if len(data) < STATE_LENGTH:
            raise self.error(f"need {STATE_LENGTH} bytes, got {len(data)}")
        reader = self.reader(data)
        card = reader.card("current card")
        accumulator = reader.i64("accumulator")
        return HiLoSnapshot(card=card, accumulator=accumulator)

    def encode(self, command: Command) -> bytes:
        if command.kind in self._moves:
            return pack_u8(self._moves[command.kind])
        raise self.unsupported(command)

    def supported_commands(self) -> list[CommandKind]:
        return list(self._moves)
