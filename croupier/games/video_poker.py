"""
Video Poker (Jacks or Better) codec.

State:   [stage][c1][c2][c3][c4][c5]     stage 0 = deal, 1 = drawn
Commands: draw with hold mask [mask]     bit i keeps card i
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from ..engine_core.action import Command, CommandKind
from ..engine_core.codec import GameCodec
from ..engine_core.errors import EncodeError
from ..engine_core.state import Card, GameType, Snapshot, Stage
from ..engine_core.wire import pack_u8
from .hands import PokerHand, best_hand

STATE_LENGTH = 6
HAND_SIZE = 5


class PokerStage(IntEnum):
    DEAL = 0
    DRAW = 1


@dataclass
class VideoPokerSnapshot(Snapshot):
    game_type: GameType = GameType.VIDEO_POKER
    stage: Stage = Stage.PLAYING
    cards: list[Card] = field(default_factory=list)
    poker_stage: PokerStage = PokerStage.DEAL

    def card_groups(self) -> dict[str, list[Card]]:
        return {"hand": self.cards}

    def display_fields(self) -> dict[str, Any]:
        score = best_hand(self.cards)
        if score is None:
            return {}
        return {"hand": PokerHand(score[0]).label}


class VideoPokerCodec(GameCodec):
    game_type = GameType.VIDEO_POKER

    def decode(self, data: bytes) -> VideoPokerSnapshot:
        if len(data) < STATE_LENGTH:
            raise self.error(f"need {STATE_LENGTH} bytes, got {len(data)}")
        reader = self.reader(data)
        raw_stage = reader.u8("stage")
        if raw_stage not in PokerStage._value2member_map_:
            raise self.error(f"unknown stage {raw_stage}")
        cards = reader.cards(HAND_SIZE, "hand")
        stage = Stage.RESULT if raw_stage == PokerStage.DRAW else Stage.PLAYING
        return VideoPokerSnapshot(stage=stage, cards=cards, poker_stage=PokerStage(raw_stage))

    def encode(self, command: Command) -> bytes:
        if command.kind in (CommandKind.HOLD, CommandKind.ADVANCE):
            if not 0 <= command.value < (1 << HAND_SIZE):
                raise EncodeError(f"Invalid hold mask: {command.value}")
            return pack_u8(command.value)
        raise self.unsupported(command)

    def supported_commands(self) -> list[CommandKind]:
        return [CommandKind.HOLD, CommandKind.ADVANCE]
