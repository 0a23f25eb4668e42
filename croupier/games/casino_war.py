"""
Casino War codec.

State:   [player_card][dealer_card][stage]
Commands: play / confirm [0]  go to war [1]  surrender [2]

A session that starts in the initial stage is waiting for the play
confirmation; the reconciler sends it automatically.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from ..engine_core.action import Command, CommandKind
from ..engine_core.codec import GameCodec
from ..engine_core.state import Card, GameType, Snapshot, Stage
from ..engine_core.wire import pack_u8

STATE_LENGTH = 3


class WarStage(IntEnum):
    INITIAL = 0
    WAR = 1


@dataclass
class CasinoWarSnapshot(Snapshot):
    game_type: GameType = GameType.CASINO_WAR
    stage: Stage = Stage.PLAYING
    player_card: Card = Card.hidden_card()
    dealer_card: Card = Card.hidden_card()
    war_stage: WarStage = WarStage.INITIAL

    def card_groups(self) -> dict[str, list[Card]]:
        return {"player": [self.player_card], "dealer": [self.dealer_card]}

    def display_fields(self) -> dict[str, Any]:
        return {"war": self.war_stage == WarStage.WAR}

    @property
    def needs_confirmation(self) -> bool:
        return self.war_stage == WarStage.INITIAL


class CasinoWarCodec(GameCodec):
    game_type = GameType.CASINO_WAR

    _moves = {
        CommandKind.PLAY: 0,
        CommandKind.ADVANCE: 0,
        CommandKind.WAR: 1,
        CommandKind.SURRENDER: 2,
    }

    def decode(self, data: bytes) -> CasinoWarSnapshot:
        if len(data) < STATE_LENGTH:
            raise self.error(f"need {STATE_LENGTH} bytes, got {len(data)}")
        reader = self.reader(data)
        player = reader.card("player card")
        dealer = reader.card("dealer card")
        raw_stage = reader.u8("stage")
        if raw_stage not in WarStage._value2member_map_:
            raise self.error(f"unknown stage {raw_stage}")
        return CasinoWarSnapshot(
            player_card=player,
            dealer_card=dealer,
            war_stage=WarStage(raw_stage),
        )

    def encode(self, command: Command) -> bytes:
        if command.kind in self._moves:
            return pack_u8(self._moves[command.kind])
        raise self.unsupported(command)

    def supported_commands(self) -> list[CommandKind]:
        return list(self._moves)
