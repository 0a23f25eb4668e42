"""
Three Card Poker codec.

State (prefixed with the game id):
    v1 [8][1][p1 p2 p3][d1 d2 d3][stage]
    v2 v1 + [pair_plus:u64]
    v3 v2 + [progressive:u64]

stage: 0 betting, 1 awaiting play/fold, 2 complete.

Commands:
    play [0]  fold [1]  deal [3]  reveal [4]
    side wager [2][slot][amount:u64]   slot 0 pair plus, 1 progressive
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from ..engine_core.action import Command, CommandKind
from ..engine_core.codec import GameCodec
from ..engine_core.state import Card, GameType, Snapshot, Stage, Wager
from ..engine_core.wire import pack_u64, pack_u8
from .hands import ThreeCardHand, evaluate_three, visible

GAME_PREFIX = int(GameType.THREE_CARD)


class ThreeCardStage(IntEnum):
    BETTING = 0
    DECISION = 1
    COMPLETE = 2


class ThreeCardSide(IntEnum):
    PAIR_PLUS = 0
    PROGRESSIVE = 1


_STAGES = {
    ThreeCardStage.BETTING: Stage.BETTING,
    ThreeCardStage.DECISION: Stage.PLAYING,
    ThreeCardStage.COMPLETE: Stage.RESULT,
}


@dataclass
class ThreeCardSnapshot(Snapshot):
    game_type: GameType = GameType.THREE_CARD
    player_cards: list[Card] = field(default_factory=list)
    dealer_cards: list[Card] = field(default_factory=list)
    table_stage: ThreeCardStage = ThreeCardStage.BETTING
    pair_plus: int = 0
    progressive: int = 0

    def card_groups(self) -> dict[str, list[Card]]:
        return {"player": self.player_cards, "dealer": self.dealer_cards}

    def display_fields(self) -> dict[str, Any]:
        fields = {}
        for name, cards in self.card_groups().items():
            if len(visible(cards)) == 3:
                fields[f"{name}_hand"] = ThreeCardHand(evaluate_three(cards)[0]).label
        return fields


class ThreeCardCodec(GameCodec):
    game_type = GameType.THREE_CARD
    min_lengths = {1: 9, 2: 17, 3: 25}

    _moves = {
        CommandKind.PLAY: 0,
        CommandKind.FOLD: 1,
        CommandKind.ADVANCE: 3,
        CommandKind.REVEAL: 4,
    }

    def decode(self, data: bytes) -> ThreeCardSnapshot:
        if not data or data[0] != GAME_PREFIX:
            prefix = data[0] if data else None
            raise self.error(f"bad game prefix {prefix}")
        version = self.detect_version(data, offset=1)
        reader = self.reader(data, version)
        reader.take(2, "header")
        player = reader.cards(3, "player cards")
        dealer = reader.cards(3, "dealer cards")
        raw_stage = reader.u8("stage")
        if raw_stage not in ThreeCardStage._value2member_map_:
            raise reader.error(f"unknown stage {raw_stage}")
        pair_plus = reader.u64("pair plus") if version >= 2 else 0
        progressive = reader.u64("progressive") if version >= 3 else 0

        wagers = []
        if pair_plus:
            wagers.append(Wager(kind=ThreeCardSide.PAIR_PLUS, amount=pair_plus))
        if progressive:
            wagers.append(Wager(kind=ThreeCardSide.PROGRESSIVE, amount=progressive))

        table_stage = ThreeCardStage(raw_stage)
        return ThreeCardSnapshot(
            stage=_STAGES[table_stage],
            version=version,
            wagers=wagers,
            player_cards=player,
            dealer_cards=dealer,
            table_stage=table_stage,
            pair_plus=pair_plus,
            progressive=progressive,
        )

    def encode(self, command: Command) -> bytes:
        if command.kind in self._moves:
            return pack_u8(self._moves[command.kind])
        if command.kind == CommandKind.SET_SIDE_WAGER:
            if command.value not in ThreeCardSide._value2member_map_:
                raise self.unsupported(command)
            return pack_u8(2) + pack_u8(command.value) + pack_u64(command.amount)
        raise self.unsupported(command)

    def supported_commands(self) -> list[CommandKind]:
        return [*self._moves, CommandKind.SET_SIDE_WAGER]
