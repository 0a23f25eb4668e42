"""
Ultimate Texas Hold'em codec.

State:
    v1 [1][stage][p1 p2][b1..b5][d1 d2][play_multiplier]
    v2 v1 + [trips:u64]
    v3 v2 + [progressive:u64]

stage: 0 preflop, 1 flop, 2 river, 3 showdown.

Commands:
    check [0]  bet 4x [1]  bet 2x [2]  bet 1x [3]  fold [4]  reveal [6]
    side wager [5][slot][amount:u64]   slot 0 trips, 1 progressive
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from ..engine_core.action import Command, CommandKind
from ..engine_core.codec import GameCodec
from ..engine_core.state import Card, GameType, Snapshot, Stage, Wager
from ..engine_core.wire import pack_u64, pack_u8
from .hands import PokerHand, best_hand, visible

BET_MULTIPLIERS = {4: 1, 2: 2, 1: 3}


class HoldemStage(IntEnum):
    PREFLOP = 0
    FLOP = 1
    RIVER = 2
    SHOWDOWN = 3


class HoldemSide(IntEnum):
    TRIPS = 0
    PROGRESSIVE = 1


@dataclass
class UltimateHoldemSnapshot(Snapshot):
    game_type: GameType = GameType.ULTIMATE_HOLDEM
    player_cards: list[Card] = field(default_factory=list)
    board: list[Card] = field(default_factory=list)
    dealer_cards: list[Card] = field(default_factory=list)
    table_stage: HoldemStage = HoldemStage.PREFLOP
    play_multiplier: int = 0
    trips: int = 0
    progressive: int = 0

    def card_groups(self) -> dict[str, list[Card]]:
        return {"player": self.player_cards, "board": self.board, "dealer": self.dealer_cards}

    def display_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {"street": self.table_stage.name.lower()}
        if self.play_multiplier:
            fields["play_multiplier"] = self.play_multiplier
        score = best_hand(self.player_cards + self.board)
        if score is not None:
            fields["player_hand"] = PokerHand(score[0]).label
        return fields


class UltimateHoldemCodec(GameCodec):
    game_type = GameType.ULTIMATE_HOLDEM
    min_lengths = {1: 12, 2: 20, 3: 28}

    _moves = {
        CommandKind.CHECK: 0,
        CommandKind.ADVANCE: 0,
        CommandKind.FOLD: 4,
        CommandKind.REVEAL: 6,
    }

    def decode(self, data: bytes) -> UltimateHoldemSnapshot:
        version = self.detect_version(data)
        reader = self.reader(data, version)
        reader.u8("version")
        raw_stage = reader.u8("stage")
        if raw_stage not in HoldemStage._value2member_map_:
            raise reader.error(f"unknown stage {raw_stage}")
        player = reader.cards(2, "player cards")
        board = reader.cards(5, "board")
        dealer = reader.cards(2, "dealer cards")
        play_multiplier = reader.u8("play multiplier")
        trips = reader.u64("trips") if version >= 2 else 0
        progressive = reader.u64("progressive") if version >= 3 else 0

        table_stage = HoldemStage(raw_stage)
        if table_stage == HoldemStage.SHOWDOWN:
            stage = Stage.RESULT
        elif not visible(player):
            stage = Stage.BETTING
        else:
            stage = Stage.PLAYING

        wagers = []
        if trips:
            wagers.append(Wager(kind=HoldemSide.TRIPS, amount=trips))
        if progressive:
            wagers.append(Wager(kind=HoldemSide.PROGRESSIVE, amount=progressive))

        return UltimateHoldemSnapshot(
            stage=stage,
            version=version,
            wagers=wagers,
            player_cards=player,
            board=board,
            dealer_cards=dealer,
            table_stage=table_stage,
            play_multiplier=play_multiplier,
            trips=trips,
            progressive=progressive,
        )

    def encode(self, command: Command) -> bytes:
        if command.kind in self._moves:
            return pack_u8(self._moves[command.kind])
        if command.kind == CommandKind.BET:
            if command.value not in BET_MULTIPLIERS:
                raise self.unsupported(command)
            return pack_u8(BET_MULTIPLIERS[command.value])
        if command.kind == CommandKind.SET_SIDE_WAGER:
            if command.value not in HoldemSide._value2member_map_:
                raise self.unsupported(command)
            return pack_u8(5) + pack_u8(command.value) + pack_u64(command.amount)
        raise self.unsupported(command)

    def supported_commands(self) -> list[CommandKind]:
        return [*self._moves, CommandKind.BET, CommandKind.SET_SIDE_WAGER]
