"""
Baccarat codec.

State (unversioned):
    [n][n x (kind:u8 amount:u64)][p_len][p_cards][b_len][b_cards]

An empty blob is a fresh table. No cards dealt means the table is taking
bets; any dealt card means the hand has been resolved.

Commands:
    place wager  [0][kind][amount:u64]
    deal         [1]
    clear bets   [2]
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from ..engine_core.action import Command, CommandKind
from ..engine_core.codec import GameCodec
from ..engine_core.state import Card, GameType, Snapshot, Stage, Wager
from ..engine_core.wire import pack_u64, pack_u8
from .hands import baccarat_total

MAX_BETS = 11


class BaccaratBet(IntEnum):
    PLAYER = 0
    BANKER = 1
    TIE = 2
    PLAYER_PAIR = 3
    BANKER_PAIR = 4


@dataclass
class BaccaratSnapshot(Snapshot):
    game_type: GameType = GameType.BACCARAT
    player_cards: list[Card] = field(default_factory=list)
    banker_cards: list[Card] = field(default_factory=list)

    def card_groups(self) -> dict[str, list[Card]]:
        return {"player": self.player_cards, "banker": self.banker_cards}

    def display_fields(self) -> dict[str, Any]:
        if not self.player_cards:
            return {}
        return {
            "player_total": baccarat_total(self.player_cards),
            "banker_total": baccarat_total(self.banker_cards),
        }


class BaccaratCodec(GameCodec):
    game_type = GameType.BACCARAT

    def decode(self, data: bytes) -> BaccaratSnapshot:
        if not data:
            return BaccaratSnapshot()

        reader = self.reader(data)
        count = reader.u8("bet count")
        if count > MAX_BETS:
            raise self.error(f"too many bets ({count})")
        reader.require(count * 9, "bet records")

        wagers = []
        for _ in range(count):
            kind = reader.u8("bet kind")
            if kind not in BaccaratBet._value2member_map_:
                raise self.error(f"unknown bet kind {kind}")
            wagers.append(Wager(kind=kind, amount=reader.u64("bet amount")))

        player_cards: list[Card] = []
        banker_cards: list[Card] = []
        if reader.remaining:
            player_cards = reader.cards(reader.u8("player card count"), "player cards")
            banker_cards = reader.cards(reader.u8("banker card count"), "banker cards")

        stage = Stage.RESULT if player_cards else Stage.BETTING
        return BaccaratSnapshot(
            stage=stage,
            wagers=wagers,
            player_cards=player_cards,
            banker_cards=banker_cards,
        )

    def encode(self, command: Command) -> bytes:
        if command.kind == CommandKind.PLACE_WAGER and command.wager is not None:
            return pack_u8(0) + pack_u8(command.wager.kind) + pack_u64(command.wager.amount)
        if command.kind == CommandKind.ADVANCE:
            return pack_u8(1)
        if command.kind == CommandKind.CLEAR:
            return pack_u8(2)
        raise self.unsupported(command)

    def encode_wager_record(self, wager: Wager) -> bytes:
        return pack_u8(wager.kind) + pack_u64(wager.amount)

    def supported_commands(self) -> list[CommandKind]:
        return [CommandKind.PLACE_WAGER, CommandKind.ADVANCE, CommandKind.CLEAR]
