"""
Sic Bo codec.

State:   [n][n x (kind target amount:u64)][d1 d2 d3]?
Commands: place bet [0][kind][target][amount:u64]  roll [1]  clear [2]

Targets are per kind: a face for singles, doubles and triples, a total for
total bets, (low << 4) | high for dominoes, a face bitmask for easy hops and
(double << 4) | single for hard hops.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from ..engine_core.action import Command, CommandKind
from ..engine_core.codec import GameCodec
from ..engine_core.state import GameType, Snapshot, Stage, Wager
from ..engine_core.wire import pack_u8
from .roulette import encode_bet_record, read_bet_array

MAX_BETS = 20
DICE_COUNT = 3


class SicBoBet(IntEnum):
    SMALL = 0
    BIG = 1
    ODD = 2
    EVEN = 3
    SPECIFIC_TRIPLE = 4
    ANY_TRIPLE = 5
    SPECIFIC_DOUBLE = 6
    TOTAL = 7
    SINGLE = 8
    DOMINO = 9
    EASY_HOP_THREE = 10
    HARD_HOP_THREE = 11
    EASY_HOP_FOUR = 12

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()


@dataclass
class SicBoSnapshot(Snapshot):
    game_type: GameType = GameType.SIC_BO
    rolled: tuple[int, ...] = ()

    @property
    def dice(self) -> tuple[int, ...]:
        return self.rolled

    def display_fields(self) -> dict[str, Any]:
        if not self.rolled:
            return {}
        return {"dice": list(self.rolled), "total": sum(self.rolled)}


class SicBoCodec(GameCodec):
    game_type = GameType.SIC_BO

    def decode(self, data: bytes) -> SicBoSnapshot:
        if not data:
            return SicBoSnapshot()
        reader = self.reader(data)
        wagers = read_bet_array(reader, SicBoBet, MAX_BETS)

        rolled: tuple[int, ...] = ()
        if reader.remaining:
            rolled = tuple(reader.take(DICE_COUNT, "dice"))
            if any(not 1 <= d <= 6 for d in rolled):
                raise reader.error(f"invalid dice {list(rolled)}")

        return SicBoSnapshot(
            stage=Stage.RESULT if rolled else Stage.BETTING,
            wagers=wagers,
            rolled=rolled,
        )

    def encode(self, command: Command) -> bytes:
        if command.kind == CommandKind.PLACE_WAGER and command.wager is not None:
            return pack_u8(0) + encode_bet_record(command.wager)
        if command.kind == CommandKind.ADVANCE:
            return pack_u8(1)
        if command.kind == CommandKind.CLEAR:
            return pack_u8(2)
        raise self.unsupported(command)

    def encode_wager_record(self, wager: Wager) -> bytes:
        return encode_bet_record(wager)

    def supported_commands(self) -> list[CommandKind]:
        return [CommandKind.PLACE_WAGER, CommandKind.ADVANCE, CommandKind.CLEAR]
