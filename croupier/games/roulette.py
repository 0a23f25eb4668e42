"""
Roulette codec (single zero wheel).

State:
    v1 [1][n][n x bet][result]?
    v2 [2][zero_rule][phase][n][n x bet][result]?

    bet = [kind][number][amount:u64]   (10 bytes)

zero_rule: 0 standard, 1 la partage, 2 en prison, 3 en prison (double).
phase: 0 betting, 1 an imprisoned even-money stake is live for the next spin.

Commands:
    place bet [0][kind][number][amount:u64]
    spin      [1]
    clear     [2]
    set rule  [3][zero_rule]
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from ..engine_core.action import Command, CommandKind
from ..engine_core.codec import GameCodec
from ..engine_core.state import GameType, Snapshot, Stage, Wager
from ..engine_core.wire import ByteReader, pack_u64, pack_u8

BET_RECORD_LENGTH = 10
MAX_BETS = 20
MAX_POCKET = 36

RED_NUMBERS = frozenset({1, 3, 5, 7, 9, 12, 14, 16, 18, 19, 21, 23, 25, 27, 30, 32, 34, 36})


class RouletteBet(IntEnum):
    STRAIGHT = 0
    RED = 1
    BLACK = 2
    EVEN = 3
    ODD = 4
    LOW = 5
    HIGH = 6
    DOZEN = 7
    COLUMN = 8

    @property
    def label(self) -> str:
        return self.name.title()


class ZeroRule(IntEnum):
    STANDARD = 0
    LA_PARTAGE = 1
    EN_PRISON = 2
    EN_PRISON_DOUBLE = 3


class RoulettePhase(IntEnum):
    BETTING = 0
    PRISON = 1


@dataclass
class RouletteSnapshot(Snapshot):
    game_type: GameType = GameType.ROULETTE
    zero_rule: ZeroRule = ZeroRule.STANDARD
    phase: RoulettePhase = RoulettePhase.BETTING
    result: int | None = None

    def display_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {"zero_rule": self.zero_rule.name.lower()}
        if self.phase == RoulettePhase.PRISON:
            fields["imprisoned"] = True
        if self.result is not None:
            fields["result"] = self.result
            fields["color"] = pocket_color(self.result)
        return fields


def pocket_color(number: int) -> str:
    if number == 0:
        return "green"
    return "red" if number in RED_NUMBERS else "black"


class RouletteCodec(GameCodec):
    game_type = GameType.ROULETTE
    min_lengths = {1: 2, 2: 4}

    def decode(self, data: bytes) -> RouletteSnapshot:
        version = self.detect_version(data)
        reader = self.reader(data, version)
        reader.u8("version")

        zero_rule = ZeroRule.STANDARD
        phase = RoulettePhase.BETTING
        if version >= 2:
            raw_rule = reader.u8("zero rule")
            if raw_rule not in ZeroRule._value2member_map_:
                raise reader.error(f"unknown zero rule {raw_rule}")
            raw_phase = reader.u8("phase")
            if raw_phase not in RoulettePhase._value2member_map_:
                raise reader.error(f"unknown phase {raw_phase}")
            zero_rule = ZeroRule(raw_rule)
            phase = RoulettePhase(raw_phase)

        wagers = read_bet_array(reader, RouletteBet, MAX_BETS)

        result = None
        if reader.remaining:
            result = reader.u8("result")
            if result > MAX_POCKET:
                raise reader.error(f"invalid result {result}")

        return RouletteSnapshot(
            stage=Stage.RESULT if result is not None else Stage.BETTING,
            version=version,
            wagers=wagers,
            zero_rule=zero_rule,
            phase=phase,
            result=result,
        )

    def encode(self, command: Command) -> bytes:
        if command.kind == CommandKind.PLACE_WAGER and command.wager is not None:
            return pack_u8(0) + encode_bet_record(command.wager)
        if command.kind == CommandKind.ADVANCE:
            return pack_u8(1)
        if command.kind == CommandKind.CLEAR:
            return pack_u8(2)
        if command.kind == CommandKind.SET_RULE:
            if command.value not in ZeroRule._value2member_map_:
                raise self.unsupported(command)
            return pack_u8(3) + pack_u8(command.value)
        raise self.unsupported(command)

    def encode_wager_record(self, wager: Wager) -> bytes:
        return encode_bet_record(wager)

    def supported_commands(self) -> list[CommandKind]:
        return [CommandKind.PLACE_WAGER, CommandKind.ADVANCE, CommandKind.CLEAR, CommandKind.SET_RULE]


def read_bet_array(reader: ByteReader, kinds: type[IntEnum], max_bets: int) -> list[Wager]:
    """Read [n][n x (kind target amount:u64)], shared with sic bo."""
    count = reader.u8("bet count")
    if count > max_bets:
        raise reader.error(f"too many bets ({count})")
    reader.require(count * BET_RECORD_LENGTH, "bet records")
    wagers = []
    for _ in range(count):
        kind = reader.u8("bet kind")
        if kind not in kinds._value2member_map_:
            raise reader.error(f"unknown bet kind {kind}")
        target = reader.u8("bet target")
        wagers.append(Wager(kind=kind, amount=reader.u64("bet amount"), target=target))
    return wagers


def encode_bet_record(wager: Wager) -> bytes:
    return pack_u8(wager.kind) + pack_u8(wager.target) + pack_u64(wager.amount)
