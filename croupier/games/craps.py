"""
Craps codec.

State:
    v1 [1][phase][point][d1][d2][made_mask][n][n x bet]
    v2 [2][phase][point][d1][d2][made_mask][epoch][n][n x bet]

    Either version may end with [field_paytable][buy_timing]; the pair is
    read only when both bytes are present.

    bet = [kind][target][status][amount:u64][odds:u64]   (19 bytes)

Dice of 0/0 mean nothing has been rolled yet.

Commands:
    place bet  [0][kind][target][amount:u64]
    add odds   [1][amount:u64]
    roll       [2]
    clear bets [3]
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from ..engine_core.action import Command, CommandKind
from ..engine_core.codec import GameCodec
from ..engine_core.state import GameType, Snapshot, Stage, Wager
from ..engine_core.wire import ByteReader, pack_u64, pack_u8

BET_RECORD_LENGTH = 19
MAX_BETS = 20


class CrapsBet(IntEnum):
    PASS = 0
    DONT_PASS = 1
    COME = 2
    DONT_COME = 3
    FIELD = 4
    YES = 5
    NO = 6
    NEXT = 7
    HARDWAY_4 = 8
    HARDWAY_6 = 9
    HARDWAY_8 = 10
    HARDWAY_10 = 11
    FIRE = 12
    BUY = 13
    ATS_SMALL = 15
    ATS_TALL = 16
    ATS_ALL = 17

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()


class BetStatus(IntEnum):
    ON = 0
    PENDING = 1


class CrapsPhase(IntEnum):
    COME_OUT = 0
    POINT = 1


class FieldPaytable(IntEnum):
    DOUBLE_2_AND_12 = 0
    DOUBLE_2_TRIPLE_12 = 1


class BuyCommission(IntEnum):
    AT_PLACEMENT = 0
    ON_WIN = 1


@dataclass
class CrapsSnapshot(Snapshot):
    game_type: GameType = GameType.CRAPS
    phase: CrapsPhase = CrapsPhase.COME_OUT
    point: int = 0
    die1: int = 0
    die2: int = 0
    made_points_mask: int = 0
    epoch_point_established: bool = False
    field_paytable: FieldPaytable = FieldPaytable.DOUBLE_2_AND_12
    buy_commission: BuyCommission = BuyCommission.AT_PLACEMENT
    pending_bets: tuple[int, ...] = ()

    @property
    def dice(self) -> tuple[int, ...]:
        if self.die1 == 0 and self.die2 == 0:
            return ()
        return (self.die1, self.die2)

    @property
    def total(self) -> int:
        return self.die1 + self.die2

    def display_fields(self) -> dict[str, Any]:
        return {
            "phase": self.phase.name.lower(),
            "point": self.point or None,
            "dice": list(self.dice),
        }


class CrapsCodec(GameCodec):
    game_type = GameType.CRAPS
    min_lengths = {1: 7, 2: 8}

    def decode(self, data: bytes) -> CrapsSnapshot:
        version = self.detect_version(data)
        reader = self.reader(data, version)
        reader.u8("version")
        raw_phase = reader.u8("phase")
        if raw_phase not in CrapsPhase._value2member_map_:
            raise reader.error(f"unknown phase {raw_phase}")
        point = reader.u8("point")
        die1 = reader.u8("die 1")
        die2 = reader.u8("die 2")
        if die1 > 6 or die2 > 6:
            raise reader.error(f"invalid dice {die1}/{die2}")

        made_mask = reader.u8("made points mask")
        if version >= 2:
            epoch = reader.u8("epoch") != 0
        else:
            # v1 has no epoch flag
            epoch = raw_phase == CrapsPhase.POINT or point != 0 or made_mask != 0

        count = reader.u8("bet count")
        if count > MAX_BETS:
            raise reader.error(f"too many bets ({count})")
        reader.require(count * BET_RECORD_LENGTH, "bet records")

        wagers = []
        pending = []
        for idx in range(count):
            wager, status = self._read_bet(reader)
            wagers.append(wager)
            if status == BetStatus.PENDING:
                pending.append(idx)

        paytable = FieldPaytable.DOUBLE_2_AND_12
        commission = BuyCommission.AT_PLACEMENT
        if reader.remaining >= 2:
            paytable = self._enum(reader, FieldPaytable, "field paytable")
            commission = self._enum(reader, BuyCommission, "buy commission timing")

        stage = Stage.BETTING if die1 == 0 and die2 == 0 else Stage.PLAYING
        return CrapsSnapshot(
            stage=stage,
            version=version,
            wagers=wagers,
            phase=CrapsPhase(raw_phase),
            point=point,
            die1=die1,
            die2=die2,
            made_points_mask=made_mask,
            epoch_point_established=epoch,
            field_paytable=paytable,
            buy_commission=commission,
            pending_bets=tuple(pending),
        )

    def _read_bet(self, reader: ByteReader) -> tuple[Wager, int]:
        kind = reader.u8("bet kind")
        if kind not in CrapsBet._value2member_map_:
            raise reader.error(f"unknown bet kind {kind}")
        target = reader.u8("bet target")
        status = reader.u8("bet status")
        if status not in BetStatus._value2member_map_:
            raise reader.error(f"unknown bet status {status}")
        amount = reader.u64("bet amount")
        odds = reader.u64("odds amount")
        return Wager(kind=kind, amount=amount, target=target, secondary_amount=odds), status

    @staticmethod
    def _enum(reader: ByteReader, enum_cls, what: str):
        raw = reader.u8(what)
        try:
            return enum_cls(raw)
        except ValueError:
            raise reader.error(f"unknown {what} {raw}") from None

    def encode(self, command: Command) -> bytes:
        if command.kind == CommandKind.PLACE_WAGER and command.wager is not None:
            wager = command.wager
            return pack_u8(0) + pack_u8(wager.kind) + pack_u8(wager.target) + pack_u64(wager.amount)
        if command.kind == CommandKind.ADD_ODDS:
            return pack_u8(1) + pack_u64(command.amount)
        if command.kind == CommandKind.ADVANCE:
            return pack_u8(2)
        if command.kind == CommandKind.CLEAR:
            return pack_u8(3)
        raise self.unsupported(command)

    def encode_wager_record(self, wager: Wager, status: BetStatus = BetStatus.ON) -> bytes:
        return (
            pack_u8(wager.kind)
            + pack_u8(wager.target)
            + pack_u8(status)
            + pack_u64(wager.amount)
            + pack_u64(wager.secondary_amount)
        )

    def supported_commands(self) -> list[CommandKind]:
        return [CommandKind.PLACE_WAGER, CommandKind.ADD_ODDS, CommandKind.ADVANCE, CommandKind.CLEAR]
