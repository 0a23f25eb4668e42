"""
Blackjack codec.

State:
    v1 [1][active_hand][hand_count]{[multiplier][status][len][cards]}
       [dealer_len][dealer_cards][stage]
    v2 same, followed by [pair_bonus:u64]

No hands dealt means the table is taking bets; stage 2 means the round is
complete. The dealer hole card arrives as 0xFF until revealed.

Commands:
    hit [0]  stand [1]  double [2]  split [3]  deal [4]
    pair bonus side wager [5][amount:u64]
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from ..engine_core.action import Command, CommandKind
from ..engine_core.codec import GameCodec
from ..engine_core.state import Card, GameType, Snapshot, Stage, Wager
from ..engine_core.wire import pack_u64, pack_u8
from .hands import blackjack_total

MAX_HANDS = 4
MAX_HAND_SIZE = 11


class HandStatus(IntEnum):
    PLAYING = 0
    STANDING = 1
    BUSTED = 2
    BLACKJACK = 3


class BlackjackSide(IntEnum):
    PAIR_BONUS = 0


class BlackjackStage(IntEnum):
    PLAYER_TURN = 0
    DEALER_TURN = 1
    COMPLETE = 2


@dataclass
class BlackjackHand:
    cards: list[Card]
    multiplier: int = 1
    status: HandStatus = HandStatus.PLAYING

    @property
    def total(self) -> int:
        return blackjack_total(self.cards)[0]


@dataclass
class BlackjackSnapshot(Snapshot):
    game_type: GameType = GameType.BLACKJACK
    hands: list[BlackjackHand] = field(default_factory=list)
    active_hand: int = 0
    dealer_cards: list[Card] = field(default_factory=list)
    table_stage: BlackjackStage = BlackjackStage.PLAYER_TURN
    pair_bonus: int = 0

    def card_groups(self) -> dict[str, list[Card]]:
        groups = {"dealer": self.dealer_cards}
        for idx, hand in enumerate(self.hands):
            groups[f"hand_{idx + 1}"] = hand.cards
        return groups

    def display_fields(self) -> dict[str, Any]:
        if not self.hands:
            return {}
        return {
            "active_hand": self.active_hand,
            "hand_totals": [hand.total for hand in self.hands],
            "dealer_total": blackjack_total(self.dealer_cards)[0],
        }


class BlackjackCodec(GameCodec):
    game_type = GameType.BLACKJACK
    min_lengths = {1: 5, 2: 13}

    _moves = {
        CommandKind.HIT: 0,
        CommandKind.STAND: 1,
        CommandKind.DOUBLE: 2,
        CommandKind.SPLIT: 3,
        CommandKind.ADVANCE: 4,
    }

    def decode(self, data: bytes) -> BlackjackSnapshot:
        version = self.detect_version(data)
        reader = self.reader(data, version)
        reader.u8("version")
        active = reader.u8("active hand")
        count = reader.u8("hand count")
        if count > MAX_HANDS:
            raise reader.error(f"too many hands ({count})")

        hands = []
        for _ in range(count):
            multiplier = reader.u8("hand multiplier")
            raw_status = reader.u8("hand status")
            if raw_status not in HandStatus._value2member_map_:
                raise reader.error(f"unknown hand status {raw_status}")
            cards = reader.cards(self._hand_length(reader, "hand length"), "hand cards")
            hands.append(BlackjackHand(cards=cards, multiplier=multiplier, status=HandStatus(raw_status)))

        dealer_cards = reader.cards(self._hand_length(reader, "dealer length"), "dealer cards")
        raw_stage = reader.u8("stage")
        if raw_stage not in BlackjackStage._value2member_map_:
            raise reader.error(f"unknown stage {raw_stage}")
        pair_bonus = reader.u64("pair bonus") if version >= 2 else 0

        if not hands:
            stage = Stage.BETTING
        elif raw_stage == BlackjackStage.COMPLETE:
            stage = Stage.RESULT
        else:
            stage = Stage.PLAYING

        wagers = []
        if pair_bonus:
            wagers.append(Wager(kind=BlackjackSide.PAIR_BONUS, amount=pair_bonus))

        return BlackjackSnapshot(
            stage=stage,
            version=version,
            wagers=wagers,
            hands=hands,
            active_hand=active,
            dealer_cards=dealer_cards,
            table_stage=BlackjackStage(raw_stage),
            pair_bonus=pair_bonus,
        )

    @staticmethod
    def _hand_length(reader, what: str) -> int:
        length = reader.u8(what)
        if length > MAX_HAND_SIZE:
            raise reader.error(f"{what} {length} exceeds {MAX_HAND_SIZE}")
        return length

    def encode(self, command: Command) -> bytes:
        if command.kind in self._moves:
            return pack_u8(self._moves[command.kind])
        if command.kind == CommandKind.SET_SIDE_WAGER:
            return pack_u8(5) + pack_u64(command.amount)
        raise self.unsupported(command)

    def supported_commands(self) -> list[CommandKind]:
        return [*self._moves, CommandKind.SET_SIDE_WAGER]
