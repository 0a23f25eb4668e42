"""
Snapshot State - Typed values decoded from remote session state blobs.

Design principles:
- Immutable values: cards and wagers are frozen
- Game-agnostic base: each game's snapshot extends Snapshot
- Hidden cards are explicit placeholders, never a real card
- Staged wagers are merged into confirmed ones by structural equality
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Any


class GameType(IntEnum):
    """Game identifiers as used on the wire."""
    BACCARAT = 0
    BLACKJACK = 1
    CASINO_WAR = 2
    CRAPS = 3
    VIDEO_POKER = 4
    HILO = 5
    ROULETTE = 6
    SIC_BO = 7
    THREE_CARD = 8
    ULTIMATE_HOLDEM = 9

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, value: str | int) -> GameType:
        """
        Resolve a game type from a wire id, an enum name or a display name.

        Accepts "craps", "SIC_BO", "sic-bo", "Sic Bo", "3", 3.
        """
        if isinstance(value, int):
            return cls(value)
        text = value.strip()
        if text.isdigit():
            return cls(int(text))
        key = text.upper().replace("-", "_").replace(" ", "_").replace("'", "")
        aliases = {
            "SICBO": "SIC_BO",
            "WAR": "CASINO_WAR",
            "CASINOWAR": "CASINO_WAR",
            "VIDEOPOKER": "VIDEO_POKER",
            "THREE_CARD_POKER": "THREE_CARD",
            "THREECARD": "THREE_CARD",
            "ULTIMATEHOLDEM": "ULTIMATE_HOLDEM",
            "UTH": "ULTIMATE_HOLDEM",
            "HI_LO": "HILO",
        }
        key = aliases.get(key, key)
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown game type: {value}") from None


_DISPLAY_NAMES = {
    GameType.BACCARAT: "Baccarat",
    GameType.BLACKJACK: "Blackjack",
    GameType.CASINO_WAR: "Casino War",
    GameType.CRAPS: "Craps",
    GameType.VIDEO_POKER: "Video Poker",
    GameType.HILO: "HiLo",
    GameType.ROULETTE: "Roulette",
    GameType.SIC_BO: "Sic Bo",
    GameType.THREE_CARD: "Three Card Poker",
    GameType.ULTIMATE_HOLDEM: "Ultimate Hold'em",
}


class Stage(Enum):
    """Coarse round stage shown to the player."""
    BETTING = "betting"
    PLAYING = "playing"
    RESULT = "result"


class WagerOrigin(Enum):
    """Where a wager record came from."""
    STAGED = "staged"  # placed locally, not yet confirmed
    CONFIRMED = "confirmed"  # present in a decoded remote snapshot


HIDDEN_CARD = 0xFF

SUITS = ("♠", "♥", "♦", "♣")
RANKS = ("A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K")


@dataclass(frozen=True)
class Card:
    """
    A playing card decoded from a single byte.

    Byte encoding: suit = value // 13, rank = value % 13 (0 = Ace).
    The byte 0xFF is a card that has not been revealed yet.
    """
    value: int

    @classmethod
    def from_byte(cls, value: int) -> Card:
        if value == HIDDEN_CARD or 0 <= value < 52:
            return cls(value)
        raise ValueError(f"Invalid card byte: {value}")

    @classmethod
    def hidden_card(cls) -> Card:
        return cls(HIDDEN_CARD)

    @property
    def hidden(self) -> bool:
        return self.value == HIDDEN_CARD

    @property
    def rank_index(self) -> int | None:
        """0 = Ace ... 12 = King, None while hidden."""
        return None if self.hidden else self.value % 13

    @property
    def suit_index(self) -> int | None:
        return None if self.hidden else self.value // 13

    @property
    def rank(self) -> str | None:
        return None if self.hidden else RANKS[self.value % 13]

    @property
    def suit(self) -> str | None:
        return None if self.hidden else SUITS[self.value // 13]

    def to_byte(self) -> int:
        return self.value

    def __str__(self) -> str:
        if self.hidden:
            return "??"
        return f"{self.rank}{self.suit}"


@dataclass(frozen=True)
class Wager:
    """
    A stake on a game-defined outcome.

    kind and target are game-specific (roulette pocket, craps point, ...).
    secondary_amount carries odds or similar amounts riding on the wager.
    """
    kind: int
    amount: int
    target: int = 0
    secondary_amount: int = 0
    origin: WagerOrigin = WagerOrigin.CONFIRMED

    @property
    def key(self) -> tuple[int, int, int]:
        """Structural identity used to match staged and confirmed copies."""
        return (self.kind, self.target, self.amount)

    @property
    def is_staged(self) -> bool:
        return self.origin == WagerOrigin.STAGED

    def as_staged(self) -> Wager:
        return replace(self, origin=WagerOrigin.STAGED)

    def as_confirmed(self) -> Wager:
        return replace(self, origin=WagerOrigin.CONFIRMED)


def merge_wagers(
    staged: list[Wager],
    confirmed: list[Wager],
) -> tuple[list[Wager], list[Wager]]:
    """
    Merge locally staged wagers with the confirmed list from a snapshot.

    Each confirmed wager absorbs at most one staged wager with the same
    (kind, target, amount). Returns (merged view, staged wagers still
    unconfirmed). The merged view lists confirmed wagers first.
    """
    remaining = list(staged)
    merged: list[Wager] = []

    for wager in confirmed:
        merged.append(wager.as_confirmed())
        for idx, candidate in enumerate(remaining):
            if candidate.key == wager.key:
                del remaining[idx]
                break

    merged.extend(w.as_staged() for w in remaining)
    return merged, remaining


@dataclass
class Snapshot:
    """
    Decoded state of a remote session at a point in time.

    Game-specific snapshots extend this with their own fields and override
    card_groups() / display_fields() for presentation.
    """
    game_type: GameType
    stage: Stage = Stage.BETTING
    version: int | None = None
    wagers: list[Wager] = field(default_factory=list)

    @property
    def dice(self) -> tuple[int, ...]:
        """Dice showing, empty for card games or before a roll."""
        return ()

    def card_groups(self) -> dict[str, list[Card]]:
        """Named card groups (player, dealer, board...)."""
        return {}

    def display_fields(self) -> dict[str, Any]:
        """Scalar fields worth showing (point, multiplier, result...)."""
        return {}

    @property
    def total_wagered(self) -> int:
        return sum(w.amount + w.secondary_amount for w in self.wagers)
