"""
Command System - Player intents, before they are encoded for the wire.

Commands represent:
1. Table actions (place wager, clear, advance the round, reveal)
2. Side wagers and table rules
3. Game-specific moves (hit, stand, higher, fold, ...)

Each game codec decides which kinds it accepts and how they are encoded.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum

from .state import Wager


class CommandKind(Enum):
    """Kinds of player intent."""
    # Generic table actions
    PLACE_WAGER = "place_wager"
    ADVANCE = "advance"  # deal / roll / spin / stand / draw
    CLEAR = "clear"
    SET_SIDE_WAGER = "set_side_wager"
    REVEAL = "reveal"

    # Table-specific settings
    ADD_ODDS = "add_odds"
    SET_RULE = "set_rule"

    # Card game moves
    HIT = "hit"
    STAND = "stand"
    DOUBLE = "double"
    SPLIT = "split"
    HOLD = "hold"
    PLAY = "play"
    FOLD = "fold"
    WAR = "war"
    SURRENDER = "surrender"
    CHECK = "check"
    BET = "bet"

    # HiLo moves
    HIGHER = "higher"
    LOWER = "lower"
    CASHOUT = "cashout"

    @classmethod
    def parse(cls, value: str) -> CommandKind:
        key = value.strip().lower().replace("-", "_")
        for kind in cls:
            if kind.value == key:
                return kind
        raise ValueError(f"Unknown command: {value}")


@dataclass(frozen=True)
class Command:
    """
    A single player intent.

    wager is set for PLACE_WAGER. amount carries side-wager and odds
    amounts. value carries small parameters: hold masks, bet multipliers,
    rule ids, side-wager slots.
    """
    kind: CommandKind
    wager: Wager | None = None
    amount: int = 0
    value: int = 0

    @classmethod
    def place(cls, wager: Wager) -> Command:
        return cls(kind=CommandKind.PLACE_WAGER, wager=wager)

    @classmethod
    def advance(cls, value: int = 0) -> Command:
        return cls(kind=CommandKind.ADVANCE, value=value)

    @classmethod
    def clear(cls) -> Command:
        return cls(kind=CommandKind.CLEAR)

    @classmethod
    def side_wager(cls, amount: int, slot: int = 0) -> Command:
        return cls(kind=CommandKind.SET_SIDE_WAGER, amount=amount, value=slot)

    @classmethod
    def reveal(cls) -> Command:
        return cls(kind=CommandKind.REVEAL)

    @classmethod
    def odds(cls, amount: int) -> Command:
        return cls(kind=CommandKind.ADD_ODDS, amount=amount)

    @classmethod
    def set_rule(cls, rule: int) -> Command:
        return cls(kind=CommandKind.SET_RULE, value=rule)

    @classmethod
    def move(cls, kind: CommandKind, value: int = 0) -> Command:
        """Factory for a parameterless game move (hit, fold, higher...)."""
        return cls(kind=kind, value=value)


@dataclass
class CommandResult:
    """
    Result of submitting one or more encoded commands.

    Contains:
    - Whether every submission succeeded
    - Transaction handles returned by the transport
    - Error (if one failed)
    """
    success: bool
    tx_handles: list[str] = field(default_factory=list)
    submitted: int = 0
    error: str | None = None

    @property
    def last_tx(self) -> str | None:
        return self.tx_handles[-1] if self.tx_handles else None

    @classmethod
    def failure(cls, error: str, submitted: int = 0, tx_handles: list[str] | None = None) -> CommandResult:
        return cls(success=False, error=error, submitted=submitted, tx_handles=tx_handles or [])

    @classmethod
    def ok(cls, tx_handles: list[str]) -> CommandResult:
        return cls(success=True, tx_handles=list(tx_handles), submitted=len(tx_handles))
