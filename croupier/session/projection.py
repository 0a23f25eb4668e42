"""
Table Projection - History derived from consecutive snapshots.

The authority only sends the current state. Roll histories, the craps
point and result trails are reconstructed here by comparing each new
snapshot with the one before it. A craps roll is recorded when the caller
reports a new move or, failing that, when the dice differ from the previous
snapshot. A repeated delivery of the same state adds nothing.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from ..engine_core.state import Card, GameType, Snapshot
from ..ledger.outcomes import WagerOutcome, craps_outcomes

HISTORY_LIMIT = 100

SEVEN_OUT = 7


@dataclass
class TableHistory:
    """Per-game history shown next to the table."""
    game_type: GameType

    # Craps
    roll_history: list[int] = field(default_factory=list)
    point: int | None = None
    last_resolutions: list[WagerOutcome] = field(default_factory=list)

    # Roulette and sic bo
    results: list[int] = field(default_factory=list)
    dice_history: list[tuple[int, ...]] = field(default_factory=list)

    # HiLo
    card_trail: list[Card] = field(default_factory=list)

    def reset_trail(self):
        self.card_trail.clear()

    def to_dict(self) -> dict:
        data: dict = {}
        if self.game_type == GameType.CRAPS:
            data["roll_history"] = list(self.roll_history)
            data["point"] = self.point
            data["last_resolutions"] = [o.describe() for o in self.last_resolutions]
        elif self.game_type == GameType.ROULETTE:
            data["results"] = list(self.results)
        elif self.game_type == GameType.SIC_BO:
            data["dice_history"] = [list(d) for d in self.dice_history]
        elif self.game_type == GameType.HILO:
            data["card_trail"] = [str(c) for c in self.card_trail]
        return data


def _push(items: list, value):
    items.append(value)
    del items[:-HISTORY_LIMIT]


def project(
    history: TableHistory,
    previous: Snapshot | None,
    snapshot: Snapshot,
    new_move: bool = False,
):
    """
    Fold one new snapshot into the table history.

    new_move marks a snapshot produced by a move the authority has not
    reported before, so identical dice faces still count as a roll.
    """
    if snapshot.game_type != history.game_type:
        return

    if history.game_type == GameType.CRAPS:
        _project_craps(history, previous, snapshot, new_move)
    elif history.game_type == GameType.ROULETTE:
        result = snapshot.result
        before = previous.result if previous is not None else None
        if result is not None and result != before:
            _push(history.results, result)
    elif history.game_type == GameType.SIC_BO:
        rolled = snapshot.rolled
        before = previous.rolled if previous is not None else ()
        if rolled and rolled != before:
            _push(history.dice_history, rolled)
    elif history.game_type == GameType.HILO:
        card = snapshot.card
        if not card.hidden and (not history.card_trail or history.card_trail[-1] != card):
            _push(history.card_trail, card)


def _project_craps(history: TableHistory, previous: Snapshot | None, snapshot: Snapshot, new_move: bool):
    history.point = snapshot.point or None
    if not snapshot.dice:
        return
    before = previous.dice if previous is not None else ()
    if snapshot.dice == before and not new_move:
        return

    if snapshot.total == SEVEN_OUT:
        history.roll_history = [SEVEN_OUT]
    else:
        _push(history.roll_history, snapshot.total)
    history.last_resolutions = craps_outcomes(snapshot, previous)
