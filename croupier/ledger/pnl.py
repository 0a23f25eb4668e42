"""
PnL Ledger - Profit and loss derived from balance deltas.

Key principles:
1. The balance delta (final - starting) is authoritative
2. The payout reported by the authority is only a fallback, used when the
   starting balance was never captured
3. Entries are immutable and append-only
4. Summaries are pure projections of the final snapshot
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from ..engine_core.state import GameType, Snapshot
from ..games.hands import (
    PokerHand,
    ThreeCardHand,
    baccarat_total,
    best_hand,
    blackjack_total,
    evaluate_three,
    visible,
)
from ..games.roulette import pocket_color
from .outcomes import (
    WagerOutcome,
    baccarat_outcomes,
    blackjack_outcomes,
    casino_war_outcome,
    craps_outcomes,
    roulette_outcomes,
    sic_bo_outcomes,
    three_card_outcomes,
    ultimate_holdem_outcomes,
    video_poker_outcome,
)


def compute_net_pnl(
    starting_balance: int | None,
    final_balance: int,
    payout: int,
    interim_payout: int = 0,
) -> int:
    """
    Net result of one session.

    Uses final_balance - starting_balance whenever the starting balance is
    known, regardless of payout. Otherwise falls back to the signed payout
    plus any mid-session credits not reflected in it.
    """
    if starting_balance is not None:
        return final_balance - starting_balance
    return payout + interim_payout


def format_net(net: int) -> str:
    return f"+{net}" if net > 0 else str(net)


# ----------------------------------------------------------------------
# Headlines
# ----------------------------------------------------------------------

def _baccarat_headline(snapshot) -> str:
    player = baccarat_total(snapshot.player_cards)
    banker = baccarat_total(snapshot.banker_cards)
    if player > banker:
        return f"Player wins {player}-{banker}"
    if banker > player:
        return f"Banker wins {banker}-{player}"
    return f"Tie {player}-{banker}"


def _blackjack_headline(snapshot) -> str:
    if not snapshot.hands:
        return "No hand"
    hand = snapshot.hands[0]
    dealer = blackjack_total(snapshot.dealer_cards)[0]
    if hand.total == 21 and len(hand.cards) == 2:
        return "Blackjack!"
    if hand.total > 21:
        return f"Bust ({hand.total})"
    if dealer > 21:
        return f"Dealer bust ({dealer})"
    return f"{hand.total} vs {dealer}"


def _war_headline(snapshot) -> str:
    return f"{snapshot.player_card} vs {snapshot.dealer_card}"


def _craps_headline(snapshot) -> str:
    if not snapshot.dice:
        return "No roll"
    return f"Rolled {snapshot.total}"


def _video_poker_headline(snapshot) -> str:
    score = best_hand(snapshot.cards)
    return PokerHand(score[0]).label if score else "No hand"


def _hilo_headline(snapshot) -> str:
    return f"{snapshot.card} at {snapshot.multiplier:.2f}x"


def _roulette_headline(snapshot) -> str:
    if snapshot.result is None:
        return "No spin"
    return f"{snapshot.result} {pocket_color(snapshot.result).title()}"


def _sic_bo_headline(snapshot) -> str:
    if not snapshot.rolled:
        return "No roll"
    faces = "-".join(str(d) for d in snapshot.rolled)
    return f"Rolled {sum(snapshot.rolled)} ({faces})"


def _three_card_headline(snapshot) -> str:
    player, dealer = visible(snapshot.player_cards), visible(snapshot.dealer_cards)
    if len(player) < 3 or len(dealer) < 3:
        return "Folded"
    p = ThreeCardHand(evaluate_three(player)[0]).label
    d = ThreeCardHand(evaluate_three(dealer)[0]).label
    return f"{p} vs {d}"


def _holdem_headline(snapshot) -> str:
    player = best_hand(snapshot.player_cards + snapshot.board)
    dealer = best_hand(snapshot.dealer_cards + snapshot.board)
    if player is None or dealer is None:
        return "Folded"
    return f"Player {PokerHand(player[0]).label} vs Dealer {PokerHand(dealer[0]).label}"


_HEADLINES: dict[GameType, Callable[[Snapshot], str]] = {
    GameType.BACCARAT: _baccarat_headline,
    GameType.BLACKJACK: _blackjack_headline,
    GameType.CASINO_WAR: _war_headline,
    GameType.CRAPS: _craps_headline,
    GameType.VIDEO_POKER: _video_poker_headline,
    GameType.HILO: _hilo_headline,
    GameType.ROULETTE: _roulette_headline,
    GameType.SIC_BO: _sic_bo_headline,
    GameType.THREE_CARD: _three_card_headline,
    GameType.ULTIMATE_HOLDEM: _holdem_headline,
}


def wager_outcomes(
    game_type: GameType,
    snapshot: Snapshot,
    previous: Snapshot | None = None,
    stake: int = 0,
) -> list[WagerOutcome]:
    """Per-wager outcomes for games with independent wagers or side wagers."""
    if game_type == GameType.ROULETTE:
        return roulette_outcomes(snapshot)
    if game_type == GameType.SIC_BO:
        return sic_bo_outcomes(snapshot)
    if game_type == GameType.BACCARAT:
        return baccarat_outcomes(snapshot)
    if game_type == GameType.CRAPS:
        return craps_outcomes(snapshot, previous)
    if game_type == GameType.BLACKJACK and len(snapshot.hands) > 1:
        return blackjack_outcomes(snapshot, stake)
    if game_type == GameType.THREE_CARD and snapshot.wagers:
        return three_card_outcomes(snapshot, stake)
    if game_type == GameType.ULTIMATE_HOLDEM and snapshot.wagers:
        return ultimate_holdem_outcomes(snapshot, stake)
    if game_type == GameType.VIDEO_POKER and stake:
        return [video_poker_outcome(snapshot, stake)]
    if game_type == GameType.CASINO_WAR and stake:
        return [casino_war_outcome(snapshot, stake)]
    return []


def summarize(
    game_type: GameType,
    snapshot: Snapshot | None,
    net: int,
    previous: Snapshot | None = None,
    stake: int = 0,
) -> tuple[str, list[str]]:
    """
    Build the (headline, details) pair for a completed session.

    The headline always ends with the signed net. Details list one line per
    wager for games where wagers settle independently.
    """
    net_part = f"Net {format_net(net)}"
    if snapshot is None or snapshot.game_type != game_type:
        return net_part, []

    context = _HEADLINES[game_type](snapshot)
    details = [o.describe() for o in wager_outcomes(game_type, snapshot, previous, stake)]
    return f"{context}. {net_part}", details


# ----------------------------------------------------------------------
# Ledger
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class LedgerEntry:
    """One completed session. Never mutated after it is recorded."""
    session_id: int
    game_type: GameType
    net: int
    headline: str
    details: tuple[str, ...] = ()
    final_balance: int | None = None
    recorded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class PnLLedger:
    """
    Append-only history of completed sessions.

    Tracks net PnL per game and the running total after each entry.
    """

    def __init__(self):
        self._entries: list[LedgerEntry] = []
        self._by_game: dict[GameType, int] = {}
        self._running: list[int] = []

    def record(
        self,
        session_id: int,
        game_type: GameType,
        net: int,
        snapshot: Snapshot | None = None,
        previous: Snapshot | None = None,
        stake: int = 0,
        final_balance: int | None = None,
    ) -> LedgerEntry:
        headline, details = summarize(game_type, snapshot, net, previous, stake)
        entry = LedgerEntry(
            session_id=session_id,
            game_type=game_type,
            net=net,
            headline=headline,
            details=tuple(details),
            final_balance=final_balance,
        )
        self.append(entry)
        return entry

    def append(self, entry: LedgerEntry):
        self._entries.append(entry)
        self._by_game[entry.game_type] = self._by_game.get(entry.game_type, 0) + entry.net
        previous = self._running[-1] if self._running else 0
        self._running.append(previous + entry.net)

    @property
    def entries(self) -> tuple[LedgerEntry, ...]:
        return tuple(self._entries)

    @property
    def pnl_by_game(self) -> dict[GameType, int]:
        return dict(self._by_game)

    @property
    def pnl_history(self) -> list[int]:
        """Running total after each completed session."""
        return list(self._running)

    @property
    def total(self) -> int:
        return self._running[-1] if self._running else 0

    def history(self, limit: int | None = None) -> list[LedgerEntry]:
        """Newest first."""
        entries = list(reversed(self._entries))
        return entries[:limit] if limit is not None else entries

    def __len__(self) -> int:
        return len(self._entries)
