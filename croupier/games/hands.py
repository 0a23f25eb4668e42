"""
Hand arithmetic shared by the card games.

- Baccarat totals (tens and faces count zero, modulo 10)
- Blackjack totals with soft aces
- Poker ranking for five cards, best-of-seven and three-card hands

Hidden cards are ignored everywhere; callers decide whether a partial hand
is meaningful.
"""

from __future__ import annotations
from collections import Counter
from enum import IntEnum
from itertools import combinations
from typing import Iterable

from ..engine_core.state import Card


class PokerHand(IntEnum):
    HIGH_CARD = 0
    PAIR = 1
    TWO_PAIR = 2
    THREE_OF_A_KIND = 3
    STRAIGHT = 4
    FLUSH = 5
    FULL_HOUSE = 6
    FOUR_OF_A_KIND = 7
    STRAIGHT_FLUSH = 8
    ROYAL_FLUSH = 9

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()


class ThreeCardHand(IntEnum):
    HIGH_CARD = 0
    PAIR = 1
    FLUSH = 2
    STRAIGHT = 3
    THREE_OF_A_KIND = 4
    STRAIGHT_FLUSH = 5

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()


HandScore = tuple[int, tuple[int, ...]]


def visible(cards: Iterable[Card]) -> list[Card]:
    return [c for c in cards if not c.hidden]


def face_value(card: Card) -> int:
    """Ace = 1 ... King = 13."""
    return card.rank_index + 1


def high_value(card: Card) -> int:
    """Two = 2 ... Ace = 14."""
    return 14 if card.rank_index == 0 else card.rank_index + 1


def baccarat_total(cards: Iterable[Card]) -> int:
    total = 0
    for card in visible(cards):
        value = face_value(card)
        total += value if value < 10 else 0
    return total % 10


def blackjack_total(cards: Iterable[Card]) -> tuple[int, bool]:
    """Return (total, soft). An ace counts 11 when that does not bust."""
    total = 0
    aces = 0
    for card in visible(cards):
        value = face_value(card)
        if value == 1:
            aces += 1
            total += 1
        else:
            total += min(value, 10)
    if aces and total + 10 <= 21:
        return total + 10, True
    return total, False


def is_blackjack(cards: list[Card]) -> bool:
    return len(cards) == 2 and blackjack_total(cards)[0] == 21


def _straight_high(values: list[int], size: int) -> int | None:
    distinct = sorted(set(values))
    if len(distinct) != size:
        return None
    if distinct[-1] - distinct[0] == size - 1:
        return distinct[-1]
    # Wheel: ace plays low
    if distinct[-1] == 14 and distinct[:-1] == list(range(2, size + 1)):
        return size
    return None


def _grouped(values: list[int]) -> tuple[list[int], tuple[int, ...]]:
    counts = Counter(values)
    groups = sorted(counts.items(), key=lambda kv: (kv[1], kv[0]), reverse=True)
    shape = [n for _, n in groups]
    ordered = tuple(v for v, n in groups for _ in range(n))
    return shape, ordered


def evaluate_five(cards: list[Card]) -> HandScore:
    """Rank exactly five visible cards. Higher scores win."""
    values = sorted((high_value(c) for c in cards), reverse=True)
    flush = len({c.suit_index for c in cards}) == 1
    straight = _straight_high(values, 5)
    shape, ordered = _grouped(values)

    if straight and flush:
        hand = PokerHand.ROYAL_FLUSH if straight == 14 else PokerHand.STRAIGHT_FLUSH
        return hand, (straight,)
    if shape[0] == 4:
        return PokerHand.FOUR_OF_A_KIND, ordered
    if shape[:2] == [3, 2]:
        return PokerHand.FULL_HOUSE, ordered
    if flush:
        return PokerHand.FLUSH, tuple(values)
    if straight:
        return PokerHand.STRAIGHT, (straight,)
    if shape[0] == 3:
        return PokerHand.THREE_OF_A_KIND, ordered
    if shape[:2] == [2, 2]:
        return PokerHand.TWO_PAIR, ordered
    if shape[0] == 2:
        return PokerHand.PAIR, ordered
    return PokerHand.HIGH_CARD, tuple(values)


def best_hand(cards: Iterable[Card]) -> HandScore | None:
    """Best five-card score from five or more visible cards."""
    shown = visible(cards)
    if len(shown) < 5:
        return None
    return max(evaluate_five(list(combo)) for combo in combinations(shown, 5))


def evaluate_three(cards: list[Card]) -> HandScore:
    """Rank a three-card poker hand (straights outrank flushes)."""
    values = sorted((high_value(c) for c in cards), reverse=True)
    flush = len({c.suit_index for c in cards}) == 1
    straight = _straight_high(values, 3)
    shape, ordered = _grouped(values)

    if straight and flush:
        return ThreeCardHand.STRAIGHT_FLUSH, (straight,)
    if shape[0] == 3:
        return ThreeCardHand.THREE_OF_A_KIND, ordered
    if straight:
        return ThreeCardHand.STRAIGHT, (straight,)
    if flush:
        return ThreeCardHand.FLUSH, tuple(values)
    if shape[0] == 2:
        return ThreeCardHand.PAIR, ordered
    return ThreeCardHand.HIGH_CARD, tuple(values)
