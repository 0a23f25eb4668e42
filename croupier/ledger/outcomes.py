"""
Wager Outcomes - Display-level win/loss/push evaluation of decoded snapshots.

This is a presentation aid, not a rules engine: the authority settles every
wager and the balance delta is the only source of truth for profit and loss.
The evaluators here only label what the player can see on the table.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum

from ..engine_core.state import Card, Stage, Wager
from ..games.baccarat import BaccaratBet, BaccaratSnapshot
from ..games.blackjack import BlackjackSnapshot, HandStatus
from ..games.casino_war import CasinoWarSnapshot
from ..games.craps import CrapsBet, CrapsSnapshot
from ..games.hands import (
    PokerHand,
    ThreeCardHand,
    baccarat_total,
    best_hand,
    blackjack_total,
    evaluate_three,
    high_value,
    is_blackjack,
    visible,
)
from ..games.roulette import RED_NUMBERS, RouletteBet, RouletteSnapshot, ZeroRule
from ..games.sic_bo import SicBoBet, SicBoSnapshot
from ..games.three_card import ThreeCardSide, ThreeCardSnapshot
from ..games.ultimate_holdem import HoldemSide, UltimateHoldemSnapshot
from ..games.video_poker import VideoPokerSnapshot


class Outcome(Enum):
    WIN = "win"
    LOSS = "loss"
    PUSH = "push"
    PENDING = "pending"


@dataclass(frozen=True)
class WagerOutcome:
    """One labelled wager and what happened to it."""
    label: str
    amount: int
    outcome: Outcome
    returned: int = 0  # stake plus winnings handed back

    def describe(self) -> str:
        text = f"{self.label} {self.amount}: {self.outcome.value.upper()}"
        if self.outcome == Outcome.WIN and self.returned:
            text += f" (+{self.returned - self.amount})"
        return text


def _settled(label: str, amount: int, won: bool, multiplier: int | float) -> WagerOutcome:
    if won:
        return WagerOutcome(label, amount, Outcome.WIN, amount + int(amount * multiplier))
    return WagerOutcome(label, amount, Outcome.LOSS)


# ----------------------------------------------------------------------
# Roulette
# ----------------------------------------------------------------------

_ROULETTE_PAYS = {
    RouletteBet.STRAIGHT: 35,
    RouletteBet.DOZEN: 2,
    RouletteBet.COLUMN: 2,
}

_EVEN_MONEY = {
    RouletteBet.RED,
    RouletteBet.BLACK,
    RouletteBet.EVEN,
    RouletteBet.ODD,
    RouletteBet.LOW,
    RouletteBet.HIGH,
}


def roulette_wins(kind: RouletteBet, target: int, result: int) -> bool:
    if result == 0:
        return kind == RouletteBet.STRAIGHT and target == 0
    if kind == RouletteBet.STRAIGHT:
        return target == result
    if kind == RouletteBet.RED:
        return result in RED_NUMBERS
    if kind == RouletteBet.BLACK:
        return result not in RED_NUMBERS
    if kind == RouletteBet.EVEN:
        return result % 2 == 0
    if kind == RouletteBet.ODD:
        return result % 2 == 1
    if kind == RouletteBet.LOW:
        return 1 <= result <= 18
    if kind == RouletteBet.HIGH:
        return 19 <= result <= 36
    if kind == RouletteBet.DOZEN:
        return (result - 1) // 12 == target
    if kind == RouletteBet.COLUMN:
        return (result - 1) % 3 == target
    return False


def roulette_label(wager: Wager) -> str:
    kind = RouletteBet(wager.kind)
    if kind == RouletteBet.STRAIGHT:
        return f"Straight {wager.target}"
    if kind in (RouletteBet.DOZEN, RouletteBet.COLUMN):
        return f"{kind.label} {wager.target + 1}"
    return kind.label


def roulette_outcomes(snapshot: RouletteSnapshot) -> list[WagerOutcome]:
    outcomes = []
    for wager in snapshot.wagers:
        kind = RouletteBet(wager.kind)
        label = roulette_label(wager)
        if snapshot.result is None:
            outcomes.append(WagerOutcome(label, wager.amount, Outcome.PENDING))
        elif snapshot.result == 0 and kind in _EVEN_MONEY and snapshot.zero_rule != ZeroRule.STANDARD:
            if snapshot.zero_rule == ZeroRule.LA_PARTAGE:
                outcomes.append(WagerOutcome(label, wager.amount, Outcome.LOSS, wager.amount // 2))
            else:
                outcomes.append(WagerOutcome(label, wager.amount, Outcome.PENDING))
        else:
            won = roulette_wins(kind, wager.target, snapshot.result)
            outcomes.append(_settled(label, wager.amount, won, _ROULETTE_PAYS.get(kind, 1)))
    return outcomes


# ----------------------------------------------------------------------
# Sic Bo
# ----------------------------------------------------------------------

_TOTAL_PAYS = {
    3: 180, 18: 180,
    4: 50, 17: 50,
    5: 18, 16: 18,
    6: 14, 15: 14,
    7: 12, 14: 12,
    8: 8, 13: 8,
    9: 6, 12: 6,
    10: 6, 11: 6,
}


def _dice_mask(dice: tuple[int, ...]) -> int:
    mask = 0
    for die in dice:
        mask |= 1 << (die - 1)
    return mask


def sic_bo_multiplier(kind: SicBoBet, target: int, dice: tuple[int, ...]) -> int:
    """Winnings multiplier (excluding the stake), 0 when the bet loses."""
    total = sum(dice)
    triple = len(set(dice)) == 1
    distinct = len(set(dice)) == 3
    count = dice.count(target)

    if kind == SicBoBet.SMALL:
        return 1 if not triple and 4 <= total <= 10 else 0
    if kind == SicBoBet.BIG:
        return 1 if not triple and 11 <= total <= 17 else 0
    if kind == SicBoBet.ODD:
        return 1 if not triple and total % 2 == 1 else 0
    if kind == SicBoBet.EVEN:
        return 1 if not triple and total % 2 == 0 else 0
    if kind == SicBoBet.SPECIFIC_TRIPLE:
        return 150 if triple and dice[0] == target else 0
    if kind == SicBoBet.ANY_TRIPLE:
        return 24 if triple else 0
    if kind == SicBoBet.SPECIFIC_DOUBLE:
        return 8 if count >= 2 else 0
    if kind == SicBoBet.TOTAL:
        return _TOTAL_PAYS.get(target, 0) if total == target else 0
    if kind == SicBoBet.SINGLE:
        return count
    if kind == SicBoBet.DOMINO:
        low, high = (target >> 4) & 0x0F, target & 0x0F
        return 5 if low in dice and high in dice and low != high else 0
    if kind == SicBoBet.HARD_HOP_THREE:
        double, single = (target >> 4) & 0x0F, target & 0x0F
        return 50 if dice.count(double) == 2 and dice.count(single) == 1 else 0
    if kind in (SicBoBet.EASY_HOP_THREE, SicBoBet.EASY_HOP_FOUR):
        size = 3 if kind == SicBoBet.EASY_HOP_THREE else 4
        if bin(target & 0x3F).count("1") != size or not distinct:
            return 0
        mask = _dice_mask(dice)
        if mask & target != mask:
            return 0
        return 30 if size == 3 else 7
    return 0


def sic_bo_outcomes(snapshot: SicBoSnapshot) -> list[WagerOutcome]:
    outcomes = []
    for wager in snapshot.wagers:
        kind = SicBoBet(wager.kind)
        label = kind.label if wager.target == 0 else f"{kind.label} {wager.target}"
        if not snapshot.rolled:
            outcomes.append(WagerOutcome(label, wager.amount, Outcome.PENDING))
            continue
        multiplier = sic_bo_multiplier(kind, wager.target, snapshot.rolled)
        outcomes.append(_settled(label, wager.amount, multiplier > 0, multiplier))
    return outcomes


# ----------------------------------------------------------------------
# Baccarat
# ----------------------------------------------------------------------

def _is_pair(cards: list[Card]) -> bool:
    shown = visible(cards)
    return len(shown) >= 2 and shown[0].rank_index == shown[1].rank_index


def baccarat_outcomes(snapshot: BaccaratSnapshot) -> list[WagerOutcome]:
    outcomes = []
    dealt = bool(snapshot.player_cards)
    player = baccarat_total(snapshot.player_cards)
    banker = baccarat_total(snapshot.banker_cards)

    for wager in snapshot.wagers:
        kind = BaccaratBet(wager.kind)
        label = kind.name.replace("_", " ").title()
        if not dealt:
            outcomes.append(WagerOutcome(label, wager.amount, Outcome.PENDING))
        elif kind == BaccaratBet.TIE:
            outcomes.append(_settled(label, wager.amount, player == banker, 8))
        elif kind in (BaccaratBet.PLAYER, BaccaratBet.BANKER) and player == banker:
            outcomes.append(WagerOutcome(label, wager.amount, Outcome.PUSH, wager.amount))
        elif kind == BaccaratBet.PLAYER:
            outcomes.append(_settled(label, wager.amount, player > banker, 1))
        elif kind == BaccaratBet.BANKER:
            outcomes.append(_settled(label, wager.amount, banker > player, 0.95))
        elif kind == BaccaratBet.PLAYER_PAIR:
            outcomes.append(_settled(label, wager.amount, _is_pair(snapshot.player_cards), 11))
        else:
            outcomes.append(_settled(label, wager.amount, _is_pair(snapshot.banker_cards), 11))
    return outcomes


# ----------------------------------------------------------------------
# Craps
# ----------------------------------------------------------------------

_HARDWAYS = {
    CrapsBet.HARDWAY_4: 4,
    CrapsBet.HARDWAY_6: 6,
    CrapsBet.HARDWAY_8: 8,
    CrapsBet.HARDWAY_10: 10,
}


def craps_resolve(kind: CrapsBet, target: int, point: int, dice: tuple[int, int]) -> Outcome:
    """
    Resolve one craps wager against a single roll.

    point is the point that was on before the roll (0 on the come-out).
    target is the wager's own number (place/lay/hop numbers, a travelled
    come point), 0 when it has none.
    """
    d1, d2 = dice
    total = d1 + d2

    if kind in (CrapsBet.PASS, CrapsBet.COME):
        line_point = point if kind == CrapsBet.PASS else target
        if not line_point:
            if total in (7, 11):
                return Outcome.WIN
            if total in (2, 3, 12):
                return Outcome.LOSS
            return Outcome.PENDING
        if total == line_point:
            return Outcome.WIN
        return Outcome.LOSS if total == 7 else Outcome.PENDING

    if kind in (CrapsBet.DONT_PASS, CrapsBet.DONT_COME):
        line_point = point if kind == CrapsBet.DONT_PASS else target
        if not line_point:
            if total in (2, 3):
                return Outcome.WIN
            if total == 12:
                return Outcome.PUSH
            if total in (7, 11):
                return Outcome.LOSS
            return Outcome.PENDING
        if total == 7:
            return Outcome.WIN
        return Outcome.LOSS if total == line_point else Outcome.PENDING

    if kind == CrapsBet.FIELD:
        return Outcome.WIN if total in (2, 3, 4, 9, 10, 11, 12) else Outcome.LOSS

    if kind in (CrapsBet.YES, CrapsBet.BUY):
        if total == target:
            return Outcome.WIN
        return Outcome.LOSS if total == 7 else Outcome.PENDING

    if kind == CrapsBet.NO:
        if total == 7:
            return Outcome.WIN
        return Outcome.LOSS if total == target else Outcome.PENDING

    if kind == CrapsBet.NEXT:
        return Outcome.WIN if total == target else Outcome.LOSS

    if kind in _HARDWAYS:
        number = _HARDWAYS[kind]
        if total == number:
            return Outcome.WIN if d1 == d2 else Outcome.LOSS
        return Outcome.LOSS if total == 7 else Outcome.PENDING

    # Fire and All Tall Small run until a seven-out
    if point and total == 7:
        return Outcome.LOSS
    return Outcome.PENDING


def craps_label(wager: Wager) -> str:
    kind = CrapsBet(wager.kind)
    if wager.target and kind not in _HARDWAYS:
        return f"{kind.label} {wager.target}"
    return kind.label


def craps_outcomes(
    snapshot: CrapsSnapshot,
    previous: CrapsSnapshot | None = None,
) -> list[WagerOutcome]:
    """
    Label each wager against the latest roll.

    Wagers that left the table on this roll are still listed by the
    previous snapshot, so those are the ones resolved when it is given.
    """
    if not snapshot.dice:
        return [WagerOutcome(craps_label(w), w.amount, Outcome.PENDING) for w in snapshot.wagers]

    point = previous.point if previous is not None else 0
    wagers = previous.wagers if previous is not None and previous.wagers else snapshot.wagers
    dice = (snapshot.die1, snapshot.die2)
    return [
        WagerOutcome(
            craps_label(w),
            w.amount,
            craps_resolve(CrapsBet(w.kind), w.target, point, dice),
        )
        for w in wagers
    ]


# ----------------------------------------------------------------------
# Card games
# ----------------------------------------------------------------------

def blackjack_outcomes(snapshot: BlackjackSnapshot, stake: int) -> list[WagerOutcome]:
    dealer_total = blackjack_total(snapshot.dealer_cards)[0]
    dealer_blackjack = is_blackjack(visible(snapshot.dealer_cards))
    outcomes = []
    for idx, hand in enumerate(snapshot.hands):
        label = f"Hand {idx + 1} ({hand.total})"
        amount = stake * max(hand.multiplier, 1)
        if snapshot.stage != Stage.RESULT:
            outcome = Outcome.PENDING
        elif hand.status == HandStatus.BUSTED:
            outcome = Outcome.LOSS
        elif hand.status == HandStatus.BLACKJACK and not dealer_blackjack:
            outcome = Outcome.WIN
        elif dealer_total > 21 or hand.total > dealer_total:
            outcome = Outcome.WIN
        elif hand.total == dealer_total:
            outcome = Outcome.PUSH
        else:
            outcome = Outcome.LOSS
        outcomes.append(WagerOutcome(label, amount, outcome))
    return outcomes


def casino_war_outcome(snapshot: CasinoWarSnapshot, stake: int) -> WagerOutcome:
    player, dealer = snapshot.player_card, snapshot.dealer_card
    if player.hidden or dealer.hidden:
        return WagerOutcome("War", stake, Outcome.PENDING)
    p, d = high_value(player), high_value(dealer)
    if p == d:
        return WagerOutcome("War", stake, Outcome.PUSH, stake)
    return _settled("War", stake, p > d, 1)


VIDEO_POKER_PAYS = {
    PokerHand.ROYAL_FLUSH: 800,
    PokerHand.STRAIGHT_FLUSH: 50,
    PokerHand.FOUR_OF_A_KIND: 25,
    PokerHand.FULL_HOUSE: 9,
    PokerHand.FLUSH: 6,
    PokerHand.STRAIGHT: 4,
    PokerHand.THREE_OF_A_KIND: 3,
    PokerHand.TWO_PAIR: 2,
    PokerHand.PAIR: 1,  # jacks or better only
}


def video_poker_outcome(snapshot: VideoPokerSnapshot, stake: int) -> WagerOutcome:
    score = best_hand(snapshot.cards)
    if score is None:
        return WagerOutcome("Hand", stake, Outcome.PENDING)
    hand, ranks = score
    hand = PokerHand(hand)
    label = hand.label
    pays = VIDEO_POKER_PAYS.get(hand, 0)
    if hand == PokerHand.PAIR:
        if ranks[0] >= 11:
            label = "Jacks or Better"
        else:
            pays = 0
    return _settled(label, stake, pays > 0, pays)


_PAIR_PLUS = {
    ThreeCardHand.STRAIGHT_FLUSH: 40,
    ThreeCardHand.THREE_OF_A_KIND: 30,
    ThreeCardHand.STRAIGHT: 6,
    ThreeCardHand.FLUSH: 3,
    ThreeCardHand.PAIR: 1,
}


def three_card_outcomes(snapshot: ThreeCardSnapshot, stake: int) -> list[WagerOutcome]:
    player = visible(snapshot.player_cards)
    dealer = visible(snapshot.dealer_cards)
    outcomes = []
    if len(player) < 3 or len(dealer) < 3:
        outcomes.append(WagerOutcome("Ante", stake, Outcome.PENDING))
        return outcomes

    player_score = evaluate_three(player)
    dealer_score = evaluate_three(dealer)
    qualifies = dealer_score >= (ThreeCardHand.HIGH_CARD, (12,))
    if not qualifies or player_score > dealer_score:
        outcomes.append(_settled("Ante", stake, True, 1))
    elif player_score == dealer_score:
        outcomes.append(WagerOutcome("Ante", stake, Outcome.PUSH, stake))
    else:
        outcomes.append(WagerOutcome("Ante", stake, Outcome.LOSS))

    for wager in snapshot.wagers:
        if wager.kind == ThreeCardSide.PAIR_PLUS:
            won = player_score[0] >= ThreeCardHand.PAIR
            outcomes.append(_settled("Pair Plus", wager.amount, won, _PAIR_PLUS.get(player_score[0], 0)))
        elif wager.kind == ThreeCardSide.PROGRESSIVE:
            won = player_score[0] >= ThreeCardHand.STRAIGHT
            outcomes.append(_settled("Progressive", wager.amount, won, 0))
    return outcomes


_TRIPS = {
    PokerHand.ROYAL_FLUSH: 50,
    PokerHand.STRAIGHT_FLUSH: 40,
    PokerHand.FOUR_OF_A_KIND: 30,
    PokerHand.FULL_HOUSE: 8,
    PokerHand.FLUSH: 7,
    PokerHand.STRAIGHT: 4,
    PokerHand.THREE_OF_A_KIND: 3,
}


def ultimate_holdem_outcomes(snapshot: UltimateHoldemSnapshot, stake: int) -> list[WagerOutcome]:
    player = best_hand(snapshot.player_cards + snapshot.board)
    dealer = best_hand(snapshot.dealer_cards + snapshot.board)
    if player is None or dealer is None:
        return [WagerOutcome("Ante", stake, Outcome.PENDING)]

    if player > dealer:
        outcome = Outcome.WIN
    elif player == dealer:
        outcome = Outcome.PUSH
    else:
        outcome = Outcome.LOSS
    outcomes = [WagerOutcome(f"Ante ({PokerHand(player[0]).label})", stake, outcome)]

    for wager in snapshot.wagers:
        if wager.kind == HoldemSide.TRIPS:
            pays = _TRIPS.get(PokerHand(player[0]), 0)
            outcomes.append(_settled("Trips", wager.amount, pays > 0, pays))
        elif wager.kind == HoldemSide.PROGRESSIVE:
            won = player[0] >= PokerHand.FLUSH
            outcomes.append(_settled("Progressive", wager.amount, won, 0))
    return outcomes
