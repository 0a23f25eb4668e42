"""
Tests for PnL and wager outcome labels.

Tests:
- Balance delta is authoritative over the reported payout
- Per-game headlines and per-wager details
- Craps resolution against the previous snapshot
- Ledger accounting (per game, running total, newest first)
"""

import pytest

from ..engine_core.state import GameType
from ..games import (
    BaccaratCodec,
    BlackjackCodec,
    CasinoWarCodec,
    CrapsCodec,
    HiLoCodec,
    RouletteCodec,
    SicBoCodec,
    ThreeCardCodec,
    VideoPokerCodec,
)
from ..games.blackjack import HandStatus
from ..games.craps import CrapsBet
from ..ledger import Outcome, PnLLedger, compute_net_pnl, format_net, summarize
from ..ledger.outcomes import (
    baccarat_outcomes,
    casino_war_outcome,
    craps_outcomes,
    craps_resolve,
    roulette_outcomes,
    sic_bo_outcomes,
    three_card_outcomes,
    video_poker_outcome,
)
from .factories import (
    baccarat_state,
    blackjack_state,
    card,
    craps_state,
    hilo_state,
    roulette_state,
    sic_bo_state,
    three_card_state,
)


class TestNetPnl:
    """Tests for compute_net_pnl and format_net."""

    def test_balance_delta_wins_over_payout(self):
        assert compute_net_pnl(1000, 1350, 0) == 350
        assert compute_net_pnl(1000, 900, 500) == -100

    def test_payout_fallback(self):
        """Without a starting balance, payout plus interim credits is used."""
        assert compute_net_pnl(None, 1350, 300, interim_payout=50) == 350
        assert compute_net_pnl(None, 0, -25) == -25

    @pytest.mark.parametrize("net,text", [(350, "+350"), (-10, "-10"), (0, "0")])
    def test_format(self, net, text):
        assert format_net(net) == text


class TestRouletteOutcomes:
    """Tests for roulette labels."""

    def test_straight_up_win(self):
        snapshot = RouletteCodec().decode(roulette_state(bets=[(0, 17, 10)], result=17))

        [outcome] = roulette_outcomes(snapshot)

        assert outcome.outcome == Outcome.WIN
        assert outcome.describe() == "Straight 17 10: WIN (+350)"

    def test_dozen_label_and_win(self):
        snapshot = RouletteCodec().decode(roulette_state(bets=[(7, 1, 10)], result=17))

        [outcome] = roulette_outcomes(snapshot)

        assert outcome.label == "Dozen 2"
        assert outcome.returned == 30

    def test_la_partage_returns_half(self):
        snapshot = RouletteCodec().decode(
            roulette_state(bets=[(1, 0, 10)], result=0, version=2, zero_rule=1)
        )

        [outcome] = roulette_outcomes(snapshot)

        assert outcome.outcome == Outcome.LOSS
        assert outcome.returned == 5

    def test_en_prison_stays_pending(self):
        snapshot = RouletteCodec().decode(
            roulette_state(bets=[(1, 0, 10)], result=0, version=2, zero_rule=2)
        )

        assert roulette_outcomes(snapshot)[0].outcome == Outcome.PENDING

    def test_unspun(self):
        snapshot = RouletteCodec().decode(roulette_state(bets=[(2, 0, 10)]))
        assert roulette_outcomes(snapshot)[0].outcome == Outcome.PENDING


class TestSicBoOutcomes:
    """Tests for sic bo labels."""

    def test_single_pays_per_matching_die(self):
        snapshot = SicBoCodec().decode(sic_bo_state(bets=[(8, 3, 10)], dice=(3, 3, 5)))

        [outcome] = sic_bo_outcomes(snapshot)

        assert outcome.label == "Single 3"
        assert outcome.returned == 30

    def test_small_loses_on_triple(self):
        snapshot = SicBoCodec().decode(sic_bo_state(bets=[(0, 0, 10)], dice=(2, 2, 2)))

        assert sic_bo_outcomes(snapshot)[0].outcome == Outcome.LOSS


class TestBaccaratOutcomes:
    """Tests for baccarat labels."""

    def test_player_wins(self):
        blob = baccarat_state(
            bets=[(0, 10), (1, 10), (2, 10)],
            player=[card("9"), card("K")],
            banker=[card("7"), card("10")],
        )
        outcomes = baccarat_outcomes(BaccaratCodec().decode(blob))

        assert [o.outcome for o in outcomes] == [Outcome.WIN, Outcome.LOSS, Outcome.LOSS]

    def test_tie_pushes_player_and_banker(self):
        blob = baccarat_state(
            bets=[(0, 10), (2, 10)],
            player=[card("4"), card("3")],
            banker=[card("5"), card("2")],
        )
        outcomes = baccarat_outcomes(BaccaratCodec().decode(blob))

        assert outcomes[0].outcome == Outcome.PUSH
        assert outcomes[1].returned == 90


class TestCrapsOutcomes:
    """Tests for craps resolution."""

    @pytest.mark.parametrize("kind,point,dice,expected", [
        (CrapsBet.PASS, 0, (3, 4), Outcome.WIN),
        (CrapsBet.PASS, 0, (1, 1), Outcome.LOSS),
        (CrapsBet.PASS, 0, (2, 4), Outcome.PENDING),
        (CrapsBet.PASS, 6, (2, 4), Outcome.WIN),
        (CrapsBet.PASS, 6, (3, 4), Outcome.LOSS),
        (CrapsBet.DONT_PASS, 0, (6, 6), Outcome.PUSH),
        (CrapsBet.DONT_PASS, 5, (3, 4), Outcome.WIN),
        (CrapsBet.FIELD, 0, (1, 1), Outcome.WIN),
        (CrapsBet.FIELD, 0, (2, 3), Outcome.LOSS),
        (CrapsBet.HARDWAY_8, 0, (4, 4), Outcome.WIN),
        (CrapsBet.HARDWAY_8, 0, (5, 3), Outcome.LOSS),
    ])
    def test_resolve(self, kind, point, dice, expected):
        assert craps_resolve(kind, 0, point, dice) == expected

    def test_place_bet_uses_its_target(self):
        assert craps_resolve(CrapsBet.YES, 6, 0, (5, 1)) == Outcome.WIN
        assert craps_resolve(CrapsBet.NO, 6, 0, (5, 1)) == Outcome.LOSS

    def test_resolves_previous_wagers(self):
        """A pass line that won left the table, so the previous snapshot is used."""
        codec = CrapsCodec()
        previous = codec.decode(craps_state(phase=1, point=5, dice=(2, 3), bets=[(0, 0, 10, 0, 0)]))
        current = codec.decode(craps_state(phase=0, point=0, dice=(4, 1)))

        [outcome] = craps_outcomes(current, previous)

        assert outcome.label == "Pass"
        assert outcome.outcome == Outcome.WIN

    def test_no_roll_is_pending(self):
        snapshot = CrapsCodec().decode(craps_state(bets=[(4, 0, 10, 0, 0)]))
        assert craps_outcomes(snapshot)[0].outcome == Outcome.PENDING


class TestCardOutcomes:
    """Tests for the stake-based card game labels."""

    def test_video_poker_low_pair_loses(self):
        hand = [card("10"), card("10", 1), card("3"), card("7", 2), card("9", 3)]
        outcome = video_poker_outcome(VideoPokerCodec().decode(bytes([1, *hand])), 5)

        assert outcome.outcome == Outcome.LOSS
        assert outcome.label == "Pair"

    def test_video_poker_jacks_or_better(self):
        hand = [card("J"), card("J", 1), card("3"), card("7", 2), card("9", 3)]
        outcome = video_poker_outcome(VideoPokerCodec().decode(bytes([1, *hand])), 5)

        assert outcome.label == "Jacks or Better"
        assert outcome.returned == 10

    def test_casino_war(self):
        codec = CasinoWarCodec()
        win = casino_war_outcome(codec.decode(bytes([card("K"), card("5"), 0])), 10)
        tie = casino_war_outcome(codec.decode(bytes([card("8"), card("8", 1), 1])), 10)

        assert win.outcome == Outcome.WIN
        assert tie.outcome == Outcome.PUSH

    def test_three_card_with_pair_plus(self):
        blob = three_card_state(
            player=(card("Q"), card("Q", 1), card("4")),
            dealer=(card("K"), card("7", 1), card("2", 2)),
            stage=2,
            pair_plus=5,
        )
        outcomes = three_card_outcomes(ThreeCardCodec().decode(blob), 10)

        assert [(o.label, o.outcome) for o in outcomes] == [
            ("Ante", Outcome.WIN),
            ("Pair Plus", Outcome.WIN),
        ]


class TestSummaries:
    """Tests for headlines."""

    def test_roulette_headline(self):
        snapshot = RouletteCodec().decode(roulette_state(bets=[(0, 17, 10)], result=17))

        headline, details = summarize(GameType.ROULETTE, snapshot, 350)

        assert headline == "17 Black. Net +350"
        assert details == ["Straight 17 10: WIN (+350)"]

    def test_blackjack_headline(self):
        blob = blackjack_state(
            hands=[(1, HandStatus.BLACKJACK, [card("10"), card("A", 1)])],
            dealer=[card("9"), card("8")],
            stage=2,
        )

        headline, details = summarize(GameType.BLACKJACK, BlackjackCodec().decode(blob), 15)

        assert headline == "Blackjack!. Net +15"
        assert details == []

    def test_sic_bo_headline(self):
        snapshot = SicBoCodec().decode(sic_bo_state(dice=(3, 3, 5)))
        assert summarize(GameType.SIC_BO, snapshot, -10)[0] == "Rolled 11 (3-3-5). Net -10"

    def test_hilo_headline(self):
        snapshot = HiLoCodec().decode(hilo_state(card("Q"), 15000))
        assert summarize(GameType.HILO, snapshot, 5)[0] == "Q♠ at 1.50x. Net +5"

    def test_without_snapshot(self):
        assert summarize(GameType.CRAPS, None, -5) == ("Net -5", [])

    def test_mismatched_snapshot_is_ignored(self):
        snapshot = SicBoCodec().decode(b"")
        assert summarize(GameType.CRAPS, snapshot, 0) == ("Net 0", [])


class TestPnLLedger:
    """Tests for the append-only ledger."""

    def test_accounting(self):
        ledger = PnLLedger()
        ledger.record(1, GameType.ROULETTE, 350)
        ledger.record(2, GameType.CRAPS, -50)
        ledger.record(3, GameType.ROULETTE, -10)

        assert len(ledger) == 3
        assert ledger.total == 290
        assert ledger.pnl_history == [350, 300, 290]
        assert ledger.pnl_by_game == {GameType.ROULETTE: 340, GameType.CRAPS: -50}

    def test_history_newest_first(self):
        ledger = PnLLedger()
        for session_id in (1, 2, 3):
            ledger.record(session_id, GameType.HILO, 1)

        assert [e.session_id for e in ledger.history()] == [3, 2, 1]
        assert [e.session_id for e in ledger.history(limit=2)] == [3, 2]

    def test_entries_are_a_copy(self):
        ledger = PnLLedger()
        entry = ledger.record(1, GameType.HILO, 5, final_balance=105)

        assert ledger.entries == (entry,)
        assert entry.final_balance == 105
        assert entry.headline == "Net +5"

    def test_empty(self):
        ledger = PnLLedger()
        assert ledger.total == 0
        assert ledger.pnl_history == []
