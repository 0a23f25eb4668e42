"""
Tests for the reconciler state machine.

Tests:
- Full round trips (start, auto-play, moves, completion, PnL)
- Gating of requests while the authority is busy
- Stale, duplicate and out-of-order signals
- Watchdog recovery and abandonment
- Rollback of tentative changes when a submission fails
"""

import asyncio

from ..engine_core.action import Command
from ..engine_core.events import CompletionFlags, SessionStarted, encode_event_frame, decode_event_frame
from ..engine_core.state import GameType, Stage, Wager
from ..games import default_registry
from ..ledger import Outcome
from ..session import InMemoryTransport, PlayerStats, Reconciler, RemoteSession, SessionRegistry, SyncState
from .conftest import FIRST_SESSION_ID
from .factories import card, craps_state, hilo_state, roulette_state, three_card_state

SID = FIRST_SESSION_ID
STRAIGHT_17 = Wager(kind=0, amount=10, target=17)
PASS_LINE = [(0, 0, 10, 0, 0)]


class RacingTransport(InMemoryTransport):
    """Runs a hook while a query is in flight, like a push signal racing it."""
    on_fetch = None

    async def fetch_session(self, session_id):
        if self.on_fetch is not None:
            hook, self.on_fetch = self.on_fetch, None
            await hook()
        return await super().fetch_session(session_id)


class TestRoundTrip:
    """Tests for complete sessions."""

    def test_roulette_straight_up_win(self, reconciler, transport):
        """Start with a wager, spin, win 35:1 and record +350."""
        async def scenario():
            started = await reconciler.start_game(GameType.ROULETTE, wagers=[STRAIGHT_17], advance=True)
            assert started.accepted
            assert started.session_id == SID
            assert reconciler.state == SyncState.AWAITING_START

            await reconciler.on_session_started(SID, GameType.ROULETTE, roulette_state())
            assert reconciler.state == SyncState.AWAITING_COMPLETION
            assert reconciler.view().pending_move_count == 2

            await reconciler.on_session_moved(SID, roulette_state(bets=[(0, 17, 10)]))
            await reconciler.on_session_moved(SID, roulette_state(bets=[(0, 17, 10)], result=17))
            assert reconciler.state == SyncState.IN_PLAY
            assert reconciler.view().stage == Stage.RESULT

            return await reconciler.on_session_completed(SID, final_balance=1350, payout=360)

        entry = asyncio.run(scenario())

        assert [s.payload for s in transport.commands] == [bytes([0, 0, 17]) + (10).to_bytes(8, "big"), b"\x01"]
        assert entry.net == 350
        assert entry.headline == "17 Black. Net +350"
        assert entry.details == ("Straight 17 10: WIN (+350)",)
        assert reconciler.state == SyncState.IDLE
        assert reconciler.stats.balance == 1350
        assert reconciler.message == "17 Black. Net +350"
        assert reconciler.ledger.total == 350
        assert reconciler.view().session_id is None

    def test_staged_wagers_merge_on_confirmation(self, reconciler):
        async def scenario():
            await reconciler.start_game(GameType.ROULETTE, wagers=[STRAIGHT_17], advance=True)
            await reconciler.on_session_started(SID, GameType.ROULETTE, roulette_state())
            staged_before = reconciler.view().wagers
            await reconciler.on_session_moved(SID, roulette_state(bets=[(0, 17, 10)]))
            return staged_before, reconciler.view()

        staged_before, view = asyncio.run(scenario())

        assert [w.is_staged for w in staged_before] == [True]
        assert [w.is_staged for w in view.wagers] == [False]
        assert view.staged == []

    def test_craps_history(self, reconciler):
        """Pass line wins on a made point, then a seven resets the history."""
        async def scenario():
            await reconciler.start_game(GameType.CRAPS, wagers=[Wager(kind=0, amount=10)], advance=True)
            await reconciler.on_session_started(SID, GameType.CRAPS, craps_state())
            await reconciler.on_session_moved(SID, craps_state(bets=PASS_LINE))
            await reconciler.on_session_moved(SID, craps_state(phase=1, point=5, dice=(2, 3), bets=PASS_LINE))
            assert reconciler.state == SyncState.IN_PLAY

            await reconciler.submit([Command.advance()])
            await reconciler.on_session_moved(SID, craps_state(dice=(4, 1)))
            table = reconciler.view().table
            first = (list(table.roll_history), [o.outcome for o in table.last_resolutions])

            await reconciler.submit([Command.advance()])
            await reconciler.on_session_moved(SID, craps_state(dice=(3, 4)))
            return first, reconciler.view().table

        (rolls, outcomes), table = asyncio.run(scenario())

        assert rolls == [5, 5]
        assert outcomes == [Outcome.WIN]
        assert table.roll_history == [7]
        assert table.point is None

    def test_point_made_with_same_faces(self, reconciler):
        """Numbered moves with repeated dice are still rolls; a repeated number is not."""
        async def scenario():
            await reconciler.start_game(GameType.CRAPS)
            await reconciler.on_session_started(SID, GameType.CRAPS, craps_state(bets=PASS_LINE))
            await reconciler.on_session_moved(
                SID, craps_state(phase=1, point=5, dice=(2, 3), bets=PASS_LINE), move_number=1,
            )
            await reconciler.on_session_moved(SID, craps_state(dice=(2, 3)), move_number=2)
            repeated = await reconciler.on_session_moved(SID, craps_state(dice=(2, 3)), move_number=2)
            return repeated, reconciler.view().table

        repeated, table = asyncio.run(scenario())

        assert repeated is False
        assert table.roll_history == [5, 5]
        assert [o.outcome for o in table.last_resolutions] == [Outcome.WIN]

    def test_point_made_with_same_faces_without_numbers(self, reconciler):
        async def scenario():
            await reconciler.start_game(GameType.CRAPS)
            await reconciler.on_session_started(SID, GameType.CRAPS, craps_state(bets=PASS_LINE))
            await reconciler.on_session_moved(SID, craps_state(phase=1, point=5, dice=(2, 3), bets=PASS_LINE))
            await reconciler.on_session_moved(SID, craps_state(dice=(2, 3)))
            await reconciler.on_session_moved(SID, craps_state(dice=(2, 3)))
            return reconciler.view().table

        table = asyncio.run(scenario())

        assert table.roll_history == [5, 5]

    def test_interim_payout_fallback(self, transport, registry):
        """Without a starting balance, net is payout plus mid-session credits."""
        reconciler = Reconciler(
            transport,
            codecs=registry,
            registry=SessionRegistry(id_seed=SID),
            watchdog_seconds=60,
            stats=PlayerStats(),
        )

        async def scenario():
            await reconciler.start_game(GameType.HILO, stake=10)
            await reconciler.on_session_started(SID, GameType.HILO, hilo_state(card("7"), 10000))
            await reconciler.on_session_moved(SID, hilo_state(card("9"), 12000), payout=20)
            return await reconciler.on_session_completed(SID, final_balance=0, payout=30)

        entry = asyncio.run(scenario())

        assert entry.net == 50
        assert reconciler.stats.balance == 0

    def test_dispatch_decoded_frame(self, reconciler):
        frame = encode_event_frame(SessionStarted(session_id=SID, game_type=GameType.ROULETTE, state=roulette_state()))

        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            return await reconciler.dispatch(decode_event_frame(frame))

        assert asyncio.run(scenario()) is True
        assert reconciler.state == SyncState.IN_PLAY


class TestRequestGating:
    """Tests for requests rejected by state."""

    def test_no_active_game(self, reconciler):
        result = asyncio.run(reconciler.submit([Command.advance()]))

        assert not result.accepted
        assert result.message == "No active game"

    def test_waiting_for_start(self, reconciler):
        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            return await reconciler.submit([Command.advance()])

        assert asyncio.run(scenario()).message == "Waiting for the game to start"

    def test_previous_move_pending(self, reconciler, transport):
        async def scenario():
            await reconciler.start_game(GameType.ROULETTE, wagers=[STRAIGHT_17], advance=True)
            await reconciler.on_session_started(SID, GameType.ROULETTE, roulette_state())
            return await reconciler.submit([Command.advance()])

        result = asyncio.run(scenario())

        assert result.message == "Previous move still pending"
        assert len(transport.commands) == 2

    def test_start_while_active(self, reconciler):
        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            return await reconciler.start_game(GameType.CRAPS)

        result = asyncio.run(scenario())

        assert result.message == "A game is already in progress"
        assert reconciler.view().game_type == GameType.ROULETTE

    def test_replace_running_game(self, reconciler, transport):
        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            return await reconciler.start_game(GameType.CRAPS, replace=True)

        result = asyncio.run(scenario())

        assert result.accepted
        assert result.session_id == SID + 1
        assert reconciler.view().game_type == GameType.CRAPS
        assert len(transport.starts) == 2

    def test_unencodable_command(self, reconciler):
        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            await reconciler.on_session_started(SID, GameType.ROULETTE, roulette_state())
            return await reconciler.submit([Command.odds(10)])

        result = asyncio.run(scenario())

        assert not result.accepted
        assert "does not support" in result.message
        assert reconciler.state == SyncState.IN_PLAY


class TestStaging:
    """Tests for staged wagers."""

    def test_submit_staged_while_idle_starts_game(self, reconciler, transport):
        async def scenario():
            reconciler.stage_wager(GameType.ROULETTE, STRAIGHT_17)
            idle_view = reconciler.view()
            result = await reconciler.submit_staged(advance=True)
            await reconciler.on_session_started(SID, GameType.ROULETTE, roulette_state())
            return idle_view, result

        idle_view, result = asyncio.run(scenario())

        assert idle_view.game_type == GameType.ROULETTE
        assert len(idle_view.staged) == 1
        assert result.accepted
        assert len(transport.starts) == 1
        assert [s.payload[0] for s in transport.commands] == [0, 1]

    def test_submit_staged_in_session(self, reconciler, transport):
        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            await reconciler.on_session_started(SID, GameType.ROULETTE, roulette_state())
            reconciler.stage_wager(GameType.ROULETTE, STRAIGHT_17)
            return await reconciler.submit_staged()

        assert asyncio.run(scenario()).accepted
        assert len(transport.commands) == 1

    def test_stage_for_other_game_rejected(self, reconciler):
        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            return reconciler.stage_wager(GameType.CRAPS, Wager(kind=0, amount=5))

        assert asyncio.run(scenario()).message == "A Roulette game is running"

    def test_nothing_staged(self, reconciler):
        assert asyncio.run(reconciler.submit_staged()).message == "No staged wagers"

    def test_clear(self, reconciler):
        reconciler.stage_wager(GameType.SIC_BO, Wager(kind=0, amount=5))

        reconciler.clear_staged()

        assert reconciler.view().staged == []
        assert reconciler.view().game_type is None

    def test_listeners_notified(self, reconciler):
        calls = []
        reconciler.listeners.append(lambda: calls.append(reconciler.state))

        reconciler.stage_wager(GameType.SIC_BO, Wager(kind=0, amount=5))

        assert calls == [SyncState.IDLE]


class TestSignals:
    """Tests for stale, duplicate and out-of-order signals."""

    def test_stale_signals_ignored(self, reconciler):
        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            await reconciler.on_session_started(SID, GameType.ROULETTE, roulette_state())
            moved = await reconciler.on_session_moved(SID - 1, roulette_state(result=3))
            completed = await reconciler.on_session_completed(SID - 1, 0, -10)
            started = await reconciler.on_session_started(SID + 5, GameType.ROULETTE, roulette_state())
            return moved, completed, started

        assert asyncio.run(scenario()) == (False, None, False)
        assert reconciler.state == SyncState.IN_PLAY
        assert len(reconciler.ledger) == 0

    def test_duplicate_started_ignored(self, reconciler, transport):
        async def scenario():
            await reconciler.start_game(GameType.ROULETTE, wagers=[STRAIGHT_17], advance=True)
            first = await reconciler.on_session_started(SID, GameType.ROULETTE, roulette_state())
            second = await reconciler.on_session_started(SID, GameType.ROULETTE, roulette_state())
            return first, second

        assert asyncio.run(scenario()) == (True, False)
        assert len(transport.commands) == 2

    def test_started_for_other_game_ignored(self, reconciler):
        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            return await reconciler.on_session_started(SID, GameType.CRAPS, craps_state())

        assert asyncio.run(scenario()) is False
        assert reconciler.state == SyncState.AWAITING_START

    def test_moved_before_started_confirms(self, reconciler):
        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            return await reconciler.on_session_moved(SID, roulette_state())

        assert asyncio.run(scenario()) is True
        assert reconciler.state == SyncState.IN_PLAY
        assert reconciler.view().confirmed

    def test_decode_error_keeps_last_snapshot(self, reconciler):
        async def scenario():
            await reconciler.start_game(GameType.THREE_CARD)
            await reconciler.on_session_started(SID, GameType.THREE_CARD, three_card_state())
            before = reconciler.view().snapshot
            await reconciler.on_session_moved(SID, bytes([8, 2]))
            return before

        before = asyncio.run(scenario())

        assert reconciler.view().snapshot is before
        assert reconciler.message.startswith("Could not read table state")
        assert reconciler.state == SyncState.IN_PLAY

    def test_error_signal_abandons_session(self, reconciler):
        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            return await reconciler.on_session_error(SID, "insufficient funds")

        assert asyncio.run(scenario()) is True
        assert reconciler.state == SyncState.IDLE
        assert reconciler.message == "Game error: insufficient funds"

    def test_error_without_session_only_shows_message(self, reconciler):
        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            return await reconciler.on_session_error(None, "rate limited")

        assert asyncio.run(scenario()) is False
        assert reconciler.message == "rate limited"
        assert reconciler.state == SyncState.AWAITING_START

    def test_casino_war_auto_confirms(self, reconciler, transport):
        async def scenario():
            await reconciler.start_game(GameType.CASINO_WAR, stake=10)
            await reconciler.on_session_started(SID, GameType.CASINO_WAR, bytes([card("K"), card("5"), 0]))

        asyncio.run(scenario())

        assert [s.payload for s in transport.commands] == [b"\x00"]
        assert reconciler.state == SyncState.AWAITING_COMPLETION


class TestAutoPlayOnce:
    """The queued plan runs exactly once whichever confirmation wins."""

    def test_watchdog_first_then_started(self, reconciler, transport):
        transport.put_session(RemoteSession(SID, GameType.ROULETTE, roulette_state()))

        async def scenario():
            await reconciler.start_game(GameType.ROULETTE, wagers=[STRAIGHT_17], advance=True)
            await reconciler.on_watchdog_expired(SID)
            return await reconciler.on_session_started(SID, GameType.ROULETTE, roulette_state())

        assert asyncio.run(scenario()) is False
        assert len(transport.commands) == 2

    def test_started_first_then_watchdog(self, reconciler, transport):
        transport.put_session(RemoteSession(SID, GameType.ROULETTE, roulette_state(bets=[(0, 17, 10)])))

        async def scenario():
            await reconciler.start_game(GameType.ROULETTE, wagers=[STRAIGHT_17], advance=True)
            await reconciler.on_session_started(SID, GameType.ROULETTE, roulette_state())
            await reconciler.on_watchdog_expired(SID)

        asyncio.run(scenario())

        assert len(transport.commands) == 2
        assert reconciler.state == SyncState.IN_PLAY
        assert reconciler.view().pending_move_count == 0


class TestWatchdogRecovery:
    """Tests for the watchdog escalation path."""

    def test_missing_session_abandoned(self, reconciler):
        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            await reconciler.on_watchdog_expired(SID)

        asyncio.run(scenario())

        assert reconciler.state == SyncState.IDLE
        assert reconciler.message == f"Game lost: session {SID} not found"

    def test_failed_query_abandoned(self, reconciler, transport):
        transport.fail_queries = True

        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            await reconciler.on_watchdog_expired(SID)

        asyncio.run(scenario())

        assert reconciler.message == f"Game lost: session {SID} query failed: query failed"

    def test_completed_remote_abandoned(self, reconciler, transport):
        transport.put_session(RemoteSession(SID, GameType.ROULETTE, roulette_state(), is_complete=True))

        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            await reconciler.on_watchdog_expired(SID)

        asyncio.run(scenario())

        assert reconciler.message == f"Game lost: session {SID} already completed"

    def test_expiry_in_play_is_ignored(self, reconciler):
        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            await reconciler.on_session_started(SID, GameType.ROULETTE, roulette_state())
            await reconciler.on_watchdog_expired(SID)

        asyncio.run(scenario())

        assert reconciler.state == SyncState.IN_PLAY

    def test_real_timer_fires(self, transport):
        reconciler = Reconciler(
            transport,
            codecs=default_registry(),
            registry=SessionRegistry(id_seed=SID),
            watchdog_seconds=0.01,
        )

        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            await asyncio.sleep(0.1)

        asyncio.run(scenario())

        assert reconciler.state == SyncState.IDLE
        assert reconciler.message == f"Game lost: session {SID} not found"

    def test_superseded_query_does_not_abandon(self, registry):
        """A started signal handled while the query is in flight wins."""
        transport = RacingTransport(balance=1000)
        reconciler = Reconciler(
            transport,
            codecs=registry,
            registry=SessionRegistry(id_seed=SID),
            watchdog_seconds=60,
        )
        transport.on_fetch = lambda: reconciler.on_session_started(SID, GameType.ROULETTE, roulette_state())

        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            await reconciler.on_watchdog_expired(SID)

        asyncio.run(scenario())

        assert reconciler.state == SyncState.IN_PLAY
        assert reconciler.view().session_id == SID


class TestRollback:
    """Tests for tentative changes undone on transport failure."""

    def test_start_failure(self, reconciler, transport):
        transport.fail_next = "network down"

        async def scenario():
            return await reconciler.start_game(GameType.ROULETTE, wagers=[STRAIGHT_17], advance=True)

        result = asyncio.run(scenario())

        assert not result.accepted
        assert result.message == "Could not start game: network down"
        assert reconciler.state == SyncState.IDLE
        assert not reconciler.registry.is_active
        assert reconciler.planner.plan is None
        assert not reconciler.watchdog.is_armed

    def test_submit_failure(self, reconciler, transport):
        async def scenario():
            await reconciler.start_game(GameType.ROULETTE)
            await reconciler.on_session_started(SID, GameType.ROULETTE, roulette_state())
            transport.fail_next = "boom"
            return await reconciler.submit([Command.advance()])

        result = asyncio.run(scenario())

        assert result.message == "Move failed: boom"
        assert reconciler.state == SyncState.IN_PLAY
        assert reconciler.view().pending_move_count == 0

    def test_modifier_toggle_and_rollback(self, reconciler, transport):
        async def scenario():
            on = await reconciler.toggle_modifier("shield")
            transport.fail_next = "rejected"
            off = await reconciler.toggle_modifier("shield")
            return on, off

        on, off = asyncio.run(scenario())

        assert on.message == "Shield on"
        assert not off.accepted
        assert off.message == "Could not toggle shield: rejected"
        assert reconciler.stats.shield_active

    def test_no_modifiers_left(self, reconciler):
        reconciler.stats.doubles = 0

        result = asyncio.run(reconciler.toggle_modifier("double"))

        assert result.message == "No doubles left"
        assert not reconciler.stats.double_active

    def test_shield_consumed_on_completion(self, reconciler):
        async def scenario():
            await reconciler.toggle_modifier("shield")
            await reconciler.start_game(GameType.ROULETTE)
            await reconciler.on_session_started(SID, GameType.ROULETTE, roulette_state())
            await reconciler.on_session_completed(SID, 1000, 0, CompletionFlags(shielded=True))

        asyncio.run(scenario())

        assert reconciler.stats.shields == 2
        assert not reconciler.stats.shield_active
        assert reconciler.stats.doubles == 3


class TestQueries:
    """Tests for restore and balance refresh."""

    def test_restore(self, reconciler, transport):
        transport.put_session(RemoteSession(77, GameType.ROULETTE, roulette_state(bets=[(0, 17, 10)]), stake=10, move_count=3))

        result = asyncio.run(reconciler.restore_session(77))

        assert result.accepted
        assert reconciler.state == SyncState.IN_PLAY
        assert reconciler.session.move_number == 3
        assert reconciler.view().wagers == [STRAIGHT_17]

    def test_restore_unknown(self, reconciler):
        assert asyncio.run(reconciler.restore_session(5)).message == "Session 5 is not active"

    def test_refresh_balance(self, reconciler, transport):
        transport.balance = 1234

        assert asyncio.run(reconciler.refresh_balance()) == 1234
        assert reconciler.stats.balance == 1234

    def test_refresh_balance_failure(self, reconciler, transport):
        transport.fail_queries = True

        assert asyncio.run(reconciler.refresh_balance()) is None
        assert reconciler.stats.balance == 1000
        assert reconciler.message == "Could not refresh balance: query failed"
