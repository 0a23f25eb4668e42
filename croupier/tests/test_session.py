"""
Tests for the session registry, the auto-play planner and the watchdog.
"""

import asyncio

import pytest

from ..engine_core.action import CommandResult
from ..engine_core.errors import SessionError
from ..engine_core.state import GameType, Stage, Wager
from ..games import CasinoWarCodec, RouletteCodec
from ..session import AutoPlayPlan, AutoPlayPlanner, SessionRegistry, Watchdog
from .factories import roulette_state


class TestSessionRegistry:
    """Tests for SessionRegistry."""

    def test_ids_increment_from_seed(self):
        registry = SessionRegistry(id_seed=1000)

        first = registry.begin(GameType.ROULETTE, starting_balance=500)
        registry.end()
        second = registry.begin(GameType.CRAPS)

        assert (first, second) == (1000, 1001)

    def test_ids_wrap_at_64_bits(self):
        registry = SessionRegistry(id_seed=(1 << 64) - 1)

        registry.begin(GameType.HILO)
        registry.end()

        assert registry.begin(GameType.HILO) == 0

    def test_one_active_session(self):
        registry = SessionRegistry(id_seed=1)
        registry.begin(GameType.ROULETTE)

        with pytest.raises(SessionError):
            registry.begin(GameType.ROULETTE)

    def test_lifecycle(self):
        registry = SessionRegistry(id_seed=5)
        session_id = registry.begin(GameType.ROULETTE, starting_balance=1000, stake=10)
        session = registry.current

        assert not session.confirmed
        assert session.stage == Stage.BETTING
        assert session.starting_balance == 1000

        codec = RouletteCodec()
        first = codec.decode(roulette_state(bets=[(0, 17, 10)]))
        second = codec.decode(roulette_state(bets=[(0, 17, 10)], result=3))
        registry.bind(session_id, first)
        registry.advance(second)

        assert session.confirmed
        assert session.previous_snapshot is first
        assert session.stage == Stage.RESULT
        assert session.move_number == 1
        assert registry.end() is session
        assert not registry.is_active

    def test_bind_rejects_other_session(self):
        registry = SessionRegistry(id_seed=5)
        registry.begin(GameType.ROULETTE)

        with pytest.raises(SessionError):
            registry.bind(6, None)

    def test_matches(self):
        registry = SessionRegistry(id_seed=5)
        assert not registry.matches(5)
        registry.begin(GameType.ROULETTE)
        assert registry.matches(5)
        assert not registry.matches(None)


class TestAutoPlayPlanner:
    """Tests for the at-most-once plan."""

    def plan(self, session_id=1, game_type=GameType.ROULETTE, advance=True):
        return AutoPlayPlan(
            session_id=session_id,
            game_type=game_type,
            wagers=(Wager(kind=0, amount=10, target=17),),
            advance=advance,
        )

    def test_take_is_once(self):
        planner = AutoPlayPlanner()
        planner.queue(self.plan())

        assert planner.take(1, GameType.ROULETTE) is not None
        assert planner.take(1, GameType.ROULETTE) is None

    def test_take_other_session_keeps_plan(self):
        planner = AutoPlayPlanner()
        planner.queue(self.plan())

        assert planner.take(2, GameType.ROULETTE) is None
        assert planner.plan is not None

    def test_game_mismatch_drops_plan(self):
        planner = AutoPlayPlanner()
        planner.queue(self.plan())

        assert planner.take(1, GameType.CRAPS) is None
        assert planner.plan is None

    def test_second_session_rejected(self):
        planner = AutoPlayPlanner()
        planner.queue(self.plan())

        assert not planner.queue(self.plan(session_id=2))
        assert planner.queue(self.plan(advance=False))
        assert planner.plan.advance is False

    def test_confirmed_session_rejected(self):
        """A plan can no longer change once its session is confirmed."""
        planner = AutoPlayPlanner()
        planner.queue(self.plan())

        assert not planner.queue(self.plan(advance=False), confirmed=True)
        assert planner.plan.advance is True

    def test_discard(self):
        planner = AutoPlayPlanner()
        planner.queue(self.plan())

        planner.discard(session_id=2)
        assert planner.plan is not None
        planner.discard()
        assert planner.plan is None

    def test_consume_submits_wagers_then_advance(self):
        planner = AutoPlayPlanner()
        planner.queue(self.plan())
        batches = []

        async def submit(payloads):
            batches.append(payloads)
            return CommandResult.ok(["tx-1", "tx-2"])

        async def scenario():
            first = await planner.consume(1, GameType.ROULETTE, RouletteCodec(), submit)
            second = await planner.consume(1, GameType.ROULETTE, RouletteCodec(), submit)
            return first, second

        first, second = asyncio.run(scenario())

        assert first.success
        assert second is None
        assert len(batches) == 1
        assert batches[0][0][:3] == bytes([0, 0, 17])
        assert batches[0][1] == b"\x01"

    def test_consume_unencodable_plan(self):
        planner = AutoPlayPlanner()
        planner.queue(self.plan(game_type=GameType.CASINO_WAR))

        async def submit(payloads):
            raise AssertionError("nothing should be submitted")

        result = asyncio.run(planner.consume(1, GameType.CASINO_WAR, CasinoWarCodec(), submit))

        assert not result.success
        assert "does not support" in result.error


class TestWatchdog:
    """Tests for the watchdog timer."""

    def test_fires_once_for_armed_session(self):
        fired = []

        async def on_expire(session_id):
            fired.append(session_id)

        async def scenario():
            watchdog = Watchdog(0.01, on_expire)
            watchdog.arm(7)
            assert watchdog.armed_for == 7
            await asyncio.sleep(0.05)
            return watchdog

        watchdog = asyncio.run(scenario())

        assert fired == [7]
        assert not watchdog.is_armed

    def test_disarm_prevents_expiry(self):
        fired = []

        async def on_expire(session_id):
            fired.append(session_id)

        async def scenario():
            watchdog = Watchdog(0.01, on_expire)
            watchdog.arm(7)
            watchdog.disarm()
            await asyncio.sleep(0.05)

        asyncio.run(scenario())

        assert fired == []

    def test_rearm_replaces_timer(self):
        fired = []

        async def on_expire(session_id):
            fired.append(session_id)

        async def scenario():
            watchdog = Watchdog(0.02, on_expire)
            watchdog.arm(1)
            watchdog.arm(2)
            await asyncio.sleep(0.08)

        asyncio.run(scenario())

        assert fired == [2]
