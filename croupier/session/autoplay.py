"""
Auto-Play Planner - "Start a game and immediately act".

A plan is queued when the player starts a session together with wagers
(and optionally an advance). The session does not exist remotely yet, so
the plan waits for whichever confirmation arrives first: the push signal or
the watchdog's direct fetch. take() removes the plan in the same step it
reads it, so the second path finds nothing and the plan runs exactly once.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Awaitable, Callable
import logging

from ..engine_core.action import Command, CommandResult
from ..engine_core.codec import GameCodec
from ..engine_core.errors import EncodeError
from ..engine_core.state import GameType, Wager

logger = logging.getLogger(__name__)

SubmitFn = Callable[[list[bytes]], Awaitable[CommandResult]]


@dataclass(frozen=True)
class AutoPlayPlan:
    """Wagers to place, and whether to advance, once the session is live."""
    session_id: int
    game_type: GameType
    wagers: tuple[Wager, ...] = ()
    advance: bool = True

    def commands(self) -> list[Command]:
        commands = [Command.place(w) for w in self.wagers]
        if self.advance:
            commands.append(Command.advance())
        return commands


class AutoPlayPlanner:
    """Holds at most one outstanding plan."""

    def __init__(self):
        self._plan: AutoPlayPlan | None = None

    @property
    def plan(self) -> AutoPlayPlan | None:
        return self._plan

    def queue(self, plan: AutoPlayPlan, confirmed: bool = False) -> bool:
        """
        Queue a plan.

        An existing plan is replaced only when it is bound to the same
        session, and nothing is queued once that session is confirmed.
        Returns False if the plan was rejected.
        """
        if confirmed:
            logger.warning("Rejected auto-play plan for session %s: already confirmed", plan.session_id)
            return False
        if self._plan is not None and self._plan.session_id != plan.session_id:
            logger.warning(
                "Rejected auto-play plan for session %s: plan for %s outstanding",
                plan.session_id,
                self._plan.session_id,
            )
            return False
        self._plan = plan
        return True

    def take(self, session_id: int, game_type: GameType) -> AutoPlayPlan | None:
        """Remove and return the plan if it belongs to this session."""
        plan = self._plan
        if plan is None or plan.session_id != session_id:
            return None
        self._plan = None
        if plan.game_type != game_type:
            logger.warning(
                "Dropped auto-play plan for session %s: expected %s, got %s",
                session_id,
                plan.game_type.display_name,
                GameType(game_type).display_name,
            )
            return None
        return plan

    async def consume(
        self,
        session_id: int,
        game_type: GameType,
        codec: GameCodec,
        submit: SubmitFn,
    ) -> CommandResult | None:
        """
        Take the plan and submit "N wagers then advance".

        Returns None when there was nothing to run.
        """
        plan = self.take(session_id, game_type)
        if plan is None:
            return None

        try:
            payloads = [codec.encode(command) for command in plan.commands()]
        except EncodeError as e:
            logger.warning("Auto-play plan for session %s not encodable: %s", session_id, e)
            return CommandResult.failure(str(e))

        if not payloads:
            return CommandResult.ok([])
        logger.info("Auto-play: submitting %d command(s) for session %s", len(payloads), session_id)
        return await submit(payloads)

    def discard(self, session_id: int | None = None):
        """Drop the plan (only if bound to session_id, when given)."""
        if self._plan is None:
            return
        if session_id is None or self._plan.session_id == session_id:
            self._plan = None
