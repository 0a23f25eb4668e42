"""
Error types shared across the engine.

Decode and encode errors come from the codec layer and never escape into
session state. Session errors signal registry misuse. Transport errors are
raised by transport implementations when a submission or query fails.
"""

from __future__ import annotations
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .state import GameType


class CroupierError(Exception):
    """Base class for engine errors."""


class DecodeError(CroupierError):
    """Raised when a state blob or event frame cannot be decoded."""

    def __init__(
        self,
        reason: str,
        game_type: GameType | None = None,
        version: int | None = None,
    ):
        self.reason = reason
        self.game_type = game_type
        self.version = version
        prefix = game_type.display_name if game_type is not None else "frame"
        if version is not None:
            prefix = f"{prefix} v{version}"
        super().__init__(f"{prefix}: {reason}")


class EncodeError(CroupierError):
    """Raised when a command cannot be encoded for a game."""


class SessionError(CroupierError):
    """Raised on invalid session registry transitions."""


class TransportError(CroupierError):
    """Raised by transports when a submission or query fails."""
