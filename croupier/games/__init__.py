"""
Games module - One codec per supported game.

Each game module provides:
- A snapshot dataclass for its decoded state
- Enums for its wager kinds and stages
- A GameCodec that encodes commands and decodes state blobs
"""

from ..engine_core.codec import CodecRegistry
from .baccarat import BaccaratCodec, BaccaratSnapshot
from .blackjack import BlackjackCodec, BlackjackSnapshot
from .casino_war import CasinoWarCodec, CasinoWarSnapshot
from .craps import CrapsCodec, CrapsSnapshot
from .hilo import HiLoCodec, HiLoSnapshot
from .roulette import RouletteCodec, RouletteSnapshot
from .sic_bo import SicBoCodec, SicBoSnapshot
from .three_card import ThreeCardCodec, ThreeCardSnapshot
from .ultimate_holdem import UltimateHoldemCodec, UltimateHoldemSnapshot
from .video_poker import VideoPokerCodec, VideoPokerSnapshot

ALL_CODECS = (
    BaccaratCodec,
    BlackjackCodec,
    CasinoWarCodec,
    CrapsCodec,
    VideoPokerCodec,
    HiLoCodec,
    RouletteCodec,
    SicBoCodec,
    ThreeCardCodec,
    UltimateHoldemCodec,
)


def default_registry() -> CodecRegistry:
    """A registry with every built-in game codec."""
    return CodecRegistry([codec() for codec in ALL_CODECS])


__all__ = [
    "ALL_CODECS",
    "default_registry",
    "BaccaratCodec",
    "BaccaratSnapshot",
    "BlackjackCodec",
    "BlackjackSnapshot",
    "CasinoWarCodec",
    "CasinoWarSnapshot",
    "CrapsCodec",
    "CrapsSnapshot",
    "HiLoCodec",
    "HiLoSnapshot",
    "RouletteCodec",
    "RouletteSnapshot",
    "SicBoCodec",
    "SicBoSnapshot",
    "ThreeCardCodec",
    "ThreeCardSnapshot",
    "UltimateHoldemCodec",
    "UltimateHoldemSnapshot",
    "VideoPokerCodec",
    "VideoPokerSnapshot",
]
