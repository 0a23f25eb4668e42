"""
Codec Registry - Maps each game type to its wire codec.

A GameCodec is the capability interface for one game:
- encode(command) -> bytes (command payload)
- decode(data) -> Snapshot (state blob)
- encode_wager_record(wager) -> bytes (one record of the state's bet array)

New games are added by registering another codec; nothing else changes.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import ClassVar

from .action import Command, CommandKind
from .errors import DecodeError, EncodeError
from .state import GameType, Snapshot, Wager
from .wire import ByteReader


class GameCodec(ABC):
    """
    Abstract codec for one game type.

    Subclasses set game_type and, for versioned formats, the version table
    min_lengths (version -> minimum blob length for that version).
    """
    game_type: ClassVar[GameType]
    min_lengths: ClassVar[dict[int, int]] = {}

    @abstractmethod
    def encode(self, command: Command) -> bytes:
        """Encode a command payload. Raises EncodeError if unsupported."""

    @abstractmethod
    def decode(self, data: bytes) -> Snapshot:
        """Decode a state blob. Raises DecodeError on malformed input."""

    def encode_wager_record(self, wager: Wager) -> bytes:
        """Encode one wager as it appears in this game's state blob."""
        raise EncodeError(f"{self.game_type.display_name} has no wager records")

    def supported_commands(self) -> list[CommandKind]:
        return []

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def reader(self, data: bytes, version: int | None = None) -> ByteReader:
        return ByteReader(data, game_type=self.game_type, version=version)

    def error(self, reason: str, version: int | None = None) -> DecodeError:
        return DecodeError(reason, game_type=self.game_type, version=version)

    def unsupported(self, command: Command) -> EncodeError:
        return EncodeError(
            f"{self.game_type.display_name} does not support {command.kind.value}"
        )

    def detect_version(self, data: bytes, offset: int = 0) -> int:
        """
        Read the version byte at offset and check the version's minimum length.

        Unknown versions are rejected rather than guessed.
        """
        if len(data) <= offset:
            raise self.error(f"missing version byte ({len(data)} byte(s))")
        version = data[offset]
        if version not in self.min_lengths:
            raise self.error(f"unknown state version {version}")
        minimum = self.min_lengths[version]
        if len(data) < minimum:
            raise self.error(
                f"need at least {minimum} bytes, got {len(data)}",
                version=version,
            )
        return version


class CodecRegistry:
    """
    Registry of game codecs keyed by game type.

    Usage:
        registry = CodecRegistry()
        registry.register(CrapsCodec())
        payload = registry.encode_command(GameType.CRAPS, Command.advance())
        snapshot = registry.decode_state(GameType.CRAPS, blob)
    """

    def __init__(self, codecs: list[GameCodec] | None = None):
        self._codecs: dict[GameType, GameCodec] = {}
        for codec in codecs or []:
            self.register(codec)

    def register(self, codec: GameCodec):
        self._codecs[codec.game_type] = codec

    def get(self, game_type: GameType) -> GameCodec:
        codec = self._codecs.get(GameType(game_type))
        if codec is None:
            raise KeyError(f"No codec registered for {GameType(game_type).display_name}")
        return codec

    def __contains__(self, game_type: GameType) -> bool:
        return game_type in self._codecs

    @property
    def game_types(self) -> list[GameType]:
        return sorted(self._codecs)

    def encode_command(self, game_type: GameType, command: Command) -> bytes:
        return self.get(game_type).encode(command)

    def decode_state(self, game_type: GameType, data: bytes) -> Snapshot:
        return self.get(game_type).decode(bytes(data))
