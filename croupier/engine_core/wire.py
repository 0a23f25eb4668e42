"""
Wire helpers - Big-endian primitives shared by every codec.

All multi-byte integers are big-endian. Amounts are u64 unless a format
says otherwise. Readers never index past the buffer: every read checks the
remaining length first and raises DecodeError on underrun.
"""

from __future__ import annotations
import struct

from .errors import DecodeError, EncodeError
from .state import Card, GameType

_U16 = struct.Struct(">H")
_U32 = struct.Struct(">I")
_U64 = struct.Struct(">Q")
_I64 = struct.Struct(">q")

U64_MAX = (1 << 64) - 1


class ByteReader:
    """
    Sequential reader over an immutable byte buffer.

    Usage:
        reader = ByteReader(blob, game_type=GameType.CRAPS, version=2)
        phase = reader.u8()
        amount = reader.u64()
    """

    def __init__(
        self,
        data: bytes,
        game_type: GameType | None = None,
        version: int | None = None,
    ):
        self.data = bytes(data)
        self.offset = 0
        self.game_type = game_type
        self.version = version

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset

    def error(self, reason: str) -> DecodeError:
        return DecodeError(reason, game_type=self.game_type, version=self.version)

    def require(self, count: int, what: str = "field"):
        if count > self.remaining:
            raise self.error(
                f"truncated {what}: need {count} byte(s) at offset "
                f"{self.offset}, have {self.remaining}"
            )

    def take(self, count: int, what: str = "bytes") -> bytes:
        self.require(count, what)
        chunk = self.data[self.offset:self.offset + count]
        self.offset += count
        return chunk

    def u8(self, what: str = "u8") -> int:
        self.require(1, what)
        value = self.data[self.offset]
        self.offset += 1
        return value

    def u16(self, what: str = "u16") -> int:
        return _U16.unpack(self.take(2, what))[0]

    def u32(self, what: str = "u32") -> int:
        return _U32.unpack(self.take(4, what))[0]

    def u64(self, what: str = "u64") -> int:
        return _U64.unpack(self.take(8, what))[0]

    def i64(self, what: str = "i64") -> int:
        return _I64.unpack(self.take(8, what))[0]

    def card(self, what: str = "card") -> Card:
        value = self.u8(what)
        try:
            return Card.from_byte(value)
        except ValueError as e:
            raise self.error(str(e)) from None

    def cards(self, count: int, what: str = "cards") -> list[Card]:
        self.require(count, what)
        return [self.card(what) for _ in range(count)]

    def varint(self, what: str = "varint") -> int:
        """Read an unsigned LEB128 varint (at most 9 bytes)."""
        value = 0
        shift = 0
        for _ in range(9):
            byte = self.u8(what)
            value |= (byte & 0x7F) << shift
            if not byte & 0x80:
                return value
            shift += 7
        raise self.error(f"{what} too long")


def pack_u8(value: int) -> bytes:
    if not 0 <= value <= 0xFF:
        raise EncodeError(f"Value out of range for u8: {value}")
    return bytes([value])


def pack_u64(value: int) -> bytes:
    if not 0 <= value <= U64_MAX:
        raise EncodeError(f"Amount out of range for u64: {value}")
    return _U64.pack(value)


def pack_i64(value: int) -> bytes:
    return _I64.pack(value)


def pack_u32(value: int) -> bytes:
    return _U32.pack(value)


def pack_varint(value: int) -> bytes:
    if value < 0:
        raise EncodeError(f"Varint must be non-negative: {value}")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)
