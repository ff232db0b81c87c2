"""Compact binary encoding used by the client/server protocol."""

from __future__ import annotations

import math
from enum import IntEnum

from gardn.entitydef import EntityId

_U32 = 0xFFFFFFFF


class Clientbound(IntEnum):
    CLIENT_UPDATE = 0


class Serverbound(IntEnum):
    CLIENT_INPUT = 0
    CLIENT_SPAWN = 1
    PETAL_SWAP = 2
    PETAL_DELETE = 3


class ProtocolError(ValueError):
    """Raised for malformed or truncated packets and unencodable values."""


def _signed_char(b: int) -> int:
    return b if b < 128 else b - 256


class Writer:
    """Builds a packet from varints, zig-zag integers and fixed-point floats."""

    def __init__(self) -> None:
        self._buf = bytearray()

    def write_uint8(self, v: int) -> None:
        self._buf.append(v & 0xFF)

    def write_uint32(self, v: int) -> None:
        v &= _U32
        while v > 127:
            self._buf.append((v & 127) | 128)
            v >>= 7
        self._buf.append(v)

    def write_int32(self, v: int) -> None:
        sign = 1 if v < 0 else 0
        mag = -v if sign else v
        self.write_uint32(((mag << 1) | sign) & _U32)

    def write_float(self, v: float) -> None:
        """Write ``v`` as a signed fixed-point number with 10 fractional bits."""
        scaled = v * 1024
        if not math.isfinite(scaled):
            raise ProtocolError(f"cannot encode non-finite float {v!r}")
        self.write_int32(int(scaled))

    def write_entid(self, entid: EntityId) -> None:
        self.write_uint32(entid.id)
        if entid.id:
            self.write_uint32(entid.hash)

    def write_string(self, s: str) -> None:
        data = s.encode("utf-8")
        self.write_uint32(len(data))
        for b in data:
            self.write_uint32(_signed_char(b))

    def getvalue(self) -> bytes:
        return bytes(self._buf)


class Reader:
    """Reads values written by :class:`Writer` from a packet."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self.pos = 0

    def read_uint8(self) -> int:
        if self.pos >= len(self._data):
            raise ProtocolError("unexpected end of packet")
        v = self._data[self.pos]
        self.pos += 1
        return v

    def read_uint32(self) -> int:
        ret = 0
        for i in range(5):
            o = self.read_uint8()
            ret |= (o & 127) << (i * 7)
            if o <= 127:
                break
        return ret & _U32

    def read_int32(self) -> int:
        r = self.read_uint32()
        value = r >> 1
        return -value if r & 1 else value

    def read_float(self) -> float:
        return self.read_int32() / 1024.0

    def read_entid(self) -> EntityId:
        ident = self.read_uint32() & 0xFFFF
        hash_ = self.read_uint32() & 0xFFFF if ident else 0
        return EntityId(ident, hash_)

    def read_string(self) -> str:
        length = self.read_uint32()
        data = bytes(self.read_uint32() & 0xFF for _ in range(length))
        return data.decode("utf-8", errors="replace")