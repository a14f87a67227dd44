"""
Strict binary encoding primitives.

Integers are little-endian and fixed-width, lengths and counts are unsigned
LEB128 varints, text is UTF-8 with a length prefix. The same writer/reader
pair backs value encoding in the type library and the canonical schema
encoding whose digest is the schema id.
"""

import hashlib
from typing import Tuple

from .errors import DecodeError


# =============================================================================
# Hashing
# =============================================================================

def sha256(data: bytes) -> bytes:
    """Raw 32-byte sha256 digest."""
    return hashlib.sha256(data).digest()


def tagged_hash(tag: str, data: bytes) -> bytes:
    """Domain-separated digest: sha256(sha256(tag) || sha256(tag) || data)."""
    tag_digest = sha256(tag.encode("utf-8"))
    return sha256(tag_digest + tag_digest + data)


# =============================================================================
# Varints
# =============================================================================

def enc_varint(n: int) -> bytes:
    """Unsigned LEB128."""
    if n < 0:
        raise ValueError("varint must be non-negative")
    out = bytearray()
    x = n
    while True:
        b = x & 0x7F
        x >>= 7
        if x:
            out.append(b | 0x80)
        else:
            out.append(b)
            break
    return bytes(out)


def dec_varint(buf: bytes, off: int) -> Tuple[int, int]:
    """Return (value, new_off)."""
    x = 0
    shift = 0
    i = off
    while True:
        if i >= len(buf):
            raise DecodeError("varint", "truncated varint")
        b = buf[i]
        i += 1
        x |= (b & 0x7F) << shift
        if (b & 0x80) == 0:
            return x, i
        shift += 7
        if shift > 63:
            raise DecodeError("varint", "varint too large")


# =============================================================================
# Writer / Reader
# =============================================================================

class StrictWriter:
    """Append-only buffer producing a canonical byte string."""

    def __init__(self):
        self._buf = bytearray()

    def uint(self, value: int, width: int) -> "StrictWriter":
        if value < 0 or value >= 1 << (8 * width):
            raise ValueError(f"{value} does not fit in {width * 8} bits")
        self._buf += value.to_bytes(width, "little")
        return self

    def u8(self, value: int) -> "StrictWriter":
        return self.uint(value, 1)

    def u16(self, value: int) -> "StrictWriter":
        return self.uint(value, 2)

    def u32(self, value: int) -> "StrictWriter":
        return self.uint(value, 4)

    def u64(self, value: int) -> "StrictWriter":
        return self.uint(value, 8)

    def boolean(self, value: bool) -> "StrictWriter":
        return self.u8(1 if value else 0)

    def varint(self, value: int) -> "StrictWriter":
        self._buf += enc_varint(value)
        return self

    def fixed(self, data: bytes, length: int) -> "StrictWriter":
        if len(data) != length:
            raise ValueError(f"expected {length} bytes, got {len(data)}")
        self._buf += data
        return self

    def blob(self, data: bytes) -> "StrictWriter":
        self.varint(len(data))
        self._buf += data
        return self

    def text(self, value: str) -> "StrictWriter":
        return self.blob(value.encode("utf-8"))

    def raw(self, data: bytes) -> "StrictWriter":
        self._buf += data
        return self

    def getvalue(self) -> bytes:
        return bytes(self._buf)


class StrictReader:
    """Cursor over a byte string written by StrictWriter."""

    def __init__(self, data: bytes):
        self._buf = bytes(data)
        self._off = 0

    def _take(self, n: int) -> bytes:
        if self._off + n > len(self._buf):
            raise DecodeError("buffer", f"truncated data: need {n} bytes at offset {self._off}")
        chunk = self._buf[self._off:self._off + n]
        self._off += n
        return chunk

    def uint(self, width: int) -> int:
        return int.from_bytes(self._take(width), "little")

    def u8(self) -> int:
        return self.uint(1)

    def u16(self) -> int:
        return self.uint(2)

    def u32(self) -> int:
        return self.uint(4)

    def u64(self) -> int:
        return self.uint(8)

    def boolean(self) -> bool:
        b = self.u8()
        if b not in (0, 1):
            raise DecodeError("bool", f"invalid boolean byte {b}")
        return b == 1

    def varint(self) -> int:
        value, self._off = dec_varint(self._buf, self._off)
        return value

    def fixed(self, length: int) -> bytes:
        return self._take(length)

    def blob(self) -> bytes:
        return self._take(self.varint())

    def text(self) -> str:
        raw = self.blob()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError("text", f"invalid utf-8: {exc}") from exc

    def remaining(self) -> int:
        return len(self._buf) - self._off

    def done(self) -> None:
        if self._off != len(self._buf):
            raise DecodeError("buffer", f"{len(self._buf) - self._off} trailing bytes")
