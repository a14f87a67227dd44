"""Tests for strict binary encoding primitives."""

import pytest

from schemata.encoding import (
    StrictReader, StrictWriter, dec_varint, enc_varint, sha256, tagged_hash,
)
from schemata.errors import DecodeError


class TestVarint:
    """LEB128 length prefixes."""

    @pytest.mark.parametrize("value,encoded", [
        (0, b"\x00"),
        (1, b"\x01"),
        (127, b"\x7f"),
        (128, b"\x80\x01"),
        (300, b"\xac\x02"),
    ])
    def test_known_encodings(self, value, encoded):
        assert enc_varint(value) == encoded
        assert dec_varint(encoded, 0) == (value, len(encoded))

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            enc_varint(-1)

    def test_truncated(self):
        with pytest.raises(DecodeError):
            dec_varint(b"\x80", 0)

    def test_decode_from_offset(self):
        assert dec_varint(b"\xff\xac\x02", 1) == (300, 3)


class TestHashing:

    def test_tagged_hash_is_domain_separated(self):
        assert tagged_hash("a", b"data") != tagged_hash("b", b"data")
        assert tagged_hash("a", b"data") != sha256(b"data")
        assert len(tagged_hash("a", b"data")) == 32


class TestWriterReader:
    """StrictWriter output read back by StrictReader."""

    def test_little_endian_integers(self):
        data = StrictWriter().u16(0x0102).u32(1).getvalue()
        assert data == b"\x02\x01\x01\x00\x00\x00"

    def test_integer_width_enforced(self):
        with pytest.raises(ValueError):
            StrictWriter().u8(256)
        with pytest.raises(ValueError):
            StrictWriter().u64(-1)

    def test_mixed_fields(self):
        data = (
            StrictWriter()
            .u8(7)
            .u64(2**64 - 1)
            .boolean(True)
            .text("assetOwner")
            .blob(b"\x00\x01")
            .fixed(b"\xaa" * 4, 4)
            .getvalue()
        )
        r = StrictReader(data)
        assert r.u8() == 7
        assert r.u64() == 2**64 - 1
        assert r.boolean() is True
        assert r.text() == "assetOwner"
        assert r.blob() == b"\x00\x01"
        assert r.fixed(4) == b"\xaa" * 4
        assert r.remaining() == 0
        r.done()

    def test_fixed_length_enforced(self):
        with pytest.raises(ValueError):
            StrictWriter().fixed(b"\x00", 2)

    def test_truncated_read(self):
        with pytest.raises(DecodeError):
            StrictReader(b"\x01").u32()

    def test_trailing_bytes(self):
        r = StrictReader(b"\x01\x02")
        r.u8()
        with pytest.raises(DecodeError):
            r.done()

    def test_invalid_boolean(self):
        with pytest.raises(DecodeError):
            StrictReader(b"\x02").boolean()

    def test_invalid_utf8(self):
        with pytest.raises(DecodeError):
            StrictReader(b"\x01\xff").text()
