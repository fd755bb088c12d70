"""Tests for the LSB-first bit stream reader."""

import pytest

from src.protocol.bitreader import BitStreamReader
from tests.builders import BitWriter

WIDTHS = [1, 4, 5, 7, 10, 12, 14, 16, 17, 31, 32]


def _patterns(width: int) -> list[int]:
    mask = (1 << width) - 1
    return [0, 1, mask, 0x55555555 & mask, 0xA5C3F00F & mask]


class TestRoundTrip:
    """A value written at any bit alignment reads back exactly."""

    @pytest.mark.parametrize("width", WIDTHS)
    @pytest.mark.parametrize("offset", range(8))
    def test_value_at_offset(self, width, offset):
        for value in _patterns(width):
            w = BitWriter()
            if offset:
                w.write((1 << offset) - 1, offset)  # ones before
            w.write(value, width)
            w.write(0x7, 3)  # ones after
            data = w.to_bytes()

            reader = BitStreamReader(data)
            reader.skip(offset)
            assert reader.read(width) == value
            assert reader.read(3) == 0x7

    def test_start_byte(self):
        data = b"\xff\xff\x0c\x00"
        reader = BitStreamReader(data, 2)
        assert reader.read(4) == 0xC
        assert reader.bit_pos == 20


class TestBitOrder:
    def test_lsb_first_within_byte(self):
        reader = BitStreamReader(b"\x01")
        assert reader.read(1) == 1
        assert reader.read(7) == 0

    def test_crosses_byte_boundary(self):
        # 0xF0 0x0F: bits 4..11 are all ones
        reader = BitStreamReader(b"\xf0\x0f")
        assert reader.read(4) == 0
        assert reader.read(8) == 0xFF
        assert reader.read(4) == 0

    def test_u32_little_endian(self):
        reader = BitStreamReader(b"\x78\x56\x34\x12")
        assert reader.read(32) == 0x12345678


class TestOverrun:
    def test_missing_bits_read_zero(self):
        reader = BitStreamReader(b"\xff")
        assert reader.read(8) == 0xFF
        assert reader.read(8) == 0
        assert reader.read(32) == 0

    def test_partial_overrun(self):
        reader = BitStreamReader(b"\xff")
        assert reader.read(12) == 0xFF

    def test_overrun_is_idempotent(self):
        data = b"\x01\x02"
        a = BitStreamReader(data, 5)
        b = BitStreamReader(data, 5)
        assert a.read(16) == 0
        assert b.read(16) == 0
        assert a.read(16) == 0

    def test_empty_buffer(self):
        reader = BitStreamReader(b"")
        assert reader.exhausted
        assert reader.read(17) == 0

    def test_remaining_never_negative(self):
        reader = BitStreamReader(b"\x00\x00")
        reader.skip(40)
        assert reader.remaining_bits == 0
        assert reader.exhausted


class TestCursor:
    def test_cursor_is_monotonic(self):
        reader = BitStreamReader(b"\x00" * 8)
        positions = []
        for width in (3, 10, 1, 32):
            reader.read(width)
            positions.append(reader.bit_pos)
        assert positions == [3, 13, 14, 46]

    def test_skip_advances(self):
        reader = BitStreamReader(b"\x00\x80")
        reader.skip(15)
        assert reader.read(1) == 1

    @pytest.mark.parametrize("width", [0, 33, -1])
    def test_invalid_width(self, width):
        reader = BitStreamReader(b"\x00")
        with pytest.raises(ValueError):
            reader.read(width)

    def test_negative_skip(self):
        with pytest.raises(ValueError):
            BitStreamReader(b"\x00").skip(-1)
