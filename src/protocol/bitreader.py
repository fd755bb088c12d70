"""
PacketParser — Bit Stream Reader

Cursor over a byte buffer that reads unsigned integers of arbitrary bit
width. Bits are packed LSB-first within each byte, and a field that runs
past the top of a byte continues at the low bit of the next one.

Reading past the end of the buffer is not an error: every missing bit
reads as 0. A truncated packet still walks to completion and the packet
decoder's own count checks decide whether the result is usable.
"""

from __future__ import annotations

MAX_READ_WIDTH = 32


class BitStreamReader:
    """LSB-first bit reader with a monotonic cursor."""

    def __init__(self, data: bytes, start_byte: int = 0):
        if start_byte < 0:
            raise ValueError(f"start_byte must be >= 0, got {start_byte}")
        self.data = bytes(data)
        self.bit_pos = start_byte * 8

    @property
    def total_bits(self) -> int:
        return len(self.data) * 8

    @property
    def remaining_bits(self) -> int:
        return max(0, self.total_bits - self.bit_pos)

    @property
    def exhausted(self) -> bool:
        return self.bit_pos >= self.total_bits

    def read(self, width: int) -> int:
        """Read `width` bits (1..32) and advance the cursor."""
        if not 1 <= width <= MAX_READ_WIDTH:
            raise ValueError(f"bit width must be 1..{MAX_READ_WIDTH}, got {width}")

        first = self.bit_pos >> 3
        last = (self.bit_pos + width + 7) >> 3
        # Slicing past the end just yields fewer bytes; the high bits are 0.
        chunk = int.from_bytes(self.data[first:last], "little")
        value = (chunk >> (self.bit_pos & 7)) & ((1 << width) - 1)

        self.bit_pos += width
        return value

    def skip(self, width: int) -> None:
        """Advance the cursor without reading. Any width >= 0 is allowed."""
        if width < 0:
            raise ValueError(f"cannot skip a negative width ({width})")
        self.bit_pos += width

    def __repr__(self) -> str:
        return (
            f"BitStreamReader(byte={self.bit_pos >> 3}, bit={self.bit_pos & 7}, "
            f"remaining={self.remaining_bits})"
        )
