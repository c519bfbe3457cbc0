"""Bit operations on a page bitmap, most significant bit first within each byte."""

from __future__ import annotations

BITMAP_WIDTH = 8
BITMAP_HIGHEST_BIT = 0x80


def _bucket(pos: int) -> int:
    return pos // BITMAP_WIDTH


def _mask(pos: int) -> int:
    return BITMAP_HIGHEST_BIT >> (pos % BITMAP_WIDTH)


def new_bitmap(size: int) -> bytearray:
    """Return a zeroed bitmap of ``size`` bytes."""
    if size < 0:
        raise ValueError(f"bitmap size must not be negative: {size}")
    return bytearray(size)


def set_bit(bm: bytearray, pos: int) -> None:
    """Set bit ``pos`` to 1."""
    bm[_bucket(pos)] |= _mask(pos)


def reset_bit(bm: bytearray, pos: int) -> None:
    """Set bit ``pos`` to 0."""
    bm[_bucket(pos)] &= ~_mask(pos) & 0xFF


def is_set(bm: bytes | bytearray | memoryview, pos: int) -> bool:
    """Return True if bit ``pos`` is 1."""
    return bool(bm[_bucket(pos)] & _mask(pos))


def next_bit(bit: bool, bm: bytes | bytearray | memoryview, max_n: int, curr: int) -> int:
    """Return the first position in ``[curr + 1, max_n)`` whose bit equals ``bit``, else ``max_n``."""
    want = bool(bit)
    return next((i for i in range(curr + 1, max_n) if is_set(bm, i) == want), max_n)


def first_bit(bit: bool, bm: bytes | bytearray | memoryview, max_n: int) -> int:
    """Return the first position in ``[0, max_n)`` whose bit equals ``bit``, else ``max_n``."""
    return next_bit(bit, bm, max_n, -1)