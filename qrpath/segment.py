"""Data segments: mode-tagged chunks of payload with their packed bits."""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from qrpath.errors import RangeError


class Mode(Enum):
    """Segment encoding: (4-bit mode indicator, char-count widths per version range)."""

    NUMERIC = (0x1, (10, 12, 14))
    ALPHANUMERIC = (0x2, (9, 11, 13))
    BYTE = (0x4, (8, 16, 16))
    KANJI = (0x8, (8, 10, 12))
    ECI = (0x7, (0, 0, 0))

    @property
    def mode_bits(self) -> int:
        return self.value[0]

    def char_count_bits(self, version: int) -> int:
        """Width of the character count field for versions 1-9, 10-26 and 27-40."""
        return self.value[1][(version + 7) // 17]


class BitBuffer(list):
    """A growable sequence of bits (ints 0 or 1)."""

    def append_bits(self, value: int, length: int) -> None:
        """Append the ``length`` low-order bits of ``value``, most significant first."""
        if length < 0 or length > 31 or value >> length != 0:
            raise RangeError(f"Value {value} does not fit in {length} bits")
        self.extend((value >> i) & 1 for i in reversed(range(length)))

    def to_bytes(self) -> list[int]:
        """Pack into bytes, most significant bit first; a partial last byte is zero-filled."""
        result = [0] * ((len(self) + 7) // 8)
        for i, bit in enumerate(self):
            result[i >> 3] |= bit << (7 - (i & 7))
        return result


@dataclass(frozen=True)
class Segment:
    """A chunk of payload tagged with its mode.

    ``num_chars`` counts source characters (bytes in byte mode). ``bits`` must be the
    mode-specific encoding of those characters; this is not re-validated.
    """
    mode: Mode
    num_chars: int
    bits: tuple[int, ...] = field(repr=False)

    def __post_init__(self):
        if self.num_chars < 0:
            raise RangeError(f"Negative character count: {self.num_chars}")
        if not isinstance(self.bits, tuple):
            object.__setattr__(self, "bits", tuple(self.bits))

    @property
    def bit_length(self) -> int:
        return len(self.bits)


def make_bytes(data: Iterable[int]) -> Segment:
    """Wrap a byte sequence as a single byte-mode segment."""
    try:
        data = bytes(data)
    except ValueError as e:
        raise RangeError(f"Byte value out of range: {e}") from e
    bb = BitBuffer()
    for b in data:
        bb.append_bits(b, 8)
    return Segment(Mode.BYTE, len(data), tuple(bb))


def make_segments(text: str) -> list[Segment]:
    """Segment text for encoding.

    The empty string yields no segments. Anything else is UTF-8 encoded into one
    byte-mode segment.
    """
    if text == "":
        return []
    return [make_bytes(text.encode("utf-8"))]


def total_bits(segments: Sequence[Segment], version: int) -> float:
    """Bits needed to encode ``segments`` at ``version``.

    Returns ``math.inf`` when a segment's character count overflows its count field
    at this version, meaning the version cannot hold the segment list.
    """
    result = 0
    for seg in segments:
        ccbits = seg.mode.char_count_bits(version)
        if seg.num_chars >= 1 << ccbits:
            return math.inf
        result += 4 + ccbits + seg.bit_length
    return result
