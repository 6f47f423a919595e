"""Module grid construction: function patterns, codeword placement and masking.

A grid moves through a fixed sequence of states and never skips one:

    empty -> function patterns drawn -> codewords drawn -> masked -> frozen

``modules`` and ``is_function`` are dense row-major numpy buffers indexed
``[y, x]``. ``is_function`` protects finder, timing, alignment, format and version
cells from codeword placement and masking, and is dropped by ``freeze()``.
"""

from collections.abc import Iterator, Sequence

import numpy as np

from qrpath.capacity import Ecc, check_version, num_alignment_patterns, num_raw_codewords, symbol_size
from qrpath.errors import RangeError, check

FORMAT_GENERATOR = 0x537
FORMAT_XOR_MASK = 0x5412
VERSION_GENERATOR = 0x1F25

# (x, y) -> True where the mask inverts the module
MASK_PATTERNS = (
    lambda x, y: (x + y) % 2 == 0,
    lambda x, y: y % 2 == 0,
    lambda x, y: x % 3 == 0,
    lambda x, y: (x + y) % 3 == 0,
    lambda x, y: (x // 3 + y // 2) % 2 == 0,
    lambda x, y: (x * y) % 2 + (x * y) % 3 == 0,
    lambda x, y: ((x * y) % 2 + (x * y) % 3) % 2 == 0,
    lambda x, y: ((x + y) % 2 + (x * y) % 3) % 2 == 0,
)


def _get_bit(value: int, i: int) -> bool:
    return ((value >> i) & 1) != 0


def format_bits(ecc: Ecc, mask: int) -> int:
    """15-bit format information: level and mask, BCH(15,5) remainder, XOR mask."""
    data = ecc.format_bits << 3 | mask
    rem = data
    for _ in range(10):
        rem = (rem << 1) ^ ((rem >> 9) * FORMAT_GENERATOR)
    bits = (data << 10 | rem) ^ FORMAT_XOR_MASK
    check(bits >> 15 == 0, "Format bits overflow")
    return bits


def version_bits(version: int) -> int:
    """18-bit version information: version number and BCH(18,6) remainder."""
    rem = version
    for _ in range(12):
        rem = (rem << 1) ^ ((rem >> 11) * VERSION_GENERATOR)
    bits = version << 12 | rem
    check(bits >> 18 == 0, "Version bits overflow")
    return bits


def alignment_pattern_positions(version: int) -> list[int]:
    """Ascending alignment pattern centres, used on both axes."""
    check_version(version)
    num_align = num_alignment_patterns(version)
    if num_align == 0:
        return []
    if version == 32:
        step = 26
    else:
        step = -(-(version * 4 + 4) // (num_align * 2 - 2)) * 2
    result = [6]
    pos = symbol_size(version) - 7
    while len(result) < num_align:
        result.insert(1, pos)
        pos -= step
    return result


def mask_pattern(mask: int, size: int) -> np.ndarray:
    """Boolean array of the cells that mask ``mask`` inverts."""
    if not 0 <= mask <= 7:
        raise RangeError(f"Mask value out of range: {mask}")
    y, x = np.indices((size, size))
    return MASK_PATTERNS[mask](x, y)


def zigzag_positions(size: int) -> Iterator[tuple[int, int]]:
    """Yield (x, y) in codeword placement order, function cells included.

    Two-column strips are scanned from the right edge leftwards, alternating
    upward and downward. The vertical timing column 6 is skipped.
    """
    right = size - 1
    while right >= 1:
        if right == 6:
            right = 5
        upward = ((right + 1) & 2) == 0
        for vert in range(size):
            y = size - 1 - vert if upward else vert
            for j in range(2):
                yield right - j, y
        right -= 2


class ModuleGrid:
    """Mutable symbol under construction. Owned by a single encode call."""

    def __init__(self, version: int, ecc: Ecc):
        check_version(version)
        self.version = version
        self.ecc = ecc
        self.size = symbol_size(version)
        self.modules = np.zeros((self.size, self.size), dtype=bool)
        self.is_function = np.zeros((self.size, self.size), dtype=bool)

    def _set_function_module(self, x: int, y: int, dark: bool) -> None:
        self.modules[y, x] = dark
        self.is_function[y, x] = True

    # -- function patterns --------------------------------------------------

    def draw_function_patterns(self) -> None:
        size = self.size
        for i in range(size):
            self._set_function_module(6, i, i % 2 == 0)
            self._set_function_module(i, 6, i % 2 == 0)

        # Finders overwrite the ends of the timing patterns
        self._draw_finder_pattern(3, 3)
        self._draw_finder_pattern(size - 4, 3)
        self._draw_finder_pattern(3, size - 4)

        positions = alignment_pattern_positions(self.version)
        last = len(positions) - 1
        for i, px in enumerate(positions):
            for j, py in enumerate(positions):
                if (i, j) in ((0, 0), (0, last), (last, 0)):
                    continue  # finder corner
                self._draw_alignment_pattern(px, py)

        self.draw_format_bits(0)  # placeholder, redrawn once the mask is known
        self._draw_version()

    def _draw_finder_pattern(self, x: int, y: int) -> None:
        """9x9 finder plus separator centred on (x, y); may run off the grid."""
        for dy in range(-4, 5):
            for dx in range(-4, 5):
                xx, yy = x + dx, y + dy
                if 0 <= xx < self.size and 0 <= yy < self.size:
                    dist = max(abs(dx), abs(dy))  # Chebyshev distance
                    self._set_function_module(xx, yy, dist not in (2, 4))

    def _draw_alignment_pattern(self, x: int, y: int) -> None:
        for dy in range(-2, 3):
            for dx in range(-2, 3):
                self._set_function_module(x + dx, y + dy, max(abs(dx), abs(dy)) != 1)

    def draw_format_bits(self, mask: int) -> None:
        """Draw both copies of the format information for ``mask``."""
        bits = format_bits(self.ecc, mask)
        size = self.size

        # Around the top-left finder
        for i in range(6):
            self._set_function_module(8, i, _get_bit(bits, i))
        self._set_function_module(8, 7, _get_bit(bits, 6))
        self._set_function_module(8, 8, _get_bit(bits, 7))
        self._set_function_module(7, 8, _get_bit(bits, 8))
        for i in range(9, 15):
            self._set_function_module(14 - i, 8, _get_bit(bits, i))

        # Split between the top-right and bottom-left finders
        for i in range(8):
            self._set_function_module(size - 1 - i, 8, _get_bit(bits, i))
        for i in range(8, 15):
            self._set_function_module(8, size - 15 + i, _get_bit(bits, i))
        self._set_function_module(8, size - 8, True)  # dark module

    def _draw_version(self) -> None:
        if self.version < 7:
            return
        bits = version_bits(self.version)
        for i in range(18):
            dark = _get_bit(bits, i)
            a = self.size - 11 + i % 3
            b = i // 3
            self._set_function_module(a, b, dark)
            self._set_function_module(b, a, dark)

    # -- codewords and masking ----------------------------------------------

    def draw_codewords(self, codewords: Sequence[int]) -> None:
        """Place data and ECC codewords along the zig-zag scan, MSB first.

        Remainder bits left over at the end of the scan stay light.
        """
        if len(codewords) != num_raw_codewords(self.version):
            raise RangeError(
                f"Expected {num_raw_codewords(self.version)} codewords, got {len(codewords)}")
        total = len(codewords) * 8
        is_function = self.is_function.tolist()
        i = 0
        for x, y in zigzag_positions(self.size):
            if i >= total:
                break
            if not is_function[y][x]:
                self.modules[y, x] = _get_bit(codewords[i >> 3], 7 - (i & 7))
                i += 1
        check(i == total, f"Placed {i} of {total} codeword bits")

    def apply_mask(self, mask: int) -> None:
        """XOR mask ``mask`` onto every non-function module.

        Applying the same mask twice restores the grid.
        """
        self.modules ^= mask_pattern(mask, self.size) & ~self.is_function

    def freeze(self) -> np.ndarray:
        """Finish construction: drop the function map and return read-only modules."""
        modules = self.modules
        modules.setflags(write=False)
        self.is_function = None
        return modules


def function_module_map(version: int) -> np.ndarray:
    """Read-only map of the function modules of a symbol of ``version``."""
    grid = ModuleGrid(version, Ecc.LOW)
    grid.draw_function_patterns()
    is_function = grid.is_function
    is_function.setflags(write=False)
    return is_function
