"""Arithmetic over GF(2^8) as used by QR Code error correction.

The field is built on the primitive polynomial x^8 + x^4 + x^3 + x^2 + 1 (0x11D),
with 0x02 as generator.
"""

from qrpath.errors import RangeError, check

PRIMITIVE_POLY = 0x11D
GENERATOR = 0x02


def multiply(x: int, y: int) -> int:
    """Return the product of two field elements modulo 0x11D.

    Both operands are unsigned bytes. Russian peasant multiplication: one
    shift-and-reduce step per bit of ``y``, most significant bit first.
    """
    if x >> 8 != 0 or y >> 8 != 0 or x < 0 or y < 0:
        raise RangeError(f"Byte out of range: ({x}, {y})")
    z = 0
    for i in reversed(range(8)):
        z = (z << 1) ^ ((z >> 7) * PRIMITIVE_POLY)
        z ^= ((y >> i) & 1) * x
    check(z >> 8 == 0, "GF(256) product overflowed a byte")
    return z


def power(exponent: int) -> int:
    """Return GENERATOR raised to ``exponent`` (non-negative)."""
    result = 1
    for _ in range(exponent % 255):
        result = multiply(result, GENERATOR)
    return result
