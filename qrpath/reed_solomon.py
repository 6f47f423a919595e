"""Reed-Solomon error-correction codewords for QR Code blocks."""

import functools
from collections.abc import Sequence

from qrpath.errors import RangeError
from qrpath.gf256 import GENERATOR, multiply


@functools.lru_cache(maxsize=None)
def compute_divisor(degree: int) -> tuple[int, ...]:
    """Return the generator polynomial of the given degree.

    The polynomial is the product (x - r^0) * (x - r^1) * ... * (x - r^{degree-1})
    with r = 0x02. Coefficients are ordered from highest to lowest power and the
    leading term, always 1, is dropped: x^3 + 7x^2 + 14x + 8 becomes (7, 14, 8).
    """
    if not 1 <= degree <= 255:
        raise RangeError(f"Degree out of range: {degree}")
    result = [0] * (degree - 1) + [1]  # the monomial x^0

    root = 1
    for _ in range(degree):
        # Multiply the running product by (x - root)
        for j in range(degree):
            result[j] = multiply(result[j], root)
            if j + 1 < degree:
                result[j] ^= result[j + 1]
        root = multiply(root, GENERATOR)
    return tuple(result)


def compute_remainder(data: Sequence[int], divisor: Sequence[int]) -> list[int]:
    """Return the ECC codewords for ``data`` divided by ``divisor``."""
    result = [0] * len(divisor)
    for b in data:
        factor = b ^ result.pop(0)
        result.append(0)
        for i, coef in enumerate(divisor):
            result[i] ^= multiply(coef, factor)
    return result
