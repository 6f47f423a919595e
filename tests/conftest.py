import logging

import pytest

from qrpath.capacity import num_raw_codewords
from qrpath.grid import function_module_map, mask_pattern, zigzag_positions


@pytest.fixture(autouse=True)
def _reset_qrpath_logging():
    """The CLI installs stream handlers; drop them so they never outlive a test's capture."""
    yield
    root = logging.getLogger("qrpath")
    root.handlers = [logging.NullHandler()]
    root.setLevel(logging.NOTSET)


def _format_bits_of(symbol) -> int:
    """Read the copy of the format information drawn around the top-left finder."""
    m = symbol.modules
    cells = [(8, i) for i in range(6)] + [(8, 7), (8, 8), (7, 8)] + [(14 - i, 8) for i in range(9, 15)]
    return sum(int(m[y, x]) << i for i, (x, y) in enumerate(cells))


def _codewords_of(symbol) -> tuple[list[int], list[bool]]:
    """Undo the mask and read codewords back along the zig-zag scan.

    Returns (codewords, remainder bits).
    """
    is_function = function_module_map(symbol.version)
    unmasked = symbol.modules ^ (mask_pattern(symbol.mask, symbol.size) & ~is_function)
    bits = [bool(unmasked[y, x]) for x, y in zigzag_positions(symbol.size) if not is_function[y, x]]
    n = num_raw_codewords(symbol.version)
    codewords = [
        int("".join("1" if b else "0" for b in bits[i * 8:(i + 1) * 8]), 2)
        for i in range(n)
    ]
    return codewords, bits[n * 8:]


@pytest.fixture
def read_format_bits():
    return _format_bits_of


@pytest.fixture
def read_codewords():
    return _codewords_of
