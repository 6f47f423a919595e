"""Error-correction levels and the per-version capacity tables of QR Code Model 2."""

from enum import Enum

from qrpath.errors import RangeError, check

MIN_VERSION = 1
MAX_VERSION = 40


class Ecc(Enum):
    """Error-correction level: (table ordinal, 2-bit format indicator)."""

    LOW = (0, 1)       # ~7% of codewords recoverable
    MEDIUM = (1, 0)    # ~15%
    QUARTILE = (2, 3)  # ~25%
    HIGH = (3, 2)      # ~30%

    @property
    def ordinal(self) -> int:
        return self.value[0]

    @property
    def format_bits(self) -> int:
        return self.value[1]

    @property
    def letter(self) -> str:
        return self.name[0]


ECC_NAMES = {"L": Ecc.LOW, "M": Ecc.MEDIUM, "Q": Ecc.QUARTILE, "H": Ecc.HIGH}


def parse_ecc(value: "Ecc | str") -> Ecc:
    """Accept an Ecc member or one of the letters L/M/Q/H."""
    if isinstance(value, Ecc):
        return value
    try:
        return ECC_NAMES[str(value).upper()]
    except KeyError:
        raise RangeError(f"Unknown error correction level: {value!r}") from None


# Rows are Ecc.ordinal, columns are versions; column 0 is padding.
ECC_CODEWORDS_PER_BLOCK = (
    # 0,  1,  2,  3,  4,  5,  6,  7,  8,  9, 10, 11, 12, 13, 14, 15, 16, 17, 18, 19, 20,
    #    21, 22, 23, 24, 25, 26, 27, 28, 29, 30, 31, 32, 33, 34, 35, 36, 37, 38, 39, 40
    (-1, 7, 10, 15, 20, 26, 18, 20, 24, 30, 18, 20, 24, 26, 30, 22, 24, 28, 30, 28, 28,
     28, 28, 30, 30, 26, 28, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30),  # L
    (-1, 10, 16, 26, 18, 24, 16, 18, 22, 22, 26, 30, 22, 22, 24, 24, 28, 28, 26, 26, 26,
     26, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28),  # M
    (-1, 13, 22, 18, 26, 18, 24, 18, 22, 20, 24, 28, 26, 24, 20, 30, 24, 28, 28, 26, 30,
     28, 30, 30, 30, 30, 28, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30),  # Q
    (-1, 17, 28, 22, 16, 22, 28, 26, 26, 24, 28, 24, 28, 22, 24, 24, 30, 28, 28, 26, 28,
     30, 24, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30),  # H
)

NUM_ERROR_CORRECTION_BLOCKS = (
    # 0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 14, 15, 16, 17, 18, 19, 20,
    #   21, 22, 23, 24, 25, 26, 27, 28, 29, 30, 31, 32, 33, 34, 35, 36, 37, 38, 39, 40
    (-1, 1, 1, 1, 1, 1, 2, 2, 2, 2, 4, 4, 4, 4, 4, 6, 6, 6, 6, 7, 8,
     8, 9, 9, 10, 12, 12, 12, 13, 14, 15, 16, 17, 18, 19, 19, 20, 21, 22, 24, 25),  # L
    (-1, 1, 1, 1, 2, 2, 4, 4, 4, 5, 5, 5, 8, 9, 9, 10, 10, 11, 13, 14, 16,
     17, 17, 18, 20, 21, 23, 25, 26, 28, 29, 31, 33, 35, 37, 38, 40, 43, 45, 47, 49),  # M
    (-1, 1, 1, 2, 2, 4, 4, 6, 6, 8, 8, 8, 10, 12, 16, 12, 17, 16, 18, 21, 20,
     23, 23, 25, 27, 29, 34, 34, 35, 38, 40, 43, 45, 48, 51, 53, 56, 59, 62, 65, 68),  # Q
    (-1, 1, 1, 2, 4, 4, 4, 5, 6, 8, 8, 11, 11, 16, 16, 18, 16, 19, 21, 25, 25,
     25, 34, 30, 32, 35, 37, 40, 42, 45, 48, 51, 54, 57, 60, 63, 66, 70, 74, 77, 81),  # H
)


def check_version(version: int) -> None:
    if not MIN_VERSION <= version <= MAX_VERSION:
        raise RangeError(f"Version out of range: {version}")


def symbol_size(version: int) -> int:
    """Width and height of the symbol in modules (21..177)."""
    return version * 4 + 17


def num_alignment_patterns(version: int) -> int:
    """Alignment pattern positions per axis (0 for version 1)."""
    return 0 if version == 1 else version // 7 + 2


def num_raw_data_modules(version: int) -> int:
    """Data modules left once every function pattern is excluded.

    Includes the remainder bits, so the result need not be a multiple of 8.
    Always in [208, 29648].
    """
    check_version(version)
    result = (16 * version + 128) * version + 64
    if version >= 2:
        num_align = num_alignment_patterns(version)
        result -= (25 * num_align - 10) * num_align - 55
        if version >= 7:
            result -= 36
    check(208 <= result <= 29648, f"Raw module count {result} out of bounds")
    return result


def num_raw_codewords(version: int) -> int:
    return num_raw_data_modules(version) // 8


def ecc_codewords_per_block(version: int, ecc: Ecc) -> int:
    check_version(version)
    return ECC_CODEWORDS_PER_BLOCK[ecc.ordinal][version]


def num_blocks(version: int, ecc: Ecc) -> int:
    check_version(version)
    return NUM_ERROR_CORRECTION_BLOCKS[ecc.ordinal][version]


def num_data_codewords(version: int, ecc: Ecc) -> int:
    """8-bit data codewords (excluding ECC) held by a symbol of this version and level."""
    return (num_raw_codewords(version)
            - ecc_codewords_per_block(version, ecc) * num_blocks(version, ecc))


def data_capacity_bits(version: int, ecc: Ecc) -> int:
    return num_data_codewords(version, ecc) * 8
