"""Symbol encoder: version and ECC selection, bitstream assembly, block interleaving.

``encode()`` is the public entry point. It runs the whole pipeline synchronously
and returns an immutable :class:`Symbol`; nothing is shared between calls.
"""

import dataclasses
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np

from qrpath.capacity import (
    MAX_VERSION,
    MIN_VERSION,
    Ecc,
    data_capacity_bits,
    ecc_codewords_per_block,
    num_blocks,
    num_data_codewords,
    num_raw_codewords,
    parse_ecc,
)
from qrpath.errors import DataTooLongError, RangeError, check
from qrpath.grid import ModuleGrid
from qrpath.logging import audit, get_logger, trace
from qrpath.mask import select_mask
from qrpath.reed_solomon import compute_divisor, compute_remainder
from qrpath.segment import BitBuffer, Segment, make_segments, total_bits

log = get_logger("encoder")

PAD_BYTES = (0xEC, 0x11)
BOOST_ORDER = (Ecc.MEDIUM, Ecc.QUARTILE, Ecc.HIGH)


@dataclass(frozen=True)
class Symbol:
    """A finished QR Code symbol.

    ``modules`` is a read-only ``size x size`` bool array indexed ``[y, x]``,
    True for dark. ``mask`` is always the resolved mask, 0-7.
    """
    version: int
    ecc: Ecc
    mask: int
    modules: np.ndarray = field(repr=False, compare=False)

    @property
    def size(self) -> int:
        return self.modules.shape[0]

    def get_module(self, x: int, y: int) -> bool:
        """Colour at (x, y); out-of-bounds coordinates read as light."""
        return 0 <= x < self.size and 0 <= y < self.size and bool(self.modules[y, x])

    def to_rows(self) -> list[list[bool]]:
        return self.modules.tolist()


@dataclass
class EncodeOptions:
    """Caller-tunable encoding parameters.

    Attributes:
        min_version: Smallest version considered (1-40).
        max_version: Largest version considered (1-40).
        ecc: Requested error correction level, an Ecc or one of L/M/Q/H.
        mask: Mask 0-7 to force, or -1 to pick the lowest penalty.
        boost_ecc: Raise the ECC level while the data still fits the chosen version.
    """
    min_version: int = MIN_VERSION
    max_version: int = MAX_VERSION
    ecc: Ecc | str = Ecc.MEDIUM
    mask: int = -1
    boost_ecc: bool = True

    def validate(self) -> "EncodeOptions":
        for name in ("min_version", "max_version", "mask"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise RangeError(f"{name} must be an integer, got {value!r}")
        if not MIN_VERSION <= self.min_version <= self.max_version <= MAX_VERSION:
            raise RangeError(
                f"Invalid version range: {self.min_version}..{self.max_version}")
        if not -1 <= self.mask <= 7:
            raise RangeError(f"Mask value out of range: {self.mask}")
        self.ecc = parse_ecc(self.ecc)
        return self


@trace
def encode(text: str, options: EncodeOptions | None = None, **overrides) -> Symbol:
    """Encode a Unicode string as a QR Code symbol.

    Args:
        text: The string to encode; stored as UTF-8 in byte mode.
        options: Encoding parameters (defaults: versions 1-40, MEDIUM, auto mask, boost).
        **overrides: Individual EncodeOptions fields, applied on top of ``options``.

    Returns:
        The finished Symbol.

    Raises:
        DataTooLongError: The text fits no version in the requested range.
        RangeError: An option lies outside its domain.
    """
    opts = dataclasses.replace(options or EncodeOptions(), **overrides).validate()
    return encode_segments(
        make_segments(text),
        ecc=opts.ecc,
        min_version=opts.min_version,
        max_version=opts.max_version,
        mask=opts.mask,
        boost_ecc=opts.boost_ecc,
    )


def encode_segments(
    segments: Sequence[Segment],
    ecc: Ecc | str = Ecc.MEDIUM,
    min_version: int = MIN_VERSION,
    max_version: int = MAX_VERSION,
    mask: int = -1,
    boost_ecc: bool = True,
) -> Symbol:
    """Encode prepared segments with the smallest version in range that fits them."""
    EncodeOptions(min_version, max_version, ecc, mask, boost_ecc).validate()
    ecc = parse_ecc(ecc)

    version, used_bits = find_version(segments, ecc, min_version, max_version)
    if boost_ecc:
        ecc = boost_ecc_level(used_bits, version, ecc)

    data_codewords = build_data_codewords(segments, version, ecc, used_bits)
    codewords = add_ecc_and_interleave(data_codewords, version, ecc)

    grid = ModuleGrid(version, ecc)
    grid.draw_function_patterns()
    grid.draw_codewords(codewords)
    mask = select_mask(grid, mask)
    symbol = Symbol(version=version, ecc=ecc, mask=mask, modules=grid.freeze())

    audit("qr.encoded", logger=log,
          version=version, size=f"{symbol.size}x{symbol.size}", ecc=ecc.letter,
          mask=mask, data_bits=used_bits,
          payload_bytes=sum(seg.num_chars for seg in segments))
    return symbol


def find_version(
    segments: Sequence[Segment], ecc: Ecc, min_version: int, max_version: int,
) -> tuple[int, int]:
    """Return (version, used bits) for the first version in range that holds the data."""
    used_bits = None
    for version in range(min_version, max_version + 1):
        used_bits = total_bits(segments, version)
        if used_bits <= data_capacity_bits(version, ecc):
            return version, used_bits
    raise DataTooLongError(
        f"Data too long: {used_bits} bits fit no version in {min_version}..{max_version} "
        f"at ECC {ecc.name}",
        bits=used_bits, min_version=min_version, max_version=max_version,
    )


def boost_ecc_level(used_bits: int, version: int, ecc: Ecc) -> Ecc:
    """Raise ``ecc`` to the highest level whose capacity at ``version`` still fits."""
    for candidate in BOOST_ORDER:
        if candidate.ordinal > ecc.ordinal and used_bits <= data_capacity_bits(version, candidate):
            ecc = candidate
    return ecc


def build_data_codewords(
    segments: Sequence[Segment], version: int, ecc: Ecc, used_bits: int,
) -> list[int]:
    """Assemble the padded data bitstream and pack it into bytes."""
    bb = BitBuffer()
    for seg in segments:
        bb.append_bits(seg.mode.mode_bits, 4)
        bb.append_bits(seg.num_chars, seg.mode.char_count_bits(version))
        bb.extend(seg.bits)
    check(len(bb) == used_bits, f"Bitstream is {len(bb)} bits, expected {used_bits}")

    capacity = data_capacity_bits(version, ecc)
    check(len(bb) <= capacity, "Bitstream exceeds capacity")
    bb.append_bits(0, min(4, capacity - len(bb)))  # terminator
    bb.append_bits(0, -len(bb) % 8)
    check(len(bb) % 8 == 0, "Bitstream not byte aligned")

    pad = 0
    while len(bb) < capacity:
        bb.append_bits(PAD_BYTES[pad], 8)
        pad ^= 1
    check(len(bb) == capacity, f"Bitstream is {len(bb)} bits, capacity {capacity}")
    return bb.to_bytes()


def add_ecc_and_interleave(data: Sequence[int], version: int, ecc: Ecc) -> list[int]:
    """Split data codewords into blocks, append RS codewords and interleave.

    Short blocks carry one data codeword less than long blocks; they come first and
    contribute nothing to the column where that codeword is missing.
    """
    if len(data) != num_data_codewords(version, ecc):
        raise RangeError(
            f"Expected {num_data_codewords(version, ecc)} data codewords, got {len(data)}")

    n_blocks = num_blocks(version, ecc)
    block_ecc_len = ecc_codewords_per_block(version, ecc)
    raw_codewords = num_raw_codewords(version)
    num_short_blocks = n_blocks - raw_codewords % n_blocks
    short_block_len = raw_codewords // n_blocks

    divisor = compute_divisor(block_ecc_len)
    blocks = []
    k = 0
    for i in range(n_blocks):
        data_len = short_block_len - block_ecc_len + (0 if i < num_short_blocks else 1)
        dat = list(data[k:k + data_len])
        k += data_len
        ecc_codewords = compute_remainder(dat, divisor)
        if i < num_short_blocks:
            dat.append(0)  # placeholder, skipped below
        blocks.append(dat + ecc_codewords)

    gap = short_block_len - block_ecc_len
    result = [
        block[i]
        for i in range(len(blocks[0]))
        for j, block in enumerate(blocks)
        if i != gap or j >= num_short_blocks
    ]
    check(len(result) == raw_codewords, f"Interleaved {len(result)} of {raw_codewords} codewords")
    return result
