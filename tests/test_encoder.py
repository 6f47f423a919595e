"""Unit tests for the symbol encoder."""

import numpy as np
import pytest

from qrpath.capacity import Ecc
from qrpath.encoder import (
    EncodeOptions,
    Symbol,
    add_ecc_and_interleave,
    boost_ecc_level,
    encode,
    encode_segments,
)
from qrpath.errors import DataTooLongError, RangeError
from qrpath.grid import format_bits
from qrpath.reed_solomon import compute_divisor, compute_remainder
from qrpath.segment import make_bytes


class TestVersionAndEcc:

    def test_empty_text(self, read_codewords):
        symbol = encode("")
        assert symbol.version == 1
        assert symbol.ecc is Ecc.HIGH  # boosted from MEDIUM
        codewords, remainder = read_codewords(symbol)
        assert codewords[:9] == [0x00, 0xEC, 0x11, 0xEC, 0x11, 0xEC, 0x11, 0xEC, 0x11]
        assert remainder == []

    def test_hello_world_without_boost(self, read_codewords):
        symbol = encode("HELLO WORLD", boost_ecc=False)
        assert (symbol.version, symbol.ecc) == (1, Ecc.MEDIUM)
        codewords, _ = read_codewords(symbol)
        data = codewords[:16]
        assert data[:2] == [0x40, 0xB4]
        assert data[12] == 0x40  # last nibble of "D" then the terminator
        assert data[13:] == [0xEC, 0x11, 0xEC]
        assert codewords[16:] == compute_remainder(data, compute_divisor(10))

    def test_hello_world_boosts_to_quartile(self):
        assert encode("HELLO WORLD").ecc is Ecc.QUARTILE

    def test_boost_never_lowers(self):
        assert boost_ecc_level(100, 1, Ecc.HIGH) is Ecc.HIGH
        assert boost_ecc_level(100, 1, Ecc.LOW) is Ecc.QUARTILE

    def test_smallest_version_is_chosen(self):
        assert encode("a" * 14, ecc="M", boost_ecc=False).version == 1
        assert encode("a" * 15, ecc="M", boost_ecc=False).version == 2

    def test_min_version_is_respected(self):
        symbol = encode("hi", min_version=5)
        assert symbol.version == 5
        assert symbol.size == 37

    def test_too_long_for_range(self):
        with pytest.raises(DataTooLongError) as excinfo:
            encode("A" * 18, ecc=Ecc.HIGH, max_version=1)
        assert excinfo.value.bits == 4 + 8 + 18 * 8
        assert (excinfo.value.min_version, excinfo.value.max_version) == (1, 1)

    def test_largest_payload(self):
        symbol = encode("a" * 2953, ecc=Ecc.LOW)
        assert (symbol.version, symbol.ecc) == (40, Ecc.LOW)
        with pytest.raises(DataTooLongError):
            encode("a" * 2954, ecc=Ecc.LOW)

    def test_length_counts_utf8_bytes(self):
        # 3 characters, 9 bytes: 84 bits overflow v1-H
        symbol = encode("€" * 3, ecc=Ecc.HIGH)
        assert symbol.version == 2


class TestOptions:

    @pytest.mark.parametrize("overrides", [
        {"min_version": 0},
        {"max_version": 41},
        {"min_version": 5, "max_version": 4},
        {"mask": 8},
        {"mask": -2},
        {"ecc": "Z"},
        {"mask": 2.5},
        {"mask": "3"},
        {"min_version": 1.5},
    ])
    def test_invalid_options(self, overrides):
        with pytest.raises(RangeError):
            encode("x", **overrides)

    def test_options_object(self):
        options = EncodeOptions(ecc="q", boost_ecc=False, mask=2)
        symbol = encode("options", options)
        assert (symbol.ecc, symbol.mask) == (Ecc.QUARTILE, 2)
        # Overrides win over the options object, which stays untouched
        assert encode("options", options, mask=6).mask == 6
        assert options.mask == 2

    def test_encode_segments(self):
        symbol = encode_segments([make_bytes(b"raw")], ecc="L", boost_ecc=False)
        assert (symbol.version, symbol.ecc) == (1, Ecc.LOW)


class TestSymbol:

    def test_forced_mask_and_format_bits(self, read_format_bits):
        for mask in range(8):
            symbol = encode("mask test", mask=mask)
            assert symbol.mask == mask
            assert read_format_bits(symbol) == format_bits(symbol.ecc, mask)

    def test_auto_mask_is_resolved(self, read_format_bits):
        symbol = encode("auto")
        assert 0 <= symbol.mask <= 7
        assert read_format_bits(symbol) == format_bits(symbol.ecc, symbol.mask)

    def test_deterministic(self):
        a = encode("same input")
        b = encode("same input")
        assert a == b
        assert np.array_equal(a.modules, b.modules)

    def test_get_module(self):
        symbol = encode("x")
        assert symbol.get_module(0, 0)       # finder corner
        assert not symbol.get_module(7, 0)   # separator
        assert not symbol.get_module(-1, 0)
        assert not symbol.get_module(0, symbol.size)

    def test_immutable(self):
        symbol = encode("x")
        with pytest.raises(ValueError):
            symbol.modules[0, 0] = False
        assert isinstance(symbol, Symbol)
        assert len(symbol.to_rows()) == symbol.size

    def test_audit_event(self, caplog):
        encode("audit me", ecc="L", boost_ecc=False)
        records = [r for r in caplog.records if getattr(r, "event", None) == "qr.encoded"]
        assert len(records) == 1
        ctx = records[0].ctx
        assert ctx["version"] == 1
        assert ctx["ecc"] == "L"
        assert ctx["size"] == "21x21"
        assert ctx["payload_bytes"] == 8


class TestInterleave:

    def test_mixed_block_lengths(self):
        # 5-Q: two blocks of 15 data codewords, then two of 16
        data = list(range(62))
        result = add_ecc_and_interleave(data, 5, Ecc.QUARTILE)
        assert len(result) == 134
        assert result[:4] == [0, 15, 30, 46]
        assert result[60:62] == [45, 61]

        divisor = compute_divisor(18)
        blocks = [data[0:15], data[15:30], data[30:46], data[46:62]]
        first_ecc = [compute_remainder(b, divisor)[0] for b in blocks]
        assert result[62:66] == first_ecc

    def test_wrong_data_length(self):
        with pytest.raises(RangeError, match="Expected 16 data codewords"):
            add_ecc_and_interleave([0] * 15, 1, Ecc.MEDIUM)
