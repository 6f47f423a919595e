"""Unit tests for the module grid builder."""

import numpy as np
import pytest

from qrpath.capacity import Ecc, num_raw_codewords, num_raw_data_modules
from qrpath.errors import RangeError
from qrpath.grid import (
    ModuleGrid,
    alignment_pattern_positions,
    format_bits,
    function_module_map,
    mask_pattern,
    version_bits,
    zigzag_positions,
)


def _grid_with_codewords(version=2, ecc=Ecc.MEDIUM):
    grid = ModuleGrid(version, ecc)
    grid.draw_function_patterns()
    grid.draw_codewords([(i * 37) & 0xFF for i in range(num_raw_codewords(version))])
    return grid


class TestAlignmentPositions:

    @pytest.mark.parametrize("version, expected", [
        (1, []),
        (2, [6, 18]),
        (6, [6, 34]),
        (7, [6, 22, 38]),
        (14, [6, 26, 46, 66]),
        (32, [6, 34, 60, 86, 112, 138]),
        (36, [6, 24, 50, 76, 102, 128, 154]),
        (40, [6, 30, 58, 86, 114, 142, 170]),
    ])
    def test_positions(self, version, expected):
        assert alignment_pattern_positions(version) == expected


class TestFormatAndVersionBits:

    def test_format_bits(self):
        assert format_bits(Ecc.MEDIUM, 0) == 0x5412
        assert format_bits(Ecc.LOW, 0) == 0b111011111000100
        assert format_bits(Ecc.HIGH, 1) == 0b001001110111110
        assert format_bits(Ecc.HIGH, 7) == 0b000100000111011
        assert format_bits(Ecc.QUARTILE, 4) == 0b010010010110100

    def test_version_bits(self):
        assert version_bits(7) == 0x07C94
        assert version_bits(40) == 0x28C69


class TestFunctionPatterns:

    @pytest.mark.parametrize("version", range(1, 41))
    def test_data_module_count(self, version):
        is_function = function_module_map(version)
        assert int((~is_function).sum()) == num_raw_data_modules(version)

    def test_finder_rings(self):
        grid = ModuleGrid(1, Ecc.LOW)
        grid.draw_function_patterns()
        m = grid.modules
        assert m[0, 0] and m[3, 3] and m[6, 6]
        assert not m[1, 1] and not m[5, 3]
        assert not m[7, 0] and not m[0, 7]   # separator
        assert m[2, 2] and m[4, 4]           # 3x3 centre

    def test_timing_and_dark_module(self):
        grid = ModuleGrid(3, Ecc.LOW)
        grid.draw_function_patterns()
        size = grid.size
        for i in range(8, size - 8):
            assert grid.modules[6, i] == (i % 2 == 0)
            assert grid.modules[i, 6] == (i % 2 == 0)
        assert grid.modules[size - 8, 8]

    def test_version_blocks_only_from_7(self):
        size6 = 6 * 4 + 17
        assert not function_module_map(6)[0, size6 - 11]
        size7 = 7 * 4 + 17
        assert function_module_map(7)[0, size7 - 11]
        assert function_module_map(7)[size7 - 11, 0]

    def test_function_map_is_read_only(self):
        with pytest.raises(ValueError):
            function_module_map(1)[10, 10] = True


class TestCodewords:

    def test_zigzag_visits_every_cell_once(self):
        positions = list(zigzag_positions(25))
        assert len(positions) == 24 * 25  # column 6 is skipped
        assert len(set(positions)) == len(positions)
        assert all(x != 6 for x, _ in positions)

    def test_zigzag_starts_bottom_right(self):
        positions = zigzag_positions(21)
        assert [next(positions) for _ in range(4)] == [(20, 20), (19, 20), (20, 19), (19, 19)]

    def test_wrong_codeword_count(self):
        grid = ModuleGrid(1, Ecc.LOW)
        grid.draw_function_patterns()
        with pytest.raises(RangeError, match="Expected 26 codewords"):
            grid.draw_codewords([0] * 25)

    def test_codewords_never_touch_function_modules(self):
        empty = ModuleGrid(2, Ecc.MEDIUM)
        empty.draw_function_patterns()
        grid = _grid_with_codewords(2)
        assert np.array_equal(grid.modules[grid.is_function], empty.modules[empty.is_function])

    def test_remainder_bits_stay_light(self):
        grid = ModuleGrid(2, Ecc.MEDIUM)
        grid.draw_function_patterns()
        grid.draw_codewords([0xFF] * num_raw_codewords(2))
        data_cells = [(x, y) for x, y in zigzag_positions(grid.size) if not grid.is_function[y, x]]
        assert len(data_cells) == 359
        assert all(grid.modules[y, x] for x, y in data_cells[:352])
        assert not any(grid.modules[y, x] for x, y in data_cells[352:])


class TestMasking:

    def test_mask_formulas(self):
        p = mask_pattern(0, 21)
        assert p[0, 0] and not p[0, 1] and p[1, 1]
        p = mask_pattern(4, 21)
        assert p[0, 0] and p[1, 2] and not p[0, 3] and not p[2, 0]

    @pytest.mark.parametrize("mask", [-1, 8])
    def test_mask_out_of_range(self, mask):
        with pytest.raises(RangeError):
            mask_pattern(mask, 21)

    @pytest.mark.parametrize("mask", range(8))
    def test_mask_is_involutive(self, mask):
        grid = _grid_with_codewords(2)
        before = grid.modules.copy()
        grid.apply_mask(mask)
        assert not np.array_equal(grid.modules, before)
        grid.apply_mask(mask)
        assert np.array_equal(grid.modules, before)

    def test_mask_skips_function_modules(self):
        grid = _grid_with_codewords(2)
        before = grid.modules.copy()
        grid.apply_mask(1)
        assert np.array_equal(grid.modules[grid.is_function], before[grid.is_function])

    def test_freeze(self):
        grid = _grid_with_codewords(1)
        modules = grid.freeze()
        assert grid.is_function is None
        with pytest.raises(ValueError):
            modules[10, 10] = True
