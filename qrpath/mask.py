"""Mask selection by penalty score.

Every candidate mask is applied, scored and undone on the same grid (masks are
self-inverse under XOR). The mask with the strictly lowest score wins, so the
first of several equal scores is kept.
"""

import numpy as np

from qrpath.errors import RangeError, check
from qrpath.grid import ModuleGrid
from qrpath.logging import get_logger

log = get_logger("mask")

PENALTY_N1 = 3
PENALTY_N2 = 3
PENALTY_N3 = 40
PENALTY_N4 = 10

# Upper bound for any 21x21..177x177 grid under the weights above
MAX_PENALTY = 2568888


def _add_history(run_length: int, history: list[int], size: int) -> None:
    if history[0] == 0:
        run_length += size  # light border before the first run
    history.pop()
    history.insert(0, run_length)


def _count_finder_patterns(history: list[int], size: int) -> int:
    """Finder look-alikes ending at the light run just added: 0, 1 or 2."""
    n = history[1]
    check(n <= size * 3, "Run history overflow")
    core = (n > 0 and history[2] == n and history[3] == n * 3
            and history[4] == n and history[5] == n)
    return (int(core and history[0] >= n * 4 and history[6] >= n)
            + int(core and history[6] >= n * 4 and history[0] >= n))


def _terminate_and_count(run_color: bool, run_length: int, history: list[int], size: int) -> int:
    if run_color:
        _add_history(run_length, history, size)
        run_length = 0
    run_length += size  # light border after the last run
    _add_history(run_length, history, size)
    return _count_finder_patterns(history, size)


def _line_penalty(line: list[bool], size: int) -> int:
    """N1 and N3 penalties of a single row or column."""
    result = 0
    run_color = False
    run_length = 0
    history = [0] * 7
    for color in line:
        if color == run_color:
            run_length += 1
            if run_length == 5:
                result += PENALTY_N1
            elif run_length > 5:
                result += 1
        else:
            _add_history(run_length, history, size)
            if not run_color:
                result += _count_finder_patterns(history, size) * PENALTY_N3
            run_color = color
            run_length = 1
    result += _terminate_and_count(run_color, run_length, history, size) * PENALTY_N3
    return result


def penalty_score(modules: np.ndarray) -> int:
    """Penalty of a finished (masked) module grid; lower is better."""
    size = modules.shape[0]
    result = 0

    # N1 runs and N3 finder look-alikes, rows then columns
    for line in modules.tolist():
        result += _line_penalty(line, size)
    for line in modules.T.tolist():
        result += _line_penalty(line, size)

    # N2: 2x2 blocks of one colour
    top_left = modules[:-1, :-1]
    same = ((top_left == modules[:-1, 1:])
            & (top_left == modules[1:, :-1])
            & (top_left == modules[1:, 1:]))
    result += int(same.sum()) * PENALTY_N2

    # N4: smallest k with (45-5k)% <= dark share <= (55+5k)%
    dark = int(modules.sum())
    total = size * size  # odd, so the share is never exactly 50%
    k = (abs(dark * 20 - total * 10) + total - 1) // total - 1
    check(0 <= k <= 9, f"Dark balance term out of range: {k}")
    result += k * PENALTY_N4

    check(0 <= result <= MAX_PENALTY, f"Penalty out of bounds: {result}")
    return result


def select_mask(grid: ModuleGrid, forced: int = -1) -> int:
    """Apply the forced mask, or the lowest-penalty one, and its format bits.

    Expects codewords to be drawn already. Returns the mask index used.
    """
    if not -1 <= forced <= 7:
        raise RangeError(f"Mask value out of range: {forced}")
    mask = forced
    if mask == -1:
        min_penalty = None
        scores = {}
        for candidate in range(8):
            grid.apply_mask(candidate)
            grid.draw_format_bits(candidate)
            penalty = penalty_score(grid.modules)
            scores[candidate] = penalty
            if min_penalty is None or penalty < min_penalty:
                mask = candidate
                min_penalty = penalty
            grid.apply_mask(candidate)  # undo
        log.debug("mask scores version=%d %s best=%d", grid.version, scores, mask)

    check(0 <= mask <= 7, f"Unresolved mask: {mask}")
    grid.apply_mask(mask)
    grid.draw_format_bits(mask)
    return mask
