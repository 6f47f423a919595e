"""Renderers for finished symbols: SVG path, Pillow image, terminal text, module map."""

from itertools import groupby

import numpy as np
from PIL import Image, ImageDraw, ImageOps

from qrpath.capacity import Ecc, symbol_size
from qrpath.encoder import Symbol, encode
from qrpath.grid import alignment_pattern_positions, function_module_map
from qrpath.logging import audit, get_logger, trace

log = get_logger("render")

DOT_SIZE = 2

# (dark, light) colour per module category
MODULE_MAP_COLORS = {
    "finder": ((220, 50, 50), (255, 180, 180)),       # red
    "alignment": ((50, 50, 220), (180, 180, 255)),    # blue
    "timing": ((50, 180, 50), (180, 255, 180)),       # green
    "format": ((220, 200, 50), (255, 240, 180)),      # yellow
    "version": ((160, 60, 200), (225, 190, 245)),     # purple
    "data": ((0, 0, 0), (255, 255, 255)),
}


def _num(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def to_svg_path(symbol: Symbol, unit: int = DOT_SIZE) -> str:
    """Path data drawing every dark run of every row as a horizontal stroke.

    Each row is split into maximal runs of one colour. The pen moves to the first
    dark run of the row, then draws dark runs with ``h`` and skips light runs with
    ``m``; a trailing light run is dropped. Strokes sit on the row's centre line and
    are meant to be drawn with ``stroke-width = unit``.
    """
    offset = unit / 2
    parts = []
    for y, row in enumerate(symbol.to_rows()):
        runs = [(dark, len(list(group))) for dark, group in groupby(row)]
        last = len(runs) - 1
        baseline = _num(y * unit + offset)
        for i, (dark, length) in enumerate(runs):
            if i == 0:
                if not dark:
                    parts.append(f"M{_num(length * unit)} {baseline}")
                    continue
                parts.append(f"M0 {baseline}")
            if i == last and not dark:
                break
            if dark:
                parts.append(f"h{_num(length * unit)}")
            else:
                parts.append(f"m{_num(length * unit)} 0")
    return "".join(parts)


def to_svg(symbol: Symbol, color: str = "#000", size: int = 256, unit: int = DOT_SIZE) -> str:
    """Standalone SVG document with a square ``size x unit`` viewbox."""
    extent = _num(symbol.size * unit)
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {extent} {extent}" '
        f'width="{size}" height="{size}">'
        f'<path stroke="{color}" stroke-width="{_num(unit)}" d="{to_svg_path(symbol, unit)}" />'
        f"</svg>"
    )


@trace
def make_svg(text: str, color: str = "#000", size: int = 256) -> str:
    """Encode ``text`` at MEDIUM (boosted) and render it as an SVG document."""
    return to_svg(encode(text, ecc=Ecc.MEDIUM), color=color, size=size)


def to_image(
    symbol: Symbol,
    box_size: int = 10,
    border: int = 4,
    fill_color: str | tuple = "black",
    back_color: str | tuple = "white",
) -> Image.Image:
    """Raster RGB image with a ``border``-module quiet zone."""
    padded = np.pad(symbol.modules, border, constant_values=False)
    gray = Image.fromarray(np.where(padded, 0, 255).astype(np.uint8))
    img = ImageOps.colorize(gray, black=fill_color, white=back_color)
    side = padded.shape[0] * box_size
    return img.resize((side, side), Image.Resampling.NEAREST)


def to_text(symbol: Symbol, border: int = 2) -> str:
    """Terminal rendering, two module rows per line using half-block characters."""
    padded = np.pad(symbol.modules, border, constant_values=False).tolist()
    if len(padded) % 2:
        padded.append([False] * len(padded[0]))
    chars = {(True, True): "█", (True, False): "▀",
             (False, True): "▄", (False, False): " "}
    lines = []
    for top, bottom in zip(padded[0::2], padded[1::2]):
        lines.append("".join(chars[pair] for pair in zip(top, bottom)))
    return "\n".join(lines)


def classify_modules(version: int) -> dict[str, np.ndarray]:
    """Boolean masks of every module category for a symbol of ``version``."""
    size = symbol_size(version)
    is_function = function_module_map(version)
    y, x = np.indices((size, size))

    finder = (((x < 8) & (y < 8))
              | ((x >= size - 8) & (y < 8))
              | ((x < 8) & (y >= size - 8)))

    alignment = np.zeros((size, size), dtype=bool)
    positions = alignment_pattern_positions(version)
    last = len(positions) - 1
    for i, px in enumerate(positions):
        for j, py in enumerate(positions):
            if (i, j) not in ((0, 0), (0, last), (last, 0)):
                alignment[py - 2:py + 3, px - 2:px + 3] = True

    on_format_lines = (((y == 8) & ((x <= 8) | (x >= size - 8)))
                       | ((x == 8) & ((y <= 8) | (y >= size - 8))))
    fmt = on_format_lines & (x != 6) & (y != 6) & ~finder

    version_info = np.zeros((size, size), dtype=bool)
    if version >= 7:
        version_info = (((x >= size - 11) & (x < size - 8) & (y < 6))
                        | ((y >= size - 11) & (y < size - 8) & (x < 6)))

    timing = is_function & ((x == 6) | (y == 6)) & ~finder & ~alignment
    return {
        "finder": finder,
        "alignment": alignment,
        "timing": timing,
        "format": fmt,
        "version": version_info,
        "data": ~is_function,
    }


@trace
def render_module_map(symbol: Symbol, output_path: str | None = None, scale: int = 20) -> Image.Image:
    """Render a colour-coded bitmap showing module types.

    Colours:
        - Red: finder patterns and separators
        - Blue: alignment patterns
        - Green: timing patterns
        - Yellow: format information (and the dark module)
        - Purple: version information
        - Black/White: data and ECC modules
    """
    size = symbol.size
    categories = classify_modules(symbol.version)
    modules = symbol.to_rows()
    img = Image.new("RGB", (size * scale, size * scale), (255, 255, 255))
    draw = ImageDraw.Draw(img)

    # Later categories win where masks overlap
    colors = [[MODULE_MAP_COLORS["data"]] * size for _ in range(size)]
    for name in ("timing", "alignment", "finder", "format", "version"):
        for r, c in zip(*np.nonzero(categories[name])):
            colors[r][c] = MODULE_MAP_COLORS[name]

    for r in range(size):
        for c in range(size):
            x0, y0 = c * scale, r * scale
            dark, light = colors[r][c]
            draw.rectangle([x0, y0, x0 + scale - 1, y0 + scale - 1],
                           fill=dark if modules[r][c] else light, outline=(230, 230, 230))

    if output_path:
        img.save(output_path)
        audit("bitmap.saved", logger=log, path=output_path, size=f"{size}x{size}")
    return img
