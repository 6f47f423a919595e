"""qrpath CLI: encode text as QR Code SVG, image or terminal art."""

import argparse
import sys
from pathlib import Path

from qrpath.errors import DataTooLongError, RangeError
from qrpath.logging import audit, get_logger, setup_logging

log = get_logger("cli")

RASTER_SUFFIXES = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".webp"}


def _parse_mask(value: str) -> int:
    if value == "auto":
        return -1
    try:
        mask = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"mask must be 0-7 or 'auto', got {value!r}") from None
    if not 0 <= mask <= 7:
        raise argparse.ArgumentTypeError(f"mask must be 0-7 or 'auto', got {value!r}")
    return mask


def _encode_from_args(args):
    from qrpath.encoder import EncodeOptions, encode

    options = EncodeOptions(
        min_version=args.min_version,
        max_version=args.max_version,
        ecc=args.ecc,
        mask=args.mask,
        boost_ecc=not args.no_boost,
    )
    return encode(args.text, options)


def cmd_generate(args):
    """Generate a QR code."""
    from qrpath.render import to_image, to_svg, to_text

    symbol = _encode_from_args(args)
    if args.output == "-":
        print(to_text(symbol, border=args.border))
        return

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    suffix = output.suffix.lower()
    if suffix == ".svg":
        output.write_text(to_svg(symbol, color=args.color, size=args.size, unit=args.unit),
                          encoding="utf-8")
    elif suffix == ".txt":
        output.write_text(to_text(symbol, border=args.border) + "\n", encoding="utf-8")
    elif suffix in RASTER_SUFFIXES:
        to_image(symbol, box_size=args.box_size, border=args.border,
                 fill_color=args.color).save(output)
    else:
        raise SystemExit(f"Unsupported output format: {output.suffix or '(none)'}")
    print(f"Generated: {output} (version {symbol.version}, {symbol.size}x{symbol.size}, "
          f"ECC {symbol.ecc.letter}, mask {symbol.mask})")


def cmd_verify(args):
    """Verify a QR code image."""
    from PIL import Image

    from qrpath.verify import SCANNERS, verify

    decoders = tuple(args.decoder or SCANNERS)
    results = verify(Image.open(args.image), expected_data=args.expected, decoders=decoders)

    all_pass = True
    for r in results:
        status = "PASS" if r.success else "FAIL"
        if not r.success:
            all_pass = False
        print(f"  [{r.decoder:12s}] {status} | {r.decode_time_ms:6.1f}ms | {r.decoded_data if r.success else r.error}")

    sys.exit(0 if all_pass else 1)


def cmd_bitmap(args):
    """Generate a color-coded bitmap dump showing module types."""
    from qrpath.render import classify_modules, render_module_map

    symbol = _encode_from_args(args)
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    render_module_map(symbol, output_path=str(output))

    size = symbol.size
    counts = {name: int(mask.sum()) for name, mask in classify_modules(symbol.version).items()}
    print(f"QR Version {symbol.version} ({size}x{size} = {size * size} modules)")
    print(f"  Finder:    {counts['finder']:5d} modules (red)")
    print(f"  Alignment: {counts['alignment']:5d} modules (blue)")
    print(f"  Timing:    {counts['timing']:5d} modules (green)")
    print(f"  Format:    {counts['format']:5d} modules (yellow)")
    print(f"  Version:   {counts['version']:5d} modules (purple)")
    print(f"  Data+ECC:  {counts['data']:5d} modules (black/white)")
    print(f"Saved to: {output}")


def _add_encoding_args(p):
    p.add_argument("text", help="Text to encode")
    p.add_argument("-e", "--ecc", default="M", choices=["L", "M", "Q", "H"], help="Error correction level")
    p.add_argument("-m", "--mask", type=_parse_mask, default=-1, help="Mask pattern 0-7 (default: auto)")
    p.add_argument("--min-version", type=int, default=1, help="Smallest QR version to consider")
    p.add_argument("--max-version", type=int, default=40, help="Largest QR version to consider")
    p.add_argument("--no-boost", action="store_true", help="Keep the requested ECC level exactly")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qrpath", description="QR Code encoder with compact SVG output")

    # Global logging flags
    parser.add_argument("-V", "--verbose", action="store_true", help="Enable DEBUG-level logging")
    parser.add_argument("--log-file", default=None, help="Write JSON logs to file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- generate ---
    p_gen = subparsers.add_parser("generate", help="Generate a QR code")
    _add_encoding_args(p_gen)
    p_gen.add_argument("-o", "--output", default="output/qr.svg",
                       help="Output path (.svg, .png, .txt) or '-' for the terminal")
    p_gen.add_argument("--unit", type=int, default=2, help="SVG units per module")
    p_gen.add_argument("--size", type=int, default=256, help="SVG width/height attribute")
    p_gen.add_argument("--color", default="#000", help="Dark module colour")
    p_gen.add_argument("--box-size", type=int, default=10, help="Raster pixels per module")
    p_gen.add_argument("--border", type=int, default=4, help="Quiet zone modules (raster/text)")

    # --- verify ---
    p_ver = subparsers.add_parser("verify", help="Verify a QR code image")
    p_ver.add_argument("image", help="Path to QR code image")
    p_ver.add_argument("--expected", default=None, help="Expected decoded data (fails if mismatch)")
    p_ver.add_argument("-d", "--decoder", action="append", choices=["opencv", "pyzbar"],
                       help="Decoder to run (repeatable; default: all)")

    # --- bitmap ---
    p_bmp = subparsers.add_parser("bitmap", help="Generate color-coded module map")
    _add_encoding_args(p_bmp)
    p_bmp.add_argument("-o", "--output", default="output/bitmap.png", help="Output file path")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging before any command runs
    level = "DEBUG" if args.verbose else "INFO"
    setup_logging(level=level, log_file=args.log_file)
    audit("cli.start", logger=log, command=args.command, verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    commands = {
        "generate": cmd_generate,
        "verify": cmd_verify,
        "bitmap": cmd_bitmap,
    }
    try:
        commands[args.command](args)
    except (DataTooLongError, RangeError) as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(2)
    audit("cli.done", logger=log, command=args.command)


if __name__ == "__main__":
    main()
