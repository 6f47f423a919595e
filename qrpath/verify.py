"""Scan verification and reference cross-checks for generated symbols."""

import time
from dataclasses import dataclass

import cv2
import numpy as np
import qrcode
import qrcode.constants
import qrcode.util
from PIL import Image

from qrpath.capacity import Ecc
from qrpath.encoder import Symbol
from qrpath.logging import audit, get_logger, trace
from qrpath.render import to_image

log = get_logger("verify")

QRCODE_ECC = {
    Ecc.LOW: qrcode.constants.ERROR_CORRECT_L,
    Ecc.MEDIUM: qrcode.constants.ERROR_CORRECT_M,
    Ecc.QUARTILE: qrcode.constants.ERROR_CORRECT_Q,
    Ecc.HIGH: qrcode.constants.ERROR_CORRECT_H,
}


@dataclass
class ScanResult:
    """Result of a single scan attempt."""
    success: bool
    decoded_data: str | None = None
    decode_time_ms: float = 0.0
    decoder: str = ""
    error: str | None = None


def _scan_result(decoder: str, data: str | None, elapsed: float) -> ScanResult:
    """Wrap a scanner's output; ``data`` is None when no code was found, "" for an empty payload."""
    if data is not None:
        audit("scan.verified", logger=log, decoder=decoder, success=True,
              time_ms=round(elapsed, 1), data=data[:80])
        return ScanResult(success=True, decoded_data=data, decode_time_ms=elapsed, decoder=decoder)
    audit("scan.verified", logger=log, decoder=decoder, success=False,
          time_ms=round(elapsed, 1), error="No QR code detected")
    return ScanResult(success=False, decode_time_ms=elapsed, decoder=decoder,
                      error="No QR code detected")


@trace
def scan_opencv(image: Image.Image) -> ScanResult:
    """Scan a QR code using OpenCV's built-in QR detector."""
    start = time.perf_counter()
    try:
        gray = cv2.cvtColor(np.array(image.convert("RGB")), cv2.COLOR_RGB2GRAY)
        data, points, _ = cv2.QRCodeDetector().detectAndDecode(gray)
        if points is None:
            data = None
        return _scan_result("opencv", data, (time.perf_counter() - start) * 1000)
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        audit("scan.error", logger=log, decoder="opencv", error=str(e), time_ms=round(elapsed, 1))
        return ScanResult(success=False, decode_time_ms=elapsed, decoder="opencv", error=str(e))


@trace
def scan_pyzbar(image: Image.Image) -> ScanResult:
    """Scan a QR code using pyzbar (needs the zbar shared library at runtime)."""
    start = time.perf_counter()
    try:
        from pyzbar.pyzbar import decode as pyzbar_decode

        results = pyzbar_decode(image)
        data = results[0].data.decode("utf-8", errors="replace") if results else None
        return _scan_result("pyzbar/zbar", data, (time.perf_counter() - start) * 1000)
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        audit("scan.error", logger=log, decoder="pyzbar/zbar", error=str(e), time_ms=round(elapsed, 1))
        return ScanResult(success=False, decode_time_ms=elapsed, decoder="pyzbar/zbar", error=str(e))


SCANNERS = {"opencv": scan_opencv, "pyzbar": scan_pyzbar}


@trace
def verify(
    image: Image.Image,
    expected_data: str | None = None,
    decoders: tuple[str, ...] = ("opencv", "pyzbar"),
) -> list[ScanResult]:
    """Run the selected decoders on an image.

    Args:
        image: PIL Image containing a QR code.
        expected_data: If provided, marks result as failure if decoded data doesn't match.
        decoders: Names from SCANNERS, tried in order.

    Returns:
        List of ScanResults, one per decoder.
    """
    results = []
    for name in decoders:
        result = SCANNERS[name](image)
        if result.success and expected_data is not None and result.decoded_data != expected_data:
            result.success = False
            result.error = f"Data mismatch: got '{result.decoded_data}', expected '{expected_data}'"
        results.append(result)
    return results


def verify_symbol(symbol: Symbol, expected_data: str | None = None, **kwargs) -> list[ScanResult]:
    """Rasterise ``symbol`` with a quiet zone and scan it."""
    return verify(to_image(symbol, box_size=10, border=4), expected_data, **kwargs)


def reference_matrix(payload: bytes, symbol: Symbol, backend: str = "qrcode") -> list[list[bool]]:
    """Build the same symbol with python-qrcode.

    The payload is encoded in byte mode at the symbol's version, ECC level and mask,
    padded with the 0xEC/0x11 pattern right after the terminator, so the modules
    must match cell for cell.
    """
    if backend != "qrcode":
        raise ValueError(f"Unknown reference backend: {backend!r}")
    qr = qrcode.QRCode(
        version=symbol.version,
        error_correction=QRCODE_ECC[symbol.ecc],
        box_size=1,
        border=0,
        mask_pattern=symbol.mask,
    )
    qr.add_data(qrcode.util.QRData(payload, mode=qrcode.util.MODE_8BIT_BYTE))
    qr.make(fit=False)
    return [[bool(v) for v in row] for row in qr.modules]


@trace
def compare_with_reference(symbol: Symbol, payload: bytes, backend: str = "qrcode") -> list[tuple[int, int]]:
    """Return the (x, y) cells where ``symbol`` differs from the reference encoder."""
    expected = np.array(reference_matrix(payload, symbol, backend), dtype=bool)
    if expected.shape != symbol.modules.shape:
        raise ValueError(f"Reference size {expected.shape} != symbol size {symbol.modules.shape}")
    ys, xs = np.nonzero(expected != symbol.modules)
    mismatches = [(int(x), int(y)) for x, y in zip(xs, ys)]
    audit("reference.compared", logger=log, backend=backend, version=symbol.version,
          ecc=symbol.ecc.letter, mask=symbol.mask, mismatches=len(mismatches))
    return mismatches
