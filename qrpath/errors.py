"""qrpath exception hierarchy.

All exceptions inherit from QRError for unified handling.
"""


class QRError(Exception):
    """Base exception for all qrpath errors."""
    pass


class RangeError(QRError, ValueError):
    """Raised when an argument lies outside its documented domain."""
    pass


class DataTooLongError(QRError, ValueError):
    """Raised when the segments fit no version in the requested range."""

    def __init__(self, message: str, bits: float | None = None,
                 min_version: int | None = None, max_version: int | None = None):
        super().__init__(message)
        self.bits = bits
        self.min_version = min_version
        self.max_version = max_version


class AssertionFailure(QRError, AssertionError):
    """Raised when an internal invariant of the encoder does not hold."""
    pass


def check(condition: bool, message: str = "Assertion error") -> None:
    """Raise AssertionFailure unless condition holds."""
    if not condition:
        raise AssertionFailure(message)
