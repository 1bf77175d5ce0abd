"""
MOK bus command codes and protocol constants.

Command frames are five bytes long and are sent as lowercase hex text
terminated by CR+LF. Device responses arrive as hex payload lines or as
tagged text lines for bus scans.
"""

from __future__ import annotations

from enum import Enum, IntEnum, auto
from typing import Final


class CommandCode(IntEnum):
    """
    Leading command byte of an outbound frame.

    Frames are distinguished solely by this byte:
    - 0xA1/0xA8/0xA4: status range requests (AM1, AM8, PM)
    - 0xB8/0xB4: single-address writes for one channel (AM8, PM)

    A bus scan is a SINGLE_RANGE request over the whole scan window.
    """

    SINGLE_RANGE = 0xA1
    """Status request for single-channel (AM1) devices in an address window."""

    OCTAL_RANGE = 0xA8
    """Status request for 8-channel (AM8) devices in an address window."""

    QUAD_RANGE = 0xA4
    """Status request for 4-channel (PM) devices in an address window."""

    OCTAL_WRITE = 0xB8
    """Assign an address to one channel of an AM8 device."""

    QUAD_WRITE = 0xB4
    """Assign an address to one channel of a PM device."""


class RequestKind(Enum):
    """Outstanding request kinds tracked by the correlator."""

    SINGLE_RANGE = auto()
    OCTAL_RANGE = auto()
    QUAD_RANGE = auto()
    QUAD_WRITE = auto()
    SCAN = auto()


DISPATCH_ORDER: Final[tuple[RequestKind, ...]] = (
    RequestKind.SINGLE_RANGE,
    RequestKind.OCTAL_RANGE,
    RequestKind.QUAD_RANGE,
    RequestKind.QUAD_WRITE,
    RequestKind.SCAN,
)
"""Fixed priority in which wait states are matched against an inbound line."""


class ProtocolConstants:
    """Protocol-level constants for the MOK bus."""

    # ===== Serial Settings =====

    DEFAULT_BAUD_RATE: Final[int] = 9600
    """Default baud rate for serial communication."""

    DEFAULT_DATA_BITS: Final[int] = 8
    """Default data bits."""

    DEFAULT_STOP_BITS: Final[int] = 1
    """Default stop bits."""

    LINE_TERMINATOR: Final[str] = "\r\n"
    """Terminator appended to outbound lines and split on for inbound lines."""

    DEFAULT_READ_TIMEOUT: Final[float] = 1.0
    """Default read timeout in seconds for a single line."""

    # ===== Timing =====

    RANGE_TIMEOUT: Final[float] = 10.0
    """Timeout in seconds for range requests and write echoes."""

    SCAN_TIMEOUT: Final[float] = 30.0
    """Timeout in seconds for a full bus scan."""

    PACING_DELAY: Final[float] = 0.5
    """Delay in seconds between steps of a sequential address write."""

    # ===== Address Windows =====

    MIN_DEVICE_ADDRESS: Final[int] = 1
    MAX_DEVICE_ADDRESS: Final[int] = 247

    MIN_OCTAL_RANGE_ADDRESS: Final[int] = 10
    MAX_OCTAL_RANGE_ADDRESS: Final[int] = 99

    MIN_SCAN_ADDRESS: Final[int] = 1
    MAX_SCAN_ADDRESS: Final[int] = 127

    # ===== Sizes =====

    FRAME_SIZE: Final[int] = 5
    """Outbound frame size in bytes."""

    SINGLE_RESPONSE_SIZE: Final[int] = 24
    QUAD_RESPONSE_SIZE: Final[int] = 24
    OCTAL_MIN_RESPONSE_SIZE: Final[int] = 18

    OCTAL_CHANNELS: Final[int] = 8
    OCTAL_INPUTS: Final[int] = 9
    QUAD_CHANNELS: Final[int] = 4

    # ===== Text Markers =====

    SCAN_TAGS: Final[tuple[str, ...]] = ("МОК_SCAN:", "MOK_SCAN:")
    """Equivalent scan list prefixes (Cyrillic and Latin spellings)."""

    GENERIC_OK: Final[str] = "OK"
    GENERIC_ERROR: Final[str] = "ERROR"


DEFAULT_TIMEOUTS: Final[dict[RequestKind, float]] = {
    RequestKind.SINGLE_RANGE: ProtocolConstants.RANGE_TIMEOUT,
    RequestKind.OCTAL_RANGE: ProtocolConstants.RANGE_TIMEOUT,
    RequestKind.QUAD_RANGE: ProtocolConstants.RANGE_TIMEOUT,
    RequestKind.QUAD_WRITE: ProtocolConstants.RANGE_TIMEOUT,
    RequestKind.SCAN: ProtocolConstants.SCAN_TIMEOUT,
}
"""Timeout per request kind, in seconds."""
