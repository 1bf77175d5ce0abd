"""
Protocol layer for MOK bus communication.

This module contains the low-level protocol handling:
- Command codes, request kinds and protocol constants
- XOR checksum calculation and validation
- Hex encoding and inbound payload normalization
- Outbound frame construction and serialization
"""

from mokbus.protocol.checksums import calculate_checksum, split_checksum, validate_checksum
from mokbus.protocol.constants import (
    DEFAULT_TIMEOUTS,
    DISPATCH_ORDER,
    CommandCode,
    ProtocolConstants,
    RequestKind,
)
from mokbus.protocol.encoding import bytes_to_hex, is_hex_string, normalize_payload
from mokbus.protocol.frame import Frame, build_range_request, build_single_write, serialize

__all__ = [
    # Constants
    "CommandCode",
    "ProtocolConstants",
    "RequestKind",
    "DISPATCH_ORDER",
    "DEFAULT_TIMEOUTS",
    # Checksums
    "calculate_checksum",
    "split_checksum",
    "validate_checksum",
    # Encoding
    "bytes_to_hex",
    "is_hex_string",
    "normalize_payload",
    # Frames
    "Frame",
    "build_range_request",
    "build_single_write",
    "serialize",
]
