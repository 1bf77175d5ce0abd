"""
XOR checksum calculation and validation.

The MOK bus frame checksum is the XOR of the command byte and the two
parameter bytes, zero-extended into a two-byte field:

    checksum_low  = command ^ param_a ^ param_b
    checksum_high = 0

The XOR of three bytes always fits in one byte, so the high byte is
always zero. Both bytes are still transmitted.
"""

from __future__ import annotations


def calculate_checksum(data: bytes | bytearray | memoryview) -> int:
    """
    Calculate the XOR checksum over the specified data.

    Args:
        data: Bytes to checksum (command and parameter bytes only).

    Returns:
        8-bit checksum value (0-255).

    Example:
        >>> calculate_checksum(bytes([0xA1, 0x01, 0x7F]))
        223
    """
    checksum = 0
    for value in data:
        checksum ^= value
    return checksum & 0xFF


def split_checksum(checksum: int) -> tuple[int, int]:
    """
    Split a checksum into its transmitted (low, high) byte pair.

    Args:
        checksum: Checksum value (0-0xFFFF).

    Returns:
        Tuple of (low byte, high byte).
    """
    return checksum & 0xFF, (checksum >> 8) & 0xFF


def validate_checksum(frame: bytes | bytearray | memoryview) -> bool:
    """
    Validate the trailing two checksum bytes of a frame.

    Args:
        frame: Complete frame: data bytes followed by low and high checksum.

    Returns:
        True if the checksum matches, False otherwise.
    """
    if len(frame) < 3:
        return False

    expected = split_checksum(calculate_checksum(frame[:-2]))
    return (frame[-2], frame[-1]) == expected
