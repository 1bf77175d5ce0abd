"""
Hex encoding and decoding utilities for the MOK bus.

Outbound frames are transmitted as lowercase hex text, two characters per
byte. Inbound payloads arrive in several shapes, all of which are
normalized to bytes here:

- A compact hex string ("0A0100...")
- Hex with separators ("0A-01-00", "0A:01:00", "0a 01 00")
- Whitespace separated hex tokens of any width ("A 1 0")
- An already decoded byte sequence
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Final

from mokbus.exceptions import MalformedResponse

_SEPARATORS: Final[re.Pattern[str]] = re.compile(r"[\s\-:]+")
_HEX_DIGITS: Final[re.Pattern[str]] = re.compile(r"^[0-9A-F]+$")


def bytes_to_hex(data: bytes | bytearray | Sequence[int]) -> str:
    """
    Encode bytes as lowercase hex text without separators.

    Args:
        data: Bytes to encode.

    Returns:
        Hex string, two characters per byte.

    Example:
        >>> bytes_to_hex(bytes([0xA1, 0x01, 0x7F]))
        'a1017f'
    """
    return bytes(data).hex()


def is_hex_string(text: str) -> bool:
    """Check if text is a non-empty, even-length hex digit string."""
    return bool(text) and len(text) % 2 == 0 and _HEX_DIGITS.match(text.upper()) is not None


def normalize_payload(raw: str | bytes | bytearray | Sequence[int]) -> bytes:
    """
    Normalize an inbound payload to bytes.

    Text input is stripped of whitespace, '-' and ':' separators and
    uppercased. If the remainder is a valid hex digit string it is decoded
    pairwise. Otherwise the original text is split on whitespace and each
    token is parsed as an independent hex byte.

    Args:
        raw: Inbound line, or an already decoded byte sequence.

    Returns:
        Decoded bytes.

    Raises:
        MalformedResponse: If the text is neither form of hex.

    Example:
        >>> normalize_payload("0a-01-02")
        b'\\n\\x01\\x02'
        >>> normalize_payload("A 1 2")
        b'\\n\\x01\\x02'
    """
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)

    if not isinstance(raw, str):
        try:
            return bytes(raw)
        except (TypeError, ValueError) as e:
            raise MalformedResponse(f"Invalid byte sequence: {e}", line=raw) from e

    compact = _SEPARATORS.sub("", raw).upper()
    if is_hex_string(compact):
        return bytes.fromhex(compact)

    tokens = raw.split()
    if not tokens:
        raise MalformedResponse("Empty payload", line=raw)

    try:
        return bytes(int(token, 16) for token in tokens)
    except ValueError as e:
        raise MalformedResponse(f"Payload is not hex: {e}", line=raw) from e
