"""
Bus scan line parsers.

A scan produces two kinds of text lines:

1. **Scan list**: the terminal response listing every address that
   answered. Accepted forms:
   - ``МОК_SCAN:1,2,5`` or ``MOK_SCAN:1,2,5`` (tagged)
   - ``1,2,5`` (bare comma-separated list)
   - ``5`` (single bare integer)

2. **Scan detail**: a per-device identification line that may arrive
   before the list. Accepted forms:
   - ``<address>:<device info>``
   - any line with an embedded integer, which is taken as the address

Both parsers are best-effort: they return None instead of raising when a
line does not match.
"""

from __future__ import annotations

import re
from typing import Final

from mokbus.models.records import ScanDetail, ScanList
from mokbus.parsers.device_classifier import DEFAULT_CLASSIFIER, DeviceClassifier
from mokbus.protocol.constants import ProtocolConstants

_INTEGER: Final[re.Pattern[str]] = re.compile(r"\d+")
_INTEGER_LIST: Final[re.Pattern[str]] = re.compile(r"^\s*\d+\s*(,\s*\d+\s*)*,?\s*$")


def _in_scan_range(address: int) -> bool:
    return ProtocolConstants.MIN_SCAN_ADDRESS <= address <= ProtocolConstants.MAX_SCAN_ADDRESS


def _strip_tag(line: str) -> str | None:
    """Return the text after a scan tag, or None if the line is untagged."""
    stripped = line.strip()
    for tag in ProtocolConstants.SCAN_TAGS:
        if stripped.upper().startswith(tag.upper()):
            return stripped[len(tag):]
    return None


def parse_scan_list(line: str) -> ScanList | None:
    """
    Parse a scan list line.

    Values outside 1..127 are dropped silently. Duplicates keep their
    first position.

    Args:
        line: Inbound text line.

    Returns:
        ScanList (possibly empty for a tagged line whose values were all
        dropped), or None if the line is not a scan list.

    Example:
        >>> parse_scan_list("МОК_SCAN:1,2,5,127").addresses
        (1, 2, 5, 127)
        >>> parse_scan_list("МОК_SCAN:0,128").addresses
        ()
    """
    body = _strip_tag(line)
    if body is None:
        if not _INTEGER_LIST.match(line):
            return None
        body = line

    addresses: list[int] = []
    for token in body.split(","):
        token = token.strip()
        if not token.isdigit():
            continue
        address = int(token)
        if _in_scan_range(address) and address not in addresses:
            addresses.append(address)

    return ScanList(addresses=tuple(addresses))


def parse_scan_detail(
    line: str,
    classifier: DeviceClassifier = DEFAULT_CLASSIFIER,
) -> ScanDetail | None:
    """
    Parse a per-device scan detail line.

    If the line contains a colon, the first integer before it is the
    address and the text after it is the device info payload. Otherwise
    the first integer anywhere in the line is the address and the whole
    line is the payload.

    Args:
        line: Inbound text line.
        classifier: Strategy that maps the payload to a device type.

    Returns:
        ScanDetail, or None if no address in 1..127 can be found.

    Example:
        >>> parse_scan_detail("12:AM8 v2").device_type
        <DeviceType.AM8: 'AM8'>
    """
    text = line.strip()
    if not text:
        return None

    if ":" in text:
        prefix, payload = text.split(":", 1)
        match = _INTEGER.search(prefix)
    else:
        payload = text
        match = _INTEGER.search(text)

    if match is None:
        return None

    address = int(match.group())
    if not _in_scan_range(address):
        return None

    payload = payload.strip()
    return ScanDetail(
        address=address,
        device_type=classifier.classify(payload),
        payload=payload,
    )
