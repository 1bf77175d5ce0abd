"""
Parsing engine for MOK bus responses.

This package converts inbound lines into structured records:

1. **Response parsers**: fixed-shape single, octal and quad status payloads
2. **Scan parsers**: scan list and per-device scan detail text lines
3. **Device classifier**: strategy that maps scan detail payloads to a
   device family

Example:
    >>> from mokbus.parsers import decode_quad
    >>> status = decode_quad("01020304" "01" "00010200" + "00" * 15)
    >>> status.relay_statuses
    (0, 1, 2, 0)
"""

from mokbus.parsers.device_classifier import (
    DEFAULT_CLASSIFIER,
    DEFAULT_MARKERS,
    DeviceClassifier,
    MarkerDeviceClassifier,
)
from mokbus.parsers.response_parser import (
    DEFAULT_POLICIES,
    ValidationPolicy,
    decode_octal,
    decode_quad,
    decode_single,
)
from mokbus.parsers.scan_parser import parse_scan_detail, parse_scan_list

__all__ = [
    # Response parsers
    "ValidationPolicy",
    "DEFAULT_POLICIES",
    "decode_single",
    "decode_octal",
    "decode_quad",
    # Scan parsers
    "parse_scan_list",
    "parse_scan_detail",
    # Classification
    "DeviceClassifier",
    "MarkerDeviceClassifier",
    "DEFAULT_CLASSIFIER",
    "DEFAULT_MARKERS",
]
