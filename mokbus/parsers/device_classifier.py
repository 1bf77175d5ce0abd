"""
Device type classification strategies.

Scan detail lines carry a short device identification payload whose exact
byte-level layout is not fixed. Classification is therefore a replaceable
strategy: the scan session asks a DeviceClassifier for the device family
and never inspects the payload itself.

The default MarkerDeviceClassifier looks for known family markers in the
payload text and falls back to the single-channel type when nothing
matches.

Architecture:
    DeviceClassifier (interface)
        ├── MarkerDeviceClassifier (text markers, AM1 fallback)
        └── ... (custom strategies supplied by the caller)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from mokbus.models.records import DeviceType


class DeviceClassifier(ABC):
    """
    Abstract base class for device type classification.

    Implementations should:
    1. Inspect the payload of a scan detail line
    2. Return a DeviceType; never raise for unrecognized payloads
    """

    @abstractmethod
    def classify(self, payload: str) -> DeviceType:
        """
        Classify a device info payload.

        Args:
            payload: Device info text (suffix after the address, or the whole line).

        Returns:
            The device family.
        """
        ...


DEFAULT_MARKERS: tuple[tuple[str, DeviceType], ...] = (
    ("AM8", DeviceType.AM8),
    ("МОК-8", DeviceType.AM8),
    ("8CH", DeviceType.AM8),
    ("AM1", DeviceType.AM1),
    ("МОК-1", DeviceType.AM1),
    ("PM", DeviceType.PM),
    ("МОК-4", DeviceType.PM),
    ("4CH", DeviceType.PM),
)
"""Family markers in match order (first hit wins)."""


class MarkerDeviceClassifier(DeviceClassifier):
    """
    Classify devices by case-insensitive markers in the payload.

    Example:
        >>> classifier = MarkerDeviceClassifier()
        >>> classifier.classify("type=AM8 fw=1.2")
        <DeviceType.AM8: 'AM8'>
        >>> classifier.classify("garbage")
        <DeviceType.AM1: 'AM1'>
    """

    def __init__(
        self,
        markers: Iterable[tuple[str, DeviceType]] = DEFAULT_MARKERS,
        fallback: DeviceType = DeviceType.AM1,
    ) -> None:
        """
        Initialize the classifier.

        Args:
            markers: (marker, device type) pairs checked in order.
            fallback: Type returned when no marker matches.
        """
        self._markers = tuple((marker.upper(), device_type) for marker, device_type in markers)
        self._fallback = fallback

    @property
    def fallback(self) -> DeviceType:
        """Type returned for unrecognized payloads."""
        return self._fallback

    def classify(self, payload: str) -> DeviceType:
        text = payload.upper()
        for marker, device_type in self._markers:
            if marker in text:
                return device_type
        return self._fallback

    def __repr__(self) -> str:
        return f"MarkerDeviceClassifier(markers={len(self._markers)}, fallback={self._fallback.value})"


DEFAULT_CLASSIFIER = MarkerDeviceClassifier()
"""Default classifier instance."""
