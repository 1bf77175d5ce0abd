"""
Full-bus discovery scan.

A scan sends one range request over the scan window 1..127 and then
collects two kinds of reply:

- Scan detail lines identify one device each and may arrive over time.
  They are merged into the device info map and the scan keeps waiting.
- A scan list line names every address that answered. It is the terminal
  reply: addresses are marked present and the scan ends.

Results are held in a ScanSession object, saved to the config store after
every change and read back at startup. A timeout ends the scan but keeps
everything discovered so far.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from mokbus.correlator import RequestCorrelator
from mokbus.exceptions import RequestInProgressError
from mokbus.models.records import DeviceType, ScanDetail, ScanList
from mokbus.parsers.device_classifier import DEFAULT_CLASSIFIER, DeviceClassifier
from mokbus.parsers.scan_parser import parse_scan_detail, parse_scan_list
from mokbus.protocol.constants import CommandCode, ProtocolConstants, RequestKind
from mokbus.protocol.frame import Frame, build_range_request
from mokbus.storage import ConfigStore, StoredConfig

logger = logging.getLogger(__name__)

SCAN_ADDRESSES = range(ProtocolConstants.MIN_SCAN_ADDRESS, ProtocolConstants.MAX_SCAN_ADDRESS + 1)


def build_scan_request() -> Frame:
    """Build the frame that starts a bus scan over 1..127."""
    return build_range_request(
        CommandCode.SINGLE_RANGE,
        ProtocolConstants.MIN_SCAN_ADDRESS,
        ProtocolConstants.MAX_SCAN_ADDRESS,
    )


class ScanSession:
    """
    State of the bus scan.

    Attributes:
        results: Address -> True if the address answered the last scan.
        device_info: Address -> known device detail, or None.
        in_progress: True between start() and the scan list or a timeout.
    """

    def __init__(
        self,
        correlator: RequestCorrelator,
        send: Callable[[Frame], Awaitable[None]],
        store: ConfigStore | None = None,
        classifier: DeviceClassifier = DEFAULT_CLASSIFIER,
    ) -> None:
        """
        Initialize the scan session.

        Args:
            correlator: Correlator used to arm and clear the SCAN wait.
            send: Coroutine function that transmits a frame.
            store: Where results are persisted; None disables persistence.
            classifier: Device type classification strategy.
        """
        self._correlator = correlator
        self._send = send
        self._store = store
        self._classifier = classifier
        self._sections: list[dict[str, Any]] = []
        self.results: dict[int, bool] = {}
        self.device_info: dict[int, ScanDetail | None] = {}
        self.in_progress = False
        self._reset()

    @property
    def discovered(self) -> list[int]:
        """Addresses marked present, ascending."""
        return [address for address, found in self.results.items() if found]

    @property
    def sections(self) -> list[dict[str, Any]]:
        """Section catalog carried along with the scan results."""
        return self._sections

    @property
    def classifier(self) -> DeviceClassifier:
        """Device type classification strategy."""
        return self._classifier

    def device_type(self, address: int) -> DeviceType | None:
        """Get the known device type of an address."""
        detail = self.device_info.get(address)
        return detail.device_type if detail is not None else None

    async def start(self) -> None:
        """
        Start a scan.

        Resets all results and stores the cleared state, then sends the
        scan frame and arms the SCAN wait.

        Raises:
            RequestInProgressError: If a scan is already running. Nothing is
                sent and existing results are kept.
            TransportError: If the scan frame cannot be sent; the session
                is left idle.
            StorageError: If the cleared state cannot be stored; nothing
                is sent.
        """
        if self.in_progress:
            raise RequestInProgressError("Scan already in progress")

        self._reset()
        self._persist()
        await self._send(build_scan_request())

        self._correlator.arm(RequestKind.SCAN)
        self.in_progress = True
        logger.info("Bus scan started")

    def handle_line(self, line: str) -> ScanList | ScanDetail | None:
        """
        Interpret an inbound line while the scan is running.

        Args:
            line: Inbound text line.

        Returns:
            The ScanList that ended the scan, a merged ScanDetail, or None
            if the line is unrelated.
        """
        scan_list = parse_scan_list(line)
        if scan_list:
            self._apply_list(scan_list)
            return scan_list

        detail = parse_scan_detail(line, self._classifier)
        if detail is not None:
            self._apply_detail(detail)
            return detail

        logger.debug("Ignoring line during scan: %r", line)
        return None

    def expire(self) -> None:
        """End the scan after a timeout, keeping partial results."""
        self.in_progress = False
        logger.warning(
            "Bus scan timed out with %d device(s) identified",
            sum(1 for detail in self.device_info.values() if detail is not None),
        )

    def snapshot(self) -> StoredConfig:
        """Build the persisted form of the current state."""
        return StoredConfig(
            sections=list(self._sections),
            scan_results=self.discovered,
            device_info=[detail for detail in self.device_info.values() if detail is not None],
        )

    def restore(self, config: StoredConfig) -> None:
        """
        Replace the current state with a stored configuration.

        Addresses outside 1..127 in the stored data are ignored.
        """
        self._reset()
        self._sections = list(config.sections)
        for address in config.scan_results:
            if address in self.results:
                self.results[address] = True
        for detail in config.device_info:
            self.device_info[detail.address] = detail
        logger.debug("Restored %d scan result(s)", len(self.discovered))

    def load(self) -> bool:
        """
        Restore state from the config store.

        Returns:
            True if stored state was found.
        """
        if self._store is None:
            return False
        config = self._store.load()
        if config is None:
            return False
        self.restore(config)
        return True

    def set_sections(self, sections: list[dict[str, Any]]) -> None:
        """Replace the section catalog and persist it."""
        self._sections = list(sections)
        self._persist()

    def _apply_list(self, scan_list: ScanList) -> None:
        for address in scan_list.addresses:
            self.results[address] = True
            if self.device_info[address] is None:
                self.device_info[address] = ScanDetail(
                    address=address, device_type=DeviceType.UNKNOWN
                )

        self._correlator.clear(RequestKind.SCAN)
        self.in_progress = False
        logger.info("Bus scan complete: %d device(s) found", len(scan_list))
        self._persist()

    def _apply_detail(self, detail: ScanDetail) -> None:
        self.device_info[detail.address] = detail
        self._persist()
        logger.debug("Scan detail %s", detail)

    def _persist(self) -> None:
        if self._store is not None:
            self._store.save(self.snapshot())

    def _reset(self) -> None:
        self.results = {address: False for address in SCAN_ADDRESSES}
        self.device_info = {address: None for address in SCAN_ADDRESSES}

    def __repr__(self) -> str:
        status = "running" if self.in_progress else "idle"
        return f"ScanSession({status}, found={len(self.discovered)})"
