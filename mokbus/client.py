"""
MOK bus client.

This module provides the main client interface for configuring MOK
devices on an RS-485 bus.

The client owns the transport and ties together the protocol pieces:
range requests and their responses, sequential address writes for
multi-channel devices, and the full-bus scan. Inbound lines carry no
request identifier; each one is routed to the first outstanding request
kind (see RequestCorrelator) and falls back to generic OK/ERROR handling
when nothing is outstanding.

Connection states:
    DISCONNECTED -> connect() -> CONNECTED
    CONNECTED -> disconnect() -> DISCONNECTED

Example:
    >>> from mokbus import BusClient
    >>> from mokbus.transport import AsyncSerialTransport
    >>>
    >>> async def main():
    ...     transport = AsyncSerialTransport("/dev/ttyUSB0")
    ...     async with BusClient(transport, listener=print) as client:
    ...         client.start_listening()
    ...         await client.request_single_range(1, 20)
    ...         await client.start_scan()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

from mokbus.correlator import RequestCorrelator
from mokbus.events import Listener, Notification, NotificationLevel
from mokbus.exceptions import (
    ConnectionError,
    MalformedResponse,
    MokBusError,
    RequestInProgressError,
    TimeoutError,
    TransportError,
    ValidationError,
)
from mokbus.models.records import DeviceRecord, QuadChannelStatus
from mokbus.parsers.device_classifier import DEFAULT_CLASSIFIER, DeviceClassifier
from mokbus.parsers.response_parser import (
    DEFAULT_POLICIES,
    ValidationPolicy,
    decode_octal,
    decode_quad,
    decode_single,
)
from mokbus.protocol.constants import CommandCode, ProtocolConstants, RequestKind
from mokbus.protocol.frame import Frame, build_range_request, serialize
from mokbus.scan import ScanSession
from mokbus.sequencer import SequencedWriteController, SequencedWriteSession, WriteKind
from mokbus.traffic_log import Direction, TrafficLog
from mokbus.transport.serial_async import PortInfo, list_ports
from mokbus.validation import validate_window

if TYPE_CHECKING:
    from mokbus.storage import ConfigStore
    from mokbus.transport.abc import AbstractTransport

# Module logger
logger = logging.getLogger(__name__)

# (command, window minimum, window maximum) per range request kind
_RANGE_REQUESTS: dict[RequestKind, tuple[CommandCode, int, int]] = {
    RequestKind.SINGLE_RANGE: (
        CommandCode.SINGLE_RANGE,
        ProtocolConstants.MIN_DEVICE_ADDRESS,
        ProtocolConstants.MAX_DEVICE_ADDRESS,
    ),
    RequestKind.OCTAL_RANGE: (
        CommandCode.OCTAL_RANGE,
        ProtocolConstants.MIN_OCTAL_RANGE_ADDRESS,
        ProtocolConstants.MAX_OCTAL_RANGE_ADDRESS,
    ),
    RequestKind.QUAD_RANGE: (
        CommandCode.QUAD_RANGE,
        ProtocolConstants.MIN_DEVICE_ADDRESS,
        ProtocolConstants.MAX_DEVICE_ADDRESS,
    ),
}


class ClientState(Enum):
    """Bus client connection states."""

    DISCONNECTED = auto()
    """Transport closed."""

    CONNECTING = auto()
    """Opening the transport."""

    CONNECTED = auto()
    """Transport open and ready for requests."""

    DISCONNECTING = auto()
    """Closing the transport."""


class BusClient:
    """
    Client for configuring MOK devices over RS-485.

    Requests are fire-and-forget: each request method sends its frame and
    arms a wait for the reply, and replies are handled as they arrive by
    handle_line() (normally fed by listen()). Outcomes are reported as
    Notification values to the optional listener.

    Attributes:
        state: Current connection state.
        scan: Bus scan state (results and device info).
        sequencer: Sequential address write controller.
        traffic_log: TX/RX log (disabled unless enabled by the caller).

    Example:
        >>> client = BusClient(MockTransport(), listener=notifications.append)
        >>> await client.connect()
        >>> await client.request_quad_range(1, 4)
        True
        >>> client.handle_line("01020304" + "01" + "00010200" + "00" * 15)
    """

    def __init__(
        self,
        transport: AbstractTransport,
        store: ConfigStore | None = None,
        classifier: DeviceClassifier = DEFAULT_CLASSIFIER,
        timeouts: Mapping[RequestKind, float] | None = None,
        policies: Mapping[RequestKind, ValidationPolicy] | None = None,
        pacing_delay: float = ProtocolConstants.PACING_DELAY,
        listener: Listener | None = None,
        traffic_log: TrafficLog | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the bus client.

        Args:
            transport: Transport layer for communication.
            store: Persistence for scan results; None disables it.
            classifier: Device type classification for scan details.
            timeouts: Timeout per request kind in seconds.
            policies: Address validation policy per response kind.
            pacing_delay: Delay in seconds between sequential write steps.
            listener: Receives user-facing notifications.
            traffic_log: TX/RX log; a disabled log is created if omitted.
            sleep: Delay function used for pacing (replaceable in tests).
        """
        self._transport = transport
        self._state = ClientState.DISCONNECTED
        self._listener = listener
        self._policies = {**DEFAULT_POLICIES, **(policies or {})}
        self._traffic_log = traffic_log if traffic_log is not None else TrafficLog()
        self._last_records: dict[RequestKind, DeviceRecord] = {}
        self._quad_addresses: tuple[int, ...] | None = None
        self._listen_task: asyncio.Task[None] | None = None
        self._loaded = False

        self._correlator = RequestCorrelator(timeouts=timeouts, on_timeout=self._on_timeout)
        self._scan = ScanSession(self._correlator, self.send_frame, store, classifier)
        self._sequencer = SequencedWriteController(
            self.send_frame,
            pacing_delay=pacing_delay,
            on_step_sent=self._on_step_sent,
            listener=self._notify_raw,
            sleep=sleep,
        )

    # ===== Properties =====

    @property
    def state(self) -> ClientState:
        """Get the current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if the client is connected."""
        return self._state == ClientState.CONNECTED

    @property
    def is_busy(self) -> bool:
        """Check if any request is outstanding or a sequence is running."""
        return not self._correlator.is_idle or self._sequencer.is_running

    @property
    def transport(self) -> AbstractTransport:
        """Get the underlying transport."""
        return self._transport

    @property
    def correlator(self) -> RequestCorrelator:
        """Get the request correlator."""
        return self._correlator

    @property
    def scan(self) -> ScanSession:
        """Get the bus scan state."""
        return self._scan

    @property
    def sequencer(self) -> SequencedWriteController:
        """Get the sequential write controller."""
        return self._sequencer

    @property
    def traffic_log(self) -> TrafficLog:
        """Get the TX/RX traffic log."""
        return self._traffic_log

    @property
    def quad_addresses(self) -> tuple[int, ...] | None:
        """Channel addresses of the last Quad status or write echo."""
        return self._quad_addresses

    def last_record(self, kind: RequestKind) -> DeviceRecord | None:
        """Get the last record decoded for a request kind."""
        return self._last_records.get(kind)

    @staticmethod
    def list_ports() -> list[PortInfo]:
        """List serial ports available on this machine."""
        return list_ports()

    # ===== Connection =====

    async def connect(self) -> None:
        """
        Open the transport, drop stale input and restore stored scan results.

        Stored scan results are read once per client, on the first
        successful connect.

        Raises:
            ConnectionError: If the client is not disconnected.
            TransportError: If the transport cannot be opened.
        """
        if self._state != ClientState.DISCONNECTED:
            raise ConnectionError(f"Cannot connect: client is in {self._state.name} state")

        self._state = ClientState.CONNECTING
        logger.info("Connecting to %s", self._transport.port_name)

        try:
            if not self._transport.is_open:
                await self._transport.open()
        except Exception:
            self._state = ClientState.DISCONNECTED
            raise

        # Lines buffered before this session belong to no request
        self._transport.discard_buffers()
        self._state = ClientState.CONNECTED

        if not self._loaded:
            self._loaded = True
            try:
                if self._scan.load():
                    logger.info("Restored %d scan result(s)", len(self._scan.discovered))
            except MokBusError as e:
                logger.error("Could not restore scan results: %s", e)
                self._notify(NotificationLevel.WARNING, f"Could not restore scan results: {e}", error=e)

    async def disconnect(self) -> None:
        """Stop listening, drop outstanding requests and close the transport."""
        if self._state == ClientState.DISCONNECTED:
            return

        self._state = ClientState.DISCONNECTING
        logger.info("Disconnecting from %s", self._transport.port_name)

        try:
            await self.stop_listening()
            self._correlator.cancel_all()
            self._scan.in_progress = False
            if self._transport.is_open:
                await self._transport.close()
        finally:
            self._state = ClientState.DISCONNECTED

    # ===== Sending =====

    async def send_frame(self, frame: Frame) -> None:
        """
        Serialize and send one frame.

        Args:
            frame: Frame to send.

        Raises:
            TransportError: If the transport is not open or the write fails.
        """
        if not self._transport.is_open:
            raise TransportError("Transport not open")

        text = serialize(frame)
        logger.debug("TX %s (%r)", text, frame)
        self._traffic_log.record(Direction.TX, text)
        await self._transport.send(text)

    # ===== Range Requests =====

    async def request_single_range(self, start: Any, end: Any) -> bool:
        """
        Request the status of single-channel (AM1) devices in start..end.

        Args:
            start: First address (1..247).
            end: Last address (start..247).

        Returns:
            True if the request was sent, False if validation or the send
            failed (an error notification is emitted).
        """
        return await self._request_range(RequestKind.SINGLE_RANGE, start, end)

    async def request_octal_range(self, start: Any, end: Any) -> bool:
        """Request the status of 8-channel (AM8) devices in start..end (10..99)."""
        return await self._request_range(RequestKind.OCTAL_RANGE, start, end)

    async def request_quad_range(self, start: Any, end: Any) -> bool:
        """Request the status of 4-channel (PM) devices in start..end (1..247)."""
        return await self._request_range(RequestKind.QUAD_RANGE, start, end)

    async def _request_range(self, kind: RequestKind, start: Any, end: Any) -> bool:
        command, minimum, maximum = _RANGE_REQUESTS[kind]

        try:
            first, last = validate_window(start, end, minimum, maximum)
            await self.send_frame(build_range_request(command, first, last))
        except (ValidationError, TransportError) as e:
            logger.error("%s request failed: %s", kind.name, e)
            self._notify(NotificationLevel.ERROR, str(e), kind=kind, error=e)
            return False

        self._correlator.arm(kind)
        logger.info("%s request sent for %d..%d", kind.name, first, last)
        return True

    # ===== Sequential Writes =====

    async def write_octal_addresses(self, address_fields: Sequence[Any]) -> SequencedWriteSession | None:
        """
        Write all 8 channel addresses of an AM8 device.

        Args:
            address_fields: Raw value of each channel's address field.

        Returns:
            The finished session, or None if a sequence was already running.
        """
        return await self._write_addresses(WriteKind.OCTAL, address_fields)

    async def write_quad_addresses(self, address_fields: Sequence[Any]) -> SequencedWriteSession | None:
        """
        Write all 4 channel addresses of a PM device.

        Each sent step also arms a wait for the device echo, which
        refreshes quad_addresses when it arrives. The sequence itself does
        not wait for the echo.
        """
        return await self._write_addresses(WriteKind.QUAD, address_fields)

    async def _write_addresses(
        self, kind: WriteKind, address_fields: Sequence[Any]
    ) -> SequencedWriteSession | None:
        try:
            return await self._sequencer.run(kind, address_fields)
        except RequestInProgressError as e:
            logger.warning("%s", e)
            self._notify(NotificationLevel.WARNING, str(e), error=e)
            return None

    def _on_step_sent(self, kind: WriteKind, index: int, frame: Frame) -> None:
        if kind is WriteKind.QUAD:
            self._correlator.arm(RequestKind.QUAD_WRITE)

    # ===== Scan =====

    async def start_scan(self) -> bool:
        """
        Start a full-bus scan.

        Returns:
            True if the scan was started, False if one is already running
            or the scan frame could not be sent.
        """
        try:
            await self._scan.start()
        except RequestInProgressError as e:
            logger.warning("%s", e)
            self._notify(NotificationLevel.WARNING, str(e), kind=RequestKind.SCAN, error=e)
            return False
        except TransportError as e:
            logger.error("Scan request failed: %s", e)
            self._notify(NotificationLevel.ERROR, str(e), kind=RequestKind.SCAN, error=e)
            return False
        return True

    # ===== Inbound =====

    def handle_line(self, line: str) -> Any:
        """
        Interpret one inbound line.

        The line is routed to the first outstanding request kind. If no
        kind is outstanding, lines containing "OK" or "ERROR" produce a
        success or error notification; anything else is ignored.

        Args:
            line: Inbound line without terminator.

        Returns:
            The decoded record, scan list or scan detail, or None.
        """
        logger.debug("RX %s", line)
        self._traffic_log.record(Direction.RX, line)

        kind = self._correlator.route()
        if kind is None:
            self._handle_generic(line)
            return None

        try:
            if kind is RequestKind.SCAN:
                return self._scan.handle_line(line)
            return self._handle_response(kind, line)

        except MalformedResponse as e:
            self._correlator.clear(kind)
            logger.error("Malformed %s response: %s", kind.name, e)
            self._notify(NotificationLevel.ERROR, f"Malformed response: {e.reason}", kind=kind, error=e)
        except MokBusError as e:
            logger.error("Failed to handle %s response: %s", kind.name, e)
            self._notify(NotificationLevel.ERROR, str(e), kind=kind, error=e)
        return None

    def _handle_response(self, kind: RequestKind, line: str) -> DeviceRecord:
        policy = self._policies[kind]

        if kind is RequestKind.SINGLE_RANGE:
            record: DeviceRecord = decode_single(line, policy)
        elif kind is RequestKind.OCTAL_RANGE:
            record = decode_octal(line, policy)
        else:
            record = decode_quad(line, policy)

        self._correlator.clear(kind)
        self._last_records[kind] = record

        if isinstance(record, QuadChannelStatus):
            self._quad_addresses = record.addresses

        for warning in record.warnings:
            self._notify(NotificationLevel.WARNING, warning, kind=kind, record=record)

        if kind is RequestKind.QUAD_WRITE:
            logger.info("Quad write echo: addresses %s", record.addresses)
            self._notify(NotificationLevel.INFO, "Channel addresses refreshed", kind=kind, record=record)
        else:
            logger.info("%s response decoded", kind.name)
            self._notify(NotificationLevel.SUCCESS, "Status received", kind=kind, record=record)
        return record

    def _handle_generic(self, line: str) -> None:
        if ProtocolConstants.GENERIC_OK in line:
            self._notify(NotificationLevel.SUCCESS, "Device acknowledged")
        elif ProtocolConstants.GENERIC_ERROR in line:
            logger.warning("Device reported an error: %s", line)
            self._notify(NotificationLevel.ERROR, f"Device reported an error: {line}")
        else:
            logger.debug("Ignoring unsolicited line: %r", line)

    def _on_timeout(self, error: TimeoutError) -> None:
        kind = error.kind
        if kind is RequestKind.SCAN:
            self._scan.expire()
            self._notify(NotificationLevel.WARNING, "Bus scan timed out", kind=kind, error=error)
        elif kind is RequestKind.QUAD_WRITE:
            self._notify(NotificationLevel.WARNING, "No write echo from device", kind=kind, error=error)
        else:
            self._notify(NotificationLevel.ERROR, str(error), kind=kind, error=error)

    # ===== Reader Loop =====

    async def listen(self) -> None:
        """
        Read and handle inbound lines until the transport closes.

        Read timeouts are ignored; request timeouts are handled by the
        correlator. A transport failure ends the loop; a line that fails
        to be handled is logged and skipped.
        """
        logger.debug("Listening on %s", self._transport.port_name)
        while self._transport.is_open:
            try:
                line = await self._transport.read_line()
            except TimeoutError:
                continue
            except TransportError as e:
                if self._transport.is_open:
                    logger.error("Read failed: %s", e)
                    self._notify(NotificationLevel.ERROR, str(e), error=e)
                break

            if not line:
                continue
            try:
                self.handle_line(line)
            except Exception:
                logger.exception("Failed to handle line %r", line)

    def start_listening(self) -> asyncio.Task[None]:
        """Run listen() as a background task."""
        if self._listen_task is None or self._listen_task.done():
            self._listen_task = asyncio.get_running_loop().create_task(self.listen())
        return self._listen_task

    async def stop_listening(self) -> None:
        """Cancel the background reader task, if any."""
        task, self._listen_task = self._listen_task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # ===== Notifications =====

    def _notify(
        self,
        level: NotificationLevel,
        message: str,
        kind: RequestKind | None = None,
        error: Exception | None = None,
        record: Any = None,
    ) -> None:
        self._notify_raw(
            Notification(level=level, message=message, kind=kind, error=error, record=record)
        )

    def _notify_raw(self, notification: Notification) -> None:
        if self._listener is not None:
            self._listener(notification)

    async def __aenter__(self) -> BusClient:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - disconnect and close transport."""
        await self.disconnect()

    def __repr__(self) -> str:
        active = ", ".join(kind.name for kind in self._correlator.active_kinds) or "idle"
        return f"BusClient(state={self._state.name}, port={self._transport.port_name}, {active})"
