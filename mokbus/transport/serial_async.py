"""
RS485 serial transport built on pyserial-asyncio.

MOK devices sit on an RS485 bus behind a USB adapter. The port is opened
8N1 with no flow control at 9600 baud unless told otherwise, and both
directions use CR+LF terminated text lines.

Example:
    >>> for port in list_ports():
    ...     print(port)
    /dev/ttyUSB0 - FTDI
    >>> async with AsyncSerialTransport("/dev/ttyUSB0") as bus:
    ...     await bus.send("a1017fdf00")
    ...     reply = await bus.read_line(timeout=30.0)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import serial
import serial.tools.list_ports
import serial_asyncio

from mokbus.exceptions import TimeoutError, TransportError
from mokbus.protocol.constants import ProtocolConstants
from mokbus.transport.abc import AbstractTransport


@dataclass(frozen=True)
class PortInfo:
    """
    A serial port available on this machine.

    Attributes:
        path: Device path or name ("/dev/ttyUSB0", "COM3").
        manufacturer: Adapter manufacturer, "Unknown" if not reported.
        serial_number: Adapter serial number, "N/A" if not reported.
    """

    path: str
    manufacturer: str = "Unknown"
    serial_number: str = "N/A"

    def __str__(self) -> str:
        return f"{self.path} - {self.manufacturer}"


def list_ports() -> list[PortInfo]:
    """
    List serial ports present on this machine.

    Returns:
        PortInfo for each port, sorted by path.
    """
    return [
        PortInfo(
            path=port.device,
            manufacturer=port.manufacturer or "Unknown",
            serial_number=port.serial_number or "N/A",
        )
        for port in sorted(serial.tools.list_ports.comports(), key=lambda p: p.device)
    ]


class AsyncSerialTransport(AbstractTransport):
    """
    MOK bus over a local serial port.

    Attributes:
        port_name: Port path the transport was created for.
        baudrate: Configured line speed.
    """

    def __init__(
        self,
        port: str,
        baudrate: int = ProtocolConstants.DEFAULT_BAUD_RATE,
        default_timeout: float = ProtocolConstants.DEFAULT_READ_TIMEOUT,
    ) -> None:
        """
        Create a transport for a port; nothing is opened yet.

        Args:
            port: Port path, e.g. "/dev/ttyUSB0" or "COM3".
            baudrate: Line speed in baud.
            default_timeout: Seconds read_line() waits when given no timeout.
        """
        self._port = port
        self._baudrate = baudrate
        self._default_timeout = default_timeout
        self._terminator = ProtocolConstants.LINE_TERMINATOR.encode("ascii")
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._port_handle: serial.Serial | None = None

    @property
    def is_open(self) -> bool:
        """Check if the port is open and its writer is not closing."""
        if self._reader is None or self._writer is None:
            return False
        return not self._writer.is_closing()

    @property
    def port_name(self) -> str:
        """Port path."""
        return self._port

    @property
    def baudrate(self) -> int:
        """Line speed in baud."""
        return self._baudrate

    async def open(self) -> None:
        """
        Open the port 8N1 without flow control. Opening an open port does nothing.

        Raises:
            TransportError: If the port is missing, busy or not permitted.
        """
        if self.is_open:
            return

        try:
            self._reader, self._writer = await serial_asyncio.open_serial_connection(
                url=self._port,
                baudrate=self._baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                xonxoff=False,
                rtscts=False,
                dsrdtr=False,
            )
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"Cannot open {self._port}: {e}") from e

        # pyserial-asyncio exposes the Serial object for buffer resets
        self._port_handle = getattr(self._writer.transport, "serial", None)

    async def close(self) -> None:
        """
        Close the port. Closing a closed port does nothing.

        Raises:
            TransportError: If the port fails to close cleanly.
        """
        writer, self._writer = self._writer, None
        self._reader = None
        self._port_handle = None

        if writer is None:
            return

        try:
            writer.close()
            await writer.wait_closed()
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"Cannot close {self._port}: {e}") from e

    async def send(self, text: str) -> None:
        """
        Write one line followed by CR+LF.

        Raises:
            TransportError: If the port is closed, the text is not ASCII or
                the write fails.
        """
        writer = self._require_writer()

        try:
            payload = text.encode("ascii") + self._terminator
        except UnicodeEncodeError as e:
            raise TransportError(f"Cannot send non-ASCII line {text!r}") from e

        try:
            writer.write(payload)
            await writer.drain()
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"Write to {self._port} failed: {e}") from e

    async def read_line(self, timeout: float | None = None) -> str:
        """
        Wait for the next CR+LF terminated line.

        Device text (scan details) may contain Cyrillic, so lines are
        decoded as UTF-8 with undecodable bytes replaced.

        Raises:
            TimeoutError: If no full line arrives in time.
            TransportError: If the port is closed or the adapter goes away.
        """
        if self._reader is None or not self.is_open:
            raise TransportError(f"{self._port} is not open")

        wait = self._default_timeout if timeout is None else timeout

        try:
            raw = await asyncio.wait_for(self._reader.readuntil(self._terminator), timeout=wait)
        except asyncio.TimeoutError:
            raise TimeoutError("No line received", timeout_seconds=wait) from None
        except asyncio.IncompleteReadError as e:
            raise TransportError(
                f"{self._port} closed mid-line ({len(e.partial)} byte(s) pending)"
            ) from e
        except (asyncio.LimitOverrunError, serial.SerialException, OSError) as e:
            raise TransportError(f"Read from {self._port} failed: {e}") from e

        return raw[: -len(self._terminator)].decode("utf-8", errors="replace")

    def discard_buffers(self) -> None:
        """
        Reset the adapter's input and output buffers.

        Lines already pulled into the asyncio stream are not affected.
        """
        if self._port_handle is None:
            return
        try:
            self._port_handle.reset_input_buffer()
            self._port_handle.reset_output_buffer()
        except serial.SerialException:
            # Adapter unplugged; the next read reports it
            pass

    def _require_writer(self) -> asyncio.StreamWriter:
        if self._writer is None or not self.is_open:
            raise TransportError(f"{self._port} is not open")
        return self._writer

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"AsyncSerialTransport({self._port!r}, {self._baudrate} baud, {state})"
