"""
Transport layer for MOK bus communication.

This package provides line-oriented transport implementations.

Available transports:
- AsyncSerialTransport: Async serial port using pyserial-asyncio
- MockTransport: Mock transport for testing without hardware

Example:
    >>> from mokbus.transport import AsyncSerialTransport, list_ports
    >>> for port in list_ports():
    ...     print(port)
    >>> async with AsyncSerialTransport("/dev/ttyUSB0") as transport:
    ...     await transport.send("a1017fdf00")
    ...     line = await transport.read_line(timeout=10.0)
"""

from mokbus.transport.abc import AbstractTransport
from mokbus.transport.mock import MockTransport
from mokbus.transport.serial_async import AsyncSerialTransport, PortInfo, list_ports

__all__ = [
    "AbstractTransport",
    "AsyncSerialTransport",
    "MockTransport",
    "PortInfo",
    "list_ports",
]
