"""
Line-oriented transport interface for the MOK bus.

Commands go out as hex text lines and every device reply comes back as
one CR+LF terminated line, so a transport only needs to move whole lines.
It owns the physical port, appends the terminator on send, strips it on
receive and turns a silent bus into TimeoutError.

Implementations:
- AsyncSerialTransport: RS485 adapter through pyserial-asyncio
- MockTransport: in-memory double for tests
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types import TracebackType


class AbstractTransport(ABC):
    """
    Base class for MOK bus transports.

    Example:
        >>> async with AsyncSerialTransport("/dev/ttyUSB0") as transport:
        ...     await transport.send("a1017fdf00")
        ...     reply = await transport.read_line()
    """

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Check if lines can be sent and received."""
        ...

    @property
    @abstractmethod
    def port_name(self) -> str:
        """Port path or mock identifier, for logs and notifications."""
        ...

    @abstractmethod
    async def open(self) -> None:
        """
        Open the port.

        Raises:
            TransportError: If the port cannot be opened.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the port. Closing a closed transport does nothing."""
        ...

    @abstractmethod
    async def send(self, text: str) -> None:
        """
        Send one line; the transport appends CR+LF.

        Raises:
            TransportError: If the port is closed or the write fails.
        """
        ...

    @abstractmethod
    async def read_line(self, timeout: float | None = None) -> str:
        """
        Wait for the next inbound line.

        Args:
            timeout: Seconds to wait; None uses the transport default.

        Returns:
            The line with CR+LF removed.

        Raises:
            TimeoutError: If no full line arrives in time.
            TransportError: If the port is closed or the read fails.
        """
        ...

    @abstractmethod
    def discard_buffers(self) -> None:
        """Drop unread inbound data."""
        ...

    async def __aenter__(self) -> AbstractTransport:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
