"""
In-memory MOK bus for tests.

MockTransport stands in for an RS485 adapter. Device replies are queued
up front with add_line() or produced per sent line by a response
callback, and sends can be made to fail to exercise abort paths.

Example:
    >>> from mokbus.transport import MockTransport
    >>> mock = MockTransport()
    >>> mock.add_line("MOK_SCAN:1,5")
    >>>
    >>> async with mock:
    ...     await mock.send("a1017fdf00")
    ...     assert await mock.read_line() == "MOK_SCAN:1,5"
    ...     assert mock.sent_lines == ["a1017fdf00"]
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable

from mokbus.exceptions import TimeoutError, TransportError
from mokbus.transport.abc import AbstractTransport

ResponseCallback = Callable[[str], "str | Iterable[str] | None"]


class MockTransport(AbstractTransport):
    """
    In-memory transport that records sends and replays queued replies.

    Records every sent line (without terminator) and serves queued inbound
    lines in FIFO order.

    Attributes:
        sent_lines: All lines sent through the transport.
    """

    def __init__(
        self,
        port_name: str = "mock://test",
        default_timeout: float = 0.05,
    ) -> None:
        """
        Create a closed mock bus.

        Args:
            port_name: Name reported as port_name.
            default_timeout: Seconds read_line() waits for a queued line.
        """
        self._port_name = port_name
        self._default_timeout = default_timeout
        self._is_open = False
        self._inbound: asyncio.Queue[str] = asyncio.Queue()
        self._sent_lines: list[str] = []
        self._response_callback: ResponseCallback | None = None
        self._send_error: TransportError | None = None
        self._fail_after: int | None = None

    @property
    def is_open(self) -> bool:
        """Check if open() was called without a later close()."""
        return self._is_open

    @property
    def port_name(self) -> str:
        """Name given at construction."""
        return self._port_name

    @property
    def sent_lines(self) -> list[str]:
        """Get all lines sent through the transport."""
        return self._sent_lines.copy()

    @property
    def last_sent(self) -> str | None:
        """Get the most recently sent line."""
        return self._sent_lines[-1] if self._sent_lines else None

    @property
    def pending_lines(self) -> int:
        """Number of queued inbound lines not yet read."""
        return self._inbound.qsize()

    def add_line(self, line: str) -> None:
        """
        Queue an inbound line.

        Args:
            line: Line content without terminator.
        """
        self._inbound.put_nowait(line)

    def add_lines(self, *lines: str) -> None:
        """
        Queue multiple inbound lines.

        Args:
            *lines: Lines to queue in order.
        """
        for line in lines:
            self._inbound.put_nowait(line)

    def set_response_callback(self, callback: ResponseCallback | None) -> None:
        """
        Set a callback to generate inbound lines from sent lines.

        The callback receives each sent line and may return a reply line,
        an iterable of reply lines, or None for no reply.

        Args:
            callback: Function that takes a sent line and returns replies.
        """
        self._response_callback = callback

    def fail_sends(self, message: str = "Mock send failure", after: int = 0) -> None:
        """
        Make sends fail with TransportError.

        Args:
            message: Error message.
            after: Number of further sends that still succeed first.
        """
        self._send_error = TransportError(message)
        self._fail_after = len(self._sent_lines) + after

    def clear(self) -> None:
        """Clear sent lines, pending inbound lines and send failures."""
        self._sent_lines.clear()
        self.discard_buffers()
        self._send_error = None
        self._fail_after = None

    async def open(self) -> None:
        """Open the mock bus; opening twice raises TransportError."""
        if self._is_open:
            raise TransportError(f"{self._port_name} already open")
        self._is_open = True

    async def close(self) -> None:
        """Close the mock bus."""
        self._is_open = False

    async def send(self, text: str) -> None:
        """
        Record a sent line and trigger the response callback.

        Raises:
            TransportError: If the transport is not open or sends are set to fail.
        """
        if not self._is_open:
            raise TransportError(f"{self._port_name} is not open")

        if self._send_error is not None and len(self._sent_lines) >= self._fail_after:
            raise self._send_error

        self._sent_lines.append(text)

        if self._response_callback is not None:
            replies = self._response_callback(text)
            if isinstance(replies, str):
                self.add_line(replies)
            elif replies is not None:
                self.add_lines(*replies)

    async def read_line(self, timeout: float | None = None) -> str:
        """
        Return the next queued inbound line.

        Raises:
            TimeoutError: If no line is queued before the timeout.
            TransportError: If the transport is not open.
        """
        if not self._is_open:
            raise TransportError(f"{self._port_name} is not open")

        effective_timeout = timeout if timeout is not None else self._default_timeout
        try:
            return await asyncio.wait_for(self._inbound.get(), timeout=effective_timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(
                "No mock line available",
                timeout_seconds=effective_timeout,
            ) from None

    def discard_buffers(self) -> None:
        """Discard queued inbound lines."""
        while not self._inbound.empty():
            self._inbound.get_nowait()

    def assert_sent(self, expected: str, index: int = -1) -> None:
        """
        Assert that a specific line was sent.

        Args:
            expected: Expected line.
            index: Index in sent_lines (-1 for last).

        Raises:
            AssertionError: If the line doesn't match.
        """
        if not self._sent_lines:
            raise AssertionError("No lines sent through mock transport")

        actual = self._sent_lines[index]
        if actual != expected:
            raise AssertionError(f"Sent line mismatch: expected {expected!r}, got {actual!r}")

    def assert_send_count(self, expected: int) -> None:
        """
        Assert number of sent lines.

        Raises:
            AssertionError: If count doesn't match.
        """
        actual = len(self._sent_lines)
        if actual != expected:
            raise AssertionError(f"Send count mismatch: expected {expected}, got {actual}")
