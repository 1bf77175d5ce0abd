"""
Exception hierarchy for mokbus.

All exceptions inherit from MokBusError, providing a clean hierarchy
for error handling. The design follows these principles:

1. Caller input errors (ValidationError) are raised before anything is sent
2. Malformed device responses carry the original line for debugging
3. Timeouts carry the request kind that expired
4. All exceptions provide meaningful error messages
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from mokbus.protocol.constants import RequestKind


class MokBusError(Exception):
    """
    Base exception for all mokbus errors.

    All library-specific exceptions inherit from this class, allowing
    callers to catch all mokbus errors with a single except clause.
    """

    pass


class ValidationError(MokBusError):
    """
    Caller-supplied value outside its protocol range.

    Raised before any frame is built or sent, e.g. an address typed into
    a channel field that is not an integer in 1..247.
    """

    def __init__(
        self,
        field: str,
        minimum: int,
        maximum: int,
        value: Any = None,
    ) -> None:
        self.field = field
        self.minimum = minimum
        self.maximum = maximum
        self.value = value
        super().__init__(
            f"{field} must be an integer in {minimum}..{maximum}, got {value!r}"
        )


class ProtocolError(MokBusError):
    """
    Protocol-level error.

    Raised when the protocol is violated, such as an unexpected frame
    shape or an invalid checksum on an echoed frame.
    """

    pass


class MalformedResponse(ProtocolError):
    """
    Inbound payload does not match the expected shape for its kind.

    Fixed-shape responses (single, octal, quad) never produce a partially
    populated record; this error is raised instead.
    """

    def __init__(
        self,
        reason: str,
        *,
        line: Any = None,
        kind: str | None = None,
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.line = line
        self.kind = kind

    def __str__(self) -> str:
        parts = [self.reason]
        if self.kind:
            parts.append(f"kind={self.kind}")
        if self.line is not None:
            text = self.line if isinstance(self.line, str) else repr(self.line)
            # Truncate raw data for display
            display = text[:48] + "..." if len(text) > 48 else text
            parts.append(f"line={display}")
        return " ".join(parts)


class TimeoutError(MokBusError):  # noqa: A001 - intentionally shadows builtin
    """
    No matching response within the request kind's timeout window.

    The originating wait state has already been cleared when this is
    surfaced; data accumulated before the timeout stays valid.
    """

    def __init__(
        self,
        message: str = "Request timed out",
        *,
        kind: RequestKind | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.timeout_seconds = timeout_seconds

    def __str__(self) -> str:
        base = super().__str__()
        if self.kind is not None:
            base = f"{base} [{self.kind.name}]"
        if self.timeout_seconds is not None:
            return f"{base} (after {self.timeout_seconds:.1f}s)"
        return base


class ConnectionError(MokBusError):  # noqa: A001 - intentionally shadows builtin
    """
    Bus connection error.

    Raised when an operation needs an open port and none is open.
    """

    pass


class TransportError(MokBusError):
    """
    Transport-level error.

    Raised for low-level transport issues:
    - Serial port cannot be opened or closed
    - Write failures
    - Connection lost while reading
    """

    pass


class RequestInProgressError(MokBusError):
    """
    A request of the same kind is already running.

    Raised when a scan or sequential write is started while the previous
    one has not finished. Nothing is sent and no state is reset.
    """

    pass
