"""
Sequential address writes for multi-channel devices.

An 8-channel (AM8) or 4-channel (PM) device receives its channel
addresses one channel at a time. The controller implements the state
machine:

    IDLE -> run() -> WRITING(0) -> WRITING(1) -> ... -> IDLE (done)
                         |
                         +-- validation or send failure -> ABORTED

Each step validates the address field for the current channel, sends one
single-write frame and waits the pacing delay before the next step. A
failed step ends the sequence without retry; frames already sent stay
applied on the device.

The sequence never waits for a device echo. For PM devices the client
arms a separate write-echo wait through the on_step_sent hook so the
displayed addresses can be refreshed when the echo arrives.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from mokbus.events import Listener, Notification, NotificationLevel
from mokbus.exceptions import MokBusError, RequestInProgressError, TransportError, ValidationError
from mokbus.protocol.constants import CommandCode, ProtocolConstants
from mokbus.protocol.frame import Frame, build_single_write
from mokbus.validation import parse_address_field

logger = logging.getLogger(__name__)


class WriteKind(Enum):
    """Multi-channel device families that take sequential address writes."""

    OCTAL = (CommandCode.OCTAL_WRITE, ProtocolConstants.OCTAL_CHANNELS)
    QUAD = (CommandCode.QUAD_WRITE, ProtocolConstants.QUAD_CHANNELS)

    @property
    def command(self) -> CommandCode:
        """Write command byte for this family."""
        return self.value[0]

    @property
    def total(self) -> int:
        """Number of channels to write."""
        return self.value[1]


class SequenceState(Enum):
    """Sequential write controller states."""

    IDLE = auto()
    """No sequence running."""

    WRITING = auto()
    """A step is being validated or sent, or the pacing delay is running."""

    DONE = auto()
    """All channels written (session outcome only; controller returns to IDLE)."""

    ABORTED = auto()
    """A step failed; remaining channels were not written."""


@dataclass
class SequencedWriteSession:
    """
    Progress of one sequential write.

    Attributes:
        kind: Device family being written.
        current_index: Channel index of the step in progress, the failed
            step, or `total` once done.
        total: Number of channels.
        active: True while the sequence is running.
        state: Outcome so far.
        error: Error that aborted the sequence, if any.
    """

    kind: WriteKind
    current_index: int = 0
    total: int = 0
    active: bool = False
    state: SequenceState = SequenceState.IDLE
    error: MokBusError | None = None

    @property
    def completed(self) -> bool:
        """Check if every channel was written."""
        return self.state is SequenceState.DONE


class SequencedWriteController:
    """
    Drives one sequential address write at a time.

    Example:
        >>> controller = SequencedWriteController(client.send_frame)
        >>> session = await controller.run(WriteKind.OCTAL, ["11", "12", ...])
        >>> session.completed
        True
    """

    def __init__(
        self,
        send: Callable[[Frame], Awaitable[None]],
        pacing_delay: float = ProtocolConstants.PACING_DELAY,
        on_step_sent: Callable[[WriteKind, int, Frame], None] | None = None,
        listener: Listener | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the controller.

        Args:
            send: Coroutine function that transmits a frame; raises
                TransportError on failure.
            pacing_delay: Delay in seconds after each sent step.
            on_step_sent: Called after each successful send.
            listener: Receives success and error notifications.
            sleep: Delay function (replaceable in tests).
        """
        self._send = send
        self._pacing_delay = pacing_delay
        self._on_step_sent = on_step_sent
        self._listener = listener
        self._sleep = sleep
        self._state = SequenceState.IDLE
        self._session: SequencedWriteSession | None = None

    @property
    def state(self) -> SequenceState:
        """Get the current controller state."""
        return self._state

    @property
    def session(self) -> SequencedWriteSession | None:
        """Get the current or most recent session."""
        return self._session

    @property
    def is_running(self) -> bool:
        """Check if a sequence is in progress."""
        return self._state is SequenceState.WRITING

    async def run(self, kind: WriteKind, address_fields: Sequence[Any]) -> SequencedWriteSession:
        """
        Write every channel address of a device, one step at a time.

        Args:
            kind: Device family.
            address_fields: Raw value of each channel's address field, in
                channel order. Must hold at least `kind.total` entries.

        Returns:
            The finished session (DONE or ABORTED).

        Raises:
            RequestInProgressError: If a sequence is already running.
        """
        if self.is_running:
            raise RequestInProgressError(
                f"Sequential write already running ({self._session.kind.name})"
            )

        session = SequencedWriteSession(kind=kind, total=kind.total, active=True)
        self._session = session
        self._state = SequenceState.WRITING
        session.state = SequenceState.WRITING
        logger.info("Starting %s address write (%d channels)", kind.name, kind.total)

        try:
            while session.current_index < session.total:
                await self._step(session, address_fields)
                session.current_index += 1

        except (ValidationError, TransportError) as e:
            session.error = e
            logger.error(
                "%s address write aborted at channel %d: %s",
                kind.name,
                session.current_index + 1,
                e,
            )
            self._notify(
                NotificationLevel.ERROR,
                f"Address write stopped at channel {session.current_index + 1}: {e}",
                error=e,
            )
            return session

        finally:
            # Also reached on cancellation or an unexpected error, which propagate
            if session.current_index < session.total:
                session.active = False
                session.state = SequenceState.ABORTED
                self._state = SequenceState.ABORTED

        session.active = False
        session.state = SequenceState.DONE
        self._state = SequenceState.IDLE
        logger.info("%s address write complete", kind.name)
        self._notify(
            NotificationLevel.SUCCESS,
            f"All {session.total} channel addresses written",
        )
        return session

    async def _step(self, session: SequencedWriteSession, address_fields: Sequence[Any]) -> None:
        index = session.current_index
        field = f"{session.kind.name.lower()}_address[{index}]"
        value = address_fields[index] if index < len(address_fields) else None
        address = parse_address_field(value, field)

        frame = build_single_write(session.kind.command, index, address)
        logger.debug("Step %d/%d: %r", index + 1, session.total, frame)
        await self._send(frame)

        if self._on_step_sent is not None:
            self._on_step_sent(session.kind, index, frame)

        await self._sleep(self._pacing_delay)

    def _notify(self, level: NotificationLevel, message: str, error: Exception | None = None) -> None:
        if self._listener is not None:
            self._listener(Notification(level=level, message=message, error=error))

    def __repr__(self) -> str:
        if self._session is None:
            return f"SequencedWriteController(state={self._state.name})"
        return (
            f"SequencedWriteController(state={self._state.name}, "
            f"kind={self._session.kind.name}, "
            f"step={self._session.current_index}/{self._session.total})"
        )
