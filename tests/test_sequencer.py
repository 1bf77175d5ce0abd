"""Tests for SequencedWriteController."""

import asyncio

import pytest

from mokbus.events import NotificationLevel
from mokbus.exceptions import RequestInProgressError, TransportError, ValidationError
from mokbus.protocol.constants import CommandCode
from mokbus.sequencer import SequencedWriteController, SequenceState, WriteKind


class FakeSleep:
    """Records pacing delays instead of sleeping."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class TestSequencedWriteController:
    """Tests for the sequential write state machine."""

    @pytest.fixture
    def sent(self):
        """Frames passed to the send function."""
        return []

    @pytest.fixture
    def notifications(self):
        return []

    @pytest.fixture
    def sleep(self):
        return FakeSleep()

    @pytest.fixture
    def controller(self, sent, notifications, sleep):
        async def send(frame):
            sent.append(frame)

        return SequencedWriteController(
            send,
            pacing_delay=0.5,
            listener=notifications.append,
            sleep=sleep,
        )

    def test_initial_state(self, controller):
        assert controller.state is SequenceState.IDLE
        assert controller.session is None
        assert controller.is_running is False

    def test_write_kinds(self):
        assert WriteKind.OCTAL.command is CommandCode.OCTAL_WRITE
        assert WriteKind.OCTAL.total == 8
        assert WriteKind.QUAD.command is CommandCode.QUAD_WRITE
        assert WriteKind.QUAD.total == 4

    @pytest.mark.asyncio
    async def test_octal_completes_in_eight_steps(self, controller, sent, notifications, sleep):
        """Test a full octal write with pacing after every step."""
        fields = [str(address) for address in range(11, 19)]

        session = await controller.run(WriteKind.OCTAL, fields)

        assert session.completed
        assert session.current_index == 8
        assert session.active is False
        assert controller.state is SequenceState.IDLE

        assert len(sent) == 8
        assert [frame.param_a for frame in sent] == list(range(8))
        assert [frame.param_b for frame in sent] == list(range(11, 19))
        assert all(frame.command == CommandCode.OCTAL_WRITE for frame in sent)

        assert sleep.delays == [0.5] * 8

        assert len(notifications) == 1
        assert notifications[0].level is NotificationLevel.SUCCESS
        assert "8" in notifications[0].message

    @pytest.mark.asyncio
    async def test_quad_completes_in_four_steps(self, controller, sent):
        session = await controller.run(WriteKind.QUAD, [1, 2, 3, 4])

        assert session.completed
        assert [frame.command for frame in sent] == [CommandCode.QUAD_WRITE] * 4

    @pytest.mark.asyncio
    async def test_validation_failure_aborts(self, controller, sent, notifications, sleep):
        """Test that an invalid field at index 3 stops the sequence there."""
        fields = ["11", "12", "13", "abc", "15", "16", "17", "18"]

        session = await controller.run(WriteKind.OCTAL, fields)

        assert session.state is SequenceState.ABORTED
        assert session.current_index == 3
        assert isinstance(session.error, ValidationError)
        assert session.error.field == "octal_address[3]"
        assert controller.state is SequenceState.ABORTED
        assert controller.is_running is False

        assert len(sent) == 3
        assert len(sleep.delays) == 3

        assert notifications[-1].level is NotificationLevel.ERROR
        assert "channel 4" in notifications[-1].message

    @pytest.mark.asyncio
    async def test_out_of_range_address_aborts(self, controller, sent):
        session = await controller.run(WriteKind.QUAD, [1, 248, 3, 4])

        assert session.state is SequenceState.ABORTED
        assert session.current_index == 1
        assert len(sent) == 1

    @pytest.mark.asyncio
    async def test_missing_fields_abort(self, controller, sent):
        """Test that too few fields abort at the first missing channel."""
        session = await controller.run(WriteKind.QUAD, [1, 2])

        assert session.state is SequenceState.ABORTED
        assert session.current_index == 2
        assert len(sent) == 2

    @pytest.mark.asyncio
    async def test_send_failure_aborts_without_retry(self, notifications, sleep):
        attempts = []

        async def send(frame):
            attempts.append(frame)
            if len(attempts) == 2:
                raise TransportError("port closed")

        controller = SequencedWriteController(send, listener=notifications.append, sleep=sleep)
        session = await controller.run(WriteKind.OCTAL, list(range(11, 19)))

        assert session.state is SequenceState.ABORTED
        assert session.current_index == 1
        assert isinstance(session.error, TransportError)
        assert len(attempts) == 2
        assert len(sleep.delays) == 1

    @pytest.mark.asyncio
    async def test_on_step_sent_hook(self, sleep):
        steps = []

        async def send(frame):
            pass

        controller = SequencedWriteController(
            send,
            on_step_sent=lambda kind, index, frame: steps.append((kind, index, frame.param_b)),
            sleep=sleep,
        )
        await controller.run(WriteKind.QUAD, [5, 6, 7, 8])

        assert steps == [
            (WriteKind.QUAD, 0, 5),
            (WriteKind.QUAD, 1, 6),
            (WriteKind.QUAD, 2, 7),
            (WriteKind.QUAD, 3, 8),
        ]

    @pytest.mark.asyncio
    async def test_rejects_concurrent_run(self, sent):
        """Test that a second run while writing is rejected."""
        controller = None
        errors = []

        async def sleep(delay):
            if not errors:
                try:
                    await controller.run(WriteKind.QUAD, [1, 2, 3, 4])
                except RequestInProgressError as e:
                    errors.append(e)

        async def send(frame):
            sent.append(frame)

        controller = SequencedWriteController(send, sleep=sleep)
        session = await controller.run(WriteKind.OCTAL, list(range(11, 19)))

        assert len(errors) == 1
        assert session.completed
        assert len(sent) == 8

    @pytest.mark.asyncio
    async def test_can_run_again_after_abort(self, controller, sent):
        await controller.run(WriteKind.QUAD, [0, 1, 2, 3])
        session = await controller.run(WriteKind.QUAD, [1, 2, 3, 4])

        assert session.completed
        assert len(sent) == 4

    @pytest.mark.asyncio
    async def test_cancelled_run_can_be_restarted(self, sent):
        """Test that cancelling mid-sequence leaves the controller aborted, not writing."""
        gate = asyncio.Event()

        async def sleep(delay):
            await gate.wait()

        async def send(frame):
            sent.append(frame)

        controller = SequencedWriteController(send, sleep=sleep)
        task = asyncio.create_task(controller.run(WriteKind.QUAD, [1, 2, 3, 4]))
        await asyncio.sleep(0.01)
        assert controller.is_running

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        cancelled = controller.session
        assert controller.state is SequenceState.ABORTED
        assert not controller.is_running
        assert cancelled.active is False
        assert cancelled.state is SequenceState.ABORTED
        assert cancelled.current_index == 0
        assert len(sent) == 1

        gate.set()
        session = await controller.run(WriteKind.QUAD, [5, 6, 7, 8])

        assert session.completed
        assert controller.state is SequenceState.IDLE
        assert [frame.param_b for frame in sent[1:]] == [5, 6, 7, 8]

    @pytest.mark.asyncio
    async def test_unexpected_send_error_propagates_and_aborts(self, sleep):
        """Test that an error outside the transport hierarchy still ends the sequence."""
        async def send(frame):
            raise RuntimeError("adapter driver crashed")

        controller = SequencedWriteController(send, sleep=sleep)

        with pytest.raises(RuntimeError):
            await controller.run(WriteKind.OCTAL, list(range(11, 19)))

        assert controller.state is SequenceState.ABORTED
        assert controller.session.active is False
        assert not controller.is_running
