"""Tests for ScanSession."""

import asyncio

import pytest

from mokbus.correlator import RequestCorrelator
from mokbus.exceptions import RequestInProgressError, TransportError
from mokbus.models.records import DeviceType, ScanDetail, ScanList
from mokbus.protocol.constants import RequestKind
from mokbus.protocol.frame import serialize
from mokbus.scan import SCAN_ADDRESSES, ScanSession, build_scan_request
from mokbus.storage import MemoryConfigStore, StorageError, StoredConfig


class FlakyStore(MemoryConfigStore):
    """Memory store whose saves fail once `failing` is set."""

    def __init__(self, config=None):
        super().__init__(config)
        self.failing = False

    def save(self, config):
        if self.failing:
            raise StorageError("disk full")
        super().save(config)


class TestBuildScanRequest:
    """Tests for the scan frame."""

    def test_scan_frame(self):
        assert serialize(build_scan_request()) == "a1017fdf00"

    def test_scan_window(self):
        assert SCAN_ADDRESSES[0] == 1
        assert SCAN_ADDRESSES[-1] == 127
        assert len(SCAN_ADDRESSES) == 127


class TestScanSession:
    """Tests for scan start, replies, timeout and persistence."""

    @pytest.fixture
    def timeouts(self):
        return []

    @pytest.fixture
    def correlator(self, timeouts):
        return RequestCorrelator(on_timeout=timeouts.append)

    @pytest.fixture
    def sent(self):
        return []

    @pytest.fixture
    def store(self):
        return MemoryConfigStore()

    @pytest.fixture
    def session(self, correlator, sent, store):
        async def send(frame):
            sent.append(frame)

        return ScanSession(correlator, send, store)

    def test_initial_state(self, session):
        assert session.in_progress is False
        assert session.discovered == []
        assert len(session.results) == 127
        assert all(detail is None for detail in session.device_info.values())

    @pytest.mark.asyncio
    async def test_start_sends_and_arms(self, session, correlator, sent):
        await session.start()

        assert session.in_progress is True
        assert [serialize(frame) for frame in sent] == ["a1017fdf00"]
        assert correlator.is_awaiting(RequestKind.SCAN)
        correlator.cancel_all()

    @pytest.mark.asyncio
    async def test_start_while_running_is_rejected(self, session, correlator, sent):
        """Test that re-entry sends nothing and keeps existing results."""
        await session.start()
        session.handle_line("12:AM8")

        with pytest.raises(RequestInProgressError):
            await session.start()

        assert len(sent) == 1
        assert session.device_info[12].device_type == DeviceType.AM8
        assert session.in_progress is True
        correlator.cancel_all()

    @pytest.mark.asyncio
    async def test_send_failure_leaves_session_idle(self, correlator):
        async def send(frame):
            raise TransportError("port closed")

        session = ScanSession(correlator, send)
        with pytest.raises(TransportError):
            await session.start()

        assert session.in_progress is False
        assert correlator.is_idle

    @pytest.mark.asyncio
    async def test_details_then_list(self, session, correlator, store):
        await session.start()

        detail = session.handle_line("12:AM8 v2")
        assert isinstance(detail, ScanDetail)
        assert session.in_progress is True
        assert session.results[12] is False

        scan_list = session.handle_line("МОК_SCAN:5,12")
        assert isinstance(scan_list, ScanList)

        assert session.in_progress is False
        assert not correlator.is_awaiting(RequestKind.SCAN)
        assert session.discovered == [5, 12]
        assert session.device_type(12) == DeviceType.AM8
        assert session.device_type(5) == DeviceType.UNKNOWN
        assert session.device_type(6) is None

        assert store.config.scan_results == [5, 12]
        assert {d.address for d in store.config.device_info} == {5, 12}

    @pytest.mark.asyncio
    async def test_detail_does_not_mark_result(self, session, correlator):
        await session.start()
        session.handle_line("dev 9 PM")

        assert session.device_type(9) == DeviceType.PM
        assert session.discovered == []
        correlator.cancel_all()

    @pytest.mark.asyncio
    async def test_empty_list_keeps_scanning(self, session, correlator):
        """Test that a list with no in-range values does not end the scan."""
        await session.start()
        assert session.handle_line("МОК_SCAN:0,128") is None

        assert session.in_progress is True
        assert correlator.is_awaiting(RequestKind.SCAN)
        correlator.cancel_all()

    @pytest.mark.asyncio
    async def test_unrelated_line_ignored(self, session, correlator, store):
        await session.start()
        saves = store.save_count

        assert session.handle_line("hello") is None
        assert store.save_count == saves
        correlator.cancel_all()

    @pytest.mark.asyncio
    async def test_timeout_preserves_details(self, timeouts, sent):
        """Test that a timeout keeps details received so far."""

        async def send(frame):
            sent.append(frame)

        correlator = RequestCorrelator(timeouts={RequestKind.SCAN: 0.02})
        session = ScanSession(correlator, send)

        def on_timeout(error):
            timeouts.append(error)
            session.expire()

        correlator.set_timeout_callback(on_timeout)

        await session.start()
        session.handle_line("12:AM8")
        session.handle_line("40:МОК-4")
        await asyncio.sleep(0.06)

        assert len(timeouts) == 1
        assert timeouts[0].kind is RequestKind.SCAN
        assert session.in_progress is False
        assert session.device_type(12) == DeviceType.AM8
        assert session.device_type(40) == DeviceType.PM

    @pytest.mark.asyncio
    async def test_restart_resets_results(self, session, correlator):
        await session.start()
        session.handle_line("MOK_SCAN:3")
        assert session.discovered == [3]

        await session.start()
        assert session.discovered == []
        assert session.device_info[3] is None
        correlator.cancel_all()

    def test_restore(self, session):
        config = StoredConfig(
            sections=[{"name": "Hall A", "devices": [3]}],
            scan_results=[3, 7, 200],
            device_info=[ScanDetail(address=7, device_type=DeviceType.PM, payload="PM")],
        )

        session.restore(config)

        assert session.discovered == [3, 7]
        assert session.device_type(7) == DeviceType.PM
        assert session.sections == [{"name": "Hall A", "devices": [3]}]

    def test_load_from_store(self, correlator):
        store = MemoryConfigStore(StoredConfig(scan_results=[1, 2]))

        async def send(frame):
            pass

        session = ScanSession(correlator, send, store)
        assert session.load() is True
        assert session.discovered == [1, 2]

    def test_load_without_store(self, correlator):
        async def send(frame):
            pass

        assert ScanSession(correlator, send).load() is False

    def test_set_sections_persists(self, session, store):
        session.set_sections([{"name": "Line 1"}])

        assert store.config.sections == [{"name": "Line 1"}]
        assert session.snapshot().sections == [{"name": "Line 1"}]

    @pytest.mark.asyncio
    async def test_start_stores_cleared_results(self, correlator, sent):
        """Test that starting a scan replaces stored results from the previous one."""
        store = MemoryConfigStore(
            StoredConfig(
                sections=[{"name": "Hall A"}],
                scan_results=[3],
                device_info=[ScanDetail(address=3, device_type=DeviceType.AM8)],
            )
        )

        async def send(frame):
            sent.append(frame)

        session = ScanSession(correlator, send, store)
        assert session.load() is True

        await session.start()

        assert store.config.scan_results == []
        assert store.config.device_info == []
        assert store.config.sections == [{"name": "Hall A"}]
        correlator.cancel_all()

    @pytest.mark.asyncio
    async def test_list_ends_scan_when_save_fails(self, correlator, sent):
        """Test that a failing store does not leave the scan running."""
        store = FlakyStore()

        async def send(frame):
            sent.append(frame)

        session = ScanSession(correlator, send, store)
        await session.start()
        store.failing = True

        with pytest.raises(StorageError):
            session.handle_line("MOK_SCAN:1,2")

        assert session.in_progress is False
        assert not correlator.is_awaiting(RequestKind.SCAN)
        assert correlator.is_idle
        assert session.discovered == [1, 2]

    @pytest.mark.asyncio
    async def test_detail_kept_when_save_fails(self, correlator, sent):
        store = FlakyStore()

        async def send(frame):
            sent.append(frame)

        session = ScanSession(correlator, send, store)
        await session.start()
        store.failing = True

        with pytest.raises(StorageError):
            session.handle_line("12:AM8")

        assert session.device_type(12) == DeviceType.AM8
        assert session.in_progress is True
        correlator.cancel_all()
