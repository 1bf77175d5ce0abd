"""Tests for the traffic log."""

from datetime import datetime

import pytest

from mokbus.traffic_log import Direction, TrafficEntry, TrafficLog


class TestTrafficLog:
    """Tests for TrafficLog."""

    def test_disabled_by_default(self):
        log = TrafficLog()
        log.record(Direction.TX, "a1017fdf00")
        assert len(log) == 0

    def test_record_when_enabled(self):
        log = TrafficLog(enabled=True)
        log.record(Direction.TX, "a1017fdf00")
        log.record(Direction.RX, "MOK_SCAN:1")

        assert [(e.direction, e.data) for e in log.entries] == [
            (Direction.TX, "a1017fdf00"),
            (Direction.RX, "MOK_SCAN:1"),
        ]

    def test_entry_format(self):
        entry = TrafficEntry(Direction.RX, "OK", datetime(2024, 5, 1, 10, 20, 30))
        assert entry.format() == "[10:20:30] RX: OK"
        assert str(entry) == "[10:20:30] RX: OK"

    def test_trims_to_newest_entries(self):
        log = TrafficLog(enabled=True)
        for i in range(TrafficLog.MAX_ENTRIES + 1):
            log.record(Direction.TX, str(i))

        assert len(log) == TrafficLog.KEEP_ENTRIES
        assert log.entries[-1].data == str(TrafficLog.MAX_ENTRIES)
        assert log.entries[0].data == str(TrafficLog.MAX_ENTRIES + 1 - TrafficLog.KEEP_ENTRIES)

    def test_clear(self):
        log = TrafficLog(enabled=True)
        log.record(Direction.TX, "x")
        log.clear()
        assert len(log) == 0

    def test_export(self, tmp_path):
        log = TrafficLog(enabled=True)
        log.record(Direction.TX, "a1017fdf00")
        log.record(Direction.RX, "OK")

        path = log.export(tmp_path / "log.txt")
        lines = path.read_text(encoding="utf-8").splitlines()

        assert len(lines) == 2
        assert lines[0].endswith("TX: a1017fdf00")
        assert lines[1].endswith("RX: OK")

    def test_export_empty_raises(self, tmp_path):
        with pytest.raises(ValueError):
            TrafficLog(enabled=True).export(tmp_path / "log.txt")

    def test_default_filename(self):
        name = TrafficLog.default_filename(datetime(2024, 5, 1, 10, 20, 30))
        assert name == "rs485-log-2024-05-01T10-20-30.txt"
