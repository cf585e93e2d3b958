# tests/test_sink.py
from datetime import datetime

import pytest

from bgping.sink import FileSink, MemorySink, Recorder, SinkError, format_record, timestamp


def test_timestamp_millisecond_format():
    assert timestamp(datetime(2024, 1, 2, 3, 4, 5, 678900)) == "2024-01-02T03:04:05_678"
    assert timestamp(datetime(2024, 1, 2, 3, 4, 5, 1000)) == "2024-01-02T03:04:05_001"


def test_format_record_columns():
    line = format_record("hello", "2024-01-02T03:04:05_678")
    assert line.startswith("| hello ")
    assert line.endswith("| 2024-01-02T03:04:05_678   |\n")
    assert len(line) == len("| ") + 80 + len("| ") + 26 + len("|\n")


def test_file_sink_writes_lines(tmp_path):
    sink = FileSink.in_dir(str(tmp_path))
    sink.record("Starting receiver and probes", "2024-01-02T03:04:05_678")
    sink.record("second", "2024-01-02T03:04:06_000")
    sink.close()
    lines = (tmp_path / "bg-ping.log").read_text().splitlines()
    assert len(lines) == 2
    assert "Starting receiver and probes" in lines[0]


def test_file_sink_missing_dir(tmp_path):
    with pytest.raises(SinkError, match="failed to create log"):
        FileSink.in_dir(str(tmp_path / "nope"))


def test_file_sink_write_after_close(tmp_path):
    sink = FileSink(str(tmp_path / "x.log"))
    sink.close()
    with pytest.raises(SinkError):
        sink.record("late", "ts")


def test_recorder_stamps_with_clock():
    sink = MemorySink()
    rec = Recorder(sink, clock=lambda: datetime(2024, 5, 6, 7, 8, 9, 10000))
    rec.event("Probe: Connectivity outage detected for: 10.0.0.1")
    assert sink.records == [
        ("Probe: Connectivity outage detected for: 10.0.0.1", "2024-05-06T07:08:09_010"),
    ]


def test_recorder_propagates_sink_failure():
    sink = MemorySink()
    sink.fail = True
    with pytest.raises(SinkError):
        Recorder(sink).event("anything")


def test_final_record_stays_last():
    sink = MemorySink()
    rec = Recorder(sink)
    rec.event("first")
    rec.final("Captured SIGTERM, closing log and terminating")
    rec.event("Probe: Connectivity outage detected for: 10.0.0.1")
    rec.final("Captured SIGINT, closing log and terminating")
    assert sink.messages == ["first", "Captured SIGTERM, closing log and terminating"]
    assert rec.sealed


def test_recorder_reenters_from_same_thread():
    """A record written while another is in progress on the same thread does not block."""
    rec = None

    class ReentrantSink(MemorySink):
        def record(self, message, timestamp):
            if message == "outer":
                rec.event("inner")
            super().record(message, timestamp)

    sink = ReentrantSink()
    rec = Recorder(sink)
    rec.event("outer")
    assert sink.messages == ["inner", "outer"]
