import io

import pytest

from simulator import AccessEvent
from tracefile import TraceFormatError, load_trace, parse_line, read_trace


@pytest.mark.parametrize("text, expected", [
    ("L 10,1", AccessEvent("L", 0x10, 1)),
    (" S 7ff000398,8\n", AccessEvent("S", 0x7ff000398, 8)),
    ("I  0400d7d4,8", AccessEvent("I", 0x400d7d4, 8)),
    ("M 0x1F,4", AccessEvent("M", 0x1f, 4)),
    ("X 20,1", AccessEvent("X", 0x20, 1)),
])
def test_parse_line(text, expected):
    assert parse_line(text) == expected


@pytest.mark.parametrize("text", ["", "   ", "\n"])
def test_parse_blank_line(text):
    assert parse_line(text) is None


@pytest.mark.parametrize("text", ["L", "L 10", "L zz,1", "L 10,", "L 10,1 extra"])
def test_parse_malformed_line(text):
    with pytest.raises(TraceFormatError) as excinfo:
        parse_line(text, line_number=3)
    assert excinfo.value.line_number == 3
    assert "line 3" in str(excinfo.value)


def test_read_trace_from_path(yi_trace):
    events = load_trace(yi_trace)
    assert len(events) == 7
    assert events[0] == AccessEvent("L", 0x10, 1)
    assert events[-1] == AccessEvent("M", 0x12, 1)


def test_read_trace_accepts_str_path(yi_trace):
    assert load_trace(str(yi_trace)) == load_trace(yi_trace)


def test_read_trace_skips_blank_lines():
    events = load_trace(io.StringIO("L 0,1\n\n   \nS 8,1\n"))
    assert [e.kind for e in events] == ["L", "S"]


def test_read_trace_stops_at_malformed_record(caplog):
    events = load_trace(io.StringIO("L 0,1\ngarbage\nL 8,1\n"))
    assert events == [AccessEvent("L", 0, 1)]
    assert "line 2" in caplog.text


def test_read_trace_strict_raises():
    with pytest.raises(TraceFormatError) as excinfo:
        load_trace(io.StringIO("L 0,1\ngarbage\n"), strict=True)
    assert excinfo.value.line_number == 2


def test_read_trace_is_lazy():
    events = read_trace(io.StringIO("L 0,1\nS 8,1\n"))
    assert next(events) == AccessEvent("L", 0, 1)


def test_read_trace_missing_file(tmp_path):
    with pytest.raises(OSError):
        load_trace(tmp_path / "missing.trace")
