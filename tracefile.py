# tracefile.py
import logging
import os
import re

from simulator import AccessEvent

LOGGER = logging.getLogger("csim.tracefile")

# "<kind> <hex-address>,<size>", e.g. " L 7ff000398,8" as written by valgrind lackey
RECORD_RE = re.compile(r"^\s*(\S+)\s+(?:0[xX])?([0-9a-fA-F]+),\s*(\d+)\s*$")


class TraceFormatError(ValueError):
    def __init__(self, message, line_number=None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


def parse_line(text, line_number=None):
    """
    Parse one trace record into an AccessEvent. Blank lines give None.
    The kind letter is passed through as-is; the simulator validates it.
    """
    if not text.strip():
        return None
    m = RECORD_RE.match(text)
    if m is None:
        raise TraceFormatError(f"malformed record {text.rstrip()!r}", line_number)
    kind, address, size = m.groups()
    return AccessEvent(kind, int(address, 16), int(size))


def read_trace(source, strict=False):
    """
    Yield events from a path or an open text file.
    A malformed record ends the trace (logged); with strict=True it raises.
    """
    if isinstance(source, (str, os.PathLike)):
        with open(source, "r") as f:
            yield from read_trace(f, strict=strict)
        return

    for line_number, text in enumerate(source, start=1):
        try:
            event = parse_line(text, line_number)
        except TraceFormatError as e:
            if strict:
                raise
            LOGGER.warning("stopping trace early: %s", e)
            return
        if event is not None:
            yield event


def load_trace(source, strict=False):
    return list(read_trace(source, strict=strict))
