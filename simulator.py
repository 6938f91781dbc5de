# simulator.py
import enum
import logging
from dataclasses import dataclass

from cache import CacheStore, RecencyTracker, UnrecognizedEventKind, decode_address

LOGGER = logging.getLogger("csim.simulator")


class EventKind(enum.Enum):
    LOAD = "L"
    STORE = "S"
    MODIFY = "M"
    INSTRUCTION = "I"

    @classmethod
    def parse(cls, kind):
        if isinstance(kind, cls):
            return kind
        try:
            return cls(kind)
        except ValueError:
            raise UnrecognizedEventKind(kind) from None


class Outcome(enum.Enum):
    HIT = "hit"
    MISS_FILL = "miss"
    MISS_EVICT = "miss eviction"


@dataclass(frozen=True)
class AccessEvent:
    kind: object  # EventKind, or the raw letter read from a trace
    address: int
    size: int = 1


@dataclass
class Counters:
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    def __add__(self, other):
        return Counters(self.hits + other.hits,
                        self.misses + other.misses,
                        self.evictions + other.evictions)

    def as_tuple(self):
        return self.hits, self.misses, self.evictions

    def as_dict(self):
        return {"hits": self.hits, "misses": self.misses, "evictions": self.evictions}

    @property
    def hit_rate(self):
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def record(self, kind, outcome):
        """Apply the accounting for one classified event."""
        if outcome is Outcome.HIT:
            self.hits += 1
        else:
            self.misses += 1
            if outcome is Outcome.MISS_EVICT:
                self.evictions += 1
        # the store half of a modify always finds the tag just installed
        if kind is EventKind.MODIFY:
            self.hits += 1


@dataclass(frozen=True)
class AccessResult:
    kind: EventKind
    address: int
    size: int
    outcome: object = None  # None for instruction fetches

    def describe(self):
        line = f"{self.kind.value} {self.address:x},{self.size}"
        if self.outcome is None:
            return line
        line = f"{line} {self.outcome.value}"
        if self.kind is EventKind.MODIFY:
            line += " hit"
        return line


class Simulator:
    """
    Drives access events through a set-associative LRU cache.
    One instance owns one cache for one run; never share it between threads.
    """

    def __init__(self, geometry, verbose=False, echo=print, keep_history=False):
        self.geometry = geometry
        self.store = CacheStore(geometry)
        self.tracker = RecencyTracker(self.store)
        self.counters = Counters()
        self.verbose = verbose
        self.echo = echo
        # one bool per memory access (a modify contributes two), True for a hit
        self.history = [] if keep_history else None

    def classify(self, tag, set_index):
        """Look up (tag, set_index), update the set and return the outcome."""
        line_index = self.store.find_line(set_index, tag)
        if line_index is not None:
            self.tracker.touch(set_index, line_index)
            return Outcome.HIT

        free_index = self.store.find_free_line(set_index)
        if free_index is not None:
            self.store.install_tag(set_index, free_index, tag)
            self.tracker.touch(set_index, free_index)
            return Outcome.MISS_FILL

        victim = self.tracker.eviction_candidate(set_index)
        self.store.install_tag(set_index, victim, tag)
        self.tracker.touch(set_index, victim)
        return Outcome.MISS_EVICT

    def access(self, event):
        kind = EventKind.parse(event.kind)
        if kind is EventKind.INSTRUCTION:
            result = AccessResult(kind, event.address, event.size)
        else:
            tag, set_index = decode_address(event.address,
                                            self.geometry.set_index_bits,
                                            self.geometry.block_offset_bits)
            outcome = self.classify(tag, set_index)
            self.counters.record(kind, outcome)
            if self.history is not None:
                self.history.append(outcome is Outcome.HIT)
                if kind is EventKind.MODIFY:
                    self.history.append(True)
            result = AccessResult(kind, event.address, event.size, outcome)

        if self.verbose and kind is not EventKind.INSTRUCTION:
            self.echo(result.describe())
        return result

    def run(self, events, on_unrecognized="raise"):
        """
        Feed every event through the cache and return the final counters.
        on_unrecognized="skip" logs bad event kinds and keeps going.
        """
        if on_unrecognized not in ("raise", "skip"):
            raise ValueError(f"on_unrecognized must be 'raise' or 'skip', got {on_unrecognized!r}")
        for event in events:
            try:
                self.access(event)
            except UnrecognizedEventKind as e:
                if on_unrecognized == "raise":
                    raise
                LOGGER.error("skipping event at address %#x: %s", event.address, e)
        return self.counters

    def snapshot(self, set_index):
        return [(line.valid, line.tag, line.rank) for line in self.store.sets[set_index]]

    def check_invariants(self):
        expected = list(range(self.geometry.lines_per_set))
        for set_index, lines in enumerate(self.store.sets):
            ranks = sorted(line.rank for line in lines)
            assert ranks == expected, f"set {set_index}: ranks {ranks} are not a permutation"
            tags = [line.tag for line in lines if line.valid]
            assert len(tags) == len(set(tags)), f"set {set_index}: duplicate tags {tags}"
