# cache.py
ADDRESS_BITS = 64
ADDRESS_MASK = (1 << ADDRESS_BITS) - 1


class CacheSimError(Exception):
    """Base class for errors raised by the simulation engine."""


class ConfigurationError(CacheSimError, ValueError):
    """Invalid cache geometry. Raised before any cache state exists."""


class UnrecognizedEventKind(CacheSimError, ValueError):
    def __init__(self, kind):
        super().__init__(f"unrecognized event kind: {kind!r}")
        self.kind = kind


class Geometry:
    """
    Cache organisation for one simulation run.
    s = set index bits, E = lines per set, b = block offset bits.
    """

    def __init__(self, set_index_bits, lines_per_set, block_offset_bits):
        for name, value in (("set_index_bits", set_index_bits),
                            ("lines_per_set", lines_per_set),
                            ("block_offset_bits", block_offset_bits)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")
        if set_index_bits < 0:
            raise ConfigurationError("set_index_bits must be >= 0")
        if block_offset_bits < 0:
            raise ConfigurationError("block_offset_bits must be >= 0")
        if lines_per_set < 1:
            raise ConfigurationError("lines_per_set must be >= 1")
        if set_index_bits + block_offset_bits > ADDRESS_BITS:
            raise ConfigurationError(
                f"set_index_bits + block_offset_bits exceeds {ADDRESS_BITS}-bit addresses")
        self.set_index_bits = set_index_bits
        self.lines_per_set = lines_per_set
        self.block_offset_bits = block_offset_bits

    @property
    def num_sets(self):
        return 1 << self.set_index_bits

    @property
    def block_size(self):
        return 1 << self.block_offset_bits

    def __eq__(self, other):
        if not isinstance(other, Geometry):
            return NotImplemented
        return self.as_tuple() == other.as_tuple()

    def __repr__(self):
        return (f"Geometry(s={self.set_index_bits}, E={self.lines_per_set}, "
                f"b={self.block_offset_bits})")

    def as_tuple(self):
        return self.set_index_bits, self.lines_per_set, self.block_offset_bits


def decode_address(address, set_index_bits, block_offset_bits):
    """
    Split `address` into (tag, set_index).
    Addresses wider than 64 bits are masked first, so any int decodes.
    """
    address &= ADDRESS_MASK
    tag = address >> (block_offset_bits + set_index_bits)
    set_index = (address >> block_offset_bits) & ((1 << set_index_bits) - 1)
    return tag, set_index


class Line:
    __slots__ = ("valid", "tag", "rank")

    def __init__(self, rank):
        self.valid = False
        self.tag = 0
        self.rank = rank

    def __repr__(self):
        return f"Line(valid={self.valid}, tag={self.tag:#x}, rank={self.rank})"


class CacheStore:
    """
    Set-associative storage. Every line starts invalid with rank equal to its
    slot index, so each set holds a full rank permutation from the outset.
    Lookups scan in slot order and the first match wins.
    """

    def __init__(self, geometry):
        self.geometry = geometry
        self.lines_per_set = geometry.lines_per_set
        self.sets = [[Line(j) for j in range(geometry.lines_per_set)]
                     for _ in range(geometry.num_sets)]

    def find_line(self, set_index, tag):
        for i, line in enumerate(self.sets[set_index]):
            if line.valid and line.tag == tag:
                return i
        return None

    def find_free_line(self, set_index):
        for i, line in enumerate(self.sets[set_index]):
            if not line.valid:
                return i
        return None

    def install_tag(self, set_index, line_index, tag):
        line = self.sets[set_index][line_index]
        line.valid = True
        line.tag = tag

    def line(self, set_index, line_index):
        return self.sets[set_index][line_index]


class RecencyTracker:
    """
    LRU policy over the ranks held in a CacheStore.
    Rank 0 is most recently used, lines_per_set - 1 is the eviction candidate.
    """

    def __init__(self, store):
        self.store = store

    def eviction_candidate(self, set_index):
        lru_rank = self.store.lines_per_set - 1
        for i, line in enumerate(self.store.sets[set_index]):
            if line.rank == lru_rank:
                return i
        # unreachable while ranks form a permutation
        raise RuntimeError(f"set {set_index} has no line with rank {lru_rank}")

    def touch(self, set_index, line_index):
        lines = self.store.sets[set_index]
        prev = lines[line_index].rank
        for line in lines:
            if not line.valid:
                continue
            if line.rank == prev:
                line.rank = 0
            elif line.rank < prev:
                line.rank += 1
