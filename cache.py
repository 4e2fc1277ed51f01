# cache.py
import collections
from enum import Enum


class InvariantViolation(RuntimeError):
    """Internal bookkeeping of a cache bank went inconsistent."""


def log2(value):
    # exact for powers of two, which the configuration layer guarantees
    return value.bit_length() - 1


def decode(address, block_size, n_sets):
    """
    Split a byte address into (set_index, tag).
    block_size and n_sets must be powers of two.
    """
    block = address >> log2(block_size)
    set_index = block & (n_sets - 1)
    tag = block >> log2(n_sets)
    return set_index, tag


class CacheLine:
    __slots__ = ("tag", "dirty")

    def __init__(self, tag, dirty=False):
        self.tag = tag
        self.dirty = dirty

    def __repr__(self):
        return f"CacheLine(tag={self.tag:#x}, dirty={self.dirty})"


class LineList:
    """
    Recency list of the lines resident in one set.
    Backed by an OrderedDict mapping tag -> CacheLine. The last key is the
    head (most recently used), the first key is the tail (least recently used).
    """

    def __init__(self, capacity):
        self.capacity = capacity
        self._lines = collections.OrderedDict()

    def __len__(self):
        return len(self._lines)

    def __iter__(self):
        # head first
        return reversed(self._lines.values())

    @property
    def head(self):
        if not self._lines:
            return None
        return next(reversed(self._lines.values()))

    @property
    def tail(self):
        if not self._lines:
            return None
        return next(iter(self._lines.values()))

    def tags(self):
        return [line.tag for line in self]

    def find(self, tag):
        return self._lines.get(tag)

    def _check_member(self, line):
        if self._lines.get(line.tag) is not line:
            raise InvariantViolation(f"{line!r} is not resident in this set")

    def move_to_front(self, line):
        self._check_member(line)
        self._lines.move_to_end(line.tag)

    def insert_front(self, line):
        if len(self._lines) >= self.capacity:
            raise InvariantViolation("insert into a full set")
        if line.tag in self._lines:
            raise InvariantViolation(f"tag {line.tag:#x} already resident")
        self._lines[line.tag] = line

    def evict_tail(self):
        if not self._lines:
            raise InvariantViolation("evict from an empty set")
        _, line = self._lines.popitem(last=False)
        return line


class Outcome(Enum):
    HIT = "hit"
    COLD_MISS = "cold_miss"
    EVICT_MISS = "evict_miss"


# line is the matching line on HIT, the victim on EVICT_MISS, None on COLD_MISS
Lookup = collections.namedtuple("Lookup", ["outcome", "line"])


class CacheBank:
    """
    Set-associative tag store with LRU replacement.
    One bank is either the unified cache or one half of a split I/D cache.
    """

    def __init__(self, size, block_size, associativity):
        self.size = size
        self.block_size = block_size
        self.associativity = associativity
        self.n_sets = size // (block_size * associativity)
        self.index_mask = self.n_sets - 1
        self.index_shift = log2(block_size)
        self.sets = [LineList(associativity) for _ in range(self.n_sets)]
        self.occupancy = [0] * self.n_sets
        self.total_occupied = 0

    def decode(self, address):
        return decode(address, self.block_size, self.n_sets)

    def lookup_or_reserve(self, set_index, tag):
        lines = self.sets[set_index]
        line = lines.find(tag)
        if line is not None:
            return Lookup(Outcome.HIT, line)
        if self.occupancy[set_index] < self.associativity:
            return Lookup(Outcome.COLD_MISS, None)
        return Lookup(Outcome.EVICT_MISS, lines.tail)

    def commit_admit(self, set_index, line):
        self.sets[set_index].insert_front(line)
        self.occupancy[set_index] += 1
        self.total_occupied += 1
        if self.occupancy[set_index] != len(self.sets[set_index]):
            raise InvariantViolation(f"occupancy of set {set_index} out of sync")

    def commit_evict_replace(self, set_index, victim, new_tag):
        lines = self.sets[set_index]
        if lines.tail is not victim:
            raise InvariantViolation(f"victim {victim!r} is not the LRU line of set {set_index}")
        lines.evict_tail()
        victim.tag = new_tag
        lines.insert_front(victim)

    def touch(self, set_index, line):
        self.sets[set_index].move_to_front(line)

    def resident_lines(self):
        for lines in self.sets:
            yield from lines

    def clear(self):
        self.sets = [LineList(self.associativity) for _ in range(self.n_sets)]
        self.occupancy = [0] * self.n_sets
        self.total_occupied = 0

    def geometry(self):
        return {
            "size": self.size,
            "block_size": self.block_size,
            "associativity": self.associativity,
            "n_sets": self.n_sets,
            "resident_lines": self.total_occupied,
            "capacity_lines": self.n_sets * self.associativity,
        }
