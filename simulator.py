# simulator.py
from dataclasses import dataclass, asdict
from enum import IntEnum

from cache import CacheBank, CacheLine, Outcome

DEFAULT_CACHE_SIZE = 8 * 1024
DEFAULT_BLOCK_SIZE = 16
DEFAULT_ASSOCIATIVITY = 1


class ConfigurationError(ValueError):
    pass


class AccessKind(IntEnum):
    # values are the labels used in trace files
    DATA_LOAD = 0
    DATA_STORE = 1
    INSTRUCTION_FETCH = 2

    @property
    def is_write(self):
        return self is AccessKind.DATA_STORE


def _is_power_of_two(value):
    return value > 0 and value & (value - 1) == 0


def _flag(cfg, key, default):
    value = cfg.get(key, default)
    if not isinstance(value, bool):
        raise ConfigurationError(f"cache option {key!r} must be true or false, got {value!r}")
    return value


def _integer(cfg, key, default):
    value = cfg.get(key, default)
    # bool is an int subclass, reject it along with fractional floats
    if isinstance(value, bool):
        raise ConfigurationError(f"cache option {key!r} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value, 0)
        except ValueError:
            pass
    raise ConfigurationError(f"cache option {key!r} must be an integer, got {value!r}")


@dataclass(frozen=True)
class CacheConfig:
    """
    Immutable cache parameters for one simulation run.

    Attributes:
        split: separate instruction and data caches when True
        size: unified cache size in bytes (ignored when split)
        isize / dsize: instruction / data cache sizes in bytes (split only)
        block_size: bytes per line
        associativity: lines per set
        write_back: write-back when True, write-through otherwise
        write_allocate: allocate a line on a write miss when True
    """

    split: bool = False
    size: int = DEFAULT_CACHE_SIZE
    isize: int = DEFAULT_CACHE_SIZE
    dsize: int = DEFAULT_CACHE_SIZE
    block_size: int = DEFAULT_BLOCK_SIZE
    associativity: int = DEFAULT_ASSOCIATIVITY
    write_back: bool = True
    write_allocate: bool = True

    @classmethod
    def from_dict(cls, cfg):
        return cls(
            split=_flag(cfg, "split", False),
            size=_integer(cfg, "size", DEFAULT_CACHE_SIZE),
            isize=_integer(cfg, "isize", DEFAULT_CACHE_SIZE),
            dsize=_integer(cfg, "dsize", DEFAULT_CACHE_SIZE),
            block_size=_integer(cfg, "block_size", DEFAULT_BLOCK_SIZE),
            associativity=_integer(cfg, "associativity", DEFAULT_ASSOCIATIVITY),
            write_back=_flag(cfg, "write_back", True),
            write_allocate=_flag(cfg, "write_allocate", True),
        )

    def as_dict(self):
        return asdict(self)

    def bank_sizes(self):
        if self.split:
            return {"instruction": self.isize, "data": self.dsize}
        return {"unified": self.size}

    def validate(self):
        if self.block_size <= 0 or self.associativity <= 0:
            raise ConfigurationError("block size and associativity must be positive integers")
        if not _is_power_of_two(self.block_size):
            raise ConfigurationError(f"block size {self.block_size} is not a power of two")
        line_group = self.block_size * self.associativity
        for name, size in self.bank_sizes().items():
            if size <= 0:
                raise ConfigurationError(f"{name} cache size must be a positive integer")
            if size % line_group:
                raise ConfigurationError(
                    f"{name} cache size {size} is not a multiple of "
                    f"block_size * associativity ({line_group})"
                )
            n_sets = size // line_group
            if not _is_power_of_two(n_sets):
                raise ConfigurationError(f"{name} cache has {n_sets} sets, not a power of two")
        return self


class CacheStat:
    __slots__ = ("accesses", "misses", "replacements", "demand_fetches", "copies_back")

    def __init__(self):
        self.accesses = 0
        self.misses = 0
        self.replacements = 0
        self.demand_fetches = 0
        self.copies_back = 0

    @property
    def miss_rate(self):
        return self.misses / self.accesses if self.accesses else 0.0

    @property
    def hit_rate(self):
        return 1.0 - self.miss_rate if self.accesses else 0.0

    def as_dict(self):
        return {name: getattr(self, name) for name in self.__slots__}


class StatsCollector:
    """Counters for the instruction stream and the data stream."""

    def __init__(self):
        self.instruction = CacheStat()
        self.data = CacheStat()

    def stream(self, kind):
        return self.instruction if kind is AccessKind.INSTRUCTION_FETCH else self.data

    @property
    def demand_fetches(self):
        return self.instruction.demand_fetches + self.data.demand_fetches

    @property
    def copies_back(self):
        return self.instruction.copies_back + self.data.copies_back

    def as_dict(self):
        return {"instruction": self.instruction.as_dict(), "data": self.data.as_dict()}


class CacheModel:
    """
    Drives accesses through decode -> lookup -> policy -> counters.
    Build it with configure() so the configuration is validated first.
    """

    def __init__(self, config: CacheConfig):
        self.config = config
        self.stats = StatsCollector()
        if config.split:
            ibank = CacheBank(config.isize, config.block_size, config.associativity)
            dbank = CacheBank(config.dsize, config.block_size, config.associativity)
            self.banks = (ibank, dbank)
            self._route = {
                AccessKind.INSTRUCTION_FETCH: ibank,
                AccessKind.DATA_LOAD: dbank,
                AccessKind.DATA_STORE: dbank,
            }
        else:
            bank = CacheBank(config.size, config.block_size, config.associativity)
            self.banks = (bank,)
            self._route = dict.fromkeys(AccessKind, bank)

    def bank_for(self, kind):
        return self._route[kind]

    @property
    def resident_lines(self):
        return sum(bank.total_occupied for bank in self.banks)

    def access(self, address, kind):
        kind = AccessKind(kind)
        bank = self._route[kind]
        set_index, tag = bank.decode(address)
        stat = self.stats.stream(kind)
        stat.accesses += 1

        outcome, line = bank.lookup_or_reserve(set_index, tag)
        if kind.is_write:
            self._write(bank, set_index, tag, outcome, line, stat)
        else:
            self._read(bank, set_index, tag, outcome, line, stat)

    def _read(self, bank, set_index, tag, outcome, line, stat):
        if outcome is Outcome.HIT:
            bank.touch(set_index, line)
            return
        stat.misses += 1
        stat.demand_fetches += 1
        if outcome is Outcome.COLD_MISS:
            bank.commit_admit(set_index, CacheLine(tag))
            return
        stat.replacements += 1
        if line.dirty and self.config.write_back:
            stat.copies_back += 1
        line.dirty = False
        bank.commit_evict_replace(set_index, line, tag)

    def _write(self, bank, set_index, tag, outcome, line, stat):
        write_back = self.config.write_back
        if outcome is Outcome.HIT:
            line.dirty = write_back
            if not write_back:
                stat.copies_back += 1
            bank.touch(set_index, line)
            return

        stat.misses += 1
        if not self.config.write_allocate:
            # the word goes straight to memory, nothing is retained
            stat.copies_back += 1
            return

        stat.demand_fetches += 1
        if not write_back:
            stat.copies_back += 1
        if outcome is Outcome.COLD_MISS:
            bank.commit_admit(set_index, CacheLine(tag, dirty=write_back))
            return
        stat.replacements += 1
        if line.dirty:
            stat.copies_back += 1
        line.dirty = write_back
        bank.commit_evict_replace(set_index, line, tag)

    def flush(self):
        """Write back every dirty line still resident. Returns the number written."""
        flushed = 0
        for bank in self.banks:
            for line in bank.resident_lines():
                if line.dirty:
                    line.dirty = False
                    flushed += 1
        # leftover dirty lines can only come from data stores
        self.stats.data.copies_back += flushed
        return flushed

    def close(self):
        for bank in self.banks:
            bank.clear()


def configure(config):
    """Validate config (a CacheConfig or a plain mapping) and build a CacheModel."""
    if not isinstance(config, CacheConfig):
        config = CacheConfig.from_dict(config)
    return CacheModel(config.validate())
