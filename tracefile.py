# tracefile.py
import logging
import os

import numpy as np

from simulator import AccessKind

logger = logging.getLogger(__name__)


class TraceFormatError(ValueError):
    pass


def parse_record(line):
    """
    Parse one '<kind> <hex address>' record.
    Returns (address, AccessKind), or None for blank and comment lines.
    """
    text = line.split("#", 1)[0].strip()
    if not text:
        return None
    fields = text.split()
    if len(fields) != 2:
        raise TraceFormatError(f"expected '<kind> <address>', got {line.strip()!r}")
    try:
        kind = AccessKind(int(fields[0]))
        address = int(fields[1], 16)
    except ValueError as exc:
        raise TraceFormatError(f"bad trace record {line.strip()!r}: {exc}") from exc
    if address < 0:
        raise TraceFormatError(f"negative address in {line.strip()!r}")
    return address, kind


def read_trace(source, strict=False):
    """
    Yield (address, AccessKind) pairs from a trace file path or an iterable of lines.
    Malformed lines are skipped with a warning unless strict is set.
    """
    if isinstance(source, (str, os.PathLike)):
        with open(source, "r") as f:
            yield from read_trace(f, strict=strict)
        return

    for lineno, line in enumerate(source, start=1):
        try:
            record = parse_record(line)
        except TraceFormatError as exc:
            if strict:
                raise TraceFormatError(f"line {lineno}: {exc}") from exc
            logger.warning("Skipping trace line %d: %s", lineno, exc)
            continue
        if record is not None:
            yield record


def write_trace(records, path):
    dirname = os.path.dirname(path)
    if dirname:
        os.makedirs(dirname, exist_ok=True)
    count = 0
    with open(path, "w") as f:
        for address, kind in records:
            f.write(f"{int(kind)} {address:x}\n")
            count += 1
    return count


def generate_trace(num_accesses=10000, working_set_kb=64, block_size=16,
                   access_pattern="mixed", read_ratio=0.8,
                   instruction_ratio=0.3, random_seed=None):
    """
    Build a synthetic trace as a list of (address, AccessKind).

    Instruction fetches walk their own region sequentially. Data accesses
    follow access_pattern over a working set of working_set_kb:
      sequential - block after block with wrap-around
      random     - uniform over the working set
      mixed      - 80% sequential, 20% random
    """
    if access_pattern not in ("sequential", "random", "mixed"):
        raise ValueError(f"unknown access pattern {access_pattern!r}")
    rng = np.random.default_rng(random_seed)
    num_blocks = max(1, (working_set_kb * 1024) // block_size)

    is_inst = rng.random(num_accesses) < instruction_ratio
    is_read = rng.random(num_accesses) < read_ratio
    random_blocks = rng.integers(0, num_blocks, size=num_accesses)
    if access_pattern == "sequential":
        use_random = np.zeros(num_accesses, dtype=bool)
    elif access_pattern == "random":
        use_random = np.ones(num_accesses, dtype=bool)
    else:
        use_random = rng.random(num_accesses) >= 0.8

    # data addresses sit above the instruction region
    data_base = num_blocks * block_size
    inst_ptr = 0
    seq_ptr = 0
    trace = []
    for i in range(num_accesses):
        if is_inst[i]:
            trace.append((inst_ptr * block_size, AccessKind.INSTRUCTION_FETCH))
            inst_ptr = (inst_ptr + 1) % num_blocks
            continue
        if use_random[i]:
            block = int(random_blocks[i])
        else:
            block = seq_ptr
            seq_ptr = (seq_ptr + 1) % num_blocks
        kind = AccessKind.DATA_LOAD if is_read[i] else AccessKind.DATA_STORE
        trace.append((data_base + block * block_size, kind))
    return trace
